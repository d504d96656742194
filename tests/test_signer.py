"""
Tests for the signer (secrets boundary).

Test plan:
- Seed decoding: valid S... seed → signer for the matching G... account,
  malformed seeds → InvalidSecretKey
- Envelope: exactly one signature, hash matches the network-bound
  signature base, key_id is the public address
- Round-trip: decoding recovers destination, amount, asset, memo,
  sequence (= fetched + 1), fee
- Domain separation: signature verifies on the signing network only;
  same transaction signed for two networks gives different hashes
- Source mismatch: signing a transaction from another account fails
- Encoding failure: wrapped as SigningFailure, cause rendered once
"""

from dataclasses import replace

import pytest
from stellar_sdk.keypair import Keypair

from stellar_remit.builder import UnsignedTransaction, build_transaction
from stellar_remit.errors import InvalidSecretKey, SigningFailure, cause_chain
from stellar_remit.models import AccountSequence, PaymentIntent
from stellar_remit.signer import (
    PUBLIC_PASSPHRASE,
    TESTNET_PASSPHRASE,
    KeypairSigner,
    Signer,
    sign_transaction,
    verify_envelope,
)
from tests.fakes import RECEIVER, SENDER


@pytest.fixture
def unsigned(intent: PaymentIntent, sequence: AccountSequence) -> UnsignedTransaction:
    return build_transaction(intent, sequence)


class TestSeedDecoding:
    def test_valid_seed(self) -> None:
        signer = KeypairSigner.from_secret(SENDER.secret)

        assert signer.account == SENDER.public_key
        assert signer.key_id == SENDER.public_key
        assert signer.network_passphrase == TESTNET_PASSPHRASE

    def test_implements_protocol(self) -> None:
        assert isinstance(KeypairSigner.from_secret(SENDER.secret), Signer)

    @pytest.mark.parametrize(
        "secret",
        [
            "",
            "SXXXXXXXXXXXXXXXXXXXXXXXXXXX",
            SENDER.public_key,
            SENDER.secret[:-1] + ("A" if SENDER.secret[-1] != "A" else "B"),
        ],
    )
    def test_malformed_seed(self, secret: str) -> None:
        with pytest.raises(InvalidSecretKey):
            KeypairSigner.from_secret(secret)

    def test_public_only_keypair_rejected(self) -> None:
        with pytest.raises(InvalidSecretKey):
            KeypairSigner(Keypair.from_public_key(SENDER.public_key))


class TestEnvelope:
    def test_single_signature(self, unsigned: UnsignedTransaction) -> None:
        envelope = KeypairSigner.from_secret(SENDER.secret).sign(unsigned)
        sdk_envelope = envelope.to_sdk()

        assert len(sdk_envelope.signatures) == 1
        assert sdk_envelope.signatures[0].signature_hint == SENDER.signature_hint()

    def test_hash_is_network_bound_signature_base(self, unsigned: UnsignedTransaction) -> None:
        envelope = KeypairSigner.from_secret(SENDER.secret).sign(unsigned)

        assert envelope.tx_hash == envelope.to_sdk().hash_hex()
        assert len(envelope.tx_hash) == 64

    def test_matches_sdk_signature(self, unsigned: UnsignedTransaction) -> None:
        """Ed25519 is deterministic, so our signature equals the SDK's own."""
        envelope = KeypairSigner.from_secret(SENDER.secret).sign(unsigned)

        reference = envelope.to_sdk()
        reference.signatures.clear()
        reference.sign(SENDER)

        assert envelope.xdr == reference.to_xdr()

    def test_one_shot_helper(self, unsigned: UnsignedTransaction) -> None:
        a = sign_transaction(unsigned, SENDER.secret, TESTNET_PASSPHRASE)
        b = KeypairSigner.from_secret(SENDER.secret).sign(unsigned)
        assert a == b

    def test_source_mismatch(self, unsigned: UnsignedTransaction) -> None:
        with pytest.raises(SigningFailure):
            KeypairSigner.from_secret(RECEIVER.secret).sign(unsigned)

    def test_encoding_failure_wrapped_once(self, unsigned: UnsignedTransaction) -> None:
        unsigned.transaction.fee = 2**32

        with pytest.raises(SigningFailure) as exc_info:
            KeypairSigner.from_secret(SENDER.secret).sign(unsigned)

        cause = str(exc_info.value.__cause__)
        assert str(exc_info.value) == "sign transaction failed"
        assert cause_chain(exc_info.value).count(cause) == 1


class TestRoundTrip:
    def test_decode_recovers_payment(self, unsigned: UnsignedTransaction) -> None:
        decoded = KeypairSigner.from_secret(SENDER.secret).sign(unsigned).decode()

        assert decoded.source_account == SENDER.public_key
        assert decoded.destination == RECEIVER.public_key
        assert decoded.amount == 1_000_000
        assert decoded.asset == "native"
        assert decoded.memo == "Remittance"
        assert decoded.sequence == 101
        assert decoded.fee == 100
        assert decoded.signature_count == 1

    @pytest.mark.parametrize("fetched", [0, 41, 123456789012])
    def test_decoded_sequence_is_fetched_plus_one(
        self, intent: PaymentIntent, fetched: int
    ) -> None:
        unsigned = build_transaction(intent, AccountSequence(SENDER.public_key, fetched))
        decoded = sign_transaction(unsigned, SENDER.secret).decode()

        assert decoded.sequence == fetched + 1

    def test_decode_without_memo(self, intent: PaymentIntent, sequence: AccountSequence) -> None:
        unsigned = build_transaction(replace(intent, memo=None, amount=1), sequence)
        decoded = sign_transaction(unsigned, SENDER.secret).decode()

        assert decoded.memo is None
        assert decoded.amount == 1


class TestDomainSeparation:
    def test_verifies_on_signing_network(self, unsigned: UnsignedTransaction) -> None:
        envelope = KeypairSigner.from_secret(SENDER.secret, TESTNET_PASSPHRASE).sign(unsigned)
        assert verify_envelope(envelope, SENDER.public_key, TESTNET_PASSPHRASE)

    def test_invalid_on_other_network(self, unsigned: UnsignedTransaction) -> None:
        envelope = KeypairSigner.from_secret(SENDER.secret, TESTNET_PASSPHRASE).sign(unsigned)
        assert not verify_envelope(envelope, SENDER.public_key, PUBLIC_PASSPHRASE)

    def test_different_networks_different_hashes(self, unsigned: UnsignedTransaction) -> None:
        test = KeypairSigner.from_secret(SENDER.secret, TESTNET_PASSPHRASE).sign(unsigned)
        public = KeypairSigner.from_secret(SENDER.secret, PUBLIC_PASSPHRASE).sign(unsigned)

        assert test.tx_hash != public.tx_hash
        assert test.xdr != public.xdr

    def test_wrong_key_does_not_verify(self, unsigned: UnsignedTransaction) -> None:
        envelope = KeypairSigner.from_secret(SENDER.secret).sign(unsigned)
        assert not verify_envelope(envelope, RECEIVER.public_key, TESTNET_PASSPHRASE)
