"""
Signer — the secrets boundary.

The pipeline hands an UnsignedTransaction to a signer and gets back a
SignedEnvelope. Key material never leaves the signer; the envelope only
carries a public ``key_id`` safe for logs.

Signed payload:
    sha256(network_id || ENVELOPE_TYPE_TX || transaction_xdr)

where ``network_id = sha256(network_passphrase)``. Binding the network
into the hash means a signature made for the test network is invalid on
the public network and vice versa. The Ed25519 signature itself is
produced with ``cryptography``; stellar-sdk only supplies the XDR codec
and StrKey decoding.

Concrete implementations:
    - KeypairSigner (local secret seed)
    - FakeSigner (tests)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from stellar_sdk.decorated_signature import DecoratedSignature
from stellar_sdk.exceptions import Ed25519SecretSeedInvalidError
from stellar_sdk.keypair import Keypair
from stellar_sdk.memo import TextMemo
from stellar_sdk.operation import Payment
from stellar_sdk.strkey import StrKey
from stellar_sdk.transaction_envelope import TransactionEnvelope

from stellar_remit.builder import UnsignedTransaction
from stellar_remit.errors import CryptoError, InvalidSecretKey, ParseError, SigningFailure

# Default network: the public test network.
TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"
PUBLIC_PASSPHRASE = "Public Global Stellar Network ; September 2015"


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class DecodedPayment:
    """The payment fields recovered from a signed envelope."""

    source_account: str
    destination: str
    amount: int
    asset: str
    memo: str | None
    sequence: int
    fee: int
    signature_count: int


@dataclass(frozen=True)
class SignedEnvelope:
    """A signed transaction envelope ready for submission.

    Attributes:
        xdr: Base64 XDR of the TransactionEnvelope (wire text form).
        tx_hash: Hex hash of the network-bound signature base. This is
            the hash Horizon reports on success.
        network_passphrase: Network the signature is bound to.
        key_id: Public G... address of the signing key.
    """

    xdr: str
    tx_hash: str
    network_passphrase: str
    key_id: str

    def to_sdk(self) -> TransactionEnvelope:
        return TransactionEnvelope.from_xdr(self.xdr, self.network_passphrase)

    def decode(self) -> DecodedPayment:
        """Decode the envelope back into its payment fields.

        Raises:
            ParseError: If the envelope is not a single native payment.
        """
        envelope = self.to_sdk()
        tx = envelope.transaction
        if len(tx.operations) != 1 or not isinstance(tx.operations[0], Payment):
            raise ParseError("envelope does not hold exactly one payment operation")
        op = tx.operations[0]

        memo: str | None = None
        if isinstance(tx.memo, TextMemo):
            memo = tx.memo.memo_text.decode("utf-8")

        return DecodedPayment(
            source_account=tx.source.account_id,
            destination=op.destination.account_id,
            amount=int(Decimal(op.amount).scaleb(7)),
            asset="native" if op.asset.is_native() else op.asset.code,
            memo=memo,
            sequence=tx.sequence,
            fee=tx.fee,
            signature_count=len(envelope.signatures),
        )


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class Signer(Protocol):
    """Interface for transaction signing.

    Properties:
        account: G... address associated with this signer.
        key_id: Public identifier of the signing key (safe for logging).
    """

    @property
    def account(self) -> str:
        ...

    @property
    def key_id(self) -> str:
        ...

    def sign(self, unsigned: UnsignedTransaction) -> SignedEnvelope:
        """Sign an unsigned transaction for this signer's network.

        Raises:
            SigningFailure: If signing fails.
        """
        ...


# =========================================================================
# Keypair signer
# =========================================================================


class KeypairSigner:
    """Signs with a local Ed25519 secret seed.

    Args:
        keypair: stellar-sdk keypair holding the secret seed.
        network_passphrase: Network the signatures are bound to.
    """

    def __init__(self, keypair: Keypair, network_passphrase: str = TESTNET_PASSPHRASE) -> None:
        if not keypair.can_sign():
            raise InvalidSecretKey("keypair has no secret seed")
        self._keypair = keypair
        self._network_passphrase = network_passphrase
        self._private_key = Ed25519PrivateKey.from_private_bytes(keypair.raw_secret_key())

    @classmethod
    def from_secret(cls, secret: str, network_passphrase: str = TESTNET_PASSPHRASE) -> KeypairSigner:
        """Decode an ``S...`` secret seed.

        Raises:
            InvalidSecretKey: If the seed is not a valid StrKey secret.
        """
        try:
            keypair = Keypair.from_secret(secret)
        except (Ed25519SecretSeedInvalidError, ValueError, TypeError) as e:
            raise InvalidSecretKey("invalid sender secret seed") from e
        return cls(keypair, network_passphrase)

    @property
    def account(self) -> str:
        return self._keypair.public_key

    @property
    def key_id(self) -> str:
        return self._keypair.public_key

    @property
    def network_passphrase(self) -> str:
        return self._network_passphrase

    def sign(self, unsigned: UnsignedTransaction) -> SignedEnvelope:
        if unsigned.source_account != self.account:
            raise SigningFailure(
                "transaction source does not match the signing key",
                details={"source": unsigned.source_account, "key_id": self.key_id},
            )
        try:
            envelope = TransactionEnvelope(
                transaction=unsigned.transaction,
                network_passphrase=self._network_passphrase,
            )
            digest = envelope.hash()
            signature = self._private_key.sign(digest)
            envelope.signatures.append(
                DecoratedSignature(self._keypair.signature_hint(), signature)
            )
            xdr = envelope.to_xdr()
        except Exception as e:
            raise SigningFailure("sign transaction failed") from e

        return SignedEnvelope(
            xdr=xdr,
            tx_hash=digest.hex(),
            network_passphrase=self._network_passphrase,
            key_id=self.key_id,
        )


def sign_transaction(
    unsigned: UnsignedTransaction,
    secret_key: str,
    network_passphrase: str = TESTNET_PASSPHRASE,
) -> SignedEnvelope:
    """One-shot signing: decode the seed, sign, return the envelope."""
    return KeypairSigner.from_secret(secret_key, network_passphrase).sign(unsigned)


def verify_envelope(envelope: SignedEnvelope, public_key: str, network_passphrase: str) -> bool:
    """Check that ``envelope`` carries a valid signature by ``public_key``
    for ``network_passphrase``.

    Returns False for a signature made for any other network.
    """
    if not StrKey.is_valid_ed25519_public_key(public_key):
        raise CryptoError(f"invalid public key: {public_key!r}")
    verifier = Ed25519PublicKey.from_public_bytes(StrKey.decode_ed25519_public_key(public_key))

    sdk_envelope = TransactionEnvelope.from_xdr(envelope.xdr, network_passphrase)
    digest = sdk_envelope.hash()
    for decorated in sdk_envelope.signatures:
        try:
            verifier.verify(decorated.signature, digest)
        except InvalidSignature:
            continue
        return True
    return False
