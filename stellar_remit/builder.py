"""
Transaction builder for native payments.

Builds an unsigned single-operation Payment transaction from a
PaymentIntent and the sender's fetched sequence number. Building is pure:
it needs no secret and makes no network call. No time bounds are set,
so identical inputs always produce byte-identical XDR.

The builder enforces:
    - exactly one Payment operation, native asset
    - amount > 0 stroops, within int64
    - memo at most 28 UTF-8 bytes (rejected, never truncated)
    - fee >= MIN_BASE_FEE per operation
    - sequence == fetched sequence + 1, never caller-chosen
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from stellar_sdk.asset import Asset
from stellar_sdk.memo import Memo, NoneMemo, TextMemo
from stellar_sdk.operation import Payment
from stellar_sdk.strkey import StrKey
from stellar_sdk.transaction import Transaction

from stellar_remit.errors import (
    BuildError,
    ConfigError,
    CryptoError,
    InvalidAmount,
    InvalidFee,
    InvalidMemo,
    InvalidReceiverKey,
)
from stellar_remit.models import MIN_BASE_FEE, AccountSequence, PaymentIntent

# Protocol ceiling for text memos, in bytes.
MAX_MEMO_BYTES = 28

_INT64_MAX = 2**63 - 1

# Transaction fee is an XDR uint32.
_UINT32_MAX = 2**32 - 1

# Lumens carry 7 decimal places; one stroop is 1e-7 XLM.
_STROOP_EXPONENT = -7


@dataclass(frozen=True)
class UnsignedTransaction:
    """A built, not yet signed, payment transaction.

    Attributes:
        source_account: Sender G... address.
        sequence: Sequence number the transaction consumes.
        fee: Total fee in stroops (per-operation fee x 1 operation).
        destination: Receiver G... address.
        amount: Amount in stroops.
        memo: Text memo, or None.
        transaction: Underlying stellar-sdk transaction.
    """

    source_account: str
    sequence: int
    fee: int
    destination: str
    amount: int
    memo: str | None
    transaction: Transaction

    def to_xdr_bytes(self) -> bytes:
        """Canonical XDR encoding of the transaction body."""
        return self.transaction.to_xdr_object().to_xdr_bytes()


def stroops_to_lumens(amount: int) -> str:
    """Render a stroop amount as the decimal XLM string the SDK expects."""
    return format(Decimal(amount).scaleb(_STROOP_EXPONENT).normalize(), "f")


def validate_intent(intent: PaymentIntent) -> None:
    """Check everything about an intent that needs no network state.

    Raises:
        InvalidAmount: amount <= 0 or beyond int64.
        InvalidMemo: memo longer than 28 UTF-8 bytes.
        InvalidFee: fee below the network minimum or beyond uint32.
        InvalidReceiverKey: receiver is not a valid G... address.
        CryptoError: sender is not a valid G... address.
    """
    if isinstance(intent.amount, bool) or not isinstance(intent.amount, int):
        raise InvalidAmount(f"amount must be an integer number of stroops, got: {intent.amount!r}")
    if intent.amount <= 0:
        raise InvalidAmount(f"amount must be > 0 stroops, got: {intent.amount}")
    if intent.amount > _INT64_MAX:
        raise InvalidAmount(f"amount exceeds int64, got: {intent.amount}")

    if intent.memo:
        size = len(intent.memo.encode("utf-8"))
        if size > MAX_MEMO_BYTES:
            raise InvalidMemo(
                f"memo exceeds {MAX_MEMO_BYTES} bytes (got {size} bytes)",
                details={"memo_bytes": size},
            )

    if intent.fee < MIN_BASE_FEE:
        raise InvalidFee(f"fee must be >= {MIN_BASE_FEE} stroops, got: {intent.fee}")
    if intent.fee > _UINT32_MAX:
        raise InvalidFee(f"fee exceeds uint32, got: {intent.fee}")

    if not StrKey.is_valid_ed25519_public_key(intent.receiver_public_key):
        raise InvalidReceiverKey(
            f"invalid receiver address: {intent.receiver_public_key!r}"
        )
    if not StrKey.is_valid_ed25519_public_key(intent.sender_public_key):
        raise CryptoError(f"invalid sender address: {intent.sender_public_key!r}")


def build_transaction(intent: PaymentIntent, sequence: AccountSequence) -> UnsignedTransaction:
    """Build an unsigned native Payment transaction.

    Args:
        intent: What to pay, to whom, with which memo and fee.
        sequence: The sender's current sequence, as fetched from the gateway.

    Returns:
        UnsignedTransaction consuming ``sequence.sequence + 1``.

    Raises:
        BuildError subclasses or CryptoError, see ``validate_intent``.
        ConfigError: If the sequence belongs to another account.
    """
    validate_intent(intent)

    if sequence.account_id != intent.sender_public_key:
        raise ConfigError(
            "fetched sequence belongs to a different account",
            details={"expected": intent.sender_public_key, "got": sequence.account_id},
        )

    next_sequence = sequence.sequence + 1
    if next_sequence > _INT64_MAX:
        raise BuildError(f"sequence overflow for account {intent.sender_public_key}")

    memo: Memo = TextMemo(intent.memo) if intent.memo else NoneMemo()
    operation = Payment(
        destination=intent.receiver_public_key,
        asset=Asset.native(),
        amount=stroops_to_lumens(intent.amount),
    )
    transaction = Transaction(
        source=intent.sender_public_key,
        sequence=next_sequence,
        fee=intent.fee,
        operations=[operation],
        memo=memo,
    )

    return UnsignedTransaction(
        source_account=intent.sender_public_key,
        sequence=next_sequence,
        fee=intent.fee,
        destination=intent.receiver_public_key,
        amount=intent.amount,
        memo=intent.memo or None,
        transaction=transaction,
    )
