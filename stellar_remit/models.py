"""
Plain value types shared across the payment pipeline.

Both types are frozen and created once per run. Validation of payment
fields (amount, memo, fee) belongs to the transaction builder, so an
intent can be constructed from raw settings and rejected with a precise
error later, before any network I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

# Minimum fee per operation, in stroops.
MIN_BASE_FEE = 100


@dataclass(frozen=True)
class AccountSequence:
    """Current sequence number of a ledger account.

    Attributes:
        account_id: G... address the sequence belongs to.
        sequence: Last sequence number consumed by the account.
    """

    account_id: str
    sequence: int

    def __post_init__(self) -> None:
        if self.sequence < 0:
            raise ValueError(f"sequence must be >= 0, got: {self.sequence}")


@dataclass(frozen=True)
class PaymentIntent:
    """What the caller wants paid.

    Attributes:
        sender_public_key: G... address of the paying account.
        receiver_public_key: G... address of the destination account.
        amount: Amount in stroops.
        memo: Optional text memo (at most 28 UTF-8 bytes).
        fee: Fee per operation in stroops.
    """

    sender_public_key: str
    receiver_public_key: str
    amount: int
    memo: str | None = None
    fee: int = MIN_BASE_FEE
