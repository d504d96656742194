"""
Error taxonomy and rejection mapping for stellar-remit.

Every failure the pipeline can produce is a ``RemitError`` carrying a
machine-readable ``error_code`` and a ``details`` dict for diagnostics.
The orchestrator preserves the originating error on the run result and
renders its cause chain as one line for the user.

Horizon transaction result codes (``extras.result_codes.transaction``):
    - tx_bad_seq: sequence is stale, re-run the whole pipeline
    - tx_insufficient_balance: account cannot cover amount + fee + reserve
    - tx_insufficient_fee: fee below the network minimum
    - tx_bad_auth: signature not valid for this account/network
    - tx_no_source_account: sender account does not exist
    - tx_failed: an operation failed (see operation codes)
    - tx_malformed: transaction structurally invalid

Unknown codes default to an unclassified rejection rather than guessing.

Reference:
    https://developers.stellar.org/docs/data/apis/horizon/api-reference/errors/result-codes/transactions
"""

from __future__ import annotations

from typing import Any


class RemitError(Exception):
    """Base class for all stellar-remit failures."""

    error_code = "UNKNOWN"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}


# =========================================================================
# Configuration and key material
# =========================================================================


class ConfigError(RemitError):
    """Missing or malformed settings."""

    error_code = "CONFIG"


class CryptoError(RemitError):
    """Bad key encoding or a signing failure."""

    error_code = "CRYPTO"


class InvalidSecretKey(CryptoError):
    pass


class InvalidReceiverKey(CryptoError):
    pass


class SigningFailure(CryptoError):
    pass


# =========================================================================
# Payment validation
# =========================================================================


class BuildError(RemitError):
    """The payment intent cannot be turned into a transaction."""

    error_code = "INVALID_PAYMENT"


class InvalidAmount(BuildError):
    pass


class InvalidMemo(BuildError):
    pass


class InvalidFee(BuildError):
    pass


# =========================================================================
# Gateway I/O
# =========================================================================


class TransientNetworkError(RemitError):
    """A failure that may go away by waiting (5xx, dropped connection)."""

    error_code = "TRANSIENT"

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class FatalHttpError(RemitError):
    """A gateway response that waiting will not fix."""

    error_code = "HTTP_FATAL"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class RetriesExhausted(FatalHttpError):
    """Every attempt allowed by the retry policy failed transiently."""

    def __init__(self, message: str, *, attempts: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts


class ParseError(RemitError):
    """A gateway response is missing an expected field or is not JSON."""

    error_code = "PARSE"


class GatewayUnavailable(RemitError):
    """The submission never reached the gateway (timeout, refused, TLS)."""

    error_code = "TRANSPORT"

    def __init__(self, message: str, *, kind: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.kind = kind


class LedgerRejection(RemitError):
    """The ledger rejected the transaction with a recognised result code."""

    error_code = "LEDGER_REJECTED"

    def __init__(self, message: str, *, code: str, rerun_pipeline: bool = False, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.code = code
        self.rerun_pipeline = rerun_pipeline


class UnclassifiedRejection(RemitError):
    """Non-2xx submission response without a recognised result code."""

    error_code = "UNCLASSIFIED"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        body: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.code = code
        self.status_code = status_code
        self.body = body


# =========================================================================
# Transaction result code → actionable message
# =========================================================================

STALE_SEQUENCE_CODE = "tx_bad_seq"

_KNOWN_TX_CODES: dict[str, str] = {
    STALE_SEQUENCE_CODE: "stale sequence, re-fetch and retry",
    "tx_insufficient_balance": "insufficient balance, fund the account",
    "tx_insufficient_fee": "fee below the network minimum, raise the fee",
    "tx_bad_auth": "signature rejected, check the sender secret and network passphrase",
    "tx_no_source_account": "sender account does not exist, create and fund it",
    "tx_failed": "operation failed",
    "tx_malformed": "transaction malformed, check amount, memo and addresses",
}


def is_known_code(code: str) -> bool:
    return code in _KNOWN_TX_CODES


def describe_result_code(
    code: str,
    operation_codes: tuple[str, ...] = (),
) -> str:
    """Map a Horizon transaction result code to a human-actionable message.

    Args:
        code: Value of ``extras.result_codes.transaction``.
        operation_codes: Values of ``extras.result_codes.operations``,
            appended for ``tx_failed`` so the failing operation is visible.

    Returns:
        Actionable message for known codes, or the code itself verbatim.
    """
    message = _KNOWN_TX_CODES.get(code)
    if message is None:
        return code
    if code == "tx_failed" and operation_codes:
        return f"{message} ({', '.join(operation_codes)})"
    return message


def cause_chain(exc: BaseException) -> str:
    """Render an exception and its ``__cause__`` chain as one line."""
    parts: list[str] = []
    current: BaseException | None = exc
    while current is not None:
        text = str(current) or type(current).__name__
        if not parts or parts[-1] != text:
            parts.append(text)
        current = current.__cause__
    return ": ".join(parts)
