"""
stellar-remit — send one native payment through a Stellar Horizon gateway.

Public API:

    Pure layer (no I/O):
        - ``build_transaction()`` — unsigned single-payment transaction,
          sequence = fetched + 1.
        - ``validate_intent()`` — amount / memo / fee / address checks.
        - ``classify_response()`` — Horizon submit response → outcome.
        - ``RetryPolicy`` — bounded exponential backoff.

    Secrets boundary:
        - ``KeypairSigner`` / ``sign_transaction()`` — network-bound
          Ed25519 signature, returns a ``SignedEnvelope``.

    Impure layer (network I/O):
        - ``SequenceFetcher`` — account sequence lookup with retry.
        - ``Submitter`` — single, never-retried submission.
        - ``PaymentPipeline`` / ``send_payment()`` — the whole run.

    Protocols (for dependency injection):
        - ``GatewayTransport`` — HTTP boundary (``HttpxTransport`` default).
        - ``Signer`` — secrets boundary.
        - ``MetricsSink`` — observability port.
"""

__version__ = "0.1.0"

from stellar_remit.builder import (
    MAX_MEMO_BYTES,
    UnsignedTransaction,
    build_transaction,
    validate_intent,
)
from stellar_remit.errors import (
    BuildError,
    ConfigError,
    CryptoError,
    FatalHttpError,
    GatewayUnavailable,
    InvalidAmount,
    InvalidFee,
    InvalidMemo,
    InvalidReceiverKey,
    InvalidSecretKey,
    LedgerRejection,
    ParseError,
    RemitError,
    RetriesExhausted,
    SigningFailure,
    TransientNetworkError,
    UnclassifiedRejection,
)
from stellar_remit.models import MIN_BASE_FEE, AccountSequence, PaymentIntent
from stellar_remit.observability import MetricsSink, NullMetrics, PrometheusMetrics
from stellar_remit.pipeline import PaymentPipeline, PaymentResult, PipelineState, send_payment
from stellar_remit.retry import RetryPolicy
from stellar_remit.sequence import SequenceFetcher
from stellar_remit.signer import (
    PUBLIC_PASSPHRASE,
    TESTNET_PASSPHRASE,
    DecodedPayment,
    KeypairSigner,
    SignedEnvelope,
    Signer,
    sign_transaction,
    verify_envelope,
)
from stellar_remit.submitter import (
    Rejected,
    SubmissionOutcome,
    Submitter,
    Success,
    TransportFailure,
    classify_response,
)
from stellar_remit.transport import GatewayResponse, GatewayTransport, HttpxTransport

__all__ = [
    "AccountSequence",
    "BuildError",
    "ConfigError",
    "CryptoError",
    "DecodedPayment",
    "FatalHttpError",
    "GatewayResponse",
    "GatewayTransport",
    "GatewayUnavailable",
    "HttpxTransport",
    "InvalidAmount",
    "InvalidFee",
    "InvalidMemo",
    "InvalidReceiverKey",
    "InvalidSecretKey",
    "KeypairSigner",
    "LedgerRejection",
    "MAX_MEMO_BYTES",
    "MIN_BASE_FEE",
    "MetricsSink",
    "NullMetrics",
    "ParseError",
    "PaymentIntent",
    "PaymentPipeline",
    "PaymentResult",
    "PipelineState",
    "PUBLIC_PASSPHRASE",
    "PrometheusMetrics",
    "Rejected",
    "RemitError",
    "RetriesExhausted",
    "RetryPolicy",
    "SequenceFetcher",
    "SignedEnvelope",
    "Signer",
    "SigningFailure",
    "SubmissionOutcome",
    "Submitter",
    "Success",
    "TESTNET_PASSPHRASE",
    "TransientNetworkError",
    "TransportFailure",
    "UnclassifiedRejection",
    "UnsignedTransaction",
    "build_transaction",
    "classify_response",
    "send_payment",
    "sign_transaction",
    "validate_intent",
    "verify_envelope",
]
