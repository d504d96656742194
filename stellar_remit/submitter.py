"""
Submitter — posts a signed envelope to Horizon and classifies the answer.

Submission is never retried here. Re-sending an envelope Horizon already
accepted cannot pay twice (the sequence is consumed), but building a
fresh one with a refreshed sequence would. Recovery from any submission
failure is therefore a whole-pipeline decision made by the caller.

Response classification (pure, see ``classify_response``):
    - 2xx with string ``hash``         → Success
    - 2xx without ``hash``             → ParseError (gateway broke its contract)
    - non-2xx with result code         → Rejected, known codes get an
                                         actionable message
    - non-2xx without result code      → Rejected(code=None), raw status + body
    - no response (timeout, refused)   → TransportFailure
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Union

import structlog

from stellar_remit.errors import (
    STALE_SEQUENCE_CODE,
    GatewayUnavailable,
    LedgerRejection,
    ParseError,
    RemitError,
    UnclassifiedRejection,
    describe_result_code,
    is_known_code,
)
from stellar_remit.observability import MetricsSink, NullMetrics
from stellar_remit.signer import SignedEnvelope
from stellar_remit.transport import GatewayResponse, GatewayTransport

logger = structlog.get_logger(__name__)

_BODY_PREVIEW = 500


# =========================================================================
# Outcome types
# =========================================================================


@dataclass(frozen=True)
class Success:
    """Horizon accepted the transaction.

    Attributes:
        hash: Transaction hash reported by the gateway.
    """

    hash: str


@dataclass(frozen=True)
class Rejected:
    """Horizon answered with a non-2xx status.

    Attributes:
        code: ``extras.result_codes.transaction``, or None if absent.
        message: Actionable message for known codes, the code verbatim
            for unknown ones, or the raw status and body when no code exists.
        status_code: HTTP status of the response.
        body: Response body (truncated).
        operation_codes: ``extras.result_codes.operations`` if present.
        rerun_pipeline: True when re-running the whole pipeline (fresh
            sequence, new envelope) can succeed.
    """

    code: str | None
    message: str
    status_code: int
    body: str = ""
    operation_codes: tuple[str, ...] = field(default_factory=tuple)
    rerun_pipeline: bool = False

    @property
    def classified(self) -> bool:
        return self.code is not None and is_known_code(self.code)

    def to_error(self) -> RemitError:
        """Convert into the exception the orchestrator reports."""
        details: dict[str, Any] = {"status_code": self.status_code}
        if self.operation_codes:
            details["operation_codes"] = list(self.operation_codes)
        if self.code is not None and is_known_code(self.code):
            return LedgerRejection(
                f"ledger rejected transaction ({self.code}): {self.message}",
                code=self.code,
                rerun_pipeline=self.rerun_pipeline,
                details=details,
            )
        if self.code is not None:
            text = f"unclassified rejection ({self.code}) [HTTP {self.status_code}]"
        else:
            text = f"gateway error ({self.status_code}): {self.body}"
        return UnclassifiedRejection(
            text,
            code=self.code,
            status_code=self.status_code,
            body=self.body,
            details=details,
        )


@dataclass(frozen=True)
class TransportFailure:
    """The submission never got a response.

    The transaction may or may not have reached the ledger; check the
    envelope's hash before building a new one.
    """

    kind: str
    detail: str = ""

    def to_error(self) -> RemitError:
        return GatewayUnavailable(f"POST transaction failed: {self.detail}", kind=self.kind)


SubmissionOutcome = Union[Success, Rejected, TransportFailure]


# =========================================================================
# Response classification (pure functions, no I/O)
# =========================================================================


def _result_codes(body: Any) -> tuple[str | None, tuple[str, ...]]:
    if not isinstance(body, dict):
        return None, ()
    extras = body.get("extras")
    if not isinstance(extras, dict):
        return None, ()
    codes = extras.get("result_codes")
    if not isinstance(codes, dict):
        return None, ()

    tx_code = codes.get("transaction")
    ops = codes.get("operations")
    op_codes = tuple(c for c in ops if isinstance(c, str)) if isinstance(ops, list) else ()
    return (tx_code if isinstance(tx_code, str) else None), op_codes


def classify_response(response: GatewayResponse) -> SubmissionOutcome:
    """Classify a Horizon ``POST /transactions`` response.

    Raises:
        ParseError: 2xx response without a string ``hash``.
    """
    try:
        body: Any = response.json()
    except json.JSONDecodeError:
        body = None

    if response.is_success:
        tx_hash = body.get("hash") if isinstance(body, dict) else None
        if not isinstance(tx_hash, str) or not tx_hash:
            raise ParseError(
                "no hash in submit response",
                details={"status_code": response.status_code},
            )
        return Success(hash=tx_hash)

    preview = response.text[:_BODY_PREVIEW]
    code, op_codes = _result_codes(body)
    if code is None:
        return Rejected(
            code=None,
            message=f"HTTP {response.status_code}: {preview}",
            status_code=response.status_code,
            body=preview,
        )

    return Rejected(
        code=code,
        message=describe_result_code(code, op_codes),
        status_code=response.status_code,
        body=preview,
        operation_codes=op_codes,
        rerun_pipeline=code == STALE_SEQUENCE_CODE,
    )


# =========================================================================
# Submitter
# =========================================================================


class Submitter:
    """Posts envelopes to ``{gateway}/transactions``.

    Args:
        transport: Gateway transport shared with the sequence fetcher.
        gateway_url: Horizon base URL.
        metrics: Observability sink for attempts, outcomes and latency.
    """

    def __init__(
        self,
        transport: GatewayTransport,
        gateway_url: str,
        metrics: MetricsSink | None = None,
    ) -> None:
        self._transport = transport
        self._gateway_url = gateway_url.rstrip("/")
        self._metrics = metrics or NullMetrics()

    async def submit(self, envelope: SignedEnvelope) -> SubmissionOutcome:
        """Submit once and classify the response.

        Returns:
            Success, Rejected or TransportFailure.

        Raises:
            ParseError: 2xx response that violates the gateway contract.
        """
        url = f"{self._gateway_url}/transactions"
        self._metrics.record_attempt()
        started = time.perf_counter()

        try:
            response = await self._transport.post_form(url, {"tx": envelope.xdr})
        except GatewayUnavailable as exc:
            self._metrics.observe_latency(time.perf_counter() - started)
            self._metrics.record_failure()
            logger.error("submit_transport_failure", kind=exc.kind, tx_hash=envelope.tx_hash)
            return TransportFailure(kind=exc.kind, detail=str(exc))

        self._metrics.observe_latency(time.perf_counter() - started)

        try:
            outcome = classify_response(response)
        except ParseError:
            self._metrics.record_failure()
            raise

        if isinstance(outcome, Success):
            self._metrics.record_success()
            logger.info("submit_accepted", tx_hash=outcome.hash)
        else:
            self._metrics.record_failure()
            logger.warning(
                "submit_rejected",
                status_code=outcome.status_code,
                code=outcome.code,
                tx_hash=envelope.tx_hash,
            )
        return outcome
