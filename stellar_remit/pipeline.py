"""
Payment pipeline — runs one payment through fetch, build, sign, submit.

State machine (linear, no back-edges):

    INIT → SEQUENCE_FETCHED → BUILT → SIGNED → SUBMITTED → SUCCEEDED
      └──────────┴───────────────┴───────┴─────────┴──────→ FAILED

Ordering inside INIT matters: the sender secret, the receiver address
and the payment fields are all validated before the first network call,
so a misconfigured run never touches the gateway.

Any failure moves straight to FAILED with the originating error kept on
the result. Nothing is retried piecemeal; re-running after FAILED is the
caller's call, and only ever from the start (fresh sequence, new
envelope).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from stellar_remit.builder import build_transaction, validate_intent
from stellar_remit.errors import ConfigError, RemitError, cause_chain
from stellar_remit.models import PaymentIntent
from stellar_remit.observability import MetricsSink
from stellar_remit.retry import RetryPolicy
from stellar_remit.sequence import SequenceFetcher, SleepFn
from stellar_remit.signer import KeypairSigner, Signer
from stellar_remit.submitter import SubmissionOutcome, Submitter, Success
from stellar_remit.transport import GatewayTransport

logger = structlog.get_logger(__name__)


class PipelineState(StrEnum):
    """Position of a payment run in the pipeline."""

    INIT = "INIT"
    SEQUENCE_FETCHED = "SEQUENCE_FETCHED"
    BUILT = "BUILT"
    SIGNED = "SIGNED"
    SUBMITTED = "SUBMITTED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class PaymentResult:
    """Terminal record of one pipeline run.

    Attributes:
        state: SUCCEEDED or FAILED once the run is over.
        states: Every state visited, in order.
        outcome: Submission outcome, when submission happened.
        error: Originating error on failure.
        tx_hash: Hash of the signed envelope, once signed.
        failed_at: Last state reached before failing.
    """

    state: PipelineState = PipelineState.INIT
    states: list[PipelineState] = field(default_factory=lambda: [PipelineState.INIT])
    outcome: SubmissionOutcome | None = None
    error: RemitError | None = None
    tx_hash: str | None = None
    failed_at: PipelineState | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.SUCCEEDED

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def rerun_pipeline(self) -> bool:
        """True when re-running from the start may succeed."""
        return bool(getattr(self.error, "rerun_pipeline", False))

    def advance(self, state: PipelineState) -> None:
        self.state = state
        self.states.append(state)

    def fail(self, error: RemitError) -> None:
        self.failed_at = self.state
        self.error = error
        self.advance(PipelineState.FAILED)

    def summary(self) -> str:
        """One-line, user-facing result."""
        if self.succeeded and isinstance(self.outcome, Success):
            return f"payment submitted: {self.outcome.hash}"
        if self.error is not None:
            return f"payment failed: {cause_chain(self.error)}"
        return f"payment {self.state.value.lower()}"


class PaymentPipeline:
    """Runs payments for one sender against one gateway.

    Args:
        signer: Holds the sender key and target network.
        transport: Gateway transport shared by fetch and submit.
        gateway_url: Horizon base URL.
        retry_policy: Backoff for the sequence fetch.
        metrics: Observability sink for submissions.
        sleep: Injectable sleep for the sequence fetch backoff.
    """

    def __init__(
        self,
        signer: Signer,
        transport: GatewayTransport,
        gateway_url: str,
        *,
        retry_policy: RetryPolicy | None = None,
        metrics: MetricsSink | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._signer = signer
        fetcher_kwargs = {"sleep": sleep} if sleep is not None else {}
        self._fetcher = SequenceFetcher(transport, gateway_url, retry_policy, **fetcher_kwargs)
        self._submitter = Submitter(transport, gateway_url, metrics)

    @property
    def fetcher(self) -> SequenceFetcher:
        return self._fetcher

    async def run(self, intent: PaymentIntent) -> PaymentResult:
        """Run one payment end to end. Never raises for RemitError."""
        result = PaymentResult()
        log = logger.bind(sender=intent.sender_public_key, receiver=intent.receiver_public_key)

        try:
            if intent.sender_public_key != self._signer.account:
                raise ConfigError(
                    "payment sender does not match the signing key",
                    details={"sender": intent.sender_public_key, "key_id": self._signer.key_id},
                )
            validate_intent(intent)

            log.info("fetching_sequence")
            sequence = await self._fetcher.fetch(intent.sender_public_key)
            result.advance(PipelineState.SEQUENCE_FETCHED)

            unsigned = build_transaction(intent, sequence)
            result.advance(PipelineState.BUILT)
            log.debug("transaction_built", sequence=unsigned.sequence, fee=unsigned.fee)

            envelope = self._signer.sign(unsigned)
            result.tx_hash = envelope.tx_hash
            result.advance(PipelineState.SIGNED)

            log.info("submitting_transaction", tx_hash=envelope.tx_hash)
            outcome = await self._submitter.submit(envelope)
            result.outcome = outcome
            result.advance(PipelineState.SUBMITTED)

            if not isinstance(outcome, Success):
                raise outcome.to_error()
        except RemitError as exc:
            result.fail(exc)
            log.error(
                "payment_failed",
                failed_at=result.failed_at,
                error_code=exc.error_code,
                error=cause_chain(exc),
            )
            return result

        result.advance(PipelineState.SUCCEEDED)
        log.info("payment_succeeded", tx_hash=outcome.hash)
        return result


async def send_payment(
    *,
    secret: str,
    receiver: str,
    amount: int,
    transport: GatewayTransport,
    gateway_url: str,
    memo: str | None = None,
    fee: int | None = None,
    network_passphrase: str | None = None,
    retry_policy: RetryPolicy | None = None,
    metrics: MetricsSink | None = None,
    sleep: SleepFn | None = None,
) -> PaymentResult:
    """Decode the sender key, then run one payment.

    A seed that fails to decode ends the run in FAILED before any
    network call.
    """
    try:
        signer = (
            KeypairSigner.from_secret(secret, network_passphrase)
            if network_passphrase
            else KeypairSigner.from_secret(secret)
        )
    except RemitError as exc:
        result = PaymentResult()
        result.fail(exc)
        logger.error("payment_failed", failed_at=result.failed_at, error=cause_chain(exc))
        return result

    intent = PaymentIntent(
        sender_public_key=signer.account,
        receiver_public_key=receiver,
        amount=amount,
        memo=memo or None,
        **({"fee": fee} if fee is not None else {}),
    )
    pipeline = PaymentPipeline(
        signer,
        transport,
        gateway_url,
        retry_policy=retry_policy,
        metrics=metrics,
        sleep=sleep,
    )
    return await pipeline.run(intent)
