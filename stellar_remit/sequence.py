"""
Sequence fetcher — resolves an account's current sequence number.

This is the only place in the pipeline that retries. A read is safe to
repeat, so 5xx responses and dropped connections are retried with the
injected ``RetryPolicy``. Client errors and unparseable bodies are
surfaced immediately.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Awaitable, Callable

import structlog

from stellar_remit.errors import (
    FatalHttpError,
    GatewayUnavailable,
    ParseError,
    RetriesExhausted,
    TransientNetworkError,
)
from stellar_remit.models import AccountSequence
from stellar_remit.retry import RetryPolicy
from stellar_remit.transport import GatewayResponse, GatewayTransport

logger = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

# Horizon bodies can be large; keep only a prefix in errors.
_BODY_PREVIEW = 500

_INT_RE = re.compile(r"-?[0-9]+")

_INT64_MAX = 2**63 - 1


class SequenceFetcher:
    """Fetch ``GET {gateway}/accounts/{account_id}`` with bounded retry.

    Args:
        transport: Gateway transport shared with the submitter.
        gateway_url: Horizon base URL.
        retry_policy: Backoff schedule for transient failures.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        transport: GatewayTransport,
        gateway_url: str,
        retry_policy: RetryPolicy | None = None,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._gateway_url = gateway_url.rstrip("/")
        self._policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self.attempts = 0

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._policy

    async def fetch(self, account_id: str) -> AccountSequence:
        """Return the account's current sequence number.

        Raises:
            FatalHttpError: On a 4xx response.
            RetriesExhausted: When every attempt failed transiently.
            ParseError: When a 2xx body lacks a numeric ``sequence``.
        """
        url = f"{self._gateway_url}/accounts/{account_id}"
        delays = list(self._policy.delays())
        self.attempts = 0

        while True:
            self.attempts += 1
            try:
                return await self._attempt(url, account_id)
            except TransientNetworkError as exc:
                if not delays:
                    raise RetriesExhausted(
                        f"account lookup failed after {self.attempts} attempts",
                        attempts=self.attempts,
                        status_code=exc.status_code,
                        details={"url": url},
                    ) from exc
                delay = delays.pop(0)
                logger.warning(
                    "sequence_fetch_retry",
                    account=account_id,
                    attempt=self.attempts,
                    delay_s=delay,
                    error=str(exc),
                )
                await self._sleep(delay)

    async def _attempt(self, url: str, account_id: str) -> AccountSequence:
        try:
            response = await self._transport.get(url)
        except GatewayUnavailable as exc:
            raise TransientNetworkError(str(exc), details=exc.details) from exc

        if response.is_server_error:
            raise TransientNetworkError(
                f"retryable gateway error: {response.status_code}",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise FatalHttpError(
                f"non-retryable gateway error: {response.status_code}",
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW],
                details={"url": url},
            )

        sequence = parse_account_sequence(response, account_id)
        logger.debug("sequence_fetched", account=account_id, sequence=sequence.sequence)
        return sequence


def parse_account_sequence(response: GatewayResponse, account_id: str) -> AccountSequence:
    """Parse a Horizon account body into an AccountSequence.

    ``sequence`` must be a string-encoded integer within ``[0, 2**63 - 1]``,
    which is how Horizon serialises int64 values.
    """
    try:
        body = response.json()
    except json.JSONDecodeError as e:
        raise ParseError("account response is not valid JSON") from e

    if not isinstance(body, dict):
        raise ParseError("account response JSON is not an object")

    raw = body.get("sequence")
    if not isinstance(raw, str) or not _INT_RE.fullmatch(raw):
        raise ParseError("invalid sequence in account JSON", details={"sequence": raw})
    value = int(raw)
    if value < 0:
        raise ParseError("negative sequence in account JSON", details={"sequence": raw})
    if value > _INT64_MAX:
        raise ParseError("sequence exceeds int64 in account JSON", details={"sequence": raw})

    resolved = body.get("account_id")
    return AccountSequence(
        account_id=resolved if isinstance(resolved, str) else account_id,
        sequence=value,
    )
