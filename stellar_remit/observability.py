"""
Observability port — counters and latency for payment submissions.

The pipeline depends on the ``MetricsSink`` protocol, never on a global
registry, so it can run in tests without Prometheus. Updates are
append-only from the pipeline's side; the health server only reads.

Implementations:
    - NullMetrics (default, discards everything)
    - PrometheusMetrics (prometheus_client, one private CollectorRegistry)
    - RecordingMetrics (tests)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


@runtime_checkable
class MetricsSink(Protocol):
    """Increment/observe operations used by the submitter."""

    def record_attempt(self) -> None:
        ...

    def record_success(self) -> None:
        ...

    def record_failure(self) -> None:
        ...

    def observe_latency(self, seconds: float) -> None:
        ...


class NullMetrics:
    """Discards all measurements."""

    def record_attempt(self) -> None:
        pass

    def record_success(self) -> None:
        pass

    def record_failure(self) -> None:
        pass

    def observe_latency(self, seconds: float) -> None:
        pass


class PrometheusMetrics:
    """Prometheus-backed sink.

    Each instance owns its registry so several instances (tests, embedded
    use) never collide on metric names in the process-wide default one.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._attempts = Counter(
            "stellar_remit_transactions",
            "Total number of transactions attempted",
            registry=self.registry,
        )
        self._successes = Counter(
            "stellar_remit_transactions_success",
            "Total number of successful transactions",
            registry=self.registry,
        )
        self._failures = Counter(
            "stellar_remit_transactions_failure",
            "Total number of failed transactions",
            registry=self.registry,
        )
        self._latency = Histogram(
            "stellar_remit_transaction_duration_seconds",
            "Histogram of transaction submission latencies",
            registry=self.registry,
        )

    def record_attempt(self) -> None:
        self._attempts.inc()

    def record_success(self) -> None:
        self._successes.inc()

    def record_failure(self) -> None:
        self._failures.inc()

    def observe_latency(self, seconds: float) -> None:
        self._latency.observe(seconds)

    def export(self) -> bytes:
        """Prometheus text exposition of this sink's registry."""
        return generate_latest(self.registry)
