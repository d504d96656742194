"""
Retry policy value object.

One immutable description of a bounded exponential backoff, injected
into the components that are allowed to retry (only the sequence fetch).

    delay(n) = min(base_delay_s * multiplier ** n, max_delay_s)

where ``n`` is the zero-based index of the retry. With the defaults
(300 ms, x2, 2 s cap, 3 attempts) the pauses between attempts are
300 ms and 600 ms.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff.

    Attributes:
        base_delay_s: Pause before the first retry, in seconds.
        multiplier: Growth factor applied per retry.
        max_delay_s: Cap on any single pause.
        max_attempts: Total attempts including the first one.
    """

    base_delay_s: float = 0.3
    multiplier: float = 2.0
    max_delay_s: float = 2.0
    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got: {self.max_attempts}")
        if self.base_delay_s < 0 or self.max_delay_s < 0:
            raise ValueError("delays must be non-negative")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got: {self.multiplier}")

    def delay(self, retry_index: int) -> float:
        """Pause in seconds before retry number ``retry_index`` (0-based)."""
        return min(self.base_delay_s * self.multiplier**retry_index, self.max_delay_s)

    def delays(self) -> Iterator[float]:
        """Yield the pauses between attempts (``max_attempts - 1`` values)."""
        for index in range(self.max_attempts - 1):
            yield self.delay(index)
