"""Bounded retry for idempotent remote operations.

Only transient failures (timeouts, resets, HTTP 429/5xx) are retried; auth
errors and rejections surface immediately. When attempts run out, the next
trigger (push or monthly tick) is the recovery path.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from time import sleep
from typing import TypeVar

from nightly.core.config import RetryConfig
from nightly.core.result import Ok, Result

T = TypeVar("T")
E = TypeVar("E")

_TRANSIENT_MARKERS = (
    "timed out",
    "timeout",
    "connection reset",
    "connection refused",
    "connection timed out",
    "could not resolve host",
    "temporarily unavailable",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "tls handshake timeout",
    "network is unreachable",
    "remote end hung up unexpectedly",
    "early eof",
    "http 429",
    "http 500",
    "http 502",
    "http 503",
    "http 504",
)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    attempts: int = 3
    delay_seconds: float = 2.0

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(attempts=max(1, config.attempts), delay_seconds=config.delay_seconds)


def is_transient_text(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in _TRANSIENT_MARKERS)


def retry_transient(
    operation: Callable[[], Result[T, E]],
    *,
    policy: RetryPolicy,
    is_transient: Callable[[E], bool],
) -> Result[T, E]:
    """Run `operation` until it succeeds, fails permanently, or attempts run out.

    Waits `delay_seconds * attempt` between attempts.
    """
    attempts = max(1, policy.attempts)
    result = operation()
    for attempt in range(1, attempts):
        if isinstance(result, Ok) or not is_transient(result.error):
            return result
        sleep(policy.delay_seconds * attempt)
        result = operation()
    return result

