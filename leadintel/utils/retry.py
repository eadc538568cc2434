"""Bounded retry with backoff for calls against slow upstream queries."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from .logging import get_logger

LOGGER = get_logger("utils.retry")

T = TypeVar("T")


def linear_backoff(base_s: float) -> Callable[[int], float]:
    """Wait ``base_s * attempt`` seconds after the given (1-based) failed attempt."""

    return lambda attempt: base_s * attempt


@dataclass
class RetryPolicy:
    """Retry a call while ``retryable(exc)`` holds, up to ``max_attempts`` calls in total.

    Errors the predicate rejects are raised on the first occurrence. The sleep
    function is injectable so tests do not wait.
    """

    max_attempts: int = 3
    backoff: Callable[[int], float] = field(default_factory=lambda: linear_backoff(1.0))
    retryable: Callable[[BaseException], bool] = lambda exc: False
    sleep: Callable[[float], None] = time.sleep
    name: Optional[str] = None

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                if attempt >= self.max_attempts or not self.retryable(exc):
                    raise
                wait = self.backoff(attempt)
                LOGGER.warning(
                    "retrying call=%s attempt=%d/%d wait_s=%.1f error=%s",
                    self.name or getattr(func, "__name__", "call"),
                    attempt,
                    self.max_attempts,
                    wait,
                    exc,
                )
                self.sleep(wait)


__all__ = ["RetryPolicy", "linear_backoff"]
