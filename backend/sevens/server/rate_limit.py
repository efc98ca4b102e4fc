"""Per-connection token bucket for inbound WebSocket frames."""

import time
from collections.abc import Callable


class TokenBucket:
    """Token bucket limiter.

    The bucket starts full at ``burst`` tokens and refills at ``rate`` tokens
    per second. Each inbound frame spends one token; a frame arriving on an
    empty bucket is rejected with a rate_limited error and not processed.
    """

    def __init__(self, rate: float, burst: int, clock: Callable[[], float] = time.monotonic) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(float(self._burst), self._tokens + (now - self._last_refill) * self._rate)
        self._last_refill = now

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    def consume(self) -> bool:
        """Spend one token. Returns False when the caller should drop the frame."""
        self._refill()
        if self._tokens < 1.0:
            return False
        self._tokens -= 1.0
        return True
