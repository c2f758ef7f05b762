"""Request-scoped deadline shared by every outbound call in one chat request.

A Deadline is created when a chat request starts and passed through retrieval,
auto-ingestion and generation. Each outbound call asks `timeout_for(per_call)` for its
timeout, which is the smaller of its own limit and the remaining budget, and raises
DeadlineExceeded once the budget is spent. `child` carves a smaller nested budget
out of a request deadline, e.g. for auto-ingestion.
"""
import time
from typing import Optional


class DeadlineExceeded(Exception):
    """Raised when a request's time budget is exhausted before a call can start."""


class Deadline:
    """Monotonic time budget for one request.

    Args:
        seconds: Budget in seconds; None means unbounded (per-call limits still apply).
    """

    def __init__(self, seconds: Optional[float] = None):
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    def remaining(self) -> Optional[float]:
        """Seconds left, clamped at zero; None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        left = self.remaining()
        return left is not None and left <= 0.0

    def child(self, seconds: float) -> "Deadline":
        """A nested budget of at most `seconds` that never outlives this one."""
        left = self.remaining()
        return Deadline(seconds if left is None else min(seconds, left))

    def timeout_for(self, per_call: float) -> float:
        """Timeout to use for the next call.

        Raises:
            DeadlineExceeded: If no time is left.
        """
        left = self.remaining()
        if left is None:
            return per_call
        if left <= 0.0:
            raise DeadlineExceeded("request deadline exceeded")
        return min(per_call, left)
