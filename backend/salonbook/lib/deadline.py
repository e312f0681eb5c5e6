"""
Per-request deadline shared by the timeout middleware and booking writes.

The middleware gives up on a request only if no write has claimed its
commit; a write commits only if the middleware has not given up. Either
the client gets 504 and nothing was committed, or the commit happens and
the client gets the real response.
"""
import threading
import time
from typing import Optional


class RequestDeadline:
    """Deadline that a timeout and a commit race for under a lock."""

    def __init__(self, seconds: float, clock=time.monotonic):
        self._clock = clock
        self.expires_at = clock() + seconds
        self._lock = threading.Lock()
        self._state: Optional[str] = None  # "expired" or "committing"

    def claim_commit(self) -> bool:
        """Reserve the right to commit; False once the deadline has passed."""
        with self._lock:
            if self._state == "expired":
                return False
            if self._clock() >= self.expires_at:
                self._state = "expired"
                return False
            self._state = "committing"
            return True

    def expire(self) -> bool:
        """Give up on the request; False if a commit is already under way."""
        with self._lock:
            if self._state == "committing":
                return False
            self._state = "expired"
            return True
