"""Failed-login bookkeeping for account lockout.

The store is injected into AuthService. The in-memory implementation keeps its
state in the process only, so restarting the server clears every lockout;
lockouts are a brake on password guessing, not a source of truth.
"""
import logging
import math
import threading
from datetime import datetime, timedelta
from typing import Protocol, Optional
from arbor_shared.models import now

logger = logging.getLogger(__name__)


class LoginAttemptStore(Protocol):
    def record_failure(self, username: str) -> bool: ...
    def is_blocked(self, username: str) -> bool: ...
    def remaining_block_minutes(self, username: str) -> int: ...
    def clear(self, username: str) -> None: ...


class InMemoryLoginAttemptStore:
    """Per-username failure counters and block deadlines held in memory."""

    def __init__(self, max_attempts=5, block_minutes=15, clock=now):
        self.max_attempts = max_attempts
        self.block_duration = timedelta(minutes=block_minutes)
        self._clock = clock
        self._failed_attempts = {}
        self._blocked_until = {}
        self._lock = threading.Lock()

    def record_failure(self, username: str) -> bool:
        """Count a failed login; returns True when this failure blocks the user."""
        with self._lock:
            attempts = self._failed_attempts.get(username, 0) + 1
            if attempts < self.max_attempts:
                self._failed_attempts[username] = attempts
                return False

            blocked_until = self._clock() + self.block_duration
            self._blocked_until[username] = blocked_until
            # Counter restarts once the block is in place
            self._failed_attempts.pop(username, None)

        logger.warning(f"User {username} has been blocked until {blocked_until.isoformat()}")
        return True

    def _deadline(self, username: str) -> Optional[datetime]:
        with self._lock:
            blocked_until = self._blocked_until.get(username)
            if blocked_until is not None and self._clock() > blocked_until:
                del self._blocked_until[username]
                return None
            return blocked_until

    def is_blocked(self, username: str) -> bool:
        return self._deadline(username) is not None

    def remaining_block_minutes(self, username: str) -> int:
        blocked_until = self._deadline(username)
        if blocked_until is None:
            return 0
        remaining = (blocked_until - self._clock()).total_seconds()
        return max(1, math.ceil(remaining / 60))

    def clear(self, username: str) -> None:
        with self._lock:
            self._failed_attempts.pop(username, None)
            self._blocked_until.pop(username, None)
