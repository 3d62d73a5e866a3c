"""
Sliding-Window Rate Limiter
===========================

Per-identifier attempt counter (e.g. keyed by login email). Windows are
created lazily, pruned on every check and dropped on reset.

Author: jetgause
Created: 2025-12-12
"""

import time
import threading
import logging
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_MS = 15 * 60 * 1000  # 15 minutes


class RateLimiter:
    """Sliding-window rate limiting keyed by identifier"""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            max_attempts: Default attempts allowed per window
            window_ms: Default window length in milliseconds
            clock: Returns the current time in seconds (defaults to time.time)
        """
        self.max_attempts = max_attempts
        self.window_ms = window_ms
        self._clock = clock or time.time
        self._windows: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _prune(self, key: str, now: float, window_ms: int) -> List[float]:
        # An attempt exactly window_ms old has expired
        valid = [t for t in self._windows.get(key, []) if now - t < window_ms]
        if valid:
            self._windows[key] = valid
        else:
            self._windows.pop(key, None)
        return valid

    def is_allowed(
        self,
        key: str,
        max_attempts: Optional[int] = None,
        window_ms: Optional[int] = None
    ) -> bool:
        """
        Check and record an attempt.

        Args:
            key: Identifier (email, IP, ...)
            max_attempts: Attempts allowed in the window
            window_ms: Window length in milliseconds

        Returns:
            True if the attempt is allowed (and recorded)
        """
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        window_ms = self.window_ms if window_ms is None else window_ms

        with self._lock:
            now = self._now_ms()
            valid = self._prune(key, now, window_ms)

            if len(valid) >= max_attempts:
                logger.info(f"Rate limit reached for identifier (limit {max_attempts})")
                return False

            valid.append(now)
            self._windows[key] = valid
            return True

    def reset(self, key: str):
        """Forget all attempts for an identifier."""
        with self._lock:
            self._windows.pop(key, None)

    def get_remaining(
        self,
        key: str,
        max_attempts: Optional[int] = None,
        window_ms: Optional[int] = None
    ) -> int:
        """Get remaining attempts for an identifier without recording one."""
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        window_ms = self.window_ms if window_ms is None else window_ms
        now = self._now_ms()
        with self._lock:
            recent = [t for t in self._windows.get(key, []) if now - t < window_ms]
        return max(0, max_attempts - len(recent))

    def attempts(self, key: str) -> List[float]:
        """Recorded attempt timestamps (ms) for an identifier."""
        with self._lock:
            return list(self._windows.get(key, []))

    def clear(self):
        """Drop every window."""
        with self._lock:
            self._windows.clear()


__all__ = [
    'RateLimiter',
    'DEFAULT_MAX_ATTEMPTS',
    'DEFAULT_WINDOW_MS',
]
