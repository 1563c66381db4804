"""
In-memory sliding-window rate limiter.

Good enough for a single process; a shared store is needed once the API
runs with several workers.
"""

import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from lexcanada.core.errors import RateLimitError


class RateLimiter:
    def __init__(self):
        self.attempts: Dict[str, List[datetime]] = {}
        self._lock = threading.Lock()

    def check_rate_limit(
        self,
        key: str,
        max_attempts: int,
        window_minutes: float
    ) -> Tuple[bool, Optional[str]]:
        """
        Check if rate limit is exceeded and record the attempt if not.

        Returns:
            (allowed: bool, error_message: Optional[str])
        """
        now = datetime.utcnow()
        window = timedelta(minutes=window_minutes)

        with self._lock:
            recent = [ts for ts in self.attempts.get(key, []) if now - ts < window]
            self.attempts[key] = recent

            if len(recent) >= max_attempts:
                wait_until = min(recent) + window
                wait_seconds = max(int((wait_until - now).total_seconds()), 1)
                return False, f"Rate limit exceeded. Try again in {wait_seconds} seconds"

            recent.append(now)
            return True, None

    def enforce(self, key: str, max_attempts: int, window_minutes: float) -> None:
        """Raise RateLimitError when the key is over its limit."""
        allowed, message = self.check_rate_limit(key, max_attempts, window_minutes)
        if not allowed:
            raise RateLimitError(message)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self.attempts.clear()
            else:
                self.attempts.pop(key, None)


rate_limiter = RateLimiter()
