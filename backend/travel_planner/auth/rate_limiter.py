import time
import hashlib
from typing import Dict, Optional, Tuple
from datetime import datetime, timedelta
from collections import defaultdict
import threading

from travel_planner.core.config import settings


class RateLimiter:
    """Thread-safe login attempt limiter with lockout functionality."""

    def __init__(self):
        self._lock = threading.Lock()
        self._attempts: Dict[str, list] = defaultdict(list)
        self._lockouts: Dict[str, datetime] = {}

        self.login_attempts_limit = settings.max_login_attempts
        self.login_lockout_duration = timedelta(minutes=settings.lockout_duration_minutes)

    def _clean_old_attempts(self, key: str, window_seconds: int):
        """Remove attempts older than the window."""
        cutoff = time.time() - window_seconds
        self._attempts[key] = [attempt for attempt in self._attempts[key] if attempt > cutoff]

    def _get_key(self, identifier: str, action: str) -> str:
        """Generate a key for rate limiting."""
        return f"{action}:{hashlib.sha256(identifier.lower().encode()).hexdigest()[:16]}"

    def check_login_attempts(self, email: str) -> Tuple[bool, Optional[datetime]]:
        """Check if login attempts are within limits."""
        with self._lock:
            key = self._get_key(email, "login")

            # Check if currently locked out
            if key in self._lockouts:
                lockout_until = self._lockouts[key]
                if datetime.now() < lockout_until:
                    return False, lockout_until
                # Lockout expired, remove it
                del self._lockouts[key]
                self._attempts[key] = []

            self._clean_old_attempts(key, int(self.login_lockout_duration.total_seconds()))

            if len(self._attempts[key]) < self.login_attempts_limit:
                return True, None

            # Too many attempts, initiate lockout
            lockout_until = datetime.now() + self.login_lockout_duration
            self._lockouts[key] = lockout_until
            return False, lockout_until

    def record_login_attempt(self, email: str, success: bool):
        """Record a login attempt."""
        with self._lock:
            key = self._get_key(email, "login")

            if success:
                # Clear attempts on successful login
                self._attempts.pop(key, None)
                self._lockouts.pop(key, None)
            else:
                self._attempts[key].append(time.time())

    def reset(self):
        with self._lock:
            self._attempts.clear()
            self._lockouts.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()
