"""
Password reset token helpers and the per-email reset rate limiter
"""
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from app.core.config import get_settings
from app.core.logging_config import LoggingConfig
from app.core.metrics import password_reset_limiter_entries
from app.utils.datetime_utils import as_utc, utc_now

logger = LoggingConfig.get_logger(__name__)


def generate_token() -> str:
    """Random 64 hex character token (32 bytes of entropy)"""
    return secrets.token_hex(32)


def calculate_expiry_time(now: Optional[datetime] = None) -> datetime:
    """Expiry timestamp for a freshly issued reset token"""
    ttl = timedelta(minutes=get_settings().password_reset_token_ttl_minutes)
    return (now or utc_now()) + ttl


def is_token_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    """True once the current time has passed expires_at"""
    return (now or utc_now()) > as_utc(expires_at)


@dataclass
class _Attempts:
    count: int
    last_attempt: datetime


class ResetRateLimiter:
    """
    In-memory limiter for password reset requests, keyed by email.

    Allows `max_attempts` requests per `window`. A rejected request does not
    refresh the window. State is process-local; a shared store would be
    needed behind several workers.
    """

    def __init__(self, max_attempts: int = 3, window: timedelta = timedelta(hours=24)):
        self.max_attempts = max_attempts
        self.window = window
        self._attempts: Dict[str, _Attempts] = {}
        self._lock = threading.Lock()

    def check(self, email: str, now: Optional[datetime] = None) -> bool:
        """
        Record a reset attempt for email

        Returns:
            True if the caller is over the limit and must be rejected
        """
        now = now or utc_now()
        with self._lock:
            entry = self._attempts.get(email)

            if entry is None or now - entry.last_attempt > self.window:
                self._attempts[email] = _Attempts(count=1, last_attempt=now)
                password_reset_limiter_entries.set(len(self._attempts))
                return False

            if entry.count >= self.max_attempts:
                return True

            entry.count += 1
            entry.last_attempt = now
            return False

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """Drop entries whose last attempt is older than the window"""
        now = now or utc_now()
        with self._lock:
            stale = [
                email for email, entry in self._attempts.items()
                if now - entry.last_attempt > self.window
            ]
            for email in stale:
                del self._attempts[email]
            password_reset_limiter_entries.set(len(self._attempts))

        if stale:
            logger.info(f"Removed {len(stale)} stale password reset rate limit entries")
        return len(stale)

    def reset(self):
        with self._lock:
            self._attempts.clear()
            password_reset_limiter_entries.set(0)

    def __len__(self) -> int:
        return len(self._attempts)


_reset_rate_limiter: Optional[ResetRateLimiter] = None


def get_reset_rate_limiter() -> ResetRateLimiter:
    """Process-wide limiter configured from settings"""
    global _reset_rate_limiter
    if _reset_rate_limiter is None:
        settings = get_settings()
        _reset_rate_limiter = ResetRateLimiter(
            max_attempts=settings.password_reset_max_attempts,
            window=timedelta(hours=settings.password_reset_window_hours),
        )
    return _reset_rate_limiter
