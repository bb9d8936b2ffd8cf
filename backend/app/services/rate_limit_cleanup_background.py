"""
Background task that prunes stale password reset rate limit entries
"""
import asyncio
from typing import Optional

from app.core.config import get_settings
from app.core.logging_config import LoggingConfig
from app.core.tokens import ResetRateLimiter, get_reset_rate_limiter

logger = LoggingConfig.get_logger(__name__)


class RateLimitCleanupMonitor:
    """Periodically calls ResetRateLimiter.cleanup()"""

    def __init__(self, limiter: Optional[ResetRateLimiter] = None, interval_seconds: Optional[int] = None):
        self.limiter = limiter if limiter is not None else get_reset_rate_limiter()
        self.check_interval = (
            interval_seconds if interval_seconds is not None
            else get_settings().rate_limit_cleanup_interval_seconds
        )
        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the cleanup loop"""
        if self.running:
            logger.warning("Rate limit cleanup monitor is already running")
            return

        self.running = True
        logger.info("Starting rate limit cleanup monitor...")
        self._task = asyncio.create_task(self._cleanup_loop())

    async def stop(self):
        """Stop the cleanup loop"""
        self.running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Stopping rate limit cleanup monitor...")

    async def _cleanup_loop(self):
        while self.running:
            await asyncio.sleep(self.check_interval)
            try:
                self.limiter.cleanup()
            except Exception as e:
                logger.error(f"Error in rate limit cleanup loop: {e}", exc_info=True)


_cleanup_monitor: Optional[RateLimitCleanupMonitor] = None


def get_rate_limit_cleanup_monitor() -> RateLimitCleanupMonitor:
    """Get or create cleanup monitor instance"""
    global _cleanup_monitor
    if _cleanup_monitor is None:
        _cleanup_monitor = RateLimitCleanupMonitor()
    return _cleanup_monitor
