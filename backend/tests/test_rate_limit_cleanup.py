"""
Tests for the background rate limit cleanup monitor
"""
import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.core.tokens import ResetRateLimiter, get_reset_rate_limiter
from app.services.rate_limit_cleanup_background import RateLimitCleanupMonitor
from app.utils.datetime_utils import utc_now


@pytest.mark.asyncio
async def test_monitor_runs_cleanup_periodically():
    limiter = MagicMock(spec=ResetRateLimiter)
    monitor = RateLimitCleanupMonitor(limiter=limiter, interval_seconds=0.01)

    await monitor.start()
    await asyncio.sleep(0.05)
    await monitor.stop()

    assert limiter.cleanup.call_count >= 1
    assert monitor.running is False


@pytest.mark.asyncio
async def test_monitor_survives_cleanup_errors():
    limiter = MagicMock(spec=ResetRateLimiter)
    limiter.cleanup.side_effect = RuntimeError("boom")
    monitor = RateLimitCleanupMonitor(limiter=limiter, interval_seconds=0.01)

    await monitor.start()
    await asyncio.sleep(0.05)
    await monitor.stop()

    assert limiter.cleanup.call_count >= 2


@pytest.mark.asyncio
async def test_monitor_prunes_real_limiter():
    limiter = ResetRateLimiter(max_attempts=3, window=timedelta(hours=1))
    limiter.check("stale@example.com", now=utc_now() - timedelta(hours=2))
    monitor = RateLimitCleanupMonitor(limiter=limiter, interval_seconds=0.01)

    await monitor.start()
    await asyncio.sleep(0.05)
    await monitor.stop()

    assert len(limiter) == 0


@pytest.mark.asyncio
async def test_start_twice_keeps_single_task():
    monitor = RateLimitCleanupMonitor(limiter=MagicMock(spec=ResetRateLimiter), interval_seconds=10)

    await monitor.start()
    task = monitor._task
    await monitor.start()

    assert monitor._task is task
    await monitor.stop()


def test_monitor_keeps_injected_empty_limiter():
    limiter = ResetRateLimiter(max_attempts=3, window=timedelta(hours=1))
    monitor = RateLimitCleanupMonitor(limiter=limiter, interval_seconds=0)

    assert len(limiter) == 0
    assert monitor.limiter is limiter
    assert monitor.limiter is not get_reset_rate_limiter()
    assert monitor.check_interval == 0
