"""
Tests for reset token helpers and the password reset rate limiter
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.tokens import (ResetRateLimiter, calculate_expiry_time,
                             generate_token, is_token_expired)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_generate_token_is_64_hex_chars():
    token = generate_token()
    assert len(token) == 64
    int(token, 16)
    assert generate_token() != token


def test_expiry_is_one_hour_ahead():
    assert calculate_expiry_time(NOW) == NOW + timedelta(hours=1)


def test_is_token_expired():
    expires_at = NOW + timedelta(minutes=1)
    assert is_token_expired(expires_at, now=NOW) is False
    assert is_token_expired(expires_at, now=NOW + timedelta(minutes=2)) is True


def test_is_token_expired_accepts_naive_utc():
    """SQLite returns naive datetimes; they are read as UTC"""
    naive = (NOW + timedelta(minutes=5)).replace(tzinfo=None)
    assert is_token_expired(naive, now=NOW) is False
    assert is_token_expired(naive, now=NOW + timedelta(minutes=6)) is True


@pytest.fixture
def limiter():
    return ResetRateLimiter(max_attempts=3, window=timedelta(hours=24))


def test_limiter_allows_max_attempts_then_blocks(limiter):
    """Test three attempts pass and the fourth is limited"""
    assert limiter.check("a@example.com", now=NOW) is False
    assert limiter.check("a@example.com", now=NOW + timedelta(minutes=1)) is False
    assert limiter.check("a@example.com", now=NOW + timedelta(minutes=2)) is False
    assert limiter.check("a@example.com", now=NOW + timedelta(minutes=3)) is True


def test_limiter_is_per_email(limiter):
    for _ in range(3):
        limiter.check("a@example.com", now=NOW)
    assert limiter.check("a@example.com", now=NOW) is True
    assert limiter.check("b@example.com", now=NOW) is False


def test_limiter_rejection_does_not_extend_window(limiter):
    """Blocked calls do not refresh the last attempt time"""
    for minute in range(3):
        limiter.check("a@example.com", now=NOW + timedelta(minutes=minute))
    assert limiter.check("a@example.com", now=NOW + timedelta(hours=20)) is True
    # 24h after the last accepted attempt the counter starts over
    assert limiter.check("a@example.com", now=NOW + timedelta(hours=24, minutes=3)) is False


def test_limiter_cleanup_drops_stale_entries(limiter):
    limiter.check("old@example.com", now=NOW)
    limiter.check("new@example.com", now=NOW + timedelta(hours=23))
    assert len(limiter) == 2

    removed = limiter.cleanup(now=NOW + timedelta(hours=25))

    assert removed == 1
    assert len(limiter) == 1
    assert limiter.check("new@example.com", now=NOW + timedelta(hours=25)) is False


def test_limiter_reset(limiter):
    for _ in range(4):
        limiter.check("a@example.com", now=NOW)
    limiter.reset()
    assert len(limiter) == 0
    assert limiter.check("a@example.com", now=NOW) is False
