from __future__ import annotations

from datetime import datetime, timedelta, timezone

from accounts.domain.resend_policy import (
    DenyReason,
    ResendPolicy,
    evaluate_resend,
    remaining_attempts,
)

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
POLICY = ResendPolicy(max_attempts=3, cooldown=timedelta(seconds=120))


def test_first_resend_is_allowed():
    decision = evaluate_resend(0, None, NOW, POLICY)
    assert decision.allowed is True
    assert decision.reason is None


def test_limit_denies_even_after_cooldown():
    long_ago = NOW - timedelta(days=2)
    decision = evaluate_resend(3, long_ago, NOW, POLICY)
    assert decision.allowed is False
    assert decision.reason is DenyReason.LIMIT_EXCEEDED
    assert decision.retry_after is None


def test_cooldown_reports_remaining_wait():
    decision = evaluate_resend(1, NOW - timedelta(seconds=1), NOW, POLICY)
    assert decision.allowed is False
    assert decision.reason is DenyReason.COOLDOWN_ACTIVE
    assert decision.retry_after == timedelta(seconds=119)
    assert decision.retry_after_seconds == 119


def test_partial_seconds_round_up():
    decision = evaluate_resend(1, NOW - timedelta(seconds=119, milliseconds=500), NOW, POLICY)
    assert decision.retry_after_seconds == 1


def test_cooldown_boundary_allows():
    decision = evaluate_resend(2, NOW - timedelta(seconds=120), NOW, POLICY)
    assert decision.allowed is True


def test_naive_timestamps_are_treated_as_utc():
    naive_last = (NOW - timedelta(seconds=30)).replace(tzinfo=None)
    decision = evaluate_resend(1, naive_last, NOW, POLICY)
    assert decision.reason is DenyReason.COOLDOWN_ACTIVE
    assert decision.retry_after_seconds == 90


def test_remaining_attempts_never_negative():
    assert remaining_attempts(0, POLICY) == 3
    assert remaining_attempts(3, POLICY) == 0
    assert remaining_attempts(7, POLICY) == 0
