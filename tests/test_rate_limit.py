import pytest

from feedbackhub.services.rate_limit import SubmissionRateLimiter


def test_hits_within_limit_report_remaining():
    limiter = SubmissionRateLimiter("3 per minute")
    decisions = [limiter.hit(1) for _ in range(3)]
    assert all(d.allowed for d in decisions)
    assert [d.remaining for d in decisions] == [2, 1, 0]


def test_exceeding_limit_gives_retry_after():
    limiter = SubmissionRateLimiter("1 per minute", strategy="fixed-window")
    assert limiter.hit(7).allowed
    denied = limiter.hit(7)
    assert not denied.allowed
    assert 1 <= denied.retry_after <= 60


def test_counters_are_per_application():
    limiter = SubmissionRateLimiter("1 per minute")
    assert limiter.hit(1).allowed
    assert limiter.hit(2).allowed
    assert not limiter.hit(1).allowed


def test_reset_clears_counters():
    limiter = SubmissionRateLimiter("1 per minute")
    limiter.hit(1)
    limiter.reset()
    assert limiter.hit(1).allowed


def test_unknown_strategy():
    with pytest.raises(ValueError):
        SubmissionRateLimiter("1 per minute", strategy="leaky-bucket")
