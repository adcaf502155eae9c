"""Tests for the ExponentialBackoff retry policy."""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

from giggler.core.resilience import ExponentialBackoff


class TestExponentialBackoff:
    def test_should_retry_within_limit(self):
        backoff = ExponentialBackoff(max_retries=3)
        assert backoff.should_retry(0) is True
        assert backoff.should_retry(2) is True

    def test_should_not_retry_at_limit(self):
        backoff = ExponentialBackoff(max_retries=3)
        assert backoff.should_retry(3) is False
        assert backoff.should_retry(4) is False

    def test_zero_retries_never_retries(self):
        assert ExponentialBackoff(max_retries=0).should_retry(0) is False

    def test_delay_capped_at_max(self):
        backoff = ExponentialBackoff(base_delay=1.0, max_delay=10.0, max_retries=10)
        delay = backoff.calculate_delay(100)
        # Even with jitter, should not exceed max_delay + 25%
        assert delay <= 10.0 * 1.25

    def test_delay_within_jitter_band(self):
        backoff = ExponentialBackoff(base_delay=1.0, max_delay=60.0)
        for attempt in range(5):
            base = 2**attempt
            assert base * 0.75 <= backoff.calculate_delay(attempt) <= base * 1.25

    def test_delay_never_negative(self):
        backoff = ExponentialBackoff(base_delay=0.1, max_delay=1.0, max_retries=3)
        for attempt in range(10):
            assert backoff.calculate_delay(attempt) >= 0

    def test_retry_after_seconds(self):
        backoff = ExponentialBackoff(max_delay=30.0)
        assert backoff.retry_after_delay("5", 0) == 5.0
        assert backoff.retry_after_delay(" 2.5 ", 0) == 2.5

    def test_retry_after_capped_at_max(self):
        assert ExponentialBackoff(max_delay=10.0).retry_after_delay("3600", 0) == 10.0

    def test_retry_after_http_date_in_past(self):
        backoff = ExponentialBackoff(max_delay=10.0)
        assert backoff.retry_after_delay("Wed, 21 Oct 2015 07:28:00 GMT", 0) == 0.0

    def test_retry_after_http_date_in_future(self):
        backoff = ExponentialBackoff(max_delay=30.0)
        when = datetime.now(timezone.utc) + timedelta(seconds=20)
        assert 15.0 <= backoff.retry_after_delay(format_datetime(when, usegmt=True), 0) <= 20.0

    def test_retry_after_falls_back_to_backoff(self):
        backoff = ExponentialBackoff(base_delay=4.0, max_delay=60.0)
        for header in (None, "", "soon"):
            assert 3.0 <= backoff.retry_after_delay(header, 0) <= 5.0
