"""Tests for the quota-aware retry controller."""

from unittest.mock import MagicMock

import pytest

from inbox_triage.llm.retry import (
    DELAY_BUFFER,
    RetryPolicy,
    compute_delay,
    default_policy,
    is_quota_error,
    is_size_limit_error,
    parse_retry_delay,
    with_retry,
)


class TestErrorClassification:
    """Tests for quota vs size-limit detection."""

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Rate limit reached for gpt-4o-mini", True),
            ("Error code: 429 - Too Many Requests", True),
            ("You exceeded your current quota", True),
            ("RESOURCE_EXHAUSTED: try later", True),
            ("rate_limit_exceeded", True),
            ("Connection reset by peer", False),
            ("Invalid API key", False),
            # Size-limit phrasing wins even when quota words are present
            ("This model's maximum context length is 128000 tokens (rate limit tier 2)", False),
            ("Request too large for gpt-4o: quota exceeded", False),
        ],
    )
    def test_is_quota_error(self, message, expected):
        assert is_quota_error(Exception(message)) is expected

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("maximum context length is 8192 tokens", True),
            ("context_length_exceeded", True),
            ("Request too large for model", True),
            ("too many tokens in prompt", True),
            ("Rate limit reached", False),
        ],
    )
    def test_is_size_limit_error(self, message, expected):
        assert is_size_limit_error(Exception(message)) is expected


class TestParseRetryDelay:
    """Tests for provider-suggested delays."""

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Rate limit reached. Please try again in 2.5s.", 2.5),
            ("quota exceeded, retry after 10s", 10.0),
            ("Please retry in 7 s", 7.0),
            ("quota exceeded", None),
            ("", None),
        ],
    )
    def test_parse_retry_delay(self, message, expected):
        assert parse_retry_delay(message) == expected


class TestComputeDelay:
    """Tests for delay computation."""

    def test_uses_hinted_delay_with_buffer(self):
        error = Exception("Rate limit reached. Please try again in 2.5s.")
        assert compute_delay(error, 1) == pytest.approx(2.5 * DELAY_BUFFER)

    def test_hint_wins_over_exponential(self):
        error = Exception("quota exceeded, retry after 10s")
        assert compute_delay(error, 3) == pytest.approx(11.0)

    @pytest.mark.parametrize("attempt,expected", [(1, 2.2), (2, 4.4), (3, 8.8)])
    def test_exponential_without_hint(self, attempt, expected):
        assert compute_delay(Exception("quota exceeded"), attempt) == pytest.approx(expected)


class TestWithRetry:
    """Tests for with_retry."""

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def policy(self, sleeps):
        return RetryPolicy(max_retries=3, sleep=sleeps.append)

    def test_success_first_try(self, policy, sleeps):
        call = MagicMock(return_value="ok")

        assert with_retry(call, policy, "test") == "ok"
        assert call.call_count == 1
        assert sleeps == []

    def test_retries_quota_errors_then_succeeds(self, policy, sleeps):
        call = MagicMock(
            side_effect=[Exception("quota exceeded"), Exception("quota exceeded"), "done"]
        )

        assert with_retry(call, policy, "test") == "done"
        assert call.call_count == 3
        assert sleeps == [pytest.approx(2.2), pytest.approx(4.4)]

    def test_uses_hint_from_error_message(self, policy, sleeps):
        call = MagicMock(side_effect=[Exception("Rate limit. Try again in 1.5s"), "done"])

        with_retry(call, policy, "test")

        assert sleeps == [pytest.approx(1.65)]

    def test_non_retryable_error_propagates_immediately(self, policy, sleeps):
        call = MagicMock(side_effect=ValueError("bad request"))

        with pytest.raises(ValueError, match="bad request"):
            with_retry(call, policy, "test")

        assert call.call_count == 1
        assert sleeps == []

    def test_size_limit_error_not_retried(self, policy, sleeps):
        call = MagicMock(side_effect=Exception("maximum context length exceeded (rate limit)"))

        with pytest.raises(Exception, match="maximum context length"):
            with_retry(call, policy, "test")

        assert call.call_count == 1

    def test_exhausted_retries_reraise_last_error(self, sleeps):
        policy = RetryPolicy(max_retries=2, sleep=sleeps.append)
        call = MagicMock(
            side_effect=[Exception("quota 1"), Exception("quota 2"), Exception("quota 3")]
        )

        with pytest.raises(Exception, match="quota 3"):
            with_retry(call, policy, "test")

        assert call.call_count == 3
        assert len(sleeps) == 2

    def test_zero_retries(self, sleeps):
        policy = RetryPolicy(max_retries=0, sleep=sleeps.append)
        call = MagicMock(side_effect=Exception("quota exceeded"))

        with pytest.raises(Exception):
            with_retry(call, policy, "test")

        assert call.call_count == 1
        assert sleeps == []

    def test_custom_retryable_predicate(self, sleeps):
        policy = RetryPolicy(
            max_retries=1,
            is_retryable=lambda e: isinstance(e, TimeoutError),
            delay_for=lambda e, attempt: 0.5,
            sleep=sleeps.append,
        )
        call = MagicMock(side_effect=[TimeoutError(), "ok"])

        assert with_retry(call, policy, "test") == "ok"
        assert sleeps == [0.5]


class TestDefaultPolicy:
    def test_explicit_max_retries(self):
        assert default_policy(5).max_retries == 5

    def test_falls_back_to_settings(self, monkeypatch):
        from inbox_triage.llm import retry

        monkeypatch.setattr(retry.settings, "llm_max_retries", 7)
        assert default_policy().max_retries == 7
