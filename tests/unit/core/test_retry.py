"""
Tests for the retry module.

Tests the retry decorator, delay calculation and the completion preset.
time.sleep is patched so no test actually waits.
"""

from unittest.mock import Mock, patch

import pytest

from chunkforge.core.exceptions import CompletionError, RetryError
from chunkforge.core.retry import calculate_delay, completion_retry, retry


@pytest.fixture
def no_sleep():
    with patch("chunkforge.core.retry.time.sleep") as sleep:
        yield sleep


# ============================================================================
# calculate_delay() Tests
# ============================================================================


class TestCalculateDelay:
    def test_exponential_backoff(self):
        assert calculate_delay(0, 1.0, 60.0, 2.0, jitter=False) == 1.0
        assert calculate_delay(1, 1.0, 60.0, 2.0, jitter=False) == 2.0
        assert calculate_delay(3, 1.0, 60.0, 2.0, jitter=False) == 8.0

    def test_max_delay_capping(self):
        assert calculate_delay(10, 1.0, 60.0, 2.0, jitter=False) == 60.0

    def test_jitter_adds_up_to_a_quarter(self):
        with patch("chunkforge.core.retry.random.random", return_value=1.0):
            assert calculate_delay(2, 1.0, 60.0, 2.0, jitter=True) == 5.0

        with patch("chunkforge.core.retry.random.random", return_value=0.0):
            assert calculate_delay(2, 1.0, 60.0, 2.0, jitter=True) == 4.0


# ============================================================================
# retry() Tests
# ============================================================================


class TestRetryDecorator:
    def test_success_first_try(self, no_sleep):
        func = Mock(return_value="ok", __name__="func")

        assert retry(max_attempts=3)(func)() == "ok"
        assert func.call_count == 1
        no_sleep.assert_not_called()

    def test_success_after_failures(self, no_sleep):
        func = Mock(side_effect=[ValueError("a"), ValueError("b"), "ok"], __name__="func")

        result = retry(max_attempts=3, base_delay=0.1, jitter=False)(func)()

        assert result == "ok"
        assert func.call_count == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [0.1, 0.2]

    def test_exhausted_raises_retry_error(self, no_sleep):
        error = ValueError("still broken")
        func = Mock(side_effect=error, __name__="func")

        with pytest.raises(RetryError) as exc_info:
            retry(max_attempts=2, jitter=False)(func)()

        assert exc_info.value.attempts == 2
        assert exc_info.value.last_exception is error
        assert exc_info.value.__cause__ is error
        # No sleep after the final attempt
        assert no_sleep.call_count == 1

    def test_non_retryable_propagates(self, no_sleep):
        func = Mock(side_effect=KeyError("nope"), __name__="func")

        with pytest.raises(KeyError):
            retry(max_attempts=3, retryable_exceptions=(ValueError,))(func)()

        assert func.call_count == 1

    def test_on_retry_callback(self, no_sleep):
        seen = []
        func = Mock(side_effect=[ValueError("a"), "ok"], __name__="func")

        retry(max_attempts=2, on_retry=lambda exc, attempt: seen.append(attempt))(func)()

        assert seen == [1]

    def test_arguments_passed_through(self, no_sleep):
        @retry(max_attempts=2)
        def add(a, b=0):
            return a + b

        assert add(2, b=3) == 5
        assert add.__name__ == "add"

    def test_at_least_one_attempt(self):
        with pytest.raises(AssertionError):
            retry(max_attempts=0)


class TestCompletionRetry:
    """Short-backoff preset used by completion services."""

    def test_short_delays(self, no_sleep):
        func = Mock(side_effect=[CompletionError("slow"), "done"], __name__="func")

        with patch("chunkforge.core.retry.random.random", return_value=0.0):
            result = completion_retry(max_attempts=2)(func)()

        assert result == "done"
        no_sleep.assert_called_once_with(0.5)

    def test_only_listed_exceptions_retried(self, no_sleep):
        func = Mock(side_effect=ValueError("bad"), __name__="func")

        with pytest.raises(ValueError):
            completion_retry(max_attempts=3, retryable_exceptions=(TimeoutError,))(func)()

        assert func.call_count == 1
