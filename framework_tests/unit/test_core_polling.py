"""Tests for the wait-then-poll primitive."""

from unittest.mock import Mock, call

import pytest

from redeploy.core.polling import PollPolicy, poll_until


class TestPollPolicy:
    """Test PollPolicy validation."""

    def test_max_wait(self):
        assert PollPolicy(delay=10, attempts=3, interval=2).max_wait == 14
        assert PollPolicy(delay=5).max_wait == 5

    @pytest.mark.parametrize(
        "kwargs",
        [{"delay": -1}, {"delay": 0, "interval": -1}, {"delay": 0, "attempts": 0}],
    )
    def test_invalid_policy(self, kwargs):
        with pytest.raises(ValueError):
            PollPolicy(**kwargs)


class TestPollUntil:
    """Test poll_until behaviour."""

    def test_waits_delay_then_checks_once(self):
        sleep = Mock()
        condition = Mock(return_value=True)

        assert poll_until(condition, PollPolicy(delay=15), sleep) is True
        sleep.assert_called_once_with(15)
        condition.assert_called_once()

    def test_early_exit(self):
        sleep = Mock()
        condition = Mock(side_effect=[False, True, True])

        result = poll_until(condition, PollPolicy(delay=1, attempts=5, interval=2), sleep)

        assert result is True
        assert condition.call_count == 2
        assert sleep.call_args_list == [call(1), call(2)]

    def test_exhausts_attempts(self):
        sleep = Mock()
        condition = Mock(return_value=False)

        result = poll_until(condition, PollPolicy(delay=1, attempts=3, interval=2), sleep)

        assert result is False
        assert condition.call_count == 3
        # No trailing sleep after the last attempt
        assert sleep.call_args_list == [call(1), call(2), call(2)]

    def test_zero_delay_never_sleeps(self):
        sleep = Mock()

        poll_until(Mock(return_value=False), PollPolicy(delay=0, attempts=2), sleep)

        sleep.assert_not_called()
