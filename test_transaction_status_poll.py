import threading
from unittest.mock import Mock

import pytest

from services.transaction_status_poll import TransactionStatusPoll

WAIT_TIMEOUT_SECONDS = 5


class BlockingChecker:
    """Blocks inside update_pending() until released"""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def update_pending(self):
        self.calls += 1
        self.entered.set()
        self.release.wait(WAIT_TIMEOUT_SECONDS)


class CountingChecker:
    def __init__(self, expected_calls=1):
        self.calls = 0
        self.expected_calls = expected_calls
        self.done = threading.Event()

    def update_pending(self):
        self.calls += 1
        if self.calls >= self.expected_calls:
            self.done.set()


def test_non_positive_interval_is_rejected():
    with pytest.raises(ValueError):
        TransactionStatusPoll([], 0)


def test_poll_runs_every_checker():
    first, second = Mock(), Mock()
    poll = TransactionStatusPoll([first, second], 10)

    assert poll.poll() is True

    first.update_pending.assert_called_once_with()
    second.update_pending.assert_called_once_with()


def test_checker_errors_are_swallowed_and_later_checkers_still_run():
    failing, healthy = Mock(), Mock()
    failing.update_pending.side_effect = RuntimeError("gateway is down")
    poll = TransactionStatusPoll([failing, healthy], 10)

    assert poll.poll() is True

    healthy.update_pending.assert_called_once_with()
    assert not poll.is_polling


def test_overlapping_pass_is_skipped():
    checker = BlockingChecker()
    poll = TransactionStatusPoll([checker], 10)
    first_pass = threading.Thread(target=poll.poll)
    first_pass.start()
    assert checker.entered.wait(WAIT_TIMEOUT_SECONDS)

    try:
        assert poll.is_polling
        assert poll.poll() is False
    finally:
        checker.release.set()
        first_pass.join(WAIT_TIMEOUT_SECONDS)

    assert checker.calls == 1
    assert not poll.is_polling


def test_checkers_run_inside_app_context(app):
    from flask import current_app

    seen = []
    checker = Mock()
    checker.update_pending.side_effect = lambda: seen.append(current_app.name)
    poll = TransactionStatusPoll([checker], 10, app=app)

    # run in another thread so the fixture's context is not inherited
    thread = threading.Thread(target=poll.poll)
    thread.start()
    thread.join(WAIT_TIMEOUT_SECONDS)

    assert seen == [app.name]


def test_started_poll_runs_passes_until_stopped():
    checker = CountingChecker(expected_calls=2)
    poll = TransactionStatusPoll([checker], 0.01, rng=lambda: 0)

    poll.start()
    try:
        assert poll.is_running
        assert checker.done.wait(WAIT_TIMEOUT_SECONDS)
    finally:
        poll.stop()

    assert not poll.is_running


def test_start_twice_is_rejected():
    poll = TransactionStatusPoll([], 60, rng=lambda: 0.5)

    poll.start()
    try:
        with pytest.raises(RuntimeError):
            poll.start()
    finally:
        poll.stop()


def test_stop_during_start_jitter_prevents_any_pass():
    checker = Mock()
    poll = TransactionStatusPoll([checker], 60, rng=lambda: 1)

    poll.start()
    poll.stop()

    checker.update_pending.assert_not_called()
