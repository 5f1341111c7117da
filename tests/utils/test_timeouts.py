import logging
import time

import pytest

from utils.exceptions import TaskTimeoutError
from utils.timeouts import abandoned_threads, call_with_timeout


def test_no_timeout_runs_inline():
    assert call_with_timeout(lambda a, b: a + b, None, 2, 3) == 5

def test_returns_result_within_deadline():
    assert call_with_timeout(lambda x: x * 2, 5.0, 21) == 42

def test_raises_on_deadline():
    with pytest.raises(TaskTimeoutError):
        call_with_timeout(time.sleep, 0.05, 2)

def test_propagates_task_exception():
    def boom():
        raise ValueError("bad input")

    with pytest.raises(ValueError, match="bad input"):
        call_with_timeout(boom, 5.0)

def test_abandoned_thread_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="timeouts"):
        with pytest.raises(TaskTimeoutError):
            call_with_timeout(time.sleep, 0.2, 1.0)
    assert "Abandoning sleep after 0.2s" in caplog.text
    assert abandoned_threads() >= 1
