"""
Soft per-call timeouts.

The call runs in a daemon thread. If it does not finish within the deadline,
the caller gets a TaskTimeoutError immediately and the thread is abandoned:
it cannot be killed, keeps its CPU until the call returns, but being a daemon
it never blocks interpreter exit.
"""
import logging
import threading
from typing import Any, Callable, Optional

from utils.exceptions import TaskTimeoutError

THREAD_NAME = "timed-task"

logger = logging.getLogger("timeouts")


def abandoned_threads() -> int:
    """Timed-out calls in this process that are still running."""
    return sum(1 for t in threading.enumerate() if t.name.startswith(THREAD_NAME) and t.is_alive())


def call_with_timeout(func: Callable[..., Any], timeout: Optional[float], *args, **kwargs) -> Any:
    if timeout is None:
        return func(*args, **kwargs)

    outcome = {}

    def target():
        try:
            outcome['result'] = func(*args, **kwargs)
        except BaseException as e:  # re-raised in the calling thread
            outcome['error'] = e

    name = getattr(func, '__name__', 'call')
    worker = threading.Thread(target=target, name=f"{THREAD_NAME}:{name}", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        logger.warning(
            f"Abandoning {name} after {timeout:.1f}s; it keeps running in the background "
            f"({abandoned_threads()} abandoned thread(s) alive in this process)"
        )
        raise TaskTimeoutError(f"Task exceeded {timeout:.1f}s time limit")
    if 'error' in outcome:
        raise outcome['error']
    return outcome.get('result')
