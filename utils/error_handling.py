import functools
import logging

from utils.exceptions import LoanMLException


def handle_engine_errors(operation_name: str):
    """
    Wrap an engine method so anything outside the LoanMLException hierarchy is
    logged once, with traceback, and re-raised as LoanMLException chained to the
    original error. Pipeline exceptions pass through untouched.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(engine, *args, **kwargs):
            try:
                return func(engine, *args, **kwargs)
            except LoanMLException:
                raise
            except Exception as e:
                logger = getattr(engine, 'logger', None) or logging.getLogger(__name__)
                logger.error(f"{operation_name} failed in {type(engine).__name__}: "
                             f"{type(e).__name__}: {e}", exc_info=True)
                raise LoanMLException(f"{operation_name} failed: {e}") from e
        return wrapper
    return decorator
