import logging
import random
import time
from functools import wraps

from django.db import OperationalError, connection

logger = logging.getLogger(__name__)

LOCK_ERROR_MARKERS = ("deadlock", "could not obtain lock", "is locked")


def is_lock_conflict(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in LOCK_ERROR_MARKERS)


def retry_on_lock_conflict(max_retries=3, delay=0.05, backoff=2.0):
    """
    Retry a self-contained transaction when the database reports a lock conflict.

    Only retries when called outside any atomic block; inside one the outer
    transaction is already broken and the error is re-raised immediately.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except OperationalError as exc:
                    if attempt == max_retries or connection.in_atomic_block or not is_lock_conflict(exc):
                        raise
                    logger.warning(
                        "Lock conflict in %s, retrying in %ss (attempt %s/%s)",
                        func.__name__,
                        current_delay,
                        attempt + 1,
                        max_retries,
                    )
                    time.sleep(current_delay * random.uniform(1.0, 1.5))
                    current_delay *= backoff

        return wrapper

    return decorator
