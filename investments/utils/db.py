import functools
import logging
import time
from contextlib import contextmanager

from django.db import DatabaseError, InterfaceError, OperationalError

from ..exceptions import StorageError

logger = logging.getLogger(__name__)


def retry_on_transient(attempts=3, delay=0.2):
    """Retry a read-only function when the database connection hiccups.

    Only wrap pure reads with this; financial writes must not be replayed.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except (OperationalError, InterfaceError) as e:
                    if attempt == attempts:
                        raise StorageError(f"Database unavailable: {e}") from e
                    logger.warning(
                        "Transient database error in %s (attempt %s/%s): %s",
                        func.__name__, attempt, attempts, e,
                    )
                    time.sleep(delay * attempt)
        return wrapper
    return decorator


@contextmanager
def storage_errors(operation):
    """Re-raise database failures inside ``operation`` as StorageError."""
    try:
        yield
    except DatabaseError as e:
        logger.error("Storage failure during %s: %s", operation, e)
        raise StorageError(f"Could not complete {operation}: {e}") from e
