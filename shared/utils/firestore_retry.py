"""
Firestore Retry Logic for Transient Errors

Every state store call made by the watcher and controller goes through one
of these decorators. Errors Firestore reports as temporary (transaction
contention on a ledger claim, deadlines, unavailability, quota) are retried
with exponential backoff and jitter. Anything else, and a transient error
still failing on the last attempt, propagates so the function invocation
fails and the trigger's own retry policy takes over.

Profiles:
    retry_firestore_read         3 attempts, for get and query calls
    retry_firestore_transaction  5 attempts, short delays, for ledger claims
    retry_on_firestore_error     3 attempts by default, for idempotent updates

Usage:
    from shared.utils.firestore_retry import retry_firestore_read

    @retry_firestore_read
    def get_group(self, group_id):
        ...
"""

import functools
import logging
import random
import time
from typing import Callable, Optional, Tuple, Type

from google.api_core.exceptions import (
    Aborted,
    Conflict,
    DeadlineExceeded,
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
)

from shared.utils.structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

FIRESTORE_TRANSIENT_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    Aborted,              # 409 - transaction lost a contention race
    Conflict,             # 409
    DeadlineExceeded,     # 504
    InternalServerError,  # 500 - usually transient on Firestore
    ResourceExhausted,    # 429
    ServiceUnavailable,   # 503
)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_EXPONENTIAL_BASE = 2.0
DEFAULT_JITTER_FACTOR = 0.1


def calculate_delay_with_jitter(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = DEFAULT_EXPONENTIAL_BASE,
    jitter_factor: float = DEFAULT_JITTER_FACTOR,
) -> float:
    """
    Backoff delay before retry number `attempt` (0-indexed).

    min(base_delay * exponential_base ** attempt, max_delay), then moved up or
    down by at most jitter_factor of itself so that watcher threads retrying
    the same contended round spread out. Never negative.
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    spread = delay * jitter_factor
    return max(0.0, delay + random.uniform(-spread, spread))


def retry_on_firestore_error(
    func: Optional[Callable] = None,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    exponential_base: float = DEFAULT_EXPONENTIAL_BASE,
    jitter_factor: float = DEFAULT_JITTER_FACTOR,
    retryable_exceptions: Tuple[Type[Exception], ...] = FIRESTORE_TRANSIENT_EXCEPTIONS,
) -> Callable:
    """
    Retry a Firestore operation on transient errors.

    Works bare (@retry_on_firestore_error) or with arguments
    (@retry_on_firestore_error(max_attempts=5)). Retry log records carry the
    group and round being processed, taken from the logging context.
    """
    def decorator(operation: Callable) -> Callable:
        name = operation.__name__

        @functools.wraps(operation)
        def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    result = operation(*args, **kwargs)
                except retryable_exceptions as e:
                    attempt += 1
                    if attempt >= max_attempts:
                        logger.error(
                            f"Firestore {name} gave up after {attempt} attempts: {type(e).__name__}: {e}",
                            extra={
                                'event_type': 'firestore_retry_exhausted',
                                'operation': name,
                                'attempts': attempt,
                                'error_type': type(e).__name__,
                            }
                        )
                        raise

                    delay = calculate_delay_with_jitter(
                        attempt - 1, base_delay, max_delay, exponential_base, jitter_factor
                    )
                    logger.warning(
                        f"Firestore {name} attempt {attempt}/{max_attempts} failed with "
                        f"{type(e).__name__}, retrying in {delay:.2f}s",
                        extra={
                            'event_type': 'firestore_retry_attempt',
                            'operation': name,
                            'attempt': attempt,
                            'retry_delay_seconds': delay,
                        }
                    )
                    time.sleep(delay)
                    continue

                if attempt:
                    logger.info(
                        f"Firestore {name} succeeded on attempt {attempt + 1}",
                        extra={'event_type': 'firestore_retry_success', 'operation': name, 'attempts': attempt + 1}
                    )
                return result

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def retry_firestore_transaction(func: Callable) -> Callable:
    """
    Ledger claims contend when watcher passes overlap, so they get more
    attempts with shorter delays.
    """
    return retry_on_firestore_error(max_attempts=5, base_delay=0.5, max_delay=10.0, jitter_factor=0.15)(func)


def retry_firestore_read(func: Callable) -> Callable:
    """Get and query calls; safe to repeat."""
    return retry_on_firestore_error(max_attempts=3, base_delay=1.0, max_delay=15.0)(func)
