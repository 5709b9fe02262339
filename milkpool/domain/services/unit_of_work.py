"""Transaction boundary shared by every engine operation."""

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import Session
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from milkpool.config import settings
from milkpool.domain.exceptions import ConcurrencyConflict, StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_atomic(
    session: Session,
    operation: Callable[[], T],
    *,
    name: str,
    attempts: int | None = None,
) -> T:
    """
    Run ``operation`` inside one database transaction.

    The transaction commits when ``operation`` returns and rolls back on any
    exception, so callers never observe partial effects. ``ConcurrencyConflict``
    re-runs the whole operation with exponential backoff, up to ``attempts``
    tries (default ``settings.conflict_retry_attempts``), then propagates.
    Driver-level failures other than constraint violations are raised as
    ``StorageUnavailable``.

    Args:
        session: Session whose transaction wraps the operation
        operation: Zero-argument callable doing reads and writes on ``session``
        name: Operation name used in log records
        attempts: Override for the retry budget

    Returns:
        Whatever ``operation`` returns
    """
    retrying = Retrying(
        retry=retry_if_exception_type(ConcurrencyConflict),
        stop=stop_after_attempt(attempts or settings.conflict_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.conflict_retry_backoff_seconds,
            max=settings.conflict_retry_max_backoff_seconds,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )

    for attempt in retrying:
        with attempt:
            try:
                result = operation()
                session.commit()
            # Constraint violations are DBAPIErrors too; let them through unchanged
            except IntegrityError:
                session.rollback()
                raise
            except DBAPIError as e:
                session.rollback()
                logger.error(
                    "Storage failure during %s",
                    name,
                    extra={"operation": name},
                    exc_info=True,
                )
                raise StorageUnavailable(f"{name} failed: {e.orig or e}") from e
            except Exception:
                session.rollback()
                raise

    return result
