"""
Pointsman lock discipline.

Every mutating path follows the same shape:

    with critical_section():
        row = Model.objects.select_for_update().get(...)   # lock
        Gates.something(row)                               # validate under lock
        Model.objects.filter(pk=row.pk, ...).update(...)   # mutate

Rules:
- Rows are locked in a fixed global order: entity rank (account, reward,
  voucher), then primary key. Code that locks more than one row goes
  through lock_order().
- Lock waits are bounded. On PostgreSQL the wait is capped with
  SET LOCAL lock_timeout; SQLite relies on the connection timeout and
  transaction_mode="IMMEDIATE".
- Lock timeouts, deadlocks and serialization failures surface as
  ConcurrencyContention (retryable). Other database errors surface as
  PersistenceFailure. Nothing here retries.
"""

import logging
from contextlib import contextmanager

from django.db import DatabaseError, connections, transaction
from django.db.utils import DEFAULT_DB_ALIAS

from pointsman.conf import pointsman_settings
from pointsman.exceptions import ConcurrencyContention, PersistenceFailure

logger = logging.getLogger(__name__)


# Entity ranks for the global lock order
ACCOUNT = 0
REWARD = 1
VOUCHER = 2

# SQLSTATEs that mean "lost a race, try again"
_RETRYABLE_SQLSTATES = {
    "55P03",  # lock_not_available (lock_timeout)
    "40P01",  # deadlock_detected
    "40001",  # serialization_failure
}
# MySQL/MariaDB: lock wait timeout, deadlock
_RETRYABLE_MYSQL_CODES = {1205, 1213}


def lock_order(*targets: tuple[int, object]) -> list[tuple[int, object]]:
    """
    Sort (rank, key) lock targets into acquisition order.

    Within a rank, integer keys come first in numeric order, then all
    other keys in string order.
    """
    return sorted(targets, key=_lock_sort_key)


def _lock_sort_key(target: tuple[int, object]) -> tuple:
    rank, key = target
    if isinstance(key, int) and not isinstance(key, bool):
        return (rank, 0, key, "")
    return (rank, 1, 0, str(key))


def is_contention_error(exc: BaseException) -> bool:
    """True when a database error means lock contention rather than failure."""
    cause = exc.__cause__ or exc
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    args = getattr(cause, "args", ())
    if args and args[0] in _RETRYABLE_MYSQL_CODES:
        return True
    return "database is locked" in str(exc).lower()


def _apply_lock_timeout(using: str) -> None:
    connection = connections[using]
    if connection.vendor != "postgresql":
        return
    timeout_ms = int(pointsman_settings.LOCK_TIMEOUT_MS)
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = '{timeout_ms}ms'")


@contextmanager
def critical_section(using: str = DEFAULT_DB_ALIAS):
    """
    One transaction bounded by explicit row locks.

    Rolls back everything on any exception. Domain errors (PointsmanError)
    propagate unchanged; database errors are translated.
    """
    try:
        with transaction.atomic(using=using):
            _apply_lock_timeout(using)
            yield
    except DatabaseError as exc:
        if is_contention_error(exc):
            logger.warning("Lock contention, transaction rolled back: %s", exc)
            raise ConcurrencyContention(detail=str(exc)) from exc
        logger.error("Database error, transaction rolled back: %s", exc)
        raise PersistenceFailure(detail=str(exc)) from exc
