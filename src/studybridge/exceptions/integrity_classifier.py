import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from sqlalchemy.exc import IntegrityError, InvalidRequestError
from sqlalchemy.orm.exc import FlushError, StaleDataError

logger = logging.getLogger(__name__)

# =================================================================================================================
# Failure kinds
# =================================================================================================================


class FailureKind(str, Enum):
    UNIQUE_VIOLATION = "unique_violation"
    CONSTRAINT_VIOLATION = "constraint_violation"
    OPTIMISTIC_LOCK = "optimistic_lock"
    NON_UNIQUE_OBJECT = "non_unique_object"
    UNKNOWN = "unknown"


# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"


@dataclass(frozen=True)
class PersistenceFailure:
    """
    What went wrong during a flush, as far as the driver lets us tell.

    `constraint_name` is the structured constraint identifier when the driver reports one
    (Postgres diagnostics) or when it can be read out of the message (MySQL, Postgres).
    `columns` is the column list SQLite reports instead of a constraint name.
    """
    kind: FailureKind
    error: BaseException | None = None
    constraint_name: str | None = None
    columns: tuple[str, ...] | None = None


# =================================================================================================================
# Helpers
# =================================================================================================================

_IDENTITY_CONFLICT_MARKERS = ["conflicts with persistent instance", "is already present in this session"]

_MYSQL_KEY = re.compile(r"for key '(?P<key>[^']+)'", flags=re.IGNORECASE)
_POSTGRES_CONSTRAINT = re.compile(r'constraint "(?P<key>[^"]+)"', flags=re.IGNORECASE)
_SQLITE_COLUMNS = re.compile(r"(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>[^\n]+)", flags=re.IGNORECASE)


def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _iter_chain(exc: BaseException | None) -> Iterator[BaseException]:
    """Yield the exception followed by its explicit or implicit causes."""
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__ or exc.__context__


def _postgres_diagnostics(orig) -> tuple[str | None, str | None]:
    """
    Return (sqlstate, constraint_name) from a Postgres driver error.

    psycopg2 exposes `pgcode` and `diag.constraint_name`; psycopg 3 uses `sqlstate`;
    SQLAlchemy's asyncpg adapter keeps the asyncpg error (with `constraint_name`) as its cause.
    """
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None) if diag else None
    if constraint_name is None:
        constraint_name = getattr(getattr(orig, "__cause__", None), "constraint_name", None)
    return pgcode, constraint_name


def _constraint_from_message(msg: str) -> str | None:
    for pattern in (_MYSQL_KEY, _POSTGRES_CONSTRAINT):
        m = pattern.search(msg)
        if m:
            # MySQL 8 prefixes the key with the table name: 'accounts.Some-Index'
            return m.group("key").rsplit(".", 1)[-1]
    return None


def _columns_from_message(msg: str) -> tuple[str, ...] | None:
    m = _SQLITE_COLUMNS.search(msg)
    if not m:
        return None
    return tuple(c.strip().split(".")[-1] for c in m.group("cols").split(","))


# =================================================================================================================
# Integrity Error Classifiers
# =================================================================================================================

def _classify_integrity_error(exc: IntegrityError) -> PersistenceFailure:
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)

    pgcode, constraint_name = _postgres_diagnostics(orig)
    if pgcode:
        logger.debug("Postgres integrity diagnostic", extra={"pgcode": pgcode, "constraint_name": constraint_name})

    if constraint_name is None:
        constraint_name = _constraint_from_message(msg)
    columns = _columns_from_message(msg)

    if pgcode == PostgresErrorCodes.UNIQUE_VIOLATION:
        kind = FailureKind.UNIQUE_VIOLATION
    elif pgcode:
        kind = FailureKind.CONSTRAINT_VIOLATION
    elif _match_any(msg.lower(), ["unique constraint", "unique failed", "unique violation", "duplicate"]):
        kind = FailureKind.UNIQUE_VIOLATION
    else:
        kind = FailureKind.CONSTRAINT_VIOLATION
        # Keep the raw message at DEBUG only; it may contain user data
        logger.debug("Unclassified integrity message", extra={"raw": msg})

    return PersistenceFailure(kind=kind, error=exc, constraint_name=constraint_name, columns=columns)


def classify_persistence_error(exc: BaseException) -> PersistenceFailure:
    """
    Classify a failure raised while flushing or committing a session.

    The exception and its cause chain are inspected, so a service that re-raises a database
    error wrapped in its own exception is still classified by the original failure.
    """
    for candidate in _iter_chain(exc):
        if isinstance(candidate, StaleDataError):
            return PersistenceFailure(kind=FailureKind.OPTIMISTIC_LOCK, error=candidate)
        if isinstance(candidate, (FlushError, InvalidRequestError)) and _match_any(
            str(candidate), _IDENTITY_CONFLICT_MARKERS
        ):
            return PersistenceFailure(kind=FailureKind.NON_UNIQUE_OBJECT, error=candidate)
        if isinstance(candidate, IntegrityError):
            return _classify_integrity_error(candidate)
    return PersistenceFailure(kind=FailureKind.UNKNOWN)
