"""
CragDB Backend — Transactional Save/Delete Orchestrator
=========================================================

What:  One atomic unit per multi-entity write: the entity itself, position
       shifts, publish-status cascades and the owner's contribution flag.
How:   `atomic()` is an async context manager around the request session.
       Every write inside it only flushes; it commits exactly once on exit.
       Any exception rolls everything back before it propagates.

Flow:
    async with atomic(db, touches=CONTRIBUTABLE_TABLES):
        save entity ─▶ shift siblings ─▶ cascade ─▶ contribution flag
    ──▶ COMMIT ──▶ query_cache.invalidate(touches)

    on exception anywhere:
    ──▶ ROLLBACK ──▶ re-raise (unique violation → UniqueViolationError,
                              other IntegrityError → ConflictError,
                              other SQLAlchemyError → DatabaseError)

After a rollback the session's ORM instances are expired; callers must not
read their attributes again (tests check state through a fresh session).

Slug races:
    Two concurrent creates can pick the same free slug; the loser fails
    with a unique violation (UniqueViolationError). `retry_on_conflict`
    re-runs the whole create, which regenerates the slug. Other conflicts
    (foreign keys, an exhausted slug search) fail the same way every time
    and are raised at once.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from cragdb.config import settings
from cragdb.exceptions import ConflictError, DatabaseError, UniqueViolationError
from cragdb.services.query_cache import query_cache

logger = logging.getLogger(__name__)

# Tables whose rows a crag/sector/route write may change
CONTRIBUTABLE_TABLES = ("crag", "sector", "route", "user", "country")
ACTIVITY_TABLES = ("activity", "activity_route", "difficulty_vote")


# PostgreSQL SQLSTATE unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """True for unique/primary key violations on PostgreSQL (SQLSTATE) and SQLite (message)."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


@asynccontextmanager
async def atomic(
    db: AsyncSession, touches: Iterable[str] = ()
) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed writes as one transaction on `db`.

    Args:
        db:      Request-scoped session. Reads issued earlier on it (e.g. the
                 current user) belong to the same transaction; that is fine,
                 they leave nothing to undo.
        touches: Tables written inside the block; their cached aggregates
                 are dropped after a successful commit.

    Raises:
        UniqueViolationError: a unique constraint was violated.
        ConflictError:  any other constraint (foreign key, not null) was violated.
        DatabaseError:  any other SQLAlchemy failure.
        Anything raised by the block itself, unchanged.
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Transaction rolled back on constraint violation: %s", e.orig)
        error = UniqueViolationError if is_unique_violation(e) else ConflictError
        raise error(
            context={"error_type": type(e.orig).__name__, "detail": str(e.orig)}
        ) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Transaction rolled back on database error: %s", e)
        raise DatabaseError(context={"error_type": type(e).__name__}) from e
    except Exception:
        await db.rollback()
        logger.debug("Transaction rolled back", exc_info=True)
        raise

    tables = tuple(touches)
    if tables:
        query_cache.invalidate(tables)


retry_on_conflict = retry(
    retry=retry_if_exception_type(UniqueViolationError),
    stop=stop_after_attempt(settings.create_retry_attempts),
    wait=wait_exponential_jitter(
        initial=settings.create_retry_wait,
        max=settings.create_retry_wait * 8,
        jitter=settings.create_retry_wait,
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
