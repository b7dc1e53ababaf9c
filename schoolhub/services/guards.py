"""
Integrity guard helpers shared by the catalog and resource stores.

Uniqueness and dependent checks run as explicit queries before each
mutation; the database constraints close the race window, and an
``IntegrityError`` on commit is re-reported through the same checks.
"""
import logging
from typing import Any, Callable, NoReturn, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolhub.services.errors import SchoolHubError, StructuralConflictError

logger = logging.getLogger(__name__)

# sentinel for "leave this field unchanged" in partial updates
KEEP: Any = object()


def refuse(error: SchoolHubError) -> NoReturn:
    logger.warning("Refused mutation: %s %s", error.message, error.details)
    raise error


def count_rows(db: Session, model, **criteria) -> int:
    return db.scalar(select(func.count()).select_from(model).filter_by(**criteria)) or 0


def is_taken(db: Session, model, exclude_id: Optional[str] = None, **criteria) -> bool:
    """True if a row other than ``exclude_id`` already matches ``criteria``."""
    stmt = select(model.id).filter_by(**criteria)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    return db.scalar(stmt.limit(1)) is not None


def commit_or_recheck(db: Session, recheck: Callable[[], None]) -> None:
    """Commit, translating a constraint violation into the typed refusal.

    ``recheck`` re-runs the pre-mutation guards after rollback; a concurrent
    writer's row is visible by then, so the guard raises the precise error.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        recheck()
        logger.warning("Integrity violation with no matching guard: %s", exc.orig)
        raise StructuralConflictError("Conflicting concurrent change, please retry", None) from exc
