# app/services/storage.py
import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.utils.errors import Conflict, StorageError, TaskManagerError

logger = logging.getLogger(__name__)

# users.email is declared unique + indexed, so the constraint shows up as the
# column (SQLite, MySQL) or as the index name (PostgreSQL)
EMAIL_CONSTRAINT_NAMES = ("users.email", "ix_users_email")


def is_duplicate_email(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    if "unique" not in message and "duplicate" not in message:
        return False
    return any(name in message for name in EMAIL_CONSTRAINT_NAMES)


@contextmanager
def unit_of_work(db: Session, action: str):
    """Commit the work done inside the block, or roll all of it back.

    Domain errors propagate unchanged; database failures are logged and
    surfaced as StorageError (a unique email violation as Conflict).
    """
    try:
        yield
        db.commit()
    except TaskManagerError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if is_duplicate_email(exc):
            raise Conflict("email") from exc
        logger.exception(f"Integrity error while {action}")
        raise StorageError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"Storage failure while {action}")
        raise StorageError() from exc
