import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from filedrive.core.errors import ConflictError, DriveError, ExternalServiceError, UnexpectedError

logger = logging.getLogger(__name__)


@contextmanager
def translate_db_errors(db: Session, conflict_message: str = "An item with that name already exists.") -> Iterator[None]:
    """Roll back and re-raise store failures as classified errors."""
    try:
        yield
    except DriveError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.info("integrity_violation", extra={"error": str(exc.orig)})
        raise ConflictError(conflict_message) from exc
    except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
        db.rollback()
        logger.error("database_unavailable", extra={"error": str(exc)})
        raise ExternalServiceError("The database is unavailable. Please try again later.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("unexpected_database_error")
        raise UnexpectedError() from exc
