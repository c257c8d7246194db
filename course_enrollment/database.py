import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from course_enrollment.config import settings
from course_enrollment.errors import EnrollmentError, StorageFailure

logger = logging.getLogger("app.db")

engine = create_engine(settings.database_url, echo=settings.DB_ECHO, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def set_lock_timeout(db: Session):
    # only PostgreSQL understands lock_timeout; SET LOCAL ends with the transaction
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = {int(settings.LOCK_TIMEOUT_MS)}"))


@contextmanager
def atomic(db: Session):
    """
    One unit of work: commit on success, roll back on any failure.

    EnrollmentError passes through untouched; database errors become
    StorageFailure. OperationalError (lock timeout, deadlock, serialization
    failure, lost connection) is retryable, anything else is final.
    """
    try:
        set_lock_timeout(db)
        yield db
        db.commit()
    except EnrollmentError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning("Constraint violation: %s", e.orig)
        raise StorageFailure(f"Database constraint violation: {e.orig}") from e
    except OperationalError as e:
        db.rollback()
        logger.warning("Transaction aborted by the database: %s", e.orig)
        raise StorageFailure(
            "The database could not complete the operation, please retry",
            retryable=True,
        ) from e
    except DBAPIError as e:
        db.rollback()
        logger.exception("Database error")
        raise StorageFailure(f"Database error: {e.orig}") from e
    except Exception:
        db.rollback()
        raise
