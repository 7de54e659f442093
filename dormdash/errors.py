from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session


class StoreError(RuntimeError):
    """Raised when the database rejects a read or a write.

    The message is the driver's own, so the API layer can pass it through.
    """


def store_message(exc: SQLAlchemyError) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


@contextmanager
def store_errors(db: Session):
    """Roll back and re-raise any SQLAlchemy failure as a StoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(store_message(exc)) from exc


def commit_or_raise(db: Session) -> None:
    with store_errors(db):
        db.commit()
