from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import commit_or_raise, store_errors


class DuplicateEmail(ValueError):
    pass


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    with store_errors(db):
        return db.get(models.User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    stmt = select(models.User).where(models.User.email == email.lower())
    with store_errors(db):
        return db.execute(stmt).scalar_one_or_none()


def create_user(
    db: Session,
    user_in: schemas.UserCreate,
    password_hash: Optional[str] = None,
) -> models.User:
    """Create a user row.

    The id may come from an external auth provider; otherwise a UUID is
    assigned.

    Raises:
        DuplicateEmail: if the email or id is already registered.
        StoreError: if the commit fails for any other reason.
    """
    if get_user_by_email(db, user_in.email) is not None:
        raise DuplicateEmail("This email is already registered.")

    user = models.User(
        email=user_in.email.lower(),
        user_name=user_in.user_name,
        password_hash=password_hash,
    )
    if user_in.id:
        user.id = user_in.id
    db.add(user)
    with store_errors(db):
        try:
            db.flush()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateEmail("A user with this id or email already exists.") from exc
    commit_or_raise(db)
    with store_errors(db):
        db.refresh(user)
    return user


def update_user(
    db: Session, user_id: str, user_in: schemas.UserUpdate
) -> Optional[models.User]:
    user = get_user(db, user_id)
    if user is None:
        return None

    for field, value in user_in.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    commit_or_raise(db)
    with store_errors(db):
        db.refresh(user)
    return user
