"""Deliverer availability lifecycle: activate, deactivate, list, claim, match."""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import handshakes, models
from .errors import StoreError, commit_or_raise, store_errors

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

ROW_FIELDS = ("id", "user_id", "hall_id", "desired_order", "active", "updated_at")


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    try:
        return _UPSERT_INSERTS[dialect]
    except KeyError:
        raise StoreError(f"Atomic upsert is not supported on {dialect}") from None


def find_availability(db: Session, user_id: str) -> Optional[models.Availability]:
    stmt = (
        select(models.Availability)
        .where(models.Availability.user_id == user_id)
        .limit(1)
    )
    with store_errors(db):
        return db.execute(stmt).scalar_one_or_none()


def activate(
    db: Session,
    user_id: str,
    hall_id: str,
    desired_order: str,
    now: Optional[datetime] = None,
) -> models.Availability:
    """Create or refresh the user's availability row in a single statement.

    ``INSERT ... ON CONFLICT (user_id) DO UPDATE`` keeps one row per user even
    when two activations for a new user arrive at the same time.
    """
    now = now or datetime.utcnow()
    insert = _insert_for(db)
    stmt = insert(models.Availability).values(
        user_id=user_id,
        hall_id=hall_id,
        desired_order=desired_order,
        active=True,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id"],
        set_={
            "hall_id": stmt.excluded.hall_id,
            "desired_order": stmt.excluded.desired_order,
            "active": True,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    with store_errors(db):
        db.execute(stmt)
        db.commit()

    row = find_availability(db, user_id)
    if row is None:
        raise StoreError("Availability row missing after upsert")
    logger.info("Deliverer %s active at %s", user_id, hall_id)
    return row


def deactivate(
    db: Session, user_id: str, now: Optional[datetime] = None
) -> Optional[models.Availability]:
    """Flip the user's row to inactive.

    Returns None if the user never activated. Rows are never deleted, so
    deactivating twice simply rewrites ``active=False``.
    """
    row = find_availability(db, user_id)
    if row is None:
        return None

    row.active = False
    row.updated_at = now or datetime.utcnow()
    commit_or_raise(db)
    with store_errors(db):
        db.refresh(row)
    return row


def list_active(db: Session, hall_id: Optional[str] = None) -> List[models.Availability]:
    """Active rows, most recently activated first."""
    stmt = (
        select(models.Availability)
        .where(models.Availability.active.is_(True))
        .order_by(models.Availability.updated_at.desc(), models.Availability.id.desc())
    )
    if hall_id:
        stmt = stmt.where(models.Availability.hall_id == hall_id)
    with store_errors(db):
        return list(db.execute(stmt).scalars().all())


def _row_dict(row: models.Availability) -> Dict[str, object]:
    return {name: getattr(row, name) for name in ROW_FIELDS}


def enrich(db: Session, rows: List[models.Availability]) -> List[Dict[str, object]]:
    """Attach ``user_name`` and ``contact`` from the users table.

    A failed user lookup is logged and the rows come back without the
    display fields; it never fails the listing.
    """
    base = [_row_dict(row) for row in rows]
    user_ids = {item["user_id"] for item in base if item["user_id"]}

    users_by_id: Dict[str, models.User] = {}
    if user_ids:
        try:
            users = db.execute(
                select(models.User).where(models.User.id.in_(user_ids))
            ).scalars().all()
            users_by_id = {user.id: user for user in users}
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to fetch deliverer user data")

    for item in base:
        user = users_by_id.get(item["user_id"])
        item["user_name"] = user.display_name if user else None
        item["contact"] = user.email if user else None
    return base


def _flip_if_active(db: Session, user_id: str, now: datetime) -> bool:
    stmt = (
        update(models.Availability)
        .where(
            models.Availability.user_id == user_id,
            models.Availability.active.is_(True),
        )
        .values(active=False, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    with store_errors(db):
        result = db.execute(stmt)
    return result.rowcount == 1


def claim(db: Session, user_id: str, now: Optional[datetime] = None) -> bool:
    """Take a deliverer out of the pool if, and only if, they are still active.

    Returns True when this call flipped the flag. A second claimant sees
    zero affected rows and gets False.
    """
    claimed = _flip_if_active(db, user_id, now or datetime.utcnow())
    commit_or_raise(db)
    return claimed


def match(
    db: Session, hall_id: str, orderer_id: str, now: Optional[datetime] = None
) -> Optional[Tuple[Dict[str, object], models.Handshake]]:
    """Claim the first deliverer in listing order and open a handshake.

    The claim and the handshake insert commit together: if the handshake
    cannot be stored the deliverer stays listed. Candidates that another
    orderer claims in the meantime are skipped.
    """
    now = now or datetime.utcnow()
    candidates = [row.user_id for row in list_active(db, hall_id)]
    for deliverer_id in candidates:
        if deliverer_id == orderer_id:
            continue
        if not _flip_if_active(db, deliverer_id, now):
            logger.info("Deliverer %s was claimed by another orderer", deliverer_id)
            continue

        try:
            handshake = handshakes.open_handshake(
                db, hall_id, deliverer_id, orderer_id, now, commit=False
            )
            commit_or_raise(db)
        except StoreError:
            db.rollback()
            logger.warning("Match for deliverer %s rolled back", deliverer_id)
            raise

        row = find_availability(db, deliverer_id)
        logger.info("Matched orderer %s with deliverer %s at %s", orderer_id, deliverer_id, hall_id)
        return enrich(db, [row])[0], handshake
    return None
