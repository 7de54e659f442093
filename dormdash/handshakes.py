"""PIN handshake tied to a match.

Each party gets a four-digit PIN. The orderer confirms the meeting by
entering the deliverer's PIN and the deliverer by entering the orderer's.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy.orm import Session

from . import models
from .config import settings
from .errors import commit_or_raise, store_errors

logger = logging.getLogger(__name__)


class HandshakeError(Exception):
    """Base class for verification failures."""


class NotAParty(HandshakeError):
    pass


class HandshakeExpired(HandshakeError):
    pass


class HandshakeLocked(HandshakeError):
    pass


class PinMismatch(HandshakeError):
    def __init__(self, remaining_attempts: int):
        super().__init__(
            f"PIN does not match. {remaining_attempts} attempt(s) remaining."
        )
        self.remaining_attempts = remaining_attempts


def generate_pin() -> str:
    return str(secrets.randbelow(9000) + 1000)


def open_handshake(
    db: Session,
    hall_id: str,
    deliverer_id: str,
    orderer_id: str,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> models.Handshake:
    """Store a new handshake.

    With ``commit=False`` the row is only flushed, so the caller can commit it
    together with the claim that produced the match.
    """
    now = now or datetime.utcnow()
    handshake = models.Handshake(
        hall_id=hall_id,
        deliverer_id=deliverer_id,
        orderer_id=orderer_id,
        deliverer_pin=generate_pin(),
        orderer_pin=generate_pin(),
        max_attempts=settings.handshake_max_attempts,
        created_at=now,
        expires_at=now + timedelta(seconds=settings.handshake_ttl_seconds),
    )
    db.add(handshake)
    if not commit:
        with store_errors(db):
            db.flush()
        return handshake
    commit_or_raise(db)
    with store_errors(db):
        db.refresh(handshake)
    return handshake


def get_handshake(db: Session, handshake_id: str) -> Optional[models.Handshake]:
    with store_errors(db):
        return db.get(models.Handshake, handshake_id)


def verify(
    db: Session,
    handshake: models.Handshake,
    user_id: str,
    pin: str,
    now: Optional[datetime] = None,
) -> models.Handshake:
    now = now or datetime.utcnow()
    if not handshake.is_party(user_id):
        raise NotAParty("You are not part of this handshake.")

    is_orderer = user_id == handshake.orderer_id
    already_confirmed = (
        handshake.orderer_confirmed if is_orderer else handshake.deliverer_confirmed
    )
    # Once a party has confirmed, its further attempts are not counted.
    if already_confirmed:
        return handshake

    status = handshake.status_at(now)
    if status == "locked":
        raise HandshakeLocked("Too many wrong PINs. Start a new match.")
    if status == "expired":
        raise HandshakeExpired("This handshake has expired. Start a new match.")

    expected = handshake.deliverer_pin if is_orderer else handshake.orderer_pin
    if not secrets.compare_digest(pin, expected):
        handshake.failed_attempts += 1
        remaining = max(handshake.max_attempts - handshake.failed_attempts, 0)
        commit_or_raise(db)
        logger.warning("Wrong PIN for handshake %s from %s", handshake.id, user_id)
        raise PinMismatch(remaining)

    if is_orderer:
        handshake.orderer_confirmed = True
    else:
        handshake.deliverer_confirmed = True
    commit_or_raise(db)
    with store_errors(db):
        db.refresh(handshake)
    return handshake


def view_for(
    handshake: models.Handshake, user_id: str, now: Optional[datetime] = None
) -> Dict[str, object]:
    """The handshake as one party sees it: only their own PIN is included."""
    is_orderer = user_id == handshake.orderer_id
    return {
        "id": handshake.id,
        "hall_id": handshake.hall_id,
        "deliverer_id": handshake.deliverer_id,
        "orderer_id": handshake.orderer_id,
        "role": "orderer" if is_orderer else "deliverer",
        "pin": handshake.orderer_pin if is_orderer else handshake.deliverer_pin,
        "status": handshake.status_at(now or datetime.utcnow()),
        "deliverer_confirmed": handshake.deliverer_confirmed,
        "orderer_confirmed": handshake.orderer_confirmed,
        "expires_at": handshake.expires_at,
    }
