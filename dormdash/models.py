import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=_uuid)
    email = Column(String(256), unique=True, nullable=False, index=True)
    user_name = Column(String(128))
    bio = Column(Text)
    rating = Column(Float)
    profile_picture_url = Column(String(1024))
    # Only set for accounts registered through the session auth routes.
    password_hash = Column(String(256))

    @property
    def display_name(self):
        if self.user_name:
            return self.user_name
        if self.email:
            return self.email.split("@")[0]
        return None


class Availability(Base):
    """A user's current offer to deliver from one hall.

    At most one row exists per user; the unique index on ``user_id`` is the
    conflict target for the activation upsert.
    """

    __tablename__ = "deliver_availability"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), unique=True, nullable=False, index=True)
    hall_id = Column(String(64), nullable=False, index=True)
    desired_order = Column(Text, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class Handshake(Base):
    __tablename__ = "handshakes"

    id = Column(String(64), primary_key=True, default=_uuid)
    hall_id = Column(String(64), nullable=False)
    deliverer_id = Column(String(64), nullable=False, index=True)
    orderer_id = Column(String(64), nullable=False, index=True)
    deliverer_pin = Column(String(4), nullable=False)
    orderer_pin = Column(String(4), nullable=False)
    deliverer_confirmed = Column(Boolean, default=False, nullable=False)
    orderer_confirmed = Column(Boolean, default=False, nullable=False)
    failed_attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    def status_at(self, now: datetime) -> str:
        if self.deliverer_confirmed and self.orderer_confirmed:
            return "confirmed"
        if self.failed_attempts >= self.max_attempts:
            return "locked"
        if now >= self.expires_at:
            return "expired"
        return "pending"

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.deliverer_id, self.orderer_id)
