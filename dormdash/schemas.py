from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, constr

RequiredStr = constr(strict=True, min_length=1)


class ValidationResult(BaseModel):
    loc: str
    msg: str


# Availability


class ActivateRequest(BaseModel):
    user_id: RequiredStr
    hall_id: RequiredStr
    desired_order: RequiredStr


class DeactivateRequest(BaseModel):
    user_id: RequiredStr


class ClaimRequest(BaseModel):
    user_id: RequiredStr


class MatchRequest(BaseModel):
    hall_id: RequiredStr
    orderer_id: RequiredStr


class AvailabilityOut(BaseModel):
    id: int
    user_id: str
    hall_id: str
    desired_order: str
    active: bool
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DelivererOut(AvailabilityOut):
    """A listing row plus the display fields joined from the users table."""

    user_name: Optional[str] = None
    contact: Optional[str] = None


class AvailabilityEnvelope(BaseModel):
    availability: AvailabilityOut


class DeliverersEnvelope(BaseModel):
    deliverers: List[DelivererOut]


# Handshakes


class HandshakeOut(BaseModel):
    id: str
    hall_id: str
    deliverer_id: str
    orderer_id: str
    role: str
    pin: str
    status: str
    deliverer_confirmed: bool
    orderer_confirmed: bool
    expires_at: datetime


class HandshakeEnvelope(BaseModel):
    handshake: HandshakeOut


class MatchEnvelope(BaseModel):
    deliverer: DelivererOut
    handshake: HandshakeOut


class VerifyRequest(BaseModel):
    user_id: RequiredStr
    pin: constr(strict=True, pattern=r"^\d{4}$")


# Users


class UserCreate(BaseModel):
    id: Optional[constr(min_length=1, max_length=64)] = None
    email: EmailStr
    user_name: Optional[constr(max_length=128)] = None


class UserUpdate(BaseModel):
    user_name: Optional[constr(max_length=128)] = None
    bio: Optional[constr(max_length=2000)] = None
    profile_picture_url: Optional[constr(max_length=1024)] = None


class UserOut(BaseModel):
    id: str
    email: str
    user_name: Optional[str] = None
    bio: Optional[str] = None
    rating: Optional[float] = None
    profile_picture_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserEnvelope(BaseModel):
    user: UserOut


class RegisterForm(BaseModel):
    email: EmailStr
    password: constr(min_length=8, max_length=256)
    user_name: Optional[constr(max_length=128)] = None


class LoginForm(BaseModel):
    email: EmailStr
    password: constr(min_length=1)


# Halls


class HallOut(BaseModel):
    id: str
    name: str
    neighborhood: str
    description: str
    specialties: List[str]


class HallsEnvelope(BaseModel):
    halls: List[HallOut]


def format_errors(exc) -> List[ValidationResult]:
    """Flatten pydantic or FastAPI validation errors into loc/msg pairs."""
    return [
        ValidationResult(loc=".".join(str(p) for p in error["loc"]), msg=error["msg"])
        for error in exc.errors()
    ]
