from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import handshakes, models, schemas
from ..database import get_db
from ..errors import StoreError

router = APIRouter(prefix="/api/handshakes", tags=["handshakes"])

_ERROR_STATUS = {
    handshakes.NotAParty: status.HTTP_403_FORBIDDEN,
    handshakes.HandshakeExpired: status.HTTP_410_GONE,
    handshakes.HandshakeLocked: status.HTTP_423_LOCKED,
    handshakes.PinMismatch: status.HTTP_400_BAD_REQUEST,
}


def _get_handshake(db: Session, handshake_id: str) -> models.Handshake:
    try:
        handshake = handshakes.get_handshake(db, handshake_id)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    if not handshake:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Handshake not found")
    return handshake


@router.get("/{handshake_id}", response_model=schemas.HandshakeEnvelope)
def get_handshake(handshake_id: str, user_id: str, db: Session = Depends(get_db)):
    handshake = _get_handshake(db, handshake_id)
    if not handshake.is_party(user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed.")
    return {"handshake": handshakes.view_for(handshake, user_id)}


@router.post("/{handshake_id}/verify", response_model=schemas.HandshakeEnvelope)
def verify_handshake(
    handshake_id: str,
    payload: schemas.VerifyRequest,
    db: Session = Depends(get_db),
):
    handshake = _get_handshake(db, handshake_id)
    try:
        handshake = handshakes.verify(db, handshake, payload.user_id, payload.pin)
    except handshakes.HandshakeError as exc:
        raise HTTPException(status_code=_ERROR_STATUS[type(exc)], detail=str(exc))
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return {"handshake": handshakes.view_for(handshake, payload.user_id)}
