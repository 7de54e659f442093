import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import availability, handshakes, schemas
from ..config import settings
from ..database import get_db
from ..errors import StoreError
from ..halls import is_known_hall

router = APIRouter(prefix="/api/deliverers", tags=["deliverers"])
logger = logging.getLogger(__name__)


def _store_failure(exc: StoreError) -> HTTPException:
    logger.error("Store error: %s", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc),
    )


@router.post("/activate", response_model=schemas.AvailabilityEnvelope)
def activate(payload: schemas.ActivateRequest, db: Session = Depends(get_db)):
    if settings.enforce_known_halls and not is_known_hall(payload.hall_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown hall_id: {payload.hall_id}",
        )
    try:
        row = availability.activate(
            db, payload.user_id, payload.hall_id, payload.desired_order
        )
    except StoreError as exc:
        raise _store_failure(exc)
    return {"availability": row}


@router.post("/deactivate", response_model=schemas.AvailabilityEnvelope)
def deactivate(payload: schemas.DeactivateRequest, db: Session = Depends(get_db)):
    try:
        row = availability.deactivate(db, payload.user_id)
    except StoreError as exc:
        raise _store_failure(exc)

    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No availability found for user",
        )
    return {"availability": row}


@router.get("/", response_model=schemas.DeliverersEnvelope)
def list_deliverers(hall_id: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        rows = availability.list_active(db, hall_id)
    except StoreError as exc:
        raise _store_failure(exc)

    if not rows:
        return {"deliverers": []}
    return {"deliverers": availability.enrich(db, rows)}


@router.post("/claim", response_model=schemas.AvailabilityEnvelope)
def claim(payload: schemas.ClaimRequest, db: Session = Depends(get_db)):
    """Take one deliverer out of the pool; only one caller can win."""
    try:
        if availability.find_availability(db, payload.user_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No availability found for user",
            )
        claimed = availability.claim(db, payload.user_id)
        row = availability.find_availability(db, payload.user_id)
    except StoreError as exc:
        raise _store_failure(exc)

    if not claimed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Deliverer is no longer available",
        )
    return {"availability": row}


@router.post("/match", response_model=schemas.MatchEnvelope)
def match(payload: schemas.MatchRequest, db: Session = Depends(get_db)):
    try:
        result = availability.match(db, payload.hall_id, payload.orderer_id)
    except StoreError as exc:
        raise _store_failure(exc)

    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No deliverers are active for this hall right now.",
        )
    deliverer, handshake = result
    return {
        "deliverer": deliverer,
        "handshake": handshakes.view_for(handshake, payload.orderer_id),
    }
