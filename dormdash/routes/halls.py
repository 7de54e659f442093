from dataclasses import asdict

from fastapi import APIRouter

from .. import schemas
from ..halls import HALLS

router = APIRouter(prefix="/api/halls", tags=["halls"])


@router.get("/", response_model=schemas.HallsEnvelope)
def list_halls():
    return {"halls": [asdict(hall) for hall in HALLS]}
