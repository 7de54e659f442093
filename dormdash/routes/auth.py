import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..auth import (
    get_current_user,
    hash_password,
    login_session,
    logout_session,
    require_user,
    verify_password,
)
from ..database import get_db
from ..errors import StoreError

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _require_logged_out(current_user):
    if current_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You are already logged in.",
        )


@router.post("/register", response_model=schemas.UserEnvelope, status_code=status.HTTP_201_CREATED)
def register(
    form: schemas.RegisterForm,
    request: Request,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    _require_logged_out(current_user)
    user_in = schemas.UserCreate(email=form.email, user_name=form.user_name)
    try:
        user = crud.create_user(db, user_in, password_hash=hash_password(form.password))
    except crud.DuplicateEmail as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    login_session(request, user)
    logger.info("Registered user %s", user.id)
    return {"user": user}


@router.post("/login", response_model=schemas.UserEnvelope)
def login(form: schemas.LoginForm, request: Request, db: Session = Depends(get_db)):
    try:
        user = crud.get_user_by_email(db, form.email)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    if not user or not user.password_hash or not verify_password(form.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    login_session(request, user)
    return {"user": user}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(request: Request):
    logout_session(request)


@router.get("/me", response_model=schemas.UserEnvelope)
def me(current_user=Depends(require_user)):
    return {"user": current_user}
