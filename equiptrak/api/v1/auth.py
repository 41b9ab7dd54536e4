import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from equiptrak.core.security import (
    create_access_token,
    get_current_user,
    oauth2_scheme,
    verify_password,
)
from equiptrak.db import models
from equiptrak.db.session import get_db

router = APIRouter(tags=["Auth"])
logger = logging.getLogger("equiptrak.api")


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionUser(BaseModel):
    id: str
    email: str
    role: str
    first_name: str | None = None
    last_name: str | None = None
    company_id: str | None = None


class LoginResponse(BaseModel):
    user: SessionUser
    token: str


def _to_session_user(user: models.User) -> SessionUser:
    return SessionUser(
        id=user.id,
        email=user.email,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        company_id=user.company_id,
    )


def _authenticate(db: Session, email: str, password: str) -> models.User:
    normalized = email.strip().lower()
    user = db.query(models.User).filter(func.lower(models.User.email) == normalized).first()
    if not user or not verify_password(password, user.password_hash):
        logger.info("login rejected email=%s", normalized)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return user


def _issue_token(user: models.User) -> str:
    return create_access_token({"sub": user.id, "email": user.email, "role": user.role})


@router.post("/auth/login", response_model=LoginResponse, summary="Login (JSON)")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = _authenticate(db, payload.email, payload.password)
    return {"user": _to_session_user(user), "token": _issue_token(user)}


@router.post("/auth/token", summary="Login for Swagger (OAuth2PasswordBearer)")
def login_swagger(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = _authenticate(db, form_data.username, form_data.password)
    return {"access_token": _issue_token(user), "token_type": "bearer", "role": user.role}


@router.get("/auth/session")
def read_session(
    token: str = Depends(oauth2_scheme),
    current_user: models.User = Depends(get_current_user),
):
    """Echoes the session for a valid bearer token, token included."""
    return {"user": {**_to_session_user(current_user).model_dump(), "token": token}}
