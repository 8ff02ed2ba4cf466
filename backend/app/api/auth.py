"""Auth API: login and profile endpoints."""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from jose import JWTError, jwt

from app.container import get_user_repo
from app.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from app.domain.entity import rules
from app.domain.entity.models import Actor
from app.persistence.interfaces.user_repository import UserRepository

router = APIRouter(prefix="/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------
# Password hashing (direct bcrypt)
# ------------------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class LoginRequest(BaseModel):
    username: str
    password: str


# ------------------------------------------------------------------
# JWT helpers
# ------------------------------------------------------------------
def create_token(user: dict) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user["id"],
        "username": user["username"],
        "role": user["role"],
        "department_id": user.get("department_id"),
        "exp": expire,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")


# ------------------------------------------------------------------
# Dependencies: current user / actor from Bearer token
# ------------------------------------------------------------------
def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> dict:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return _decode_token(credentials.credentials)


def actor_from_claims(claims: dict) -> Actor:
    role = claims.get("role")
    if not claims.get("sub") or role not in rules.VALID_ROLES:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token: bad claims")
    return Actor(id=claims["sub"], role=role, department_id=claims.get("department_id"))


def get_current_actor(current_user: dict = Depends(get_current_user)) -> Actor:
    return actor_from_claims(current_user)


def _profile(user: dict) -> dict:
    return {
        "id": user["id"],
        "username": user["username"],
        "role": user["role"],
        "department_id": user.get("department_id"),
        "display_name": user.get("display_name"),
        "email": user.get("email"),
    }


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/login")
def login(body: LoginRequest, users: UserRepository = Depends(get_user_repo)):
    user = users.get_by_username(body.username)
    if not user or not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return {"token": create_token(user), "user": _profile(user)}


@router.get("/profile")
def get_profile(
    current_user: dict = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
):
    user = users.get_by_id(current_user["sub"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile(user)
