# barbershop/auth.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from sqlmodel import Session, select
from .config import settings
from .db import get_session
from .models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def find_user(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def authenticate_user(session: Session, email: str, password: str) -> Optional[User]:
    user = find_user(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        return None
    return user


def issue_token(user: User, expires_minutes: Optional[int] = None) -> str:
    """Sign a bearer token naming the user and the shop they belong to."""
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes
    claims = {
        "sub": user.email,
        "tenant_id": user.tenant_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "tenant_id": user.tenant_id,
    }


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_from_token(token: str, session: Session) -> dict:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid token")

    email = claims.get("sub")
    if email is None:
        raise _unauthorized("Invalid token")

    user = find_user(session, email)
    if user is None:
        raise _unauthorized("User not found")
    # a token minted for another shop is not valid here
    if claims.get("tenant_id") != user.tenant_id:
        logger.warning("Token tenant mismatch for %s", email)
        raise _unauthorized("Invalid token")

    return user_payload(user)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    return user_from_token(token, session)
