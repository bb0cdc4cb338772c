# barbershop/routers/users_routes.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session, select

from barbershop.db import get_session
from barbershop.config import settings
from barbershop.models import User
from barbershop.schemas import UserCreate, UserPublic
from barbershop.auth import find_user, get_current_user, hash_password, user_from_token, user_payload
from barbershop.deps import require_role

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)

optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


def _tenant_for_new_user(session: Session, token: Optional[str], requested: Optional[str]) -> str:
    # the first account bootstraps a shop; later ones are added by an admin into their own shop
    if session.exec(select(User)).first() is None:
        return requested or settings.default_tenant_id
    if token is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    admin = user_from_token(token, session)
    require_role(admin, "admin")
    return admin["tenant_id"]


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
    token: Optional[str] = Depends(optional_oauth2_scheme),
):
    tenant_id = _tenant_for_new_user(session, token, user.tenant_id)

    if find_user(session, user.email) is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    db_user = User(
        email=user.email,
        password_hash=hash_password(user.password),
        role=user.role.value,
        tenant_id=tenant_id,
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)

    logger.info("User %s added to tenant %s", db_user.email, tenant_id)
    return user_payload(db_user)
