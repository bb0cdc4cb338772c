# barbershop/deps.py

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from .audit import LoggingAuditSink
from .auth import get_current_user
from .config import settings
from .context import SchedulingContext
from .core import ShopClock
from .db import get_session
from .notifications import LoggingNotifier


def require_role(user: dict, role: str):
    if user["role"] != role:
        raise HTTPException(status_code=403, detail="Forbidden")


# Overridable in tests through app.dependency_overrides
def get_clock():
    return ShopClock(settings.timezone)


def get_notifier():
    return LoggingNotifier()


def get_audit_sink():
    return LoggingAuditSink()


def get_tenant_id(x_tenant_id: Optional[str] = Header(default=None)) -> str:
    return x_tenant_id or settings.default_tenant_id


def get_context(
    session: Session = Depends(get_session),
    tenant_id: str = Depends(get_tenant_id),
    clock=Depends(get_clock),
    notifier=Depends(get_notifier),
    audit_sink=Depends(get_audit_sink),
) -> SchedulingContext:
    """Context for public (customer) routes, scoped by the X-Tenant-ID header."""
    return SchedulingContext(
        session=session,
        tenant_id=tenant_id,
        clock=clock,
        notifier=notifier,
        audit_sink=audit_sink,
        settings=settings,
    )


def get_admin_context(
    current_user: dict = Depends(get_current_user),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    notifier=Depends(get_notifier),
    audit_sink=Depends(get_audit_sink),
) -> SchedulingContext:
    """Context for admin routes, scoped by the logged-in admin's tenant."""
    require_role(current_user, "admin")
    return SchedulingContext(
        session=session,
        tenant_id=current_user["tenant_id"],
        clock=clock,
        notifier=notifier,
        audit_sink=audit_sink,
        settings=settings,
        actor_id=str(current_user["id"]),
    )
