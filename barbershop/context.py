# barbershop/context.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Session, select

from .audit import Actor, AuditAction, AuditSink, LoggingAuditSink, record_audit
from .config import Settings, settings as default_settings
from .core import Clock
from .db import lock_barber_day
from .notifications import LoggingNotifier, Notifier, NotifyEvent, dispatch


@dataclass
class SchedulingContext:
    """Everything one engine call needs: the unit of work, tenant scope and side-effect sinks."""

    session: Session
    tenant_id: str
    clock: Clock
    notifier: Notifier = field(default_factory=LoggingNotifier)
    audit_sink: AuditSink = field(default_factory=LoggingAuditSink)
    settings: Settings = field(default_factory=lambda: default_settings)
    actor_id: Optional[str] = None

    # tenant scope is a mandatory predicate on every read
    def select(self, model):
        return select(model).where(model.tenant_id == self.tenant_id)

    def get(self, model, obj_id: int):
        return self.session.exec(self.select(model).where(model.id == obj_id)).first()

    def add(self, obj):
        obj.tenant_id = self.tenant_id
        self.session.add(obj)
        return obj

    def lock_day(self, barber_id: int, day: str) -> None:
        lock_barber_day(self.session, self.tenant_id, barber_id, day)

    def local_now(self) -> datetime:
        """Shop wall-clock time without tzinfo, the form timestamps are stored in."""
        return self.clock.now().replace(tzinfo=None)

    def notify(self, event: NotifyEvent, phone: str, data: Dict[str, Any]) -> bool:
        return dispatch(self.notifier, event, phone, data)

    def notify_admin(self, event: NotifyEvent, data: Dict[str, Any]) -> bool:
        admin_phone = (self.settings.admin_phone or "").strip()
        if not admin_phone:
            return False
        return dispatch(self.notifier, event, admin_phone, data)

    def audit(self, actor: Actor, action: AuditAction, entity_id: Optional[int] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        metadata = dict(metadata or {})
        if self.actor_id and actor == Actor.admin:
            metadata.setdefault("actor_id", self.actor_id)
        record_audit(self.audit_sink, actor, action, entity_id, metadata)
