from sqlalchemy import event
from blockcms.extensions import db
from blockcms.utils.timeutils import normalize_ts
from .base import BaseModel
from .tenant_mixin import TenantMixin


class AuditLog(BaseModel, TenantMixin):
    """One append-only row per state change of a story, version, lock or component."""

    __tablename__ = "audit_logs"

    __table_args__ = (
        db.Index("ix_audit_entity_history", "tenant_id", "entity_type", "entity_id", "created_at"),
        db.Index("ix_audit_actor_action", "tenant_id", "actor_id", "action"),
    )

    # None for maintenance runs such as version pruning
    actor_id = db.Column(db.String(255), nullable=True)
    action = db.Column(db.String(64), nullable=False, index=True)

    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False)

    payload = db.Column(db.JSON, nullable=False, default=dict)

    def to_dict(self):
        created_at = normalize_ts(self.created_at)
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "action": self.action,
            "entity": {"type": self.entity_type, "id": self.entity_id},
            "payload": dict(self.payload or {}),
            "created_at": created_at.isoformat() if created_at else None,
        }


@event.listens_for(AuditLog, "before_update")
@event.listens_for(AuditLog, "before_delete")
def reject_audit_mutation(mapper, connection, target):
    raise RuntimeError(f"Audit log {target.id} is append-only")
