from blockcms.extensions import db
from .base import BaseModel
from .tenant_mixin import TenantMixin


class Component(BaseModel, TenantMixin):
    """Stored component schema (a reusable block type) for one tenant."""
    __tablename__ = "components"

    name = db.Column(db.String(100), nullable=False)  # technical name, referenced by blocks
    display_name = db.Column(db.String(255), nullable=True)
    schema = db.Column(db.JSON, nullable=False, default=dict)

    is_nestable = db.Column(db.Boolean, nullable=False, default=True)
    is_root = db.Column(db.Boolean, nullable=False, default=False)
    max_instances = db.Column(db.Integer, nullable=True)

    created_by = db.Column(db.String(36), nullable=True)
    updated_by = db.Column(db.String(36), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_component_name_per_tenant"),
    )
