from blockcms.extensions import db


class TenantMixin:
    # Tenants (spaces) live outside the core; only the scope key is stored.
    tenant_id = db.Column(
        db.String(36),
        nullable=False,
        index=True
    )
