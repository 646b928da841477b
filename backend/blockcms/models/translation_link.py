from blockcms.extensions import db
from .base import BaseModel
from .tenant_mixin import TenantMixin


class TranslationLink(BaseModel, TenantMixin):
    __tablename__ = "translation_links"

    source_story_id = db.Column(
        db.String(36),
        db.ForeignKey("stories.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    variant_story_id = db.Column(
        db.String(36),
        db.ForeignKey("stories.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    language = db.Column(db.String(16), nullable=False)

    # _uid -> structural hash of the source block at the last sync
    fingerprint = db.Column(db.JSON, nullable=False, default=dict)

    completion_percentage = db.Column(db.Float, nullable=False, default=0.0)
    needs_sync = db.Column(db.Boolean, nullable=False, default=False)

    last_checked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_synced_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("source_story_id", "language", name="uq_translation_language"),
    )
