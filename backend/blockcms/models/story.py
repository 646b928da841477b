from blockcms.extensions import db
from .base import BaseModel
from .tenant_mixin import TenantMixin

# Metadata captured into every version snapshot and copied back on restore.
METADATA_FIELDS = (
    "name",
    "slug",
    "language",
    "meta_title",
    "meta_description",
    "og_title",
    "og_description",
    "tags",
)


class Story(BaseModel, TenantMixin):
    """
    A piece of content: a block tree plus its metadata.

    Lock columns hold the exclusive edit claim. An expired claim may stay
    in the row until it is overwritten or swept; readers treat it as absent.
    """
    __tablename__ = "stories"

    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, index=True)
    language = db.Column(db.String(16), nullable=False, default="default", index=True)
    status = db.Column(db.String(20), nullable=False, default="draft", index=True)

    content = db.Column(db.JSON, nullable=False, default=lambda: {"body": []})

    meta_title = db.Column(db.String(255), nullable=True)
    meta_description = db.Column(db.Text, nullable=True)
    og_title = db.Column(db.String(255), nullable=True)
    og_description = db.Column(db.Text, nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    published_at = db.Column(db.DateTime(timezone=True), nullable=True)
    scheduled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.Column(db.String(36), nullable=True)
    updated_by = db.Column(db.String(36), nullable=True)

    # Content locking
    locked_by = db.Column(db.String(36), nullable=True)
    lock_session_id = db.Column(db.String(255), nullable=True)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    lock_expires_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "slug", "language", name="uq_story_slug_per_language"),
        db.Index("idx_story_lock_holder", "locked_by", "locked_at"),
    )

    def metadata_snapshot(self):
        return {field: getattr(self, field) for field in METADATA_FIELDS}
