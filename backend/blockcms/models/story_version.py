from blockcms.extensions import db
from sqlalchemy import event
from .base import BaseModel
from .tenant_mixin import TenantMixin


class StoryVersion(BaseModel, TenantMixin):
    __tablename__ = "story_versions"

    story_id = db.Column(
        db.String(36),
        db.ForeignKey("stories.id", ondelete="CASCADE"),
        nullable=False
    )

    version_number = db.Column(db.Integer, nullable=False)

    content = db.Column(db.JSON, nullable=False)
    metadata_snapshot = db.Column(db.JSON, nullable=False, default=dict)

    reason = db.Column(db.String(255), nullable=False, default="Manual save")
    created_by = db.Column(db.String(36), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("story_id", "version_number", name="uq_story_version"),
        db.Index("idx_story_version_story", "story_id"),
    )

    def to_dict(self, include_content=False):
        data = {
            "id": self.id,
            "story_id": self.story_id,
            "version_number": self.version_number,
            "metadata_snapshot": self.metadata_snapshot,
            "reason": self.reason,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_content:
            data["content_snapshot"] = self.content
        return data


@event.listens_for(StoryVersion, 'before_update')
def prevent_version_mutation(mapper, connection, target):
    raise RuntimeError("Story versions are immutable")
