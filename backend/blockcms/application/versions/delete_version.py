from flask import current_app
from sqlalchemy import func, select
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.models.story_version import StoryVersion
from blockcms.utils.transaction import transactional
from blockcms.utils.versioning import lock_story_row
from blockcms.utils.audit import log_action
from blockcms.domain.exceptions import VersionNotFoundError, VersionRetentionError
from blockcms.application.versions.list_versions import get_version


def delete_version(*, story: Story, version_number: int, actor_id: str) -> None:
    """Delete one version. A story's last remaining version cannot go."""

    with transactional():
        lock_story_row(story.id, story.tenant_id)

        version = get_version(story=story, version_number=version_number)
        if version is None:
            raise VersionNotFoundError(f"Version {version_number} of story {story.id} not found")

        remaining = db.session.execute(
            select(func.count(StoryVersion.id)).where(
                StoryVersion.story_id == story.id,
                StoryVersion.tenant_id == story.tenant_id,
            )
        ).scalar()
        if remaining <= 1:
            raise VersionRetentionError("Cannot delete the only version of a story")

        db.session.delete(version)

        log_action(
            tenant_id=story.tenant_id,
            actor_id=actor_id,
            action="version.delete",
            entity_type="story",
            entity_id=story.id,
            payload={"version_number": version_number}
        )

    current_app.logger.info("Deleted version %s of story %s", version_number, story.id)
