from typing import Optional
from flask import current_app
from sqlalchemy.exc import IntegrityError
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.models.story_version import StoryVersion
from blockcms.utils.transaction import transactional
from blockcms.utils.versioning import lock_story_row, next_version_number, snapshot_story
from blockcms.utils.audit import log_action
from blockcms.domain.exceptions import ConcurrentVersionError


def create_version(
    *,
    story: Story,
    actor_id: Optional[str],
    reason: str = "Manual save"
) -> StoryVersion:
    """
    Snapshot a story's current content and metadata as a new version.

    Responsibilities:
    - Serialise numbering per story (row lock + unique constraint)
    - Deep-copy content and metadata into the snapshot
    - Audit logging
    """

    try:
        with transactional():
            # 1️⃣ Lock the story row so concurrent writers queue up
            if lock_story_row(story.id, story.tenant_id) is None:
                raise ValueError("Story not found")

            # 2️⃣ Build the snapshot under the next number
            snapshot = snapshot_story(story)

            version = StoryVersion()
            version.tenant_id = story.tenant_id
            version.story_id = story.id
            version.version_number = next_version_number(story.id, story.tenant_id)
            version.content = snapshot["content"]
            version.metadata_snapshot = snapshot["metadata"]
            version.reason = reason or "Manual save"
            version.created_by = actor_id

            db.session.add(version)
            db.session.flush()

            # 3️⃣ Audit logging
            log_action(
                tenant_id=story.tenant_id,
                actor_id=actor_id,
                action="version.create",
                entity_type="story",
                entity_id=story.id,
                payload={
                    "version_number": version.version_number,
                    "reason": version.reason,
                }
            )
    except IntegrityError as exc:
        current_app.logger.warning("Version number collision on story %s", story.id)
        raise ConcurrentVersionError(
            f"Another version of story {story.id} was saved concurrently, retry"
        ) from exc

    current_app.logger.info(
        "Created version %s of story %s (%s)", version.version_number, story.id, version.reason
    )
    return version
