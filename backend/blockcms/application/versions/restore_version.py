import copy
from typing import Optional
from flask import current_app
from sqlalchemy.exc import IntegrityError
from blockcms.extensions import db
from blockcms.models.story import METADATA_FIELDS, Story
from blockcms.models.story_version import StoryVersion
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.domain.exceptions import RestoreIntegrityError, VersionNotFoundError
from blockcms.application.locks.lock_status import assert_can_edit
from blockcms.application.versions.create_version import create_version
from blockcms.application.versions.list_versions import get_version


def _resolve_target(story, version_number, version_id):
    if version_id is not None and version_number is None:
        version = db.session.get(StoryVersion, version_id)
        if version is None:
            raise VersionNotFoundError(f"Version {version_id} not found")
        if version.story_id != story.id or version.tenant_id != story.tenant_id:
            raise RestoreIntegrityError(
                f"Version {version_id} belongs to another story and cannot be restored onto {story.id}"
            )
        return version

    version = get_version(story=story, version_number=version_number, version_id=version_id)
    if version is None:
        raise VersionNotFoundError(f"Version {version_number} of story {story.id} not found")
    return version


def restore_to_version(
    *,
    story: Story,
    actor_id: str,
    version_number: Optional[int] = None,
    version_id: Optional[str] = None,
    session_id: Optional[str] = None
) -> Story:
    """
    Make a past version the live state of a story.

    Responsibilities:
    - Snapshot the pre-restore state
    - Copy content and metadata from the target version
    - Snapshot the restored state
    - All of the above in one transaction
    - Audit logging

    Publication fields (status, published_at, scheduled_at) are left as
    they are.
    """

    # 1️⃣ Resolve the target and the edit gate
    target = _resolve_target(story, version_number, version_id)
    assert_can_edit(story, actor_id, session_id)

    number = target.version_number

    with transactional():
        # 2️⃣ Keep what is about to be overwritten
        before = create_version(
            story=story,
            actor_id=actor_id,
            reason=f"Before being restored to version {number}",
        )

        # 3️⃣ Copy the snapshot back onto the live story
        story.content = copy.deepcopy(target.content)
        metadata = target.metadata_snapshot or {}
        for field in METADATA_FIELDS:
            if field in metadata:
                setattr(story, field, copy.deepcopy(metadata[field]))
        story.updated_by = actor_id
        slug, language = metadata.get("slug"), metadata.get("language")
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise RestoreIntegrityError(
                f"Cannot restore version {number}: slug '{slug}' is taken in '{language}'"
            ) from exc

        # 4️⃣ Record the restored state
        after = create_version(
            story=story,
            actor_id=actor_id,
            reason=f"Restored to version {number}",
        )

        # 5️⃣ Audit logging
        log_action(
            tenant_id=story.tenant_id,
            actor_id=actor_id,
            action="story.restore",
            entity_type="story",
            entity_id=story.id,
            payload={
                "restored_version": number,
                "before_version": before.version_number,
                "after_version": after.version_number,
            }
        )

    current_app.logger.info("Story %s restored to version %s", story.id, number)
    return story
