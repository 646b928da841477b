import copy
from typing import Any, Dict, Optional
from flask import current_app
from blockcms.extensions import db
from blockcms.models.story import METADATA_FIELDS, Story
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.domain.exceptions import ContentValidationError
from blockcms.domain.tree_validator import ErrorMap
from blockcms.application.locks.lock_status import assert_can_edit
from blockcms.application.versions.create_version import create_version
from blockcms.application.validation import get_tree_validator, load_schema_catalog

# Metadata a content save may change; language belongs to the translation workflow.
EDITABLE_METADATA = tuple(f for f in METADATA_FIELDS if f != "language")


def validate_story_content(*, tenant_id: str, content: Any, require_body: bool = False) -> ErrorMap:
    """Path-keyed errors for `content` against the tenant's components; empty when valid."""
    return get_tree_validator().validate(
        content,
        load_schema_catalog(tenant_id),
        require_body=require_body,
    )


def update_story_content(
    *,
    story: Story,
    content: Dict[str, Any],
    actor_id: str,
    session_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    reason: Optional[str] = None,
    create_snapshot: bool = True
) -> Story:
    """
    Replace the content tree (and optionally metadata) of a story.

    Responsibilities:
    - Lock gate before anything is validated
    - Whole-tree validation; nothing is written on error
    - Version snapshot of the saved state
    - Audit logging
    """

    # 1️⃣ Lock gate
    assert_can_edit(story, actor_id, session_id)

    # 2️⃣ Validate
    errors = validate_story_content(tenant_id=story.tenant_id, content=content)
    if errors:
        current_app.logger.info("Rejected content for story %s: %s error path(s)", story.id, len(errors))
        raise ContentValidationError(errors)

    unknown = set(metadata or {}) - set(EDITABLE_METADATA)
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    with transactional():
        # 3️⃣ Write
        story.content = copy.deepcopy(content)
        for field, value in (metadata or {}).items():
            setattr(story, field, copy.deepcopy(value))
        story.updated_by = actor_id
        db.session.flush()

        # 4️⃣ Snapshot
        version = None
        if create_snapshot:
            version = create_version(story=story, actor_id=actor_id, reason=reason or "Content updated")

        # 5️⃣ Audit logging
        log_action(
            tenant_id=story.tenant_id,
            actor_id=actor_id,
            action="story.update_content",
            entity_type="story",
            entity_id=story.id,
            payload={
                "metadata_fields": sorted(metadata or {}),
                "version_number": version.version_number if version else None,
            }
        )

    return story
