from typing import Iterable, Optional
from flask import current_app
from blockcms.models.story import Story
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.utils.timeutils import utcnow
from blockcms.domain.translation import (
    DEFAULT_SYNC_FIELDS,
    completion_percentage,
    compute_fingerprint,
    needs_sync,
    sync_structure,
)
from blockcms.application.locks.lock_status import assert_can_edit
from blockcms.application.translations.translation_status import get_link, get_variant
from blockcms.application.validation import load_schema_catalog


def sync_translation(
    *,
    source: Story,
    language: str,
    actor_id: str,
    session_id: Optional[str] = None,
    fields: Iterable[str] = DEFAULT_SYNC_FIELDS
) -> Story:
    """
    Bring a variant's block structure in line with its source.

    Responsibilities:
    - Respect the variant's edit lock
    - Keep translated values, copy structure (and any named fields)
    - Refresh fingerprint and parity on the link
    - Audit logging
    """

    fields = tuple(fields)

    # 1️⃣ Resolve and gate
    link = get_link(source, language)
    variant = get_variant(link)
    assert_can_edit(variant, actor_id, session_id)

    schemas = load_schema_catalog(source.tenant_id)
    now = utcnow()

    with transactional():
        # 2️⃣ Rebuild the variant tree
        synced = sync_structure(source.content, variant.content, fields, schemas)
        variant.content = synced
        variant.updated_by = actor_id

        # 3️⃣ Refresh parity
        link.fingerprint = compute_fingerprint(source.content)
        link.completion_percentage = completion_percentage(source.content, synced, schemas)
        link.needs_sync = needs_sync(source.content, synced)
        link.last_synced_at = now
        link.last_checked_at = now

        # 4️⃣ Audit logging
        log_action(
            tenant_id=source.tenant_id,
            actor_id=actor_id,
            action="translation.sync",
            entity_type="story",
            entity_id=variant.id,
            payload={"language": language, "fields": list(fields)}
        )

    current_app.logger.info("Synced %s translation of story %s (%s)", language, source.id, ", ".join(fields))
    return variant
