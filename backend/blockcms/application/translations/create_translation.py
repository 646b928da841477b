import copy
from typing import Any, Dict, Optional
from flask import current_app
from sqlalchemy.exc import IntegrityError
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.models.translation_link import TranslationLink
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.utils.timeutils import utcnow
from blockcms.domain.translation import completion_percentage, compute_fingerprint, needs_sync
from blockcms.application.validation import load_schema_catalog

COPIED_METADATA = ("meta_title", "meta_description", "og_title", "og_description", "tags")


def create_translation(
    *,
    source: Story,
    language: str,
    actor_id: str,
    name: Optional[str] = None,
    slug: Optional[str] = None,
    content: Optional[Dict[str, Any]] = None
) -> Story:
    """
    Create a language variant of `source` and link it.

    Without `content` the variant starts as a copy of the source tree, so
    every block id is shared and the variant can be translated in place.
    """

    if not language:
        raise ValueError("language is required")
    if language == source.language:
        raise ValueError("Translation language must differ from the source language")

    existing = TranslationLink.query.filter_by(
        tenant_id=source.tenant_id, source_story_id=source.id, language=language
    ).first()
    if existing:
        raise ValueError(f"A '{language}' translation of this story already exists")

    now = utcnow()

    try:
        with transactional():
            # 1️⃣ The variant story
            variant = Story()
            variant.tenant_id = source.tenant_id
            variant.name = name or source.name
            variant.slug = slug or source.slug
            variant.language = language
            variant.content = copy.deepcopy(content if content is not None else source.content)
            for field in COPIED_METADATA:
                setattr(variant, field, copy.deepcopy(getattr(source, field)))
            variant.created_by = actor_id
            variant.updated_by = actor_id

            db.session.add(variant)
            db.session.flush()

            # 2️⃣ The link, with parity measured right away
            schemas = load_schema_catalog(source.tenant_id)

            link = TranslationLink()
            link.tenant_id = source.tenant_id
            link.source_story_id = source.id
            link.variant_story_id = variant.id
            link.language = language
            link.fingerprint = compute_fingerprint(source.content)
            link.completion_percentage = completion_percentage(source.content, variant.content, schemas)
            link.needs_sync = needs_sync(source.content, variant.content)
            link.last_checked_at = now
            link.last_synced_at = now

            db.session.add(link)

            log_action(
                tenant_id=source.tenant_id,
                actor_id=actor_id,
                action="translation.create",
                entity_type="story",
                entity_id=source.id,
                payload={"language": language, "variant_id": variant.id}
            )
    except IntegrityError as exc:
        raise ValueError(f"A story with slug '{variant.slug}' already exists in '{language}'") from exc

    current_app.logger.info("Created %s translation %s of story %s", language, variant.id, source.id)
    return variant
