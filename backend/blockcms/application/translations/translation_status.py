from typing import Any, Dict, Optional
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.models.translation_link import TranslationLink
from blockcms.utils.transaction import transactional
from blockcms.utils.timeutils import utcnow
from blockcms.domain.translation import (
    completion_percentage,
    compute_fingerprint,
    diff_fingerprints,
    needs_sync,
    untranslated_fields,
)
from blockcms.domain.values import is_blank
from blockcms.application.validation import load_schema_catalog
from blockcms.application.translations.create_translation import COPIED_METADATA


def get_link(source: Story, language: str) -> TranslationLink:
    link = TranslationLink.query.filter_by(
        tenant_id=source.tenant_id, source_story_id=source.id, language=language
    ).first()
    if link is None:
        raise ValueError(f"No '{language}' translation of story {source.id}")
    return link


def get_variant(link: TranslationLink) -> Story:
    variant = db.session.get(Story, link.variant_story_id)
    if variant is None:
        raise ValueError("Translation variant not found")
    return variant


def _untranslated_meta(source, variant):
    return [
        field for field in COPIED_METADATA
        if not is_blank(getattr(source, field)) and is_blank(getattr(variant, field))
    ]


def _report(source, variant, link, schemas):
    drift = diff_fingerprints(link.fingerprint, compute_fingerprint(source.content))
    return {
        "language": link.language,
        "variant_id": variant.id,
        "completion_percentage": completion_percentage(source.content, variant.content, schemas),
        "untranslated_fields": untranslated_fields(source.content, variant.content, schemas),
        "untranslated_meta": _untranslated_meta(source, variant),
        "needs_sync": needs_sync(source.content, variant.content),
        "outdated_blocks": drift["changed"],
        "last_updated": variant.updated_at,
        "last_synced_at": link.last_synced_at,
    }


def check_translation(*, source: Story, language: str) -> Dict[str, Any]:
    """Recompute parity for one variant and store it on the link."""
    link = get_link(source, language)
    variant = get_variant(link)
    report = _report(source, variant, link, load_schema_catalog(source.tenant_id))

    with transactional():
        link.completion_percentage = report["completion_percentage"]
        link.needs_sync = report["needs_sync"]
        link.last_checked_at = utcnow()

    return report


def translation_status(*, source: Story, schemas: Optional[dict] = None) -> Dict[str, Dict[str, Any]]:
    """Live parity of every variant of `source`, keyed by language."""
    schemas = load_schema_catalog(source.tenant_id) if schemas is None else schemas
    links = TranslationLink.query.filter_by(
        tenant_id=source.tenant_id, source_story_id=source.id
    ).order_by(TranslationLink.language).all()

    return {
        link.language: _report(source, get_variant(link), link, schemas)
        for link in links
    }
