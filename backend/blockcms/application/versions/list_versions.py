from typing import Any, Dict, List, Optional
from sqlalchemy import func, select
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.models.story_version import StoryVersion
from blockcms.utils.timeutils import normalize_ts


def _scoped(story: Story):
    return select(StoryVersion).where(
        StoryVersion.story_id == story.id,
        StoryVersion.tenant_id == story.tenant_id,
    )


def list_versions(*, story: Story, limit: int = 20, offset: int = 0) -> List[StoryVersion]:
    """Versions of a story, newest first."""
    if limit < 1:
        raise ValueError("limit must be positive")
    if offset < 0:
        raise ValueError("offset cannot be negative")

    return list(
        db.session.execute(
            _scoped(story)
            .order_by(StoryVersion.version_number.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()
    )


def get_version(
    *,
    story: Story,
    version_number: Optional[int] = None,
    version_id: Optional[str] = None
) -> Optional[StoryVersion]:
    if (version_number is None) == (version_id is None):
        raise ValueError("Pass exactly one of version_number or version_id")

    query = _scoped(story)
    if version_number is not None:
        query = query.where(StoryVersion.version_number == version_number)
    else:
        query = query.where(StoryVersion.id == version_id)

    return db.session.execute(query).scalar_one_or_none()


def get_latest_version(*, story: Story) -> Optional[StoryVersion]:
    return db.session.execute(
        _scoped(story).order_by(StoryVersion.version_number.desc()).limit(1)
    ).scalar_one_or_none()


def version_stats(*, story: Story) -> Dict[str, Any]:
    """
    History summary of a story.

    `contributors` maps each author to their version count and the newest
    version number they saved. `version_frequency` is versions per day
    over the span between the first and last snapshot (at least one day).
    """
    total, first_at, last_at, latest = db.session.execute(
        select(
            func.count(StoryVersion.id),
            func.min(StoryVersion.created_at),
            func.max(StoryVersion.created_at),
            func.max(StoryVersion.version_number),
        ).where(
            StoryVersion.story_id == story.id,
            StoryVersion.tenant_id == story.tenant_id,
        )
    ).one()

    per_author = db.session.execute(
        select(
            StoryVersion.created_by,
            func.count(StoryVersion.id),
            func.max(StoryVersion.version_number),
        )
        .where(
            StoryVersion.story_id == story.id,
            StoryVersion.tenant_id == story.tenant_id,
        )
        .group_by(StoryVersion.created_by)
    ).all()

    first_at, last_at = normalize_ts(first_at), normalize_ts(last_at)
    frequency = 0.0
    if total:
        days = max((last_at - first_at).days, 1)
        frequency = round(total / days, 2)

    return {
        "total_versions": total,
        "latest_version": latest,
        "first_version_at": first_at,
        "last_version_at": last_at,
        "contributors": {
            author: {"version_count": count, "latest_version": newest}
            for author, count, newest in per_author
        },
        "version_frequency": frequency,
    }
