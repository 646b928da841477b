from datetime import datetime, timedelta
from typing import Optional
from flask import current_app
from sqlalchemy import delete, select
from blockcms.extensions import db
from blockcms.models.story_version import StoryVersion
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.utils.timeutils import utcnow


def prune_versions(
    *,
    story_id: Optional[str] = None,
    older_than_days: Optional[int] = None,
    keep_latest: Optional[int] = None,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> int:
    """
    Delete versions older than the retention horizon.

    Responsibilities:
    - Never touch the `keep_latest` newest versions of a story
    - Never leave a story without versions
    - One story (`story_id`) or every story with old versions
    - Audit logging per pruned story

    Returns the number of deleted versions.
    """

    days = current_app.config["VERSION_RETENTION_DAYS"] if older_than_days is None else older_than_days
    keep = current_app.config["VERSION_KEEP_LATEST"] if keep_latest is None else keep_latest

    if days < 0:
        raise ValueError("older_than_days cannot be negative")
    keep = max(keep, 1)

    cutoff = (now or utcnow()) - timedelta(days=days)
    deleted = 0

    with transactional():
        # 1️⃣ Stories that have anything past the horizon
        candidates = select(StoryVersion.story_id, StoryVersion.tenant_id).where(
            StoryVersion.created_at < cutoff
        )
        if story_id is not None:
            candidates = candidates.where(StoryVersion.story_id == story_id)
        stories = db.session.execute(candidates.distinct()).all()

        for sid, tenant_id in stories:
            # 2️⃣ The newest N survive regardless of age
            protected = list(
                db.session.execute(
                    select(StoryVersion.id)
                    .where(StoryVersion.story_id == sid)
                    .order_by(StoryVersion.version_number.desc())
                    .limit(keep)
                ).scalars()
            )

            result = db.session.execute(
                delete(StoryVersion)
                .where(
                    StoryVersion.story_id == sid,
                    StoryVersion.created_at < cutoff,
                    StoryVersion.id.not_in(protected),
                )
                .execution_options(synchronize_session=False)
            )

            if result.rowcount:
                deleted += result.rowcount
                log_action(
                    tenant_id=tenant_id,
                    actor_id=actor_id,
                    action="version.prune",
                    entity_type="story",
                    entity_id=sid,
                    payload={"deleted": result.rowcount, "older_than_days": days, "kept_latest": keep}
                )

    current_app.logger.info("Pruned %s version(s) older than %s days", deleted, days)
    return deleted
