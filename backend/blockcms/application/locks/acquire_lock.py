from datetime import datetime, timedelta
from typing import Optional
from flask import current_app
from sqlalchemy import and_, or_, update
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.utils.timeutils import utcnow
from blockcms.domain.exceptions import LockConflictError
from blockcms.domain.locking import LockState
from blockcms.application.locks.lock_status import conflict_for

LOCK_COLUMNS = ("locked_by", "lock_session_id", "locked_at", "lock_expires_at")


def resolve_ttl(ttl_minutes: Optional[int]) -> int:
    if ttl_minutes is None:
        return current_app.config["LOCK_DEFAULT_TTL_MINUTES"]
    if ttl_minutes <= 0:
        raise ValueError("Lock duration must be positive")
    maximum = current_app.config["LOCK_MAX_TTL_MINUTES"]
    if ttl_minutes > maximum:
        raise ValueError(f"Lock duration cannot exceed {maximum} minutes")
    return ttl_minutes


def acquire_lock(
    *,
    story: Story,
    actor_id: str,
    session_id: str,
    ttl_minutes: Optional[int] = None,
    now: Optional[datetime] = None
) -> LockState:
    """
    Claim exclusive editing rights on a story.

    Responsibilities:
    - Atomic check-and-set (a single conditional UPDATE)
    - Re-acquire by the same holder and session refreshes the lock
    - Conflict report with holder and remaining time
    - Audit logging
    """

    if not actor_id or not session_id:
        raise ValueError("actor_id and session_id are required")

    ttl = resolve_ttl(ttl_minutes)
    now = now or utcnow()
    expires_at = now + timedelta(minutes=ttl)

    with transactional():
        # 1️⃣ Take the lock only if it is free, expired or already ours
        result = db.session.execute(
            update(Story)
            .where(
                Story.id == story.id,
                Story.tenant_id == story.tenant_id,
                or_(
                    Story.locked_by.is_(None),
                    Story.lock_expires_at.is_(None),
                    Story.lock_expires_at <= now,
                    and_(Story.locked_by == actor_id, Story.lock_session_id == session_id),
                ),
            )
            .values(
                locked_by=actor_id,
                lock_session_id=session_id,
                locked_at=now,
                lock_expires_at=expires_at,
            )
            .execution_options(synchronize_session=False)
        )

        # 2️⃣ Someone else holds it: report who and for how long
        if result.rowcount != 1:
            db.session.refresh(story, attribute_names=LOCK_COLUMNS)
            state = LockState.from_story(story, now)
            current_app.logger.info(
                "Lock on story %s denied to %s (held by %s)",
                story.id, actor_id, state.holder_id if state else None,
            )
            if state is None:
                raise LockConflictError("Story lock changed concurrently, retry")
            raise conflict_for(state)

        db.session.expire(story, LOCK_COLUMNS)

        # 3️⃣ Audit logging
        log_action(
            tenant_id=story.tenant_id,
            actor_id=actor_id,
            action="lock.acquire",
            entity_type="story",
            entity_id=story.id,
            payload={"session_id": session_id, "ttl_minutes": ttl}
        )

    current_app.logger.info("Story %s locked by %s for %s minutes", story.id, actor_id, ttl)

    return LockState.build(
        holder_id=actor_id,
        session_id=session_id,
        acquired_at=now,
        expires_at=expires_at,
        now=now,
    )
