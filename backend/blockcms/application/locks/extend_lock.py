from datetime import datetime, timedelta
from typing import Optional
from flask import current_app
from sqlalchemy import update
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.utils.timeutils import normalize_ts, utcnow
from blockcms.domain.exceptions import LockConflictError
from blockcms.domain.locking import LockState
from blockcms.application.locks.acquire_lock import LOCK_COLUMNS
from blockcms.application.locks.lock_status import conflict_for


def extend_lock(
    *,
    story: Story,
    actor_id: str,
    session_id: str,
    extra_minutes: int,
    now: Optional[datetime] = None
) -> LockState:
    """
    Push the expiry of a held lock further out.

    The new expiry is the current expiry plus `extra_minutes`, written
    only if the expiry has not moved since it was read.
    """

    if extra_minutes <= 0:
        raise ValueError("Extension must be positive")

    now = now or utcnow()

    with transactional():
        # 1️⃣ Read the live lock
        db.session.refresh(story, attribute_names=LOCK_COLUMNS)
        state = LockState.from_story(story, now)

        if state is None:
            raise LockConflictError("You do not hold a lock on this story")
        if not state.is_held_by(actor_id, session_id):
            raise conflict_for(state)

        stored_expiry = story.lock_expires_at
        new_expiry = normalize_ts(stored_expiry) + timedelta(minutes=extra_minutes)

        maximum = current_app.config["LOCK_MAX_TTL_MINUTES"]
        if new_expiry - now > timedelta(minutes=maximum):
            raise ValueError(f"Lock cannot be held for more than {maximum} minutes ahead")

        # 2️⃣ Compare-and-set on the expiry we read
        result = db.session.execute(
            update(Story)
            .where(
                Story.id == story.id,
                Story.tenant_id == story.tenant_id,
                Story.locked_by == actor_id,
                Story.lock_session_id == session_id,
                Story.lock_expires_at == stored_expiry,
            )
            .values(lock_expires_at=new_expiry)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            raise LockConflictError("Story lock changed concurrently, retry")

        db.session.expire(story, LOCK_COLUMNS)

        log_action(
            tenant_id=story.tenant_id,
            actor_id=actor_id,
            action="lock.extend",
            entity_type="story",
            entity_id=story.id,
            payload={"session_id": session_id, "extra_minutes": extra_minutes}
        )

    current_app.logger.info("Lock on story %s extended by %s minutes", story.id, extra_minutes)

    return LockState.build(
        holder_id=actor_id,
        session_id=session_id,
        acquired_at=state.acquired_at,
        expires_at=new_expiry,
        now=now,
    )
