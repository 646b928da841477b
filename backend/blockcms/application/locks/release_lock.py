from datetime import datetime
from typing import Optional
from flask import current_app
from sqlalchemy import update
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.utils.timeutils import utcnow
from blockcms.domain.locking import LockState
from blockcms.application.locks.acquire_lock import LOCK_COLUMNS
from blockcms.application.locks.lock_status import conflict_for


def release_lock(
    *,
    story: Story,
    actor_id: str,
    session_id: str,
    now: Optional[datetime] = None
) -> bool:
    """
    Give up a lock held by (actor_id, session_id).

    Returns False when there was nothing to release. Raises
    LockConflictError when someone else holds an active lock.
    """

    now = now or utcnow()

    with transactional():
        result = db.session.execute(
            update(Story)
            .where(
                Story.id == story.id,
                Story.tenant_id == story.tenant_id,
                Story.locked_by == actor_id,
                Story.lock_session_id == session_id,
            )
            .values(locked_by=None, lock_session_id=None, locked_at=None, lock_expires_at=None)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            db.session.expire(story, LOCK_COLUMNS)
            log_action(
                tenant_id=story.tenant_id,
                actor_id=actor_id,
                action="lock.release",
                entity_type="story",
                entity_id=story.id,
                payload={"session_id": session_id}
            )
            current_app.logger.info("Lock on story %s released by %s", story.id, actor_id)
            return True

        db.session.refresh(story, attribute_names=LOCK_COLUMNS)
        state = LockState.from_story(story, now)
        if state is not None:
            raise conflict_for(state)

    return False
