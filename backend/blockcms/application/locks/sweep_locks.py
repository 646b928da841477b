from datetime import datetime
from typing import Optional
from flask import current_app
from sqlalchemy import update
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.utils.transaction import transactional
from blockcms.utils.timeutils import utcnow
from blockcms.application.locks.acquire_lock import LOCK_COLUMNS


def sweep_expired_locks(*, now: Optional[datetime] = None) -> int:
    """Clear lock columns on every story whose lock has expired."""
    now = now or utcnow()

    with transactional():
        result = db.session.execute(
            update(Story)
            .where(Story.lock_expires_at.is_not(None), Story.lock_expires_at <= now)
            .values(locked_by=None, lock_session_id=None, locked_at=None, lock_expires_at=None)
            .execution_options(synchronize_session=False)
        )

        # Stories already loaded may still carry the cleared values
        for obj in list(db.session.identity_map.values()):
            if isinstance(obj, Story):
                db.session.expire(obj, LOCK_COLUMNS)

    current_app.logger.info("Swept %s expired lock(s)", result.rowcount)
    return result.rowcount
