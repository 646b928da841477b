from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from blockcms.utils.timeutils import normalize_ts


@dataclass(frozen=True)
class LockState:
    holder_id: str
    session_id: Optional[str]
    acquired_at: Optional[datetime]
    expires_at: datetime
    remaining_seconds: float

    @classmethod
    def build(cls, *, holder_id, session_id, acquired_at, expires_at, now):
        expires_at = normalize_ts(expires_at)
        return cls(
            holder_id=holder_id,
            session_id=session_id,
            acquired_at=normalize_ts(acquired_at),
            expires_at=expires_at,
            remaining_seconds=max(0.0, (expires_at - normalize_ts(now)).total_seconds()),
        )

    @classmethod
    def from_story(cls, story, now) -> Optional["LockState"]:
        """The active lock on `story`, or None when unlocked or expired."""
        if not story.locked_by or story.lock_expires_at is None:
            return None
        if normalize_ts(story.lock_expires_at) <= normalize_ts(now):
            return None
        return cls.build(
            holder_id=story.locked_by,
            session_id=story.lock_session_id,
            acquired_at=story.locked_at,
            expires_at=story.lock_expires_at,
            now=now,
        )

    @property
    def remaining_minutes(self):
        return round(self.remaining_seconds / 60, 1)

    def is_held_by(self, actor_id, session_id=None):
        if self.holder_id != actor_id:
            return False
        return session_id is None or self.session_id == session_id

    def to_dict(self):
        return {
            "holder_id": self.holder_id,
            "session_id": self.session_id,
            "acquired_at": self.acquired_at.isoformat() if self.acquired_at else None,
            "expires_at": self.expires_at.isoformat(),
            "remaining_minutes": self.remaining_minutes,
        }
