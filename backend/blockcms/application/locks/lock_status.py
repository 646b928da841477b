from datetime import datetime
from typing import Optional
from blockcms.models.story import Story
from blockcms.domain.exceptions import LockConflictError
from blockcms.domain.locking import LockState
from blockcms.utils.timeutils import utcnow


def conflict_for(state: LockState, message: Optional[str] = None) -> LockConflictError:
    return LockConflictError(
        message or (
            f"Story is locked by {state.holder_id} "
            f"({state.remaining_minutes} minutes remaining)"
        ),
        holder_id=state.holder_id,
        expires_at=state.expires_at,
        remaining_seconds=state.remaining_seconds,
    )


def get_lock_state(story: Story, now: Optional[datetime] = None) -> Optional[LockState]:
    """The active lock as stored on `story`; expired locks read as None."""
    return LockState.from_story(story, now or utcnow())


def is_locked(story: Story, now: Optional[datetime] = None) -> bool:
    return get_lock_state(story, now) is not None


def is_locked_by_other(story: Story, actor_id: str, now: Optional[datetime] = None) -> bool:
    state = get_lock_state(story, now)
    return state is not None and state.holder_id != actor_id


def assert_can_edit(
    story: Story,
    actor_id: str,
    session_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> None:
    """
    Gate for content writes.

    Unlocked stories are editable by anyone. A locked story is editable
    only by its holder, and only from the holding session when
    `session_id` is given.
    """
    state = get_lock_state(story, now)
    if state is None or state.is_held_by(actor_id, session_id):
        return
    if state.holder_id == actor_id:
        raise conflict_for(state, "Story is locked by you in another session")
    raise conflict_for(state)
