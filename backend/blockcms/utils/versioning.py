import copy
from sqlalchemy import func, select
from blockcms.extensions import db


def snapshot_story(story):
    """Deep copies of the live content tree and metadata."""
    return {
        "content": copy.deepcopy(story.content) if story.content is not None else {"body": []},
        "metadata": copy.deepcopy(story.metadata_snapshot()),
    }


def next_version_number(story_id, tenant_id):
    """
    max(version_number) + 1, or 1 for a story without history.

    Callers must hold the story row lock (see `lock_story_row`) so that two
    writers cannot read the same maximum.
    """
    from blockcms.models.story_version import StoryVersion

    last = db.session.execute(
        select(func.max(StoryVersion.version_number))
        .where(StoryVersion.story_id == story_id, StoryVersion.tenant_id == tenant_id)
    ).scalar()
    return (last or 0) + 1


def lock_story_row(story_id, tenant_id):
    """SELECT ... FOR UPDATE on the story row; serialises version writers."""
    from blockcms.models.story import Story

    return db.session.execute(
        select(Story.id)
        .where(Story.id == story_id, Story.tenant_id == tenant_id)
        .with_for_update()
    ).scalar_one_or_none()
