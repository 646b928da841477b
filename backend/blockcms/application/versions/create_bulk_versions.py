from typing import Iterable, Optional
from flask import current_app
from blockcms.extensions import db
from blockcms.models.story import Story
from blockcms.utils.transaction import transactional
from blockcms.domain.exceptions import BlockCMSError
from blockcms.application.versions.create_version import create_version


def create_bulk_versions(
    *,
    stories: Iterable[Story],
    actor_id: Optional[str],
    reason: str = "Bulk save"
) -> int:
    """
    Snapshot several stories in one transaction.

    Responsibilities:
    - One savepoint per story, so a failed snapshot rolls back alone
    - Log and skip stories that cannot be snapshotted
    - Return the number of versions created
    """

    created = 0

    with transactional():
        for story in stories:
            try:
                with db.session.begin_nested():
                    create_version(story=story, actor_id=actor_id, reason=reason)
            except (BlockCMSError, ValueError) as exc:
                current_app.logger.warning(
                    "Skipped version of story %s in bulk save: %s", story.id, exc
                )
                continue
            created += 1

    current_app.logger.info("Bulk save created %s version(s)", created)
    return created
