import pytest

from blockcms.extensions import db
from blockcms.models.audit_log import AuditLog
from blockcms.models.story import Story
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional


def test_inner_failure_rolls_back_outer_work(app, tenant_id):
    with pytest.raises(RuntimeError):
        with transactional():
            db.session.add(Story(tenant_id=tenant_id, name="A", slug="a"))
            with transactional():
                db.session.add(Story(tenant_id=tenant_id, name="B", slug="b"))
            raise RuntimeError("boom")

    assert Story.query.count() == 0


def test_only_outermost_block_commits(app, tenant_id):
    with transactional():
        with transactional():
            db.session.add(Story(tenant_id=tenant_id, name="A", slug="a"))
        assert db.session.info["blockcms.tx_depth"] == 1

    assert db.session.info["blockcms.tx_depth"] == 0
    db.session.rollback()
    assert Story.query.count() == 1


def test_audit_log_is_append_only(app, tenant_id):
    with transactional():
        entry = log_action(
            tenant_id=tenant_id,
            actor_id="u1",
            action="story.update_content",
            entity_type="story",
            entity_id="s1",
        )

    assert repr(entry) == f"<AuditLog {entry.id}>"

    entry.action = "tampered"
    with pytest.raises(RuntimeError):
        db.session.commit()
    db.session.rollback()

    db.session.delete(AuditLog.query.one())
    with pytest.raises(RuntimeError):
        db.session.commit()
    db.session.rollback()
