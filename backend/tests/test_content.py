import pytest

from blockcms.models.audit_log import AuditLog
from blockcms.domain.exceptions import ContentValidationError, LockConflictError, SchemaDefinitionError
from blockcms.application.components.save_component import save_component
from blockcms.application.content.update_story_content import update_story_content, validate_story_content
from blockcms.application.locks.acquire_lock import acquire_lock
from blockcms.application.versions.list_versions import get_latest_version, list_versions
from blockcms.models.component import Component


class TestSaveComponent:
    def test_create_then_update(self, app, tenant_id):
        created = save_component(tenant_id=tenant_id, actor_id="admin", data={
            "name": "quote",
            "display_name": "Quote",
            "schema": {"text": {"type": "textarea", "required": True}},
        })
        updated = save_component(tenant_id=tenant_id, actor_id="editor", data={
            "name": "quote",
            "schema": {"text": {"type": "textarea"}, "author": {"type": "text"}},
            "max_instances": 3,
        })

        assert created.id == updated.id
        assert Component.query.filter_by(tenant_id=tenant_id, name="quote").count() == 1
        assert set(updated.schema) == {"text", "author"}
        assert updated.display_name == "Quote"
        assert updated.max_instances == 3
        assert {log.action for log in AuditLog.query.filter_by(entity_id=created.id)} == {
            "component.create",
            "component.update",
        }

    def test_bad_schema_rejected(self, app, tenant_id):
        with pytest.raises(SchemaDefinitionError) as excinfo:
            save_component(tenant_id=tenant_id, actor_id="admin", data={
                "name": "broken",
                "schema": {"title": {"type": "hologram"}},
            })
        assert excinfo.value.errors == {"title": ["Unknown field type 'hologram'"]}
        assert Component.query.count() == 0

    def test_bad_input(self, app, tenant_id):
        with pytest.raises(ValueError):
            save_component(tenant_id=tenant_id, actor_id="admin", data={"name": "Bad Name", "schema": {"a": {"type": "text"}}})
        with pytest.raises(ValueError):
            save_component(tenant_id=tenant_id, actor_id="admin", data={"name": "ok", "colour": "red"})

    def test_names_are_per_tenant(self, app):
        a = save_component(tenant_id="t1", actor_id="admin", data={"name": "hero", "schema": {"a": {"type": "text"}}})
        b = save_component(tenant_id="t2", actor_id="admin", data={"name": "hero", "schema": {"a": {"type": "text"}}})
        assert a.id != b.id


class TestUpdateContent:
    def test_valid_content_is_saved_with_snapshot(self, components, story, sample_content):
        sample_content["body"][0]["headline"] = "Changed"

        update_story_content(story=story, content=sample_content, actor_id="u1", metadata={"meta_title": "SEO"})

        assert story.content["body"][0]["headline"] == "Changed"
        assert story.meta_title == "SEO"
        latest = get_latest_version(story=story)
        assert latest.reason == "Content updated"
        assert latest.content["body"][0]["headline"] == "Changed"

    def test_invalid_content_rejected_and_nothing_written(self, components, story, sample_content):
        sample_content["body"][0]["headline"] = ""
        sample_content["body"][1]["columns"][0]["count"] = 500

        with pytest.raises(ContentValidationError) as excinfo:
            update_story_content(story=story, content=sample_content, actor_id="u1")

        assert excinfo.value.errors == {
            "body.0": {"headline": "Field 'headline' is required"},
            "body.1.columns.0": {"count": "Value exceeds 100"},
        }
        assert story.content["body"][0]["headline"] == "Hello"
        assert list_versions(story=story) == []

    def test_lock_is_checked_before_validation(self, components, story):
        acquire_lock(story=story, actor_id="alice", session_id="s1")
        with pytest.raises(LockConflictError):
            update_story_content(story=story, content={"nonsense": True}, actor_id="bob")

    def test_holder_can_write(self, components, story, sample_content):
        acquire_lock(story=story, actor_id="alice", session_id="s1")
        update_story_content(
            story=story, content=sample_content, actor_id="alice", session_id="s1", create_snapshot=False
        )
        assert list_versions(story=story) == []

    def test_unknown_metadata_rejected(self, components, story, sample_content):
        with pytest.raises(ValueError):
            update_story_content(story=story, content=sample_content, actor_id="u1", metadata={"status": "published"})

    def test_validate_story_content(self, components, tenant_id, sample_content):
        assert validate_story_content(tenant_id=tenant_id, content=sample_content) == {}
        sample_content["body"].append({"_uid": "z", "component": "unknown"})
        assert validate_story_content(tenant_id=tenant_id, content=sample_content) == {
            "body.2": {"component": "Component 'unknown' not found"}
        }

    def test_schemas_are_tenant_scoped(self, components, sample_content):
        errors = validate_story_content(tenant_id="someone-else", content=sample_content)
        assert errors["body.0"] == {"component": "Component 'teaser' not found"}
