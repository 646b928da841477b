import copy
import re
from typing import Any, Dict
from flask import current_app
from blockcms.extensions import db
from blockcms.models.component import Component
from blockcms.utils.transaction import transactional
from blockcms.utils.audit import log_action
from blockcms.application.validation import get_schema_validator

COMPONENT_NAME = re.compile(r"^[a-z][a-z0-9_-]*$")
ALLOWED_FIELDS = {"name", "display_name", "schema", "is_nestable", "is_root", "max_instances"}


def save_component(
    *,
    tenant_id: str,
    actor_id: str,
    data: Dict[str, Any]
) -> Component:
    """
    Create or update a component schema, keyed by (tenant, name).

    Responsibilities:
    - Reject malformed schema definitions with a per-field error map
    - Upsert on technical name
    - Audit logging
    """

    # 1️⃣ Input checks
    unknown = set(data) - ALLOWED_FIELDS
    if unknown:
        raise ValueError(f"Unknown component fields: {', '.join(sorted(unknown))}")

    name = data.get("name")
    if not isinstance(name, str) or not COMPONENT_NAME.match(name):
        raise ValueError("Component name must be lowercase letters, digits, '-' or '_'")

    max_instances = data.get("max_instances")
    if max_instances is not None and (not isinstance(max_instances, int) or max_instances < 1):
        raise ValueError("max_instances must be a positive integer")

    schema = data.get("schema") or {}
    get_schema_validator().assert_schema_definition(schema)

    with transactional():
        # 2️⃣ Upsert
        component = Component.query.filter_by(tenant_id=tenant_id, name=name).first()
        created = component is None
        if created:
            component = Component()
            component.tenant_id = tenant_id
            component.name = name
            component.created_by = actor_id
            db.session.add(component)

        component.schema = copy.deepcopy(schema)
        component.display_name = data.get("display_name", component.display_name)
        component.is_nestable = data.get("is_nestable", True if created else component.is_nestable)
        component.is_root = data.get("is_root", False if created else component.is_root)
        component.max_instances = data.get("max_instances", component.max_instances)
        component.updated_by = actor_id
        db.session.flush()

        # 3️⃣ Audit logging
        log_action(
            tenant_id=tenant_id,
            actor_id=actor_id,
            action="component.create" if created else "component.update",
            entity_type="component",
            entity_id=component.id,
            payload={"name": name, "fields": sorted(schema)}
        )

    current_app.logger.info("%s component %s", "Created" if created else "Updated", name)
    return component
