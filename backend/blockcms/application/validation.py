from flask import current_app
from blockcms.domain.field_types import FieldTypeCatalog
from blockcms.domain.schema import ComponentSchema, SchemaCatalog
from blockcms.domain.schema_validator import SchemaValidator
from blockcms.domain.tree_validator import ContentTreeValidator
from blockcms.models.component import Component


def get_catalog() -> FieldTypeCatalog:
    """The catalog built once by `create_app`."""
    return current_app.extensions["field_types"]


def get_schema_validator() -> SchemaValidator:
    validator = current_app.extensions.get("schema_validator")
    if validator is None:
        validator = SchemaValidator(get_catalog())
        current_app.extensions["schema_validator"] = validator
    return validator


def get_tree_validator() -> ContentTreeValidator:
    return ContentTreeValidator(
        get_schema_validator(),
        max_depth=current_app.config["CONTENT_MAX_DEPTH"],
    )


def load_schema_catalog(tenant_id: str) -> SchemaCatalog:
    """Component schemas of one tenant, keyed by technical name."""
    components = Component.query.filter_by(tenant_id=tenant_id).all()
    return {c.name: ComponentSchema.from_model(c) for c in components}
