"""
Content tree validation.

A tree is `{"body": [block, ...]}`; every block is
`{"_uid": ..., "component": ..., <fields>}` and nested blocks live in
`blocks`-typed field values. Errors are keyed by block path
(`body.0.columns.1`) and then by field name. Block-level problems use the
pseudo fields `_block`, `_uid` and `component`.
"""
from collections import Counter
from typing import Any, Dict, Mapping

from .exceptions import UnknownComponentError
from .schema import ComponentSchema, SchemaCatalog
from .schema_validator import SchemaValidator

DEFAULT_MAX_DEPTH = 32

ErrorMap = Dict[str, Dict[str, str]]


def resolve_component(schemas: SchemaCatalog, name: str) -> ComponentSchema:
    schema = schemas.get(name)
    if schema is None:
        raise UnknownComponentError(name)
    return schema


class _Walk:
    """State for a single validation pass."""

    def __init__(self, schemas):
        self.schemas = schemas
        self.errors: ErrorMap = {}
        self.seen_ids = set()
        self.instances = Counter()

    def add(self, path, field, message):
        # First problem per field wins.
        self.errors.setdefault(path, {}).setdefault(field, message)


class ContentTreeValidator:
    def __init__(self, schema_validator: SchemaValidator, max_depth: int = DEFAULT_MAX_DEPTH):
        self.schema_validator = schema_validator
        self.max_depth = max_depth

    def validate(self, tree: Any, schemas: SchemaCatalog, *, require_body: bool = False) -> ErrorMap:
        walk = _Walk(schemas)

        if not isinstance(tree, Mapping) or not isinstance(tree.get("body"), list):
            walk.add("content", "body", "Content must have a body array")
            return walk.errors

        body = tree["body"]
        if require_body and not body:
            walk.add("content", "body", "Content body must not be empty")

        self._walk_list(walk, body, "body", depth=1)
        return walk.errors

    # -------------------------------------------------

    def _walk_list(self, walk, blocks, path, depth, whitelist=None, field_name=None):
        for index, block in enumerate(blocks):
            block_path = f"{path}.{index}"
            if depth > self.max_depth:
                walk.add(block_path, "_block", f"Maximum nesting depth of {self.max_depth} exceeded")
                return
            self._walk_block(walk, block, block_path, depth, whitelist, field_name)

    def _check_identity(self, walk, block, path):
        uid = block.get("_uid")
        if not isinstance(uid, str) or not uid:
            walk.add(path, "_uid", "Each content block must have a unique _uid")
        elif uid in walk.seen_ids:
            walk.add(path, "_uid", f"Duplicate block id '{uid}'")
        else:
            walk.seen_ids.add(uid)

        component = block.get("component")
        if not isinstance(component, str) or not component:
            walk.add(path, "component", "Each content block must specify a component")
            return None
        return component

    def _walk_block(self, walk, block, path, depth, whitelist, field_name):
        if not isinstance(block, Mapping):
            walk.add(path, "_block", "Each content block must be an object")
            return

        component = self._check_identity(walk, block, path)
        if component is None:
            self._walk_syntax(walk, block, path, depth)
            return

        if whitelist and component not in whitelist:
            walk.add(path, "component", f"Component '{component}' is not allowed in field '{field_name}'")

        try:
            schema = resolve_component(walk.schemas, component)
        except UnknownComponentError as exc:
            walk.add(path, "component", str(exc))
            self._walk_syntax(walk, block, path, depth)
            return

        if field_name is not None and not schema.is_nestable:
            walk.add(path, "component", f"Component '{component}' cannot be used as a nested block")

        walk.instances[component] += 1
        if schema.max_instances is not None and walk.instances[component] > schema.max_instances:
            walk.add(path, "component", f"Component '{component}' may appear at most {schema.max_instances} times")

        for field, message in self.schema_validator.validate_data(schema, block).items():
            walk.add(path, field, message)

        for definition in self.schema_validator.visible_fields(schema, block):
            if definition.type != "blocks":
                continue
            children = block.get(definition.name)
            if not isinstance(children, list):
                continue  # absence or wrong type already reported by the field check

            constraints = definition.constraints
            minimum, maximum = constraints.get("minimum"), constraints.get("maximum")
            if minimum is not None and len(children) < minimum:
                walk.add(path, definition.name, f"At least {minimum} blocks are required")
            if maximum is not None and len(children) > maximum:
                walk.add(path, definition.name, f"No more than {maximum} blocks are allowed")

            self._walk_list(
                walk,
                children,
                f"{path}.{definition.name}",
                depth + 1,
                whitelist=constraints.get("component_whitelist") or None,
                field_name=definition.name,
            )

    def _walk_syntax(self, walk, block, path, depth):
        """Well-formedness only, for children of blocks without a schema."""
        for key, value in block.items():
            if not isinstance(value, list) or not value:
                continue
            if not all(isinstance(item, Mapping) and ("_uid" in item or "component" in item) for item in value):
                continue
            for index, child in enumerate(value):
                child_path = f"{path}.{key}.{index}"
                if depth + 1 > self.max_depth:
                    walk.add(child_path, "_block", f"Maximum nesting depth of {self.max_depth} exceeded")
                    return
                self._check_identity(walk, child, child_path)
                self._walk_syntax(walk, child, child_path, depth + 1)
