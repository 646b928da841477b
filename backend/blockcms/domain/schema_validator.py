"""
Component schema validation.

Two questions are answered here:

- is a component's field-schema definition itself well formed?
- does a data object satisfy a component schema?

Both return error maps instead of raising, so every problem can be
reported at once.
"""
import re
from typing import Any, Dict, List, Mapping

from jsonschema import Draft202012Validator

from .conditions import OPERATORS, VALUELESS_OPERATORS, is_visible
from .exceptions import SchemaDefinitionError
from .field_types import FieldTypeCatalog, compile_pattern
from .schema import ComponentSchema
from .values import is_empty

_ARTICLE = {"integer": "an integer", "object": "an object", "array": "an array"}


def _humanize(error) -> str:
    """Turn a jsonschema error into a short message keyed by property name."""
    path = ".".join(str(p) for p in error.absolute_path)
    if error.validator == "type":
        expected = error.validator_value
        if isinstance(expected, list):
            expected = " or ".join(expected)
        expected = _ARTICLE.get(expected, f"a {expected}")
        return f"{path or 'field'} must be {expected}"
    if error.validator == "additionalProperties":
        extras = sorted(set(error.instance) - set(error.schema.get("properties", {})))
        return f"Unknown propert{'y' if len(extras) == 1 else 'ies'}: {', '.join(extras)}"
    if error.validator == "enum":
        return f"{path} must be one of: {', '.join(map(str, error.validator_value))}"
    if error.validator == "required":
        return f"{path + ' ' if path else ''}{error.message}"
    return f"{path}: {error.message}" if path else error.message


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SchemaValidator:
    def __init__(self, catalog: FieldTypeCatalog):
        self.catalog = catalog
        self._descriptor_validators: Dict[str, Draft202012Validator] = {}

    # -------------------------------------------------
    # Schema definitions
    # -------------------------------------------------

    def validate_schema_definition(self, schema: Mapping[str, Any]) -> Dict[str, List[str]]:
        """
        Check a raw field map (`{"title": {"type": "text", ...}}`).

        Returns field name -> list of messages; schema-wide problems are
        reported under `_schema`. Empty dict means the definition is valid.
        """
        if not isinstance(schema, Mapping):
            return {"_schema": ["Schema must be an object of field definitions"]}
        if not schema:
            return {"_schema": ["Schema cannot be empty"]}

        errors: Dict[str, List[str]] = {}
        for field_name, config in schema.items():
            field_errors = self.validate_field_definition(field_name, config, siblings=schema)
            if field_errors:
                errors[field_name] = field_errors
        return errors

    def assert_schema_definition(self, schema: Mapping[str, Any]) -> None:
        errors = self.validate_schema_definition(schema)
        if errors:
            raise SchemaDefinitionError(errors)

    def validate_field_definition(self, field_name, config, siblings=None) -> List[str]:
        if not isinstance(config, Mapping):
            return ["Field configuration must be an object"]

        field_type = config.get("type")
        if field_type is None:
            return ["Field type is required"]
        if not isinstance(field_type, str) or not self.catalog.has_type(field_type):
            return [f"Unknown field type '{field_type}'"]

        errors = [_humanize(e) for e in self._descriptor_validator(field_type).iter_errors(dict(config))]
        errors.extend(self._semantic_errors(field_type, config))

        if "conditions" in config:
            errors.extend(self._condition_errors(field_name, config["conditions"], siblings or {}))

        return errors

    def _descriptor_validator(self, field_type):
        validator = self._descriptor_validators.get(field_type)
        if validator is None:
            validator = Draft202012Validator(self.catalog.schema_for(field_type))
            self._descriptor_validators[field_type] = validator
        return validator

    def _semantic_errors(self, field_type, config):
        errors = []

        def check_range(low_key, high_key):
            low, high = config.get(low_key), config.get(high_key)
            if _is_number(low) and _is_number(high) and low > high:
                errors.append(f"{low_key} must not be greater than {high_key}")

        check_range("min_length", "max_length")
        check_range("min", "max")

        if field_type == "blocks":
            check_range("minimum", "maximum")

        if field_type in ("select", "multiselect"):
            options = config.get("options")
            if not isinstance(options, list):
                errors.append("options array is required for select fields")
            elif not options:
                errors.append("options array cannot be empty")
            elif any(not isinstance(o, Mapping) or "name" not in o or "value" not in o for o in options):
                errors.append("Each option must have name and value properties")

        if field_type == "table" and not isinstance(config.get("columns"), list):
            errors.append("columns array is required for table fields")

        regex = config.get("regex")
        if isinstance(regex, str):
            try:
                compile_pattern(regex)
            except re.error:
                errors.append("regex pattern is invalid")

        return errors

    def _condition_errors(self, field_name, conditions, siblings):
        if not isinstance(conditions, list):
            return []  # reported by the descriptor check

        errors = []
        for index, condition in enumerate(conditions):
            if not isinstance(condition, Mapping):
                continue  # reported by the descriptor check

            target = condition.get("field")
            if not target:
                errors.append(f"Condition {index} must have a field property")
            elif target == field_name:
                errors.append(f"Condition {index} cannot reference its own field")
            elif target not in siblings:
                errors.append(f"Condition {index} references unknown field '{target}'")

            operator = condition.get("operator")
            if operator is None:
                errors.append(f"Condition {index} must have an operator property")
            elif operator not in OPERATORS:
                errors.append(f"Condition {index} has invalid operator '{operator}'")

            if operator not in VALUELESS_OPERATORS and "value" not in condition:
                errors.append(f"Condition {index} must have a value property")

        return errors

    # -------------------------------------------------
    # Data
    # -------------------------------------------------

    def visible_fields(self, schema: ComponentSchema, data: Mapping[str, Any]):
        return [d for d in schema.fields.values() if is_visible(d, data)]

    def validate_data(self, schema: ComponentSchema, data: Mapping[str, Any]) -> Dict[str, str]:
        """
        Validate one block's data against its component schema.

        Fields hidden by their conditions are skipped entirely. Returns
        field name -> message; empty iff the data satisfies the schema.
        """
        errors: Dict[str, str] = {}

        for definition in self.visible_fields(schema, data):
            value = data.get(definition.name)

            if is_empty(value):
                if definition.required:
                    errors[definition.name] = f"Field '{definition.name}' is required"
                continue

            error = self.catalog.validate(definition.type, value, definition.constraints)
            if error:
                errors[definition.name] = error

        return errors
