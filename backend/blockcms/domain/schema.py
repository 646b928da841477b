from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

# Keys of a field definition that are not type-specific constraints.
DEFINITION_KEYS = {"type", "required", "translatable", "conditions"}


@dataclass(frozen=True)
class Condition:
    field: Optional[str]
    operator: str = "equals"
    value: Any = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            field=data.get("field"),
            operator=data.get("operator", "equals"),
            value=data.get("value"),
        )


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    type: str
    required: bool = False
    translatable: bool = True
    constraints: Mapping[str, Any] = field(default_factory=dict)
    conditions: Tuple[Condition, ...] = ()

    @classmethod
    def from_dict(cls, name, data):
        conditions = data.get("conditions") or ()
        return cls(
            name=name,
            type=data.get("type", "text"),
            required=data.get("required") is True,
            translatable=data.get("translatable", True) is not False,
            constraints=MappingProxyType({k: v for k, v in data.items() if k not in DEFINITION_KEYS}),
            conditions=tuple(Condition.from_dict(c) for c in conditions if isinstance(c, dict)),
        )


@dataclass(frozen=True)
class ComponentSchema:
    """A block type: technical name plus an ordered field map."""

    name: str
    fields: Mapping[str, FieldDefinition]
    display_name: Optional[str] = None
    is_nestable: bool = True
    is_root: bool = False
    max_instances: Optional[int] = None

    @classmethod
    def from_dict(cls, name, schema, **options):
        """Build from a raw field map (`{"title": {"type": "text"}, ...}`)."""
        fields = {
            field_name: FieldDefinition.from_dict(field_name, config)
            for field_name, config in (schema or {}).items()
            if isinstance(config, dict)
        }
        return cls(name=name, fields=MappingProxyType(fields), **options)

    @classmethod
    def from_model(cls, component):
        return cls.from_dict(
            component.name,
            component.schema,
            display_name=component.display_name,
            is_nestable=component.is_nestable,
            is_root=component.is_root,
            max_instances=component.max_instances,
        )


SchemaCatalog = Dict[str, ComponentSchema]
