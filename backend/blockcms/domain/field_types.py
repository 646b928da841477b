"""
Field type catalog.

A catalog is assembled once with a `CatalogBuilder` and then frozen by
`build()`. The frozen `FieldTypeCatalog` has no registration API, so every
validator sees the same set of types for the lifetime of the process.

Validators take ``(value, kind, constraints)`` where ``kind`` is the
`ValueKind` of ``value`` and return an error message or ``None``.
"""
import json
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlparse

from dateutil import parser as date_parser

from .exceptions import SchemaDefinitionError
from .values import ValueKind, as_number, kind_of

Validator = Callable[[Any, ValueKind, Mapping[str, Any]], Optional[str]]

# Keys any field definition may carry, whatever its type.
COMMON_PROPERTIES = {
    "key": {"type": "string"},
    "display_name": {"type": "string"},
    "description": {"type": "string"},
    "tooltip": {"type": "boolean"},
    "pos": {"type": "integer"},
    "required": {"type": "boolean"},
    "translatable": {"type": "boolean"},
    "default_value": {},
    "conditions": {"type": "array", "items": {"type": "object"}},
}

EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$")

COLOR_PATTERNS = {
    "hex": re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$"),
    "rgb": re.compile(r"^rgba?\(\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}\s*(?:,\s*(?:0|1|0?\.\d+)\s*)?\)$"),
    "hsl": re.compile(r"^hsla?\(\s*\d{1,3}\s*,\s*\d{1,3}%\s*,\s*\d{1,3}%\s*(?:,\s*(?:0|1|0?\.\d+)\s*)?\)$"),
}

FILETYPE_GROUPS = {
    "images": {"jpg", "jpeg", "png", "gif", "webp", "svg", "avif"},
    "videos": {"mp4", "mov", "avi", "webm"},
    "audios": {"mp3", "wav", "ogg", "m4a"},
    "texts": {"txt", "pdf", "doc", "docx", "md", "csv"},
}

LINK_TYPES = {"url", "story", "email", "asset"}


@dataclass(frozen=True)
class FieldType:
    name: str
    label: str
    category: str
    description: str
    properties: Mapping[str, Any]
    validator: Validator = field(repr=False)


def _fmt(number):
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def compile_pattern(pattern):
    """Compile a regex constraint; `/.../flags` delimiters are accepted."""
    flags = 0
    if len(pattern) > 1 and pattern.startswith("/") and pattern.rfind("/") > 0:
        end = pattern.rfind("/")
        for flag in pattern[end + 1:]:
            flags |= {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}.get(flag, 0)
        pattern = pattern[1:end]
    return re.compile(pattern, flags)


def option_values(options):
    values = []
    for option in options or []:
        if isinstance(option, dict) and "value" in option:
            values.append(str(option["value"]))
    return values


# -------------------------------------------------
# Default validators
# -------------------------------------------------

def validate_string(value, kind, constraints):
    if kind is not ValueKind.STRING:
        return "Value must be a string"

    min_length = constraints.get("min_length")
    if min_length is not None and len(value) < min_length:
        return f"Value must be at least {min_length} characters"

    max_length = constraints.get("max_length")
    if max_length is not None and len(value) > max_length:
        return f"Value must not exceed {max_length} characters"

    regex = constraints.get("regex")
    if regex:
        try:
            if not compile_pattern(regex).search(value):
                return "Value does not match required pattern"
        except re.error:
            return "Field regex pattern is invalid"

    return None


def validate_number(value, kind, constraints):
    number = as_number(value)
    if number is None or number != number:
        return "Value must be numeric"

    minimum = constraints.get("min")
    if minimum is not None and number < minimum:
        return f"Value must be at least {_fmt(minimum)}"

    maximum = constraints.get("max")
    if maximum is not None and number > maximum:
        return f"Value exceeds {_fmt(maximum)}"

    decimals = constraints.get("decimals")
    if decimals is not None:
        try:
            exponent = Decimal(str(value).strip()).as_tuple().exponent
        except InvalidOperation:
            return "Value must be numeric"
        if isinstance(exponent, int) and -exponent > decimals:
            return f"Value must have at most {decimals} decimal places"

    return None


def validate_boolean(value, kind, constraints):
    if kind is ValueKind.BOOLEAN:
        return None
    if kind is ValueKind.NUMBER and isinstance(value, int) and value in (0, 1):
        return None
    if kind is ValueKind.STRING and value in ("0", "1", "true", "false"):
        return None
    return "Value must be boolean"


def validate_email(value, kind, constraints):
    if kind is not ValueKind.STRING or not EMAIL_RE.match(value):
        return "Value must be a valid email address"
    return None


def validate_url(value, kind, constraints):
    if kind is not ValueKind.STRING:
        return "Value must be a valid URL"

    parsed = urlparse(value.strip())
    if not parsed.scheme or not parsed.netloc:
        return "Value must be a valid URL"

    protocols = constraints.get("protocols")
    if protocols and parsed.scheme.lower() not in [p.lower() for p in protocols]:
        return f"URL protocol must be one of: {', '.join(protocols)}"

    return None


def _parse_date(value):
    return date_parser.parse(value)


def _comparable(a, b):
    # Compare naive with naive; aware bounds lose tzinfo when the value has none.
    if (a.tzinfo is None) != (b.tzinfo is None):
        return a.replace(tzinfo=None), b.replace(tzinfo=None)
    return a, b


def _date_validator(label, min_key, max_key):
    def validate(value, kind, constraints):
        if kind is not ValueKind.STRING:
            return "Date must be a string"
        try:
            parsed = _parse_date(value)
        except (ValueError, OverflowError):
            return f"Value must be a valid {label}"

        for key, later in ((min_key, False), (max_key, True)):
            bound = constraints.get(key)
            if not bound:
                continue
            try:
                limit = _parse_date(bound)
            except (ValueError, OverflowError):
                continue
            current, limit = _comparable(parsed, limit)
            if later and current > limit:
                return f"Value must not be after {bound}"
            if not later and current < limit:
                return f"Value must not be before {bound}"

        return None
    return validate


def validate_select(value, kind, constraints):
    if kind not in (ValueKind.STRING, ValueKind.NUMBER):
        return "Value must be one of the allowed options"
    if str(value) not in option_values(constraints.get("options")):
        return "Value must be one of the allowed options"
    return None


def validate_multiselect(value, kind, constraints):
    if kind is not ValueKind.LIST:
        return "Value must be an array"

    allowed = option_values(constraints.get("options"))
    for item in value:
        if kind_of(item) not in (ValueKind.STRING, ValueKind.NUMBER) or str(item) not in allowed:
            return "All values must be from the allowed options"

    max_selections = constraints.get("max_selections")
    if max_selections is not None and len(value) > max_selections:
        return f"Select at most {max_selections} options"

    return None


def validate_asset(value, kind, constraints):
    if kind is not ValueKind.OBJECT:
        return "Asset must be an object"

    filename = value.get("filename")
    if not isinstance(filename, str) or not filename:
        return "Asset must have a filename"

    filetypes = constraints.get("filetypes")
    if filetypes:
        allowed = set()
        for filetype in filetypes:
            allowed |= FILETYPE_GROUPS.get(filetype, {filetype.lower().lstrip(".")})
        ext = filename.rsplit(".", 1)[1].lower() if "." in filename else ""
        if ext not in allowed:
            return f"File type '{ext or filename}' is not allowed"

    return None


def validate_blocks(value, kind, constraints):
    # Counts, whitelist and child resolution happen in the tree validator.
    if kind is not ValueKind.LIST:
        return "Value must be a list of blocks"
    if any(kind_of(item) is not ValueKind.OBJECT for item in value):
        return "Each nested block must be an object"
    return None


def validate_link(value, kind, constraints):
    if kind is not ValueKind.OBJECT:
        return "Link must be an object"

    linktype = value.get("linktype", "url")
    if linktype not in LINK_TYPES:
        return f"Unknown link type '{linktype}'"

    if linktype in ("url", "asset"):
        if linktype == "url" and constraints.get("allow_external") is False:
            return "External links are not allowed"
        if not isinstance(value.get("url"), str):
            return "Link must have a url"
    elif linktype == "story":
        if constraints.get("allow_internal") is False:
            return "Internal links are not allowed"
        if not value.get("id"):
            return "Story link must reference a story id"
    elif linktype == "email":
        if constraints.get("allow_email") is False:
            return "Email links are not allowed"
        if validate_email(value.get("email"), kind_of(value.get("email")), {}):
            return "Link must have a valid email address"

    anchor = value.get("anchor")
    if anchor and constraints.get("allow_anchor") is False:
        return "Anchors are not allowed"

    return None


def validate_color(value, kind, constraints):
    if kind is not ValueKind.STRING:
        return "Color must be a string"
    fmt = constraints.get("format", "hex")
    pattern = COLOR_PATTERNS.get(fmt, COLOR_PATTERNS["hex"])
    if not pattern.match(value.strip()):
        return f"Value must be a valid {fmt} color"
    return None


def validate_json(value, kind, constraints):
    if kind in (ValueKind.OBJECT, ValueKind.LIST):
        return None
    if kind is not ValueKind.STRING:
        return "JSON value must be a string or array"
    try:
        json.loads(value)
    except ValueError:
        return "Value must be valid JSON"
    return None


def validate_table(value, kind, constraints):
    if kind is not ValueKind.LIST:
        return "Table value must be a list of rows"

    max_rows = constraints.get("max_rows")
    if max_rows is not None and len(value) > max_rows:
        return f"Table must not exceed {max_rows} rows"

    required_columns = [
        column["name"]
        for column in constraints.get("columns") or []
        if isinstance(column, dict) and column.get("required")
    ]
    for index, row in enumerate(value, start=1):
        if kind_of(row) is not ValueKind.OBJECT:
            return f"Row {index} must be an object"
        for name in required_columns:
            if row.get(name) in (None, ""):
                return f"Row {index} is missing required column '{name}'"

    return None


def accept_any(value, kind, constraints):
    return None


# -------------------------------------------------
# Catalog
# -------------------------------------------------

class FieldTypeCatalog:
    """Immutable registry of field types."""

    def __init__(self, types: Mapping[str, FieldType]):
        self._types = MappingProxyType(dict(types))

    def __contains__(self, name):
        return name in self._types

    def has_type(self, name: str) -> bool:
        return name in self._types

    def get(self, name: str) -> Optional[FieldType]:
        return self._types.get(name)

    @property
    def types(self):
        return list(self._types)

    def by_category(self, category: str) -> Dict[str, FieldType]:
        return {name: ft for name, ft in self._types.items() if ft.category == category}

    def categories(self):
        return sorted({ft.category for ft in self._types.values()})

    def validate(self, name: str, value: Any, constraints: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        field_type = self._types.get(name)
        if field_type is None:
            return f"Unknown field type: {name}"
        try:
            kind = kind_of(value)
        except TypeError as exc:
            return str(exc)
        try:
            return field_type.validator(value, kind, constraints or {})
        except (TypeError, ValueError) as exc:
            # Unchecked schemas may carry constraints of the wrong type.
            return f"Field configuration is invalid: {exc}"

    def schema_for(self, name: str) -> Dict[str, Any]:
        """JSON-schema descriptor for a field definition of this type."""
        field_type = self._types.get(name)
        if field_type is None:
            raise SchemaDefinitionError({"type": [f"Unknown field type: {name}"]}, f"Unknown field type: {name}")

        properties = dict(COMMON_PROPERTIES)
        properties["type"] = {"type": "string", "enum": [name]}
        properties.update(field_type.properties)
        return {
            "type": "object",
            "properties": properties,
            "required": ["type"],
            "additionalProperties": False,
        }


class CatalogBuilder:
    """Collects field type registrations until `build()` freezes them."""

    def __init__(self):
        self._types: Dict[str, Dict[str, Any]] = {}
        self._overrides: Dict[str, Validator] = {}

    def register(self, name: str, definition: Mapping[str, Any]) -> "CatalogBuilder":
        """Add or overwrite a field type."""
        self._types[name] = {
            "label": name.replace("_", " ").capitalize(),
            "category": "custom",
            "description": "",
            "properties": {},
            "validator": accept_any,
            **definition,
        }
        return self

    def register_validator(self, name: str, validator: Validator) -> "CatalogBuilder":
        """Override the default validator of a field type."""
        self._overrides[name] = validator
        return self

    def build(self) -> FieldTypeCatalog:
        unknown = set(self._overrides) - set(self._types)
        if unknown:
            raise ValueError(f"Validator registered for unknown field type(s): {', '.join(sorted(unknown))}")

        types = {}
        for name, definition in self._types.items():
            types[name] = FieldType(
                name=name,
                label=definition["label"],
                category=definition["category"],
                description=definition["description"],
                properties=MappingProxyType(dict(definition["properties"])),
                validator=self._overrides.get(name, definition["validator"]),
            )
        return FieldTypeCatalog(types)


_OPTIONS = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "value": {"type": ["string", "number"]},
        },
        "required": ["name", "value"],
    },
}


def default_builder() -> CatalogBuilder:
    """A builder pre-loaded with the built-in field types."""
    builder = CatalogBuilder()

    string_family = {
        "text": ("Text", "basic", "Single line text input", {
            "min_length": {"type": "integer", "minimum": 0},
            "max_length": {"type": "integer", "minimum": 1},
            "regex": {"type": "string"},
            "placeholder": {"type": "string"},
        }),
        "textarea": ("Textarea", "basic", "Multi-line text input", {
            "min_length": {"type": "integer", "minimum": 0},
            "max_length": {"type": "integer", "minimum": 1},
            "rows": {"type": "integer", "minimum": 1, "maximum": 20},
            "placeholder": {"type": "string"},
        }),
        "richtext": ("Rich Text", "advanced", "WYSIWYG rich text editor", {
            "toolbar_items": {"type": "array"},
            "allow_target_blank": {"type": "boolean"},
            "max_length": {"type": "integer", "minimum": 1},
        }),
        "markdown": ("Markdown", "advanced", "Markdown text editor", {
            "preview_mode": {"type": "boolean"},
            "max_length": {"type": "integer", "minimum": 1},
        }),
    }
    for name, (label, category, description, properties) in string_family.items():
        builder.register(name, {
            "label": label,
            "category": category,
            "description": description,
            "properties": properties,
            "validator": validate_string,
        })

    builder.register("number", {
        "label": "Number",
        "category": "basic",
        "description": "Numeric input with validation",
        "properties": {
            "min": {"type": "number"},
            "max": {"type": "number"},
            "step": {"type": "number"},
            "decimals": {"type": "integer", "minimum": 0, "maximum": 10},
        },
        "validator": validate_number,
    })
    builder.register("boolean", {
        "label": "Boolean",
        "category": "basic",
        "description": "Checkbox or toggle",
        "properties": {"display_as": {"type": "string", "enum": ["checkbox", "toggle"]}},
        "validator": validate_boolean,
    })
    builder.register("select", {
        "label": "Select",
        "category": "choice",
        "description": "Dropdown selection",
        "properties": {"options": _OPTIONS, "allow_empty": {"type": "boolean"}},
        "validator": validate_select,
    })
    builder.register("multiselect", {
        "label": "Multi-Select",
        "category": "choice",
        "description": "Multiple selection dropdown",
        "properties": {"options": _OPTIONS, "max_selections": {"type": "integer", "minimum": 1}},
        "validator": validate_multiselect,
    })
    builder.register("email", {
        "label": "Email",
        "category": "validation",
        "description": "Email address input with validation",
        "properties": {"placeholder": {"type": "string"}},
        "validator": validate_email,
    })
    builder.register("url", {
        "label": "URL",
        "category": "validation",
        "description": "URL input with validation",
        "properties": {
            "placeholder": {"type": "string"},
            "protocols": {"type": "array", "items": {"type": "string"}},
        },
        "validator": validate_url,
    })
    builder.register("date", {
        "label": "Date",
        "category": "datetime",
        "description": "Date picker",
        "properties": {
            "min_date": {"type": "string"},
            "max_date": {"type": "string"},
            "format": {"type": "string"},
        },
        "validator": _date_validator("date", "min_date", "max_date"),
    })
    builder.register("datetime", {
        "label": "Date Time",
        "category": "datetime",
        "description": "Date and time picker",
        "properties": {
            "min_datetime": {"type": "string"},
            "max_datetime": {"type": "string"},
            "format": {"type": "string"},
        },
        "validator": _date_validator("date and time", "min_datetime", "max_datetime"),
    })
    builder.register("asset", {
        "label": "Asset",
        "category": "media",
        "description": "File or image picker",
        "properties": {
            "asset_folder": {"type": "string"},
            "filetypes": {"type": "array", "items": {"type": "string"}},
            "maximum_file_size": {"type": "integer"},
            "image_dimensions": {
                "type": "object",
                "properties": {
                    "min_width": {"type": "integer"},
                    "max_width": {"type": "integer"},
                    "min_height": {"type": "integer"},
                    "max_height": {"type": "integer"},
                },
            },
        },
        "validator": validate_asset,
    })
    builder.register("blocks", {
        "label": "Blocks",
        "category": "structure",
        "description": "Nested component blocks",
        "properties": {
            "restrict_type": {"type": "string"},
            "component_whitelist": {"type": "array", "items": {"type": "string"}},
            "maximum": {"type": "integer", "minimum": 1},
            "minimum": {"type": "integer", "minimum": 0},
        },
        "validator": validate_blocks,
    })
    builder.register("link", {
        "label": "Link",
        "category": "structure",
        "description": "Internal or external link",
        "properties": {
            "allow_external": {"type": "boolean"},
            "allow_internal": {"type": "boolean"},
            "allow_email": {"type": "boolean"},
            "allow_anchor": {"type": "boolean"},
        },
        "validator": validate_link,
    })
    builder.register("color", {
        "label": "Color",
        "category": "design",
        "description": "Color picker",
        "properties": {
            "format": {"type": "string", "enum": ["hex", "rgb", "hsl"]},
            "allow_transparency": {"type": "boolean"},
            "preset_colors": {"type": "array", "items": {"type": "string"}},
        },
        "validator": validate_color,
    })
    builder.register("json", {
        "label": "JSON",
        "category": "advanced",
        "description": "JSON data input",
        "properties": {"schema": {"type": "object"}, "pretty_print": {"type": "boolean"}},
        "validator": validate_json,
    })
    builder.register("table", {
        "label": "Table",
        "category": "structure",
        "description": "Tabular data input",
        "properties": {
            "columns": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "type": {"type": "string"},
                        "required": {"type": "boolean"},
                    },
                    "required": ["name", "type"],
                },
            },
            "max_rows": {"type": "integer", "minimum": 1},
        },
        "validator": validate_table,
    })

    return builder


def build_default_catalog() -> FieldTypeCatalog:
    return default_builder().build()
