"""
Field values as a closed set of kinds.

Content arrives as decoded JSON, so every value is one of six shapes.
Validators switch on the kind returned by `kind_of` instead of probing
types ad hoc.
"""
import enum
from numbers import Number


class ValueKind(enum.Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    OBJECT = "object"


def kind_of(value):
    if value is None:
        return ValueKind.NULL
    # bool is a Number subclass; check it first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, Number):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    if isinstance(value, dict):
        return ValueKind.OBJECT
    raise TypeError(f"Unsupported field value type: {type(value).__name__}")


def is_empty(value):
    """Empty for required-field purposes: null or the empty string."""
    return value is None or value == ""


def is_blank(value):
    """Empty for translation purposes: also empty lists/objects and whitespace."""
    kind = kind_of(value)
    if kind is ValueKind.NULL:
        return True
    if kind is ValueKind.STRING:
        return not value.strip()
    if kind in (ValueKind.LIST, ValueKind.OBJECT):
        return len(value) == 0
    return False


def as_number(value):
    """
    Return the numeric value of NUMBER values and numeric strings, else None.

    Integers come back unchanged: they compare exactly against floats and
    have no size limit, while float() overflows past ~1e308.
    """
    kind = kind_of(value)
    if kind is ValueKind.NUMBER:
        if isinstance(value, int):
            return value
        try:
            return float(value)
        except OverflowError:
            return None
    if kind is ValueKind.STRING:
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None
