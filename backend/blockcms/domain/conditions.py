"""Conditional field visibility."""
from .values import ValueKind, as_number, kind_of

VALUELESS_OPERATORS = {"empty", "not_empty", "is_true", "is_false"}

OPERATORS = {
    "equals", "==", "not_equals", "!=",
    "contains", "not_contains", "in", "not_in",
    "greater_than", ">", "less_than", "<",
    "greater_equal", ">=", "less_equal", "<=",
} | VALUELESS_OPERATORS


def _loose_equals(a, b):
    if a == b:
        return True
    # "5" and 5 compare equal, as they do in form-posted data
    left, right = as_number(a), as_number(b)
    if left is not None and right is not None and kind_of(a) is not ValueKind.BOOLEAN and kind_of(b) is not ValueKind.BOOLEAN:
        return left == right
    return False


def _is_empty(value):
    if value is None or value == "" or value == "0" or value is False:
        return True
    if isinstance(value, (list, dict)) and not value:
        return True
    return isinstance(value, (int, float)) and value == 0


def _compare(field_value, value, op):
    left, right = as_number(field_value), as_number(value)
    if left is None or right is None:
        return False
    return op(left, right)


def evaluate(condition, data):
    """True when `condition` holds for the sibling values in `data`."""
    if not condition.field:
        return True

    field_value = data.get(condition.field)
    value = condition.value
    op = condition.operator

    if op in ("equals", "=="):
        return _loose_equals(field_value, value)
    if op in ("not_equals", "!="):
        return not _loose_equals(field_value, value)
    if op == "contains":
        if isinstance(field_value, str):
            return str(value) in field_value
        if isinstance(field_value, list):
            return value in field_value
        return False
    if op == "not_contains":
        if isinstance(field_value, str):
            return str(value) not in field_value
        if isinstance(field_value, list):
            return value not in field_value
        return False
    if op == "in":
        return isinstance(value, list) and any(_loose_equals(field_value, v) for v in value)
    if op == "not_in":
        return isinstance(value, list) and not any(_loose_equals(field_value, v) for v in value)
    if op in ("greater_than", ">"):
        return _compare(field_value, value, lambda a, b: a > b)
    if op in ("less_than", "<"):
        return _compare(field_value, value, lambda a, b: a < b)
    if op in ("greater_equal", ">="):
        return _compare(field_value, value, lambda a, b: a >= b)
    if op in ("less_equal", "<="):
        return _compare(field_value, value, lambda a, b: a <= b)
    if op == "empty":
        return _is_empty(field_value)
    if op == "not_empty":
        return not _is_empty(field_value)
    if op == "is_true":
        return field_value is True or field_value in ("true", "1") or (kind_of(field_value) is ValueKind.NUMBER and field_value == 1)
    if op == "is_false":
        return field_value is False or field_value in ("false", "0") or (kind_of(field_value) is ValueKind.NUMBER and field_value == 0)

    # Unknown operators are rejected when the schema is defined.
    return True


def is_visible(definition, data):
    return all(evaluate(condition, data) for condition in definition.conditions)
