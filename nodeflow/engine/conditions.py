"""
Condition Evaluator.

Maps `(field path, operator, operand)` triples over an arbitrary JSON-like
value tree to booleans. Comparisons are deliberately loose, the way
low-code tools compare values typed into a form: "200" equals 200,
numeric operators coerce both sides, string operators are
case-insensitive.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
from dataclasses import dataclass, field
import json
import math
import re

from nodeflow.engine.errors import ConditionError


class _Undefined:
    """Marker for a field path that does not resolve to anything."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "undefined"


UNDEFINED = _Undefined()


class Logic:
    AND = "AND"
    OR = "OR"


class DataSource:
    PREVIOUS = "previous"
    VARIABLES = "variables"
    STATIC = "static"


# ============================================================
# Field resolution
# ============================================================

def _is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def _is_falsy(value: Any) -> bool:
    """Falsy in the loose sense: empty containers still count as present."""
    if _is_nullish(value) or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or math.isnan(value)
    if isinstance(value, str):
        return value == ""
    return False


def resolve_field(data: Any, path: str) -> Any:
    """
    Resolve a dot path such as `response.items.0.id` against a value tree.

    Any missing step yields UNDEFINED for the whole path; this never raises.
    """
    current = data
    for key in str(path).split("."):
        if _is_falsy(current):
            return UNDEFINED
        if isinstance(current, Mapping):
            current = current.get(key, UNDEFINED)
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else UNDEFINED
        else:
            return UNDEFINED
        if current is UNDEFINED:
            return UNDEFINED
    return current


# ============================================================
# Loose coercion
# ============================================================

def to_number(value: Any) -> float:
    """Numeric coercion; anything non-numeric becomes NaN."""
    if value is UNDEFINED:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if "_" in text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    if isinstance(value, (list, tuple)):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(to_string(value[0]))
    return math.nan


def to_string(value: Any) -> str:
    """String coercion matching how values are rendered in the editor."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join("" if _is_nullish(item) else to_string(item) for item in value)
    if isinstance(value, Mapping):
        return "[object Object]"
    return str(value)


def _kind(value: Any) -> str:
    if _is_nullish(value):
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def loose_equals(left: Any, right: Any) -> bool:
    """Equality with type coercion between numbers, strings and booleans."""
    left_kind, right_kind = _kind(left), _kind(right)

    if left_kind == "null" or right_kind == "null":
        return left_kind == right_kind
    if left_kind == right_kind:
        if left_kind == "number":
            return float(left) == float(right)
        if left_kind == "object":
            return left is right
        return left == right
    if left_kind == "bool":
        return loose_equals(to_number(left), right)
    if right_kind == "bool":
        return loose_equals(left, to_number(right))
    if left_kind == "object":
        return loose_equals(to_string(left), right)
    if right_kind == "object":
        return loose_equals(left, to_string(right))
    # number vs string
    return to_number(left) == to_number(right)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without coercion; NaN equals NaN."""
    left_kind, right_kind = _kind(left), _kind(right)
    if left_kind != right_kind:
        return False
    if left_kind == "null":
        return left is right
    if left_kind == "number":
        a, b = float(left), float(right)
        return a == b or (math.isnan(a) and math.isnan(b))
    if left_kind == "object":
        return left is right
    return left == right


# ============================================================
# Operators
# ============================================================

def _as_array(operand: Any) -> Optional[list]:
    """The operand as a list, parsing JSON text when needed; None if impossible."""
    if isinstance(operand, (list, tuple)):
        return list(operand)
    if not isinstance(operand, str):
        return None
    try:
        parsed = json.loads(operand)
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


def _in_array(value: Any, operand: Any) -> bool:
    items = _as_array(operand)
    return items is not None and any(strict_equals(item, value) for item in items)


def _not_in_array(value: Any, operand: Any) -> bool:
    items = _as_array(operand)
    return items is not None and not any(strict_equals(item, value) for item in items)


def _matches_regex(value: Any, operand: Any) -> bool:
    # A missing pattern matches everything
    source = "" if operand is UNDEFINED else to_string(operand)
    try:
        pattern = re.compile(source)
    except re.error:
        return False
    return pattern.search(to_string(value)) is not None


def _is_empty(value: Any) -> bool:
    return _is_nullish(value) or to_string(value).strip() == ""


def _lower(value: Any) -> str:
    return to_string(value).lower()


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": loose_equals,
    "not_equals": lambda v, o: not loose_equals(v, o),
    "greater_than": lambda v, o: to_number(v) > to_number(o),
    "less_than": lambda v, o: to_number(v) < to_number(o),
    "greater_than_or_equal": lambda v, o: to_number(v) >= to_number(o),
    "less_than_or_equal": lambda v, o: to_number(v) <= to_number(o),
    "contains": lambda v, o: _lower(o) in _lower(v),
    "not_contains": lambda v, o: _lower(o) not in _lower(v),
    "starts_with": lambda v, o: _lower(v).startswith(_lower(o)),
    "ends_with": lambda v, o: _lower(v).endswith(_lower(o)),
    "is_empty": lambda v, o: _is_empty(v),
    "is_not_empty": lambda v, o: not _is_empty(v),
    "is_null": lambda v, o: _is_nullish(v),
    "is_not_null": lambda v, o: not _is_nullish(v),
    "in_array": _in_array,
    "not_in_array": _not_in_array,
    "matches_regex": _matches_regex,
}


def evaluate_condition(field_value: Any, operator: str, operand: Any = None) -> bool:
    """
    Apply a single operator.

    Raises:
        ConditionError: If the operator is not supported
    """
    func = OPERATORS.get(operator)
    if func is None:
        raise ConditionError(f"Unsupported operator: {operator}")
    return bool(func(field_value, operand))


# ============================================================
# Condition sets
# ============================================================

@dataclass
class ConditionOutcome:
    """Result of evaluating a list of conditions."""
    conditions: List[Dict[str, Any]]
    logic: str
    field_values: List[Any] = field(default_factory=list)
    results: List[bool] = field(default_factory=list)

    @property
    def result(self) -> bool:
        if self.logic == Logic.OR:
            return any(self.results)
        return all(self.results)


def parse_conditions(raw: Union[str, Sequence[Any], None]) -> List[Dict[str, Any]]:
    """
    Decode the conditions list of a condition node.

    Raises:
        ConditionError: On invalid JSON or an empty / non-array value
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raw = "[]"
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ConditionError("Invalid conditions JSON format") from None
    if not isinstance(raw, list) or not raw:
        raise ConditionError("Conditions must be a non-empty array")
    return raw


def normalize_logic(logic: Optional[str]) -> str:
    return Logic.OR if str(logic or Logic.AND).strip().upper() == Logic.OR else Logic.AND


def evaluate_conditions(
    raw_conditions: Union[str, Sequence[Any], None],
    data: Any,
    logic: Optional[str] = Logic.AND,
) -> ConditionOutcome:
    """
    Evaluate a list of `{field, operator, value}` conditions against data.

    Args:
        raw_conditions: JSON-encoded list (or an already decoded list)
        data: Value tree the field paths are resolved against
        logic: "AND" (all must hold) or "OR" (at least one must hold)

    Returns:
        ConditionOutcome with per-condition results and the combined result

    Raises:
        ConditionError: On malformed input or an unsupported operator
    """
    conditions = parse_conditions(raw_conditions)
    outcome = ConditionOutcome(conditions=conditions, logic=normalize_logic(logic))

    for index, condition in enumerate(conditions, start=1):
        if not isinstance(condition, Mapping):
            raise ConditionError(f"Condition {index}: field and operator are required")
        field_path = condition.get("field")
        operator = condition.get("operator")
        if not field_path or not operator:
            raise ConditionError(f"Condition {index}: field and operator are required")

        field_value = resolve_field(data, field_path)
        outcome.field_values.append(field_value)
        outcome.results.append(evaluate_condition(field_value, operator, condition.get("value", UNDEFINED)))

    return outcome
