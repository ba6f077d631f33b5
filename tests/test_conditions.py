"""
Tests for the condition evaluator.
"""

import pytest

from nodeflow.engine.conditions import (
    UNDEFINED,
    OPERATORS,
    evaluate_condition,
    evaluate_conditions,
    loose_equals,
    normalize_logic,
    parse_conditions,
    resolve_field,
    to_number,
    to_string,
)
from nodeflow.engine.errors import ConditionError


# ============================================================
# Field Resolution Tests
# ============================================================

class TestResolveField:
    """Tests for dot-path resolution."""

    def test_nested_path(self):
        data = {"response": {"user": {"name": "Ada"}}}
        assert resolve_field(data, "response.user.name") == "Ada"

    def test_list_index(self):
        data = {"items": [{"id": 1}, {"id": 2}]}
        assert resolve_field(data, "items.1.id") == 2

    def test_missing_step_is_undefined(self):
        assert resolve_field({"a": {"b": 1}}, "a.c.d") is UNDEFINED
        assert resolve_field({"a": None}, "a.b") is UNDEFINED
        assert resolve_field({}, "anything") is UNDEFINED

    def test_never_raises_on_scalars(self):
        assert resolve_field({"a": 5}, "a.b") is UNDEFINED
        assert resolve_field({"items": [1]}, "items.7") is UNDEFINED


# ============================================================
# Coercion Tests
# ============================================================

class TestCoercion:

    def test_to_number(self):
        assert to_number("42") == 42.0
        assert to_number("  ") == 0.0
        assert to_number(None) == 0.0
        assert to_number(True) == 1.0
        assert to_number([]) == 0.0
        assert to_number(["7"]) == 7.0
        assert to_number("abc") != to_number("abc")  # NaN

    def test_to_string(self):
        assert to_string(200.0) == "200"
        assert to_string(True) == "true"
        assert to_string(None) == "null"
        assert to_string(UNDEFINED) == "undefined"
        assert to_string([1, None, "a"]) == "1,,a"
        assert to_string({"a": 1}) == "[object Object]"

    def test_loose_equals(self):
        assert loose_equals("200", 200)
        assert loose_equals(1, True)
        assert loose_equals(None, UNDEFINED)
        assert not loose_equals(None, 0)
        assert not loose_equals("abc", 0)
        assert loose_equals("", 0)


# ============================================================
# Operator Tests
# ============================================================

class TestOperators:
    """Tests for the individual operators."""

    def test_operator_set(self):
        assert len(OPERATORS) == 17

    @pytest.mark.parametrize(
        "value, operator, operand, expected",
        [
            ("200", "equals", "200", True),
            (200, "equals", "200", True),
            ("ok", "not_equals", "fail", True),
            ("150", "greater_than", "100", True),
            (99, "less_than", "100", True),
            (100, "greater_than_or_equal", "100", True),
            ("abc", "less_than_or_equal", "100", False),
            ("Hello World", "contains", "world", True),
            ("Hello", "not_contains", "xyz", True),
            ("Hello", "starts_with", "he", True),
            ("report.PDF", "ends_with", ".pdf", True),
            ("   ", "is_empty", None, True),
            (UNDEFINED, "is_empty", None, True),
            (0, "is_not_empty", None, True),
            (None, "is_null", None, True),
            (UNDEFINED, "is_null", None, True),
            ("", "is_not_null", None, True),
            ("eu", "in_array", '["eu", "us"]', True),
            ("2", "in_array", "[1, 2]", False),
            ("apac", "not_in_array", ["eu", "us"], True),
            ("order-123", "matches_regex", r"^order-\d+$", True),
        ],
    )
    def test_operator(self, value, operator, operand, expected):
        assert evaluate_condition(value, operator, operand) is expected

    def test_in_array_with_invalid_json_is_false(self):
        assert evaluate_condition("anything", "in_array", "not valid json") is False
        assert evaluate_condition("anything", "not_in_array", "not valid json") is False

    def test_invalid_regex_is_false(self):
        assert evaluate_condition("abc", "matches_regex", "([") is False

    def test_unknown_operator(self):
        with pytest.raises(ConditionError, match="Unsupported operator: between"):
            evaluate_condition(1, "between", [0, 2])


# ============================================================
# Condition Set Tests
# ============================================================

class TestEvaluateConditions:
    """Tests for evaluating a whole condition list."""

    def test_and_logic(self):
        outcome = evaluate_conditions(
            '[{"field": "status", "operator": "equals", "value": "200"},'
            ' {"field": "ok", "operator": "equals", "value": "true"}]',
            {"status": "200", "ok": "true"},
        )
        assert outcome.logic == "AND"
        assert outcome.results == [True, True]
        assert outcome.result is True

    def test_or_logic(self):
        outcome = evaluate_conditions(
            [
                {"field": "status", "operator": "equals", "value": "500"},
                {"field": "status", "operator": "equals", "value": "200"},
            ],
            {"status": 200},
            logic="or",
        )
        assert outcome.logic == "OR"
        assert outcome.results == [False, True]
        assert outcome.result is True

    def test_field_values_are_recorded(self):
        outcome = evaluate_conditions(
            [{"field": "a.b", "operator": "is_null"}],
            {"a": {}},
        )
        assert outcome.field_values == [UNDEFINED]
        assert outcome.result is True

    def test_missing_value_is_undefined(self):
        """A condition without a value compares against undefined, not null."""
        outcome = evaluate_conditions(
            [
                {"field": "name", "operator": "matches_regex"},
                {"field": "note", "operator": "contains"},
                {"field": "name", "operator": "contains"},
            ],
            {"name": "abc", "note": "value was undefined"},
        )
        assert outcome.results == [True, True, False]

    def test_invalid_json(self):
        with pytest.raises(ConditionError, match="Invalid conditions JSON format"):
            parse_conditions("{not json")

    def test_empty_conditions(self):
        with pytest.raises(ConditionError, match="non-empty array"):
            evaluate_conditions("[]", {})
        with pytest.raises(ConditionError, match="non-empty array"):
            evaluate_conditions(None, {})

    def test_missing_field_or_operator(self):
        with pytest.raises(ConditionError, match="Condition 2: field and operator are required"):
            evaluate_conditions(
                [
                    {"field": "a", "operator": "is_null"},
                    {"field": "b"},
                ],
                {},
            )

    def test_normalize_logic(self):
        assert normalize_logic(None) == "AND"
        assert normalize_logic(" or ") == "OR"
        assert normalize_logic("XOR") == "AND"
