from datetime import date, timedelta
from decimal import Decimal

import pytest

from lc_core.broadcasts.matchers import match_behavior_condition, match_field_condition, to_number

TODAY = date(2026, 3, 15)


@pytest.mark.parametrize(
    "actual, op, value, expected",
    [
        (5, ">=", "3", True),
        (1, ">=", "3", False),
        (3, "=", "3", True),
        (3, "!=", "3", False),
        (0, "=", "0", True),
        (-2, "<", "0", True),
        (Decimal("1500"), ">", "1000", True),
        (10, "<=", "10", True),
    ],
)
def test_numeric_operators(actual, op, value, expected):
    assert match_behavior_condition(actual, op, value) is expected


def test_between_is_inclusive_on_both_ends():
    assert match_behavior_condition(2, "between", "2", "5")
    assert match_behavior_condition(5, "between", "2", "5")
    assert not match_behavior_condition(6, "between", "2", "5")
    assert not match_behavior_condition(1, "between", "2", "5")


def test_between_without_upper_bound_never_matches():
    assert not match_behavior_condition(3, "between", "2", None)
    assert not match_behavior_condition(3, "between", "2", "abc")


def test_missing_operator_with_upper_bound_means_range():
    assert match_behavior_condition(3, None, "2", "5")
    assert match_behavior_condition(3, "", "3")


def test_none_actual_never_matches():
    assert not match_behavior_condition(None, ">=", "0")
    assert not match_behavior_condition(None, "within_days", "30", today=TODAY)


def test_non_numeric_operands_fail_closed():
    assert not match_behavior_condition(5, ">", "abc")
    assert not match_behavior_condition("abc", ">", "1")
    assert not match_behavior_condition(5, ">", "")
    assert not match_behavior_condition(float("nan"), "!=", "1")


def test_unknown_operator_never_matches():
    assert not match_behavior_condition(5, "~=", "5")


def test_within_and_before_days():
    recent = TODAY - timedelta(days=10)
    old = TODAY - timedelta(days=120)

    assert match_behavior_condition(recent, "within_days", "30", today=TODAY)
    assert not match_behavior_condition(old, "within_days", "30", today=TODAY)

    assert match_behavior_condition(old, "before_days", "90", today=TODAY)
    assert not match_behavior_condition(recent, "before_days", "90", today=TODAY)

    # boundary day belongs to both
    edge = TODAY - timedelta(days=30)
    assert match_behavior_condition(edge, "within_days", "30", today=TODAY)
    assert match_behavior_condition(edge, "before_days", "30", today=TODAY)


def test_date_operators_accept_iso_strings():
    assert match_behavior_condition("2026-03-01", "within_days", "30", today=TODAY)
    assert not match_behavior_condition("not-a-date", "within_days", "30", today=TODAY)


def test_field_equality_numeric_and_lexical():
    assert match_field_condition("10", "=", "10.0")
    assert match_field_condition("tokyo", "=", "tokyo")
    assert not match_field_condition("tokyo", "=", "osaka")
    assert match_field_condition("tokyo", "!=", "osaka")
    assert not match_field_condition("10", "!=", "10")


def test_field_comparison_is_fail_closed():
    assert match_field_condition("42", ">", "40")
    assert not match_field_condition("abc", ">", "1")
    assert not match_field_condition("5", ">", "abc")
    assert not match_field_condition("5", "<=", "")


def test_field_contains_and_fallbacks():
    assert match_field_condition("premium plan", "contains", "premium")
    assert not match_field_condition("basic", "contains", "premium")
    # unknown operator falls back to equality
    assert match_field_condition("x", "weird", "x")
    assert not match_field_condition(None, "=", "x")


def test_to_number():
    assert to_number("  7 ") == 7.0
    assert to_number("") is None
    assert to_number(True) is None
    assert to_number("nan") is None
    assert to_number(Decimal("2.5")) == 2.5


def test_non_finite_and_separated_numbers_are_rejected():
    for raw in ("inf", "-Infinity", "1_000", float("inf")):
        assert to_number(raw) is None

    assert not match_field_condition("inf", ">", "5")
    assert not match_behavior_condition("1_000", ">", "5")
