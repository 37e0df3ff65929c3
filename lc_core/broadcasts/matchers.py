# lc_core/broadcasts/matchers.py
from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from django.utils import timezone

NUMERIC_OPERATORS = ("=", "!=", ">", ">=", "<", "<=")
RANGE_OPERATOR = "between"
DATE_OPERATORS = ("within_days", "before_days")
FIELD_OPERATORS = NUMERIC_OPERATORS + ("contains",)


def to_number(value: Any) -> Optional[float]:
    """
    Lenient numeric parse. None, blanks, booleans, digit separators ("1_000")
    and non-finite values come back as None so callers can fail closed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            n = float(value)
        except (InvalidOperation, ValueError):
            return None
        return n if math.isfinite(n) else None

    s = str(value).strip()
    if not s or "_" in s:
        return None
    try:
        n = float(s)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def to_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value).strip()
    if len(s) < 10:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def _compare(actual: float, operator: str, expected: float) -> bool:
    if operator == "=":
        return actual == expected
    if operator == "!=":
        return actual != expected
    if operator == ">":
        return actual > expected
    if operator == ">=":
        return actual >= expected
    if operator == "<":
        return actual < expected
    if operator == "<=":
        return actual <= expected
    return False


def _normalize_operator(operator: Optional[str], *, value_end: Any = None) -> str:
    op = (operator or "").strip()
    if op:
        return op
    # A bare upper bound means an inclusive range.
    return RANGE_OPERATOR if value_end not in (None, "") else "="


def match_behavior_condition(
    actual: Any,
    operator: Optional[str],
    value: Any,
    value_end: Any = None,
    *,
    today: Optional[date] = None,
) -> bool:
    """
    Compares one behavioral fact (count, amount or last-visit date) with a condition.

    - None actual never matches.
    - within_days / before_days: actual is a date, value is a day count.
    - between: inclusive [value, value_end]; both bounds must be numeric.
    - = != > >= < <=: both sides must be numeric.
    - Unknown operators never match.
    """
    if actual is None:
        return False

    op = _normalize_operator(operator, value_end=value_end)

    if op in DATE_OPERATORS:
        days = to_number(value)
        actual_date = to_date(actual)
        if days is None or actual_date is None:
            return False
        elapsed = ((today or timezone.localdate()) - actual_date).days
        if op == "within_days":
            return elapsed <= days
        return elapsed >= days

    actual_num = to_number(actual)
    expected = to_number(value)
    if actual_num is None or expected is None:
        return False

    if op == RANGE_OPERATOR:
        upper = to_number(value_end)
        if upper is None:
            return False
        return expected <= actual_num <= upper

    if op in NUMERIC_OPERATORS:
        return _compare(actual_num, op, expected)

    return False


def match_field_condition(actual: Optional[str], operator: Optional[str], expected: Any) -> bool:
    """
    Compares a custom-field value (untyped string) with a condition.

    - None actual never matches.
    - = / != compare numerically when both sides parse, otherwise as strings.
    - > >= < <= require both sides to be numeric (fail closed).
    - contains is a substring test on the raw strings.
    - Anything else falls back to equality.
    """
    if actual is None:
        return False

    actual_s = str(actual)
    expected_s = "" if expected is None else str(expected)
    op = (operator or "=").strip() or "="

    actual_num = to_number(actual_s)
    expected_num = to_number(expected_s)
    numeric = actual_num is not None and expected_num is not None

    if op == "contains":
        return expected_s in actual_s
    if op in (">", ">=", "<", "<="):
        return numeric and _compare(actual_num, op, expected_num)
    if op == "!=":
        return actual_num != expected_num if numeric else actual_s != expected_s

    if numeric:
        return actual_num == expected_num
    return actual_s == expected_s
