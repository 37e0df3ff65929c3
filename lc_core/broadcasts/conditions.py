# lc_core/broadcasts/conditions.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from lc_core.broadcasts.exceptions import InvalidFilterRules


class TagMatch:
    HAS = "has"
    NOT_HAS = "not_has"


@dataclass(frozen=True)
class TagCondition:
    tag_id: Optional[int]
    match: str = TagMatch.HAS

    type = "tag"


@dataclass(frozen=True)
class MarkCondition:
    values: tuple[str, ...] = ()

    type = "mark"


@dataclass(frozen=True)
class FieldCondition:
    field_id: Optional[int]
    operator: str = "="
    value: str = ""

    type = "field"


@dataclass(frozen=True)
class HasLineUidCondition:
    type = "has_line_uid"


@dataclass(frozen=True)
class BehaviorCondition:
    """
    Shared shape of every behavioral-fact condition.
    """
    operator: Optional[str] = None
    value: Optional[str] = None
    value_end: Optional[str] = None
    date_range: Optional[str] = None


@dataclass(frozen=True)
class VisitCountCondition(BehaviorCondition):
    type = "visit_count"


@dataclass(frozen=True)
class PurchaseAmountCondition(BehaviorCondition):
    type = "purchase_amount"


@dataclass(frozen=True)
class LastVisitCondition(BehaviorCondition):
    type = "last_visit"


@dataclass(frozen=True)
class ReorderCountCondition(BehaviorCondition):
    type = "reorder_count"


@dataclass(frozen=True)
class UnknownCondition:
    """
    Any type this version does not know. Evaluates as a pass-through.
    """
    raw_type: str = ""

    type = "unknown"


FilterCondition = Union[
    TagCondition,
    MarkCondition,
    FieldCondition,
    HasLineUidCondition,
    VisitCountCondition,
    PurchaseAmountCondition,
    LastVisitCondition,
    ReorderCountCondition,
    UnknownCondition,
]

BEHAVIOR_CONDITION_TYPES = {
    VisitCountCondition.type: VisitCountCondition,
    PurchaseAmountCondition.type: PurchaseAmountCondition,
    LastVisitCondition.type: LastVisitCondition,
    ReorderCountCondition.type: ReorderCountCondition,
}

CONDITION_TYPES = (
    TagCondition.type,
    MarkCondition.type,
    FieldCondition.type,
    HasLineUidCondition.type,
    *BEHAVIOR_CONDITION_TYPES.keys(),
)


@dataclass(frozen=True)
class FilterRules:
    include: tuple[FilterCondition, ...] = ()
    exclude: tuple[FilterCondition, ...] = ()
    # Stored for audit round-trips only. Includes are always intersected (AND).
    include_operator: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _row_id(value: Any, name: str) -> Optional[int]:
    # Tag and friend-field ids are integer keys; "12" is accepted, "abc" is not.
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidFilterRules(f"'{name}' must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidFilterRules(f"'{name}' must be an integer.")


def parse_condition(data: Any) -> FilterCondition:
    if not isinstance(data, dict):
        raise InvalidFilterRules(f"Condition must be an object, got {type(data).__name__}.")

    ctype = str(data.get("type") or "")

    if ctype == TagCondition.type:
        match = data.get("match") or TagMatch.HAS
        return TagCondition(tag_id=_row_id(data.get("tag_id"), "tag_id"), match=str(match))

    if ctype == MarkCondition.type:
        values = data.get("values") or []
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, (list, tuple)):
            raise InvalidFilterRules("mark condition 'values' must be a list.")
        return MarkCondition(values=tuple(str(v) for v in values))

    if ctype == FieldCondition.type:
        return FieldCondition(
            field_id=_row_id(data.get("field_id"), "field_id"),
            operator=str(data.get("operator") or "="),
            value="" if data.get("value") is None else str(data.get("value")),
        )

    if ctype == HasLineUidCondition.type:
        return HasLineUidCondition()

    behavior_cls = BEHAVIOR_CONDITION_TYPES.get(ctype)
    if behavior_cls is not None:
        return behavior_cls(
            operator=_text(data.get("operator")),
            value=_text(data.get("value")),
            value_end=_text(data.get("value_end")),
            date_range=_text(data.get("date_range")),
        )

    return UnknownCondition(raw_type=ctype)


def _parse_block(block: Any, name: str) -> tuple[tuple[FilterCondition, ...], Optional[str]]:
    if block is None:
        return (), None
    if not isinstance(block, dict):
        raise InvalidFilterRules(f"'{name}' must be an object.")

    conditions = block.get("conditions")
    if conditions is None:
        conditions = []
    if not isinstance(conditions, (list, tuple)):
        raise InvalidFilterRules(f"'{name}.conditions' must be a list.")

    operator = block.get("operator")
    return tuple(parse_condition(c) for c in conditions), (str(operator) if operator else None)


def parse_filter_rules(data: Any) -> FilterRules:
    """
    Builds FilterRules from the stored/posted JSON shape:
        {"include": {"operator"?: str, "conditions": [...]}, "exclude": {"conditions": [...]}}
    None or {} means "everyone in the universe".
    """
    if data is None:
        return FilterRules()
    if not isinstance(data, dict):
        raise InvalidFilterRules("filter_rules must be an object.")

    include, include_operator = _parse_block(data.get("include"), "include")
    exclude, _ = _parse_block(data.get("exclude"), "exclude")
    return FilterRules(include=include, exclude=exclude, include_operator=include_operator, raw=dict(data))


def describe_condition(condition: FilterCondition) -> str:
    """
    Short label for logs.
    """
    if isinstance(condition, TagCondition):
        return f"tag({condition.tag_id},{condition.match})"
    if isinstance(condition, MarkCondition):
        return f"mark({','.join(condition.values)})"
    if isinstance(condition, FieldCondition):
        return f"field({condition.field_id} {condition.operator} {condition.value!r})"
    if isinstance(condition, BehaviorCondition):
        return f"{condition.type}({condition.operator} {condition.value},{condition.value_end} {condition.date_range or 'all'})"
    if isinstance(condition, UnknownCondition):
        return f"unknown({condition.raw_type})"
    return condition.type
