import pytest

from lc_core.broadcasts.conditions import (
    FieldCondition,
    FilterRules,
    HasLineUidCondition,
    MarkCondition,
    TagCondition,
    TagMatch,
    UnknownCondition,
    VisitCountCondition,
    describe_condition,
    parse_condition,
    parse_filter_rules,
)
from lc_core.broadcasts.exceptions import InvalidFilterRules


def test_parse_each_condition_type():
    assert parse_condition({"type": "tag", "tag_id": 5, "match": "not_has"}) == TagCondition(5, TagMatch.NOT_HAS)
    assert parse_condition({"type": "tag", "tag_id": 5}).match == TagMatch.HAS
    assert parse_condition({"type": "mark", "values": ["red", "urgent"]}) == MarkCondition(("red", "urgent"))
    assert parse_condition({"type": "field", "field_id": 2, "operator": ">", "value": 3}) == FieldCondition(2, ">", "3")
    assert parse_condition({"type": "has_line_uid"}) == HasLineUidCondition()

    visit = parse_condition({"type": "visit_count", "operator": "between", "value": 1, "value_end": "4", "date_range": "90d"})
    assert visit == VisitCountCondition(operator="between", value="1", value_end="4", date_range="90d")


def test_row_ids_are_normalised_to_int():
    assert parse_condition({"type": "tag", "tag_id": "12"}).tag_id == 12
    assert parse_condition({"type": "field", "field_id": 3.0}).field_id == 3
    assert parse_condition({"type": "tag"}).tag_id is None


@pytest.mark.parametrize(
    "data",
    [
        {"type": "tag", "tag_id": "abc"},
        {"type": "tag", "tag_id": True},
        {"type": "field", "field_id": "1.5"},
        {"type": "field", "field_id": [1]},
    ],
)
def test_non_integer_row_ids_are_rejected(data):
    with pytest.raises(InvalidFilterRules):
        parse_condition(data)


def test_unknown_type_is_kept_not_rejected():
    cond = parse_condition({"type": "coupon_used"})
    assert cond == UnknownCondition(raw_type="coupon_used")


def test_empty_or_missing_rules_mean_everyone():
    assert parse_filter_rules(None) == FilterRules()
    assert parse_filter_rules({}) == FilterRules()
    assert parse_filter_rules({"include": {"conditions": []}}).include == ()


def test_include_operator_is_kept_for_reference_only():
    rules = parse_filter_rules(
        {
            "include": {"operator": "OR", "conditions": [{"type": "has_line_uid"}]},
            "exclude": {"conditions": [{"type": "mark", "values": ["urgent"]}]},
        }
    )

    assert rules.include_operator == "OR"
    assert rules.include == (HasLineUidCondition(),)
    assert rules.exclude == (MarkCondition(("urgent",)),)
    assert rules.raw["include"]["operator"] == "OR"


@pytest.mark.parametrize(
    "data",
    [
        [],
        "tag",
        {"include": []},
        {"include": {"conditions": {"type": "tag"}}},
        {"exclude": {"conditions": ["tag"]}},
    ],
)
def test_malformed_shapes_are_rejected(data):
    with pytest.raises(InvalidFilterRules):
        parse_filter_rules(data)


def test_describe_condition_is_short():
    assert describe_condition(TagCondition(5, TagMatch.HAS)) == "tag(5,has)"
    assert describe_condition(HasLineUidCondition()) == "has_line_uid"
    assert describe_condition(VisitCountCondition(operator=">=", value="3")).startswith("visit_count(")
