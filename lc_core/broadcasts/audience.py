# lc_core/broadcasts/audience.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from django.conf import settings

from lc_core.broadcasts.behavior import (
    get_last_visit_dates,
    get_purchase_amounts,
    get_reorder_counts,
    get_visit_counts,
)
from lc_core.broadcasts.conditions import (
    BehaviorCondition,
    FieldCondition,
    FilterCondition,
    FilterRules,
    HasLineUidCondition,
    LastVisitCondition,
    MarkCondition,
    PurchaseAmountCondition,
    ReorderCountCondition,
    TagCondition,
    TagMatch,
    UnknownCondition,
    VisitCountCondition,
    describe_condition,
    parse_filter_rules,
)
from lc_core.broadcasts.exceptions import AudienceResolutionError, FetchError
from lc_core.broadcasts.fetch import fetch_all_qs
from lc_core.broadcasts.matchers import match_behavior_condition, match_field_condition
from lc_core.common.scope import Scope
from lc_core.patients.selectors import (
    field_value_rows_qs,
    intake_rows_qs,
    marked_patient_rows_qs,
    patient_rows_qs,
    tagged_patient_rows_qs,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudienceMember:
    patient_id: str
    patient_name: str
    line_id: Optional[str]

    def as_dict(self) -> dict[str, Any]:
        return {"patient_id": self.patient_id, "patient_name": self.patient_name, "line_id": self.line_id}


WorkingSet = tuple[AudienceMember, ...]


@dataclass(frozen=True)
class ConditionMatch:
    """
    Raw match set of one condition plus its own polarity flag.
    A member satisfies the condition when (patient_id in match_set) != negated.
    """
    match_set: frozenset[str]
    negated: bool = False

    def satisfied_by(self, member: AudienceMember) -> bool:
        return (member.patient_id in self.match_set) != self.negated


# Behavioral fact provider per condition type, plus the value assumed for a
# patient the provider did not report.
BEHAVIOR_PROVIDERS: dict[type, tuple[Callable[..., dict[str, Any]], Any]] = {
    VisitCountCondition: (get_visit_counts, 0),
    PurchaseAmountCondition: (get_purchase_amounts, 0),
    LastVisitCondition: (get_last_visit_dates, None),
    ReorderCountCondition: (get_reorder_counts, 0),
}


def _strict_fetch_default() -> bool:
    return bool(getattr(settings, "BROADCAST_STRICT_CONDITION_FETCH", False))


# -----------------------
# Universe
# -----------------------
def build_universe(*, scope: Scope) -> WorkingSet:
    """
    Every patient that ever submitted an intake, once.

    Intake rows come newest first, so the first row seen per patient_id wins.
    The patient row (when present) supplies the display name and LINE id; the
    intake snapshot is the fallback name for patients without one.
    """
    intake = fetch_all_qs(lambda: intake_rows_qs(scope=scope), name="intake")
    if intake.error is not None:
        raise AudienceResolutionError(f"intake could not be read: {intake.error}")

    if not intake.rows:
        logger.info("audience: intake returned 0 rows (tenant=%s)", scope.tenant_id)
        return ()

    patients = fetch_all_qs(lambda: patient_rows_qs(scope=scope), name="patients")
    if patients.error is not None:
        raise AudienceResolutionError(f"patients could not be read: {patients.error}")

    patient_by_id = {row["patient_id"]: row for row in patients.rows if row.get("patient_id")}

    members: dict[str, AudienceMember] = {}
    for row in intake.rows:
        pid = row.get("patient_id")
        if not pid or pid in members:
            continue

        patient = patient_by_id.get(pid)
        if patient is not None:
            name = patient.get("name") or row.get("patient_name") or ""
            line_id = patient.get("line_id") or None
        else:
            name = row.get("patient_name") or ""
            line_id = row.get("line_id") or None

        members[pid] = AudienceMember(patient_id=pid, patient_name=name, line_id=line_id)

    logger.info(
        "audience: intake %s rows -> %s unique patients (tenant=%s)",
        len(intake.rows),
        len(members),
        scope.tenant_id,
    )
    return tuple(members.values())


# -----------------------
# Per-condition match sets
# -----------------------
def _tag_match(condition: TagCondition, working: WorkingSet, scope: Scope) -> ConditionMatch:
    rows = fetch_all_qs(
        lambda: tagged_patient_rows_qs(scope=scope, tag_id=condition.tag_id),
        name="patient_tags",
    ).raise_for_error()
    return ConditionMatch(
        match_set=frozenset(r["patient_id"] for r in rows),
        negated=condition.match != TagMatch.HAS,
    )


def _mark_match(condition: MarkCondition, working: WorkingSet, scope: Scope) -> ConditionMatch:
    if not condition.values:
        return ConditionMatch(match_set=frozenset())
    rows = fetch_all_qs(
        lambda: marked_patient_rows_qs(scope=scope, marks=condition.values),
        name="patient_marks",
    ).raise_for_error()
    return ConditionMatch(match_set=frozenset(r["patient_id"] for r in rows))


def _field_match(condition: FieldCondition, working: WorkingSet, scope: Scope) -> ConditionMatch:
    rows = fetch_all_qs(
        lambda: field_value_rows_qs(scope=scope, field_id=condition.field_id),
        name="friend_field_values",
    ).raise_for_error()
    return ConditionMatch(
        match_set=frozenset(
            r["patient_id"]
            for r in rows
            if match_field_condition(r.get("value"), condition.operator, condition.value)
        )
    )


def _line_uid_match(condition: HasLineUidCondition, working: WorkingSet, scope: Scope) -> ConditionMatch:
    return ConditionMatch(match_set=frozenset(m.patient_id for m in working if m.line_id))


def _behavior_match(condition: BehaviorCondition, working: WorkingSet, scope: Scope) -> ConditionMatch:
    provider, missing_value = BEHAVIOR_PROVIDERS[type(condition)]
    patient_ids = [m.patient_id for m in working]
    facts = provider(patient_ids, condition.date_range, scope=scope)

    return ConditionMatch(
        match_set=frozenset(
            pid
            for pid in patient_ids
            if match_behavior_condition(
                facts.get(pid, missing_value),
                condition.operator,
                condition.value,
                condition.value_end,
            )
        )
    )


EVALUATORS: dict[type, Callable[[Any, WorkingSet, Scope], ConditionMatch]] = {
    TagCondition: _tag_match,
    MarkCondition: _mark_match,
    FieldCondition: _field_match,
    HasLineUidCondition: _line_uid_match,
    VisitCountCondition: _behavior_match,
    PurchaseAmountCondition: _behavior_match,
    LastVisitCondition: _behavior_match,
    ReorderCountCondition: _behavior_match,
}


def evaluate_condition(
    condition: FilterCondition,
    working: WorkingSet,
    *,
    scope: Scope,
    strict: Optional[bool] = None,
) -> Optional[ConditionMatch]:
    """
    Returns the condition's match, or None for condition types that do not filter.

    A failed data read yields an empty, non-negated match set whatever the
    condition's own polarity, so an include keeps nobody and an exclude drops
    nobody. In strict mode the whole resolution is aborted instead.
    """
    if isinstance(condition, UnknownCondition):
        return None

    evaluator = EVALUATORS.get(type(condition))
    if evaluator is None:
        return None

    try:
        return evaluator(condition, working, scope)
    except FetchError as exc:
        strict = _strict_fetch_default() if strict is None else strict
        if strict:
            raise AudienceResolutionError(
                f"{condition.type} condition could not be evaluated: {exc}",
                condition_type=condition.type,
            ) from exc
        logger.warning(
            "audience: %s fetch failed, treating match set as empty: %s",
            describe_condition(condition),
            exc,
        )
        return ConditionMatch(match_set=frozenset())


def apply_condition(
    working: WorkingSet,
    condition: FilterCondition,
    *,
    include: bool,
    scope: Scope,
    strict: Optional[bool] = None,
) -> WorkingSet:
    """
    One narrowing step. include keeps members satisfying the condition,
    exclude drops them. Never adds members.
    """
    match = evaluate_condition(condition, working, scope=scope, strict=strict)
    if match is None:
        return working
    return tuple(m for m in working if match.satisfied_by(m) == include)


def resolve_targets(
    rules: FilterRules | dict | None,
    *,
    scope: Scope,
    strict: Optional[bool] = None,
) -> list[AudienceMember]:
    """
    Universe -> include conditions (intersection, in order) -> exclude conditions
    (subtraction, in order). Reads fresh data on every call.
    """
    if not isinstance(rules, FilterRules):
        rules = parse_filter_rules(rules)

    working = build_universe(scope=scope)
    if not working:
        return []

    if rules.include_operator and rules.include_operator.upper() != "AND":
        logger.info("audience: include operator %r is reserved; applying AND", rules.include_operator)

    for condition in rules.include:
        before = len(working)
        working = apply_condition(working, condition, include=True, scope=scope, strict=strict)
        logger.info("audience: include %s: %s -> %s", describe_condition(condition), before, len(working))

    for condition in rules.exclude:
        before = len(working)
        working = apply_condition(working, condition, include=False, scope=scope, strict=strict)
        logger.info("audience: exclude %s: %s -> %s", describe_condition(condition), before, len(working))

    return list(working)
