# lc_core/broadcasts/behavior.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

from django.conf import settings
from django.db.models import QuerySet
from django.utils import timezone

from lc_core.broadcasts.fetch import fetch_all_qs
from lc_core.common.scope import Scope
from lc_core.orders.selectors import paid_order_rows_qs, reorder_rows_qs
from lc_core.reservations.selectors import visit_rows_qs

logger = logging.getLogger(__name__)

DEFAULT_ID_CHUNK_SIZE = 500

DATE_RANGE_ALL = "all"
DATE_RANGE_DAYS = {
    "30d": 30,
    "90d": 90,
    "180d": 180,
}
DATE_RANGE_TOKENS = (DATE_RANGE_ALL, *DATE_RANGE_DAYS.keys(), "1y", "this_month")


def date_range_start(token: Optional[str], *, today: Optional[date] = None) -> Optional[date]:
    """
    First day (inclusive) covered by a date-range token.
    "all", None and unknown tokens mean "no lower bound".
    """
    if not token or token == DATE_RANGE_ALL:
        return None

    today = today or timezone.localdate()

    if token in DATE_RANGE_DAYS:
        return today - timedelta(days=DATE_RANGE_DAYS[token])
    if token == "1y":
        try:
            return today.replace(year=today.year - 1)
        except ValueError:  # Feb 29
            return today.replace(year=today.year - 1, day=28)
    if token == "this_month":
        return today.replace(day=1)
    return None


def _start_of_day(d: date) -> datetime:
    return timezone.make_aware(datetime.combine(d, time.min))


def _unique(patient_ids: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for pid in patient_ids:
        if pid:
            seen.setdefault(pid, None)
    return list(seen)


def _chunk_size() -> int:
    return int(getattr(settings, "BROADCAST_ID_CHUNK_SIZE", DEFAULT_ID_CHUNK_SIZE) or DEFAULT_ID_CHUNK_SIZE)


def _rows_by_chunk(
    patient_ids: Sequence[str],
    build_for_chunk: Callable[[list[str]], Callable[[], QuerySet]],
    *,
    name: str,
) -> Iterator[dict[str, Any]]:
    """
    Keeps IN (...) lists bounded and each chunk's rows paginated.
    Raises FetchError on the first failing page.
    """
    size = _chunk_size()
    for i in range(0, len(patient_ids), size):
        chunk = list(patient_ids[i : i + size])
        result = fetch_all_qs(build_for_chunk(chunk), name=name)
        yield from result.raise_for_error()


def get_visit_counts(
    patient_ids: Iterable[str],
    date_range: Optional[str] = None,
    *,
    scope: Scope,
    today: Optional[date] = None,
) -> dict[str, int]:
    """
    Non-canceled reservations per patient, optionally from the range start onward.
    """
    ids = _unique(patient_ids)
    if not ids:
        return {}

    since = date_range_start(date_range, today=today)
    counts = {pid: 0 for pid in ids}

    rows = _rows_by_chunk(
        ids,
        lambda chunk: lambda: visit_rows_qs(scope=scope, patient_ids=chunk, since=since),
        name="reservations",
    )
    for row in rows:
        pid = row["patient_id"]
        if pid in counts:
            counts[pid] += 1
    return counts


def get_purchase_amounts(
    patient_ids: Iterable[str],
    date_range: Optional[str] = None,
    *,
    scope: Scope,
    today: Optional[date] = None,
) -> dict[str, Decimal]:
    """
    Sum of paid order amounts per patient. NULL amounts add nothing.
    """
    ids = _unique(patient_ids)
    if not ids:
        return {}

    since = date_range_start(date_range, today=today)
    paid_since = _start_of_day(since) if since else None
    totals = {pid: Decimal("0") for pid in ids}

    rows = _rows_by_chunk(
        ids,
        lambda chunk: lambda: paid_order_rows_qs(scope=scope, patient_ids=chunk, paid_since=paid_since),
        name="orders",
    )
    for row in rows:
        pid = row["patient_id"]
        if pid in totals and row.get("amount") is not None:
            totals[pid] += Decimal(row["amount"])
    return totals


def get_last_visit_dates(
    patient_ids: Iterable[str],
    date_range: Optional[str] = None,
    *,
    scope: Scope,
    today: Optional[date] = None,
) -> dict[str, Optional[date]]:
    """
    Most recent non-canceled reservation date on or before today, None if never visited.
    """
    ids = _unique(patient_ids)
    if not ids:
        return {}

    today = today or timezone.localdate()
    since = date_range_start(date_range, today=today)
    last: dict[str, Optional[date]] = {pid: None for pid in ids}

    rows = _rows_by_chunk(
        ids,
        lambda chunk: lambda: visit_rows_qs(
            scope=scope,
            patient_ids=chunk,
            since=since,
            until=today,
            newest_first=True,
        ),
        name="reservations",
    )
    for row in rows:
        pid = row["patient_id"]
        # rows arrive newest first; keep the first one seen
        if pid in last and last[pid] is None:
            last[pid] = row["reserved_date"]
    return last


def get_reorder_counts(
    patient_ids: Iterable[str],
    date_range: Optional[str] = None,
    *,
    scope: Scope,
    today: Optional[date] = None,
) -> dict[str, int]:
    """
    Reorder rows per patient. date_range is accepted for a uniform signature and ignored.
    """
    ids = _unique(patient_ids)
    if not ids:
        return {}

    counts = {pid: 0 for pid in ids}
    rows = _rows_by_chunk(
        ids,
        lambda chunk: lambda: reorder_rows_qs(scope=scope, patient_ids=chunk),
        name="reorders",
    )
    for row in rows:
        pid = row["patient_id"]
        if pid in counts:
            counts[pid] += 1
    return counts
