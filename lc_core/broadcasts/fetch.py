# lc_core/broadcasts/fetch.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from django.conf import settings
from django.db import DatabaseError
from django.db.models import QuerySet

from lc_core.broadcasts.exceptions import FetchError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5000


class PageSource(Protocol):
    """
    Anything that can hand back one bounded window of rows.
    """

    def fetch_page(self, offset: int, limit: int) -> list[dict[str, Any]]:
        ...


class QuerySetPageSource:
    """
    Re-invokes a query builder per window so each page is a fresh LIMIT/OFFSET read.
    The builder must return a deterministically ordered QuerySet.
    """

    def __init__(self, build_query: Callable[[], QuerySet], *, name: str = ""):
        self.build_query = build_query
        self.name = name

    def fetch_page(self, offset: int, limit: int) -> list[dict[str, Any]]:
        try:
            return list(self.build_query()[offset : offset + limit])
        except DatabaseError as exc:
            raise FetchError(f"{self.name or 'query'} failed at offset {offset}: {exc}") from exc

    def __repr__(self) -> str:
        return f"QuerySetPageSource({self.name!r})"


@dataclass(frozen=True)
class FetchResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> list[dict[str, Any]]:
        if self.error is not None:
            raise self.error
        return self.rows


def get_page_size() -> int:
    return int(getattr(settings, "BROADCAST_FETCH_PAGE_SIZE", DEFAULT_PAGE_SIZE) or DEFAULT_PAGE_SIZE)


def fetch_all(source: PageSource, *, page_size: Optional[int] = None) -> FetchResult:
    """
    Materializes every row behind a row-capped source.

    Requests successive windows until a page comes back short or empty. A full
    last page therefore costs one extra (empty) request. The first failing page
    stops the walk: rows gathered so far are returned together with the error,
    nothing is retried.
    """
    size = page_size or get_page_size()
    if size < 1:
        raise ValueError("page_size must be >= 1")

    rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        try:
            page = source.fetch_page(offset, size)
        except FetchError as exc:
            logger.warning("bulk fetch stopped at offset %s (%s rows kept): %s", offset, len(rows), exc)
            return FetchResult(rows=rows, error=exc)

        if not page:
            break
        rows.extend(page)
        if len(page) < size:
            break
        offset += size

    return FetchResult(rows=rows, error=None)


def fetch_all_qs(build_query: Callable[[], QuerySet], *, name: str = "", page_size: Optional[int] = None) -> FetchResult:
    return fetch_all(QuerySetPageSource(build_query, name=name), page_size=page_size)
