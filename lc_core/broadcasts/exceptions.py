# lc_core/broadcasts/exceptions.py
from __future__ import annotations


class BroadcastError(Exception):
    pass


class FetchError(BroadcastError):
    """
    A bounded read against the backing store failed.
    """


class InvalidFilterRules(BroadcastError):
    """
    Filter rule JSON does not have the include/exclude/conditions shape.
    """


class AudienceResolutionError(BroadcastError):
    """
    The audience cannot be computed without silently changing its meaning
    (universe unreadable, or a condition source failed in strict mode).
    """

    def __init__(self, message: str, *, condition_type: str | None = None):
        super().__init__(message)
        self.condition_type = condition_type
