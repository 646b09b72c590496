from __future__ import annotations
from datetime import date


class PlannerError(Exception):
    """Base class for scheduling and planning failures."""


class UnknownCatalog(PlannerError, KeyError):
    def __init__(self, catalog_id: str):
        super().__init__(catalog_id)
        self.catalog_id = catalog_id

    def __str__(self) -> str:
        return f"Unknown interval catalog: {self.catalog_id!r}"


class CourseNotFound(PlannerError, LookupError):
    def __init__(self, course_id: str):
        super().__init__(f"Course not found: {course_id}")
        self.course_id = course_id


class SessionNotFound(PlannerError, LookupError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SchedulingExhausted(PlannerError):
    """No valid day was found for a session within the search bound."""

    def __init__(self, course_id: str, session_id: str, start: date, days_searched: int):
        super().__init__(
            f"No free day for session {session_id} of course {course_id} "
            f"within {days_searched} days from {start.isoformat()}"
        )
        self.course_id = course_id
        self.session_id = session_id
        self.start = start
        self.days_searched = days_searched


class MoveRejected(PlannerError, ValueError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TransferError(PlannerError, ValueError):
    pass


class SessionFrozen(PlannerError, ValueError):
    """A completed session cannot be completed again."""

    def __init__(self, session_id: str):
        super().__init__("Session is already completed.")
        self.session_id = session_id
