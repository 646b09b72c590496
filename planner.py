from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Tuple
from uuid import uuid4
from errors import SchedulingExhausted
from intervals import Interval, catalog_index, offsets_for
from models import Constraint, Course, Session, Settings

logger = logging.getLogger(__name__)

SUNDAY = 6


def is_sunday(d: date) -> bool:
    return d.weekday() == SUNDAY


def _skip_sunday(d: date) -> Tuple[date, bool]:
    if is_sunday(d):
        return d + timedelta(days=1), True
    return d, False


def generate_sessions(start_date: date, catalog: List[Interval]) -> List[Session]:
    start, _ = _skip_sunday(start_date)
    sessions: List[Session] = []
    for interval in catalog:
        day, bumped = _skip_sunday(start + timedelta(days=interval.offset_days))
        sessions.append(Session(
            id=str(uuid4()),
            interval_key=interval.key,
            day=day,
            original_day=day,
            completed=False,
            success=None,
            rescheduled=bumped and interval.offset_days > 0,
        ))
    return sessions


def constraints_on(d: date, constraints: List[Constraint]) -> List[Constraint]:
    return [c for c in constraints if c.day == d]


def has_conflict(
    d: date,
    duration_hours: float,
    constraints: List[Constraint],
    settings: Settings,
) -> bool:
    # Day-level check: sessions are assumed to begin at the configured day start.
    session_start = settings.day_start_hour
    session_end = settings.day_start_hour + duration_hours
    for c in constraints_on(d, constraints):
        if c.is_full_day:
            return True
        if not (session_end <= c.start_hour or session_start >= c.end_hour):
            return True
    return False


def busy_hours_by_day(
    constraints: List[Constraint],
    start_date: date,
    num_days: int = 7,
) -> Dict[date, float]:
    busy: Dict[date, float] = {start_date + timedelta(days=i): 0.0 for i in range(num_days)}
    for c in constraints:
        if c.day in busy:
            busy[c.day] += c.end_hour - c.start_hour
    return busy


@dataclass
class RebalanceResult:
    courses: List[Course]
    moved: List[str] = field(default_factory=list)
    unresolved: List[SchedulingExhausted] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unresolved


@dataclass
class _Pending:
    course_id: str
    hours: float
    session: Session


def _find_day(
    pending: _Pending,
    constraints: List[Constraint],
    settings: Settings,
    today: date,
    daily_hours: Dict[date, float],
) -> date | None:
    if pending.hours > settings.max_hours_per_day:
        return None
    candidate = max(pending.session.original_day, today)
    for _ in range(settings.max_search_days):
        if is_sunday(candidate):
            candidate += timedelta(days=1)
            continue
        if has_conflict(candidate, pending.hours, constraints, settings):
            candidate += timedelta(days=1)
            continue
        if daily_hours.get(candidate, 0.0) + pending.hours <= settings.max_hours_per_day:
            return candidate
        candidate += timedelta(days=1)
    return None


def rebalance(
    courses: List[Course],
    constraints: List[Constraint],
    settings: Settings,
    today: date,
    strict: bool = False,
) -> RebalanceResult:
    """Greedily assign every pending session to a free, conflict-free day.

    Works on deep copies; the input courses are never modified. Sessions are
    placed in (original day, catalog position) order, so earlier intervals win
    contested days. Completed sessions keep their day and do not count against
    the daily capacity.

    With ``strict`` the first session that cannot be placed within
    ``settings.max_search_days`` raises :class:`SchedulingExhausted`. Otherwise
    such sessions keep their previous day, are flagged ``needs_review`` and
    reported in ``RebalanceResult.unresolved``.
    """
    updated = [c.model_copy(deep=True) for c in courses]
    catalog = offsets_for(settings.catalog)

    pending: List[_Pending] = []
    for course in updated:
        for s in course.sessions:
            if not s.completed:
                pending.append(_Pending(course.id, course.hours_per_day, s))

    if not pending:
        return RebalanceResult(courses=updated)

    pending.sort(key=lambda p: (p.session.original_day, catalog_index(catalog, p.session.interval_key)))

    daily_hours: Dict[date, float] = {}
    result = RebalanceResult(courses=updated)
    for p in pending:
        s = p.session
        target = _find_day(p, constraints, settings, today, daily_hours)
        if target is None:
            start = max(s.original_day, today)
            exhausted = SchedulingExhausted(p.course_id, s.id, start, settings.max_search_days)
            if strict:
                raise exhausted
            logger.warning("%s", exhausted)
            s.needs_review = True
            result.unresolved.append(exhausted)
            continue
        daily_hours[target] = daily_hours.get(target, 0.0) + p.hours
        if s.day != target:
            result.moved.append(s.id)
        s.day = target
        s.rescheduled = target != s.original_day
        s.needs_review = False

    logger.info(
        "Rebalanced %d pending sessions: %d moved, %d unresolved",
        len(pending), len(result.moved), len(result.unresolved),
    )
    return result
