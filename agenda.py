from __future__ import annotations
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
from uuid import uuid4
from errors import CourseNotFound, MoveRejected, SessionFrozen, SessionNotFound
from intervals import label_for, offsets_for, catalog_index
from models import AppState, Constraint, Course, DayPlan, PlanEntry, Session
from planner import (
    RebalanceResult,
    constraints_on,
    generate_sessions,
    has_conflict,
    is_sunday,
    rebalance,
)
from slots import slots_for_day

logger = logging.getLogger(__name__)


def find_course(state: AppState, course_id: str) -> Course:
    for course in state.courses:
        if course.id == course_id:
            return course
    raise CourseNotFound(course_id)


def find_session(course: Course, session_id: str) -> Session:
    for session in course.sessions:
        if session.id == session_id:
            return session
    raise SessionNotFound(session_id)


def rebalance_state(state: AppState, today: date) -> RebalanceResult:
    result = rebalance(state.courses, state.constraints, state.settings, today)
    state.courses = result.courses
    return result


def _maybe_rebalance(state: AppState, today: date, rebalance_flag: Optional[bool]) -> Optional[RebalanceResult]:
    wanted = state.settings.rebalance_on_delete if rebalance_flag is None else rebalance_flag
    if wanted and state.courses:
        return rebalance_state(state, today)
    return None


def create_course(
    state: AppState,
    name: str,
    hours_per_day: float,
    start_date: date,
    today: date,
) -> Tuple[Course, RebalanceResult]:
    course = Course(
        id=str(uuid4()),
        name=name,
        hours_per_day=hours_per_day,
        start_date=start_date,
        created_at=datetime.now(),
        sessions=generate_sessions(start_date, offsets_for(state.settings.catalog)),
    )
    state.courses.append(course)
    result = rebalance_state(state, today)
    logger.info("Created course %r with %d sessions", course.name, len(course.sessions))
    return find_course(state, course.id), result


def add_constraint(
    state: AppState,
    day: date,
    start_hour: int,
    end_hour: int,
    description: str,
    today: date,
    kind: str = "manual",
) -> Tuple[Constraint, RebalanceResult]:
    constraint = Constraint(
        id=str(uuid4()),
        day=day,
        start_hour=start_hour,
        end_hour=end_hour,
        description=description.strip() or "Personal constraint",
        kind=kind,
        created_at=datetime.now(),
    )
    state.constraints.append(constraint)
    return constraint, rebalance_state(state, today)


def delete_constraint(
    state: AppState,
    constraint_id: str,
    today: date,
    rebalance: Optional[bool] = None,
) -> Optional[RebalanceResult]:
    state.constraints = [c for c in state.constraints if c.id != constraint_id]
    return _maybe_rebalance(state, today, rebalance)


def delete_course(
    state: AppState,
    course_id: str,
    today: date,
    rebalance: Optional[bool] = None,
) -> Optional[RebalanceResult]:
    find_course(state, course_id)
    state.courses = [c for c in state.courses if c.id != course_id]
    return _maybe_rebalance(state, today, rebalance)


def delete_all_courses(state: AppState) -> int:
    count = len(state.courses)
    state.courses = []
    return count


def _prune_empty(state: AppState) -> None:
    state.courses = [c for c in state.courses if c.sessions]


def delete_session(
    state: AppState,
    course_id: str,
    session_id: str,
    today: date,
    rebalance: Optional[bool] = None,
) -> Optional[RebalanceResult]:
    course = find_course(state, course_id)
    find_session(course, session_id)
    course.sessions = [s for s in course.sessions if s.id != session_id]
    _prune_empty(state)
    return _maybe_rebalance(state, today, rebalance)


def delete_pending_sessions(
    state: AppState,
    course_id: str,
    today: date,
    rebalance: Optional[bool] = None,
) -> Optional[RebalanceResult]:
    course = find_course(state, course_id)
    course.sessions = [s for s in course.sessions if s.completed]
    _prune_empty(state)
    return _maybe_rebalance(state, today, rebalance)


def mark_session_complete(state: AppState, course_id: str, session_id: str, success: bool) -> Session:
    session = find_session(find_course(state, course_id), session_id)
    if session.completed:
        raise SessionFrozen(session_id)
    session.completed = True
    session.success = success
    return session


def move_session(state: AppState, course_id: str, session_id: str, new_day: date) -> Session:
    course = find_course(state, course_id)
    session = find_session(course, session_id)
    if session.completed:
        reason = "Cannot move a completed session."
    elif is_sunday(new_day):
        reason = "Sunday is a rest day; sessions cannot be scheduled on Sundays."
    elif has_conflict(new_day, course.hours_per_day, state.constraints, state.settings):
        reason = f"A constraint blocks {new_day.isoformat()}."
    else:
        session.day = new_day
        session.rescheduled = True
        session.needs_review = False
        return session
    logger.info("Rejected move of %s %s: %s", course.name, session.interval_key, reason)
    raise MoveRejected(reason)


def week_dates(week_offset: int, today: date) -> List[date]:
    monday = today - timedelta(days=today.weekday()) + timedelta(weeks=week_offset)
    return [monday + timedelta(days=i) for i in range(7)]


def _entry(state: AppState, course: Course, session: Session) -> PlanEntry:
    catalog = offsets_for(state.settings.catalog)
    return PlanEntry(
        course_id=course.id,
        course_name=course.name,
        session_id=session.id,
        interval_key=session.interval_key,
        label=label_for(catalog, session.interval_key),
        hours=course.hours_per_day,
        completed=session.completed,
        success=session.success,
        rescheduled=session.rescheduled,
        needs_review=session.needs_review,
    )


def entries_on(state: AppState, d: date) -> List[PlanEntry]:
    catalog = offsets_for(state.settings.catalog)
    entries = [
        _entry(state, course, s)
        for course in state.courses
        for s in course.sessions
        if s.day == d
    ]
    entries.sort(key=lambda e: (catalog_index(catalog, e.interval_key), e.course_name.lower()))
    return entries


def day_plan(state: AppState, d: date, with_times: bool = False) -> DayPlan:
    entries = [] if is_sunday(d) else entries_on(state, d)
    if with_times:
        timed = {e.session_id: e for e in slots_for_day(d, entries, state.settings, state.constraints)}
        entries = [timed.get(e.session_id, e) for e in entries]
    total = sum(e.hours for e in entries if not e.completed)
    return DayPlan(
        day=d,
        sessions=entries,
        total_hours=total,
        constraints=constraints_on(d, state.constraints),
        overloaded=total > state.settings.max_hours_per_day,
    )


def weekly_plan(state: AppState, week_offset: int, today: date, with_times: bool = False) -> List[DayPlan]:
    return [day_plan(state, d, with_times) for d in week_dates(week_offset, today)]


def today_sessions(state: AppState, today: date) -> List[PlanEntry]:
    return [e for e in entries_on(state, today) if not e.completed]


def plan_stats(state: AppState, today: date) -> dict:
    sessions = [s for c in state.courses for s in c.sessions]
    completed = [s for s in sessions if s.completed]
    return {
        "courses": len(state.courses),
        "sessions": len(sessions),
        "completed": len(completed),
        "succeeded": sum(1 for s in completed if s.success),
        "completion_rate": round(len(completed) / len(sessions) * 100, 1) if sessions else 0.0,
        "today_hours": sum(e.hours for e in today_sessions(state, today)),
        "rescheduled": sum(1 for s in sessions if s.rescheduled and not s.completed),
        "needs_review": sum(1 for s in sessions if s.needs_review and not s.completed),
    }
