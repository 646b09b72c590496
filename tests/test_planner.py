from datetime import date, datetime, timedelta
import pytest
from errors import SchedulingExhausted
from intervals import offsets_for
from models import Course, Session, Settings
from planner import busy_hours_by_day, generate_sessions, has_conflict, is_sunday, rebalance
from tests.conftest import MONDAY, make_constraint, make_course


def _course(name, hours, sessions):
    return Course(
        id=name.lower(),
        name=name,
        hours_per_day=hours,
        start_date=sessions[0].original_day,
        created_at=datetime(2026, 10, 1),
        sessions=sessions,
    )


def _session(key, day):
    return Session(id=f"{key}-{day.isoformat()}", interval_key=key, day=day, original_day=day)


def _days(course):
    return {s.interval_key: s.day for s in course.sessions}


# --- generation ---

def test_generate_from_monday():
    sessions = generate_sessions(MONDAY, offsets_for("classic"))
    assert [s.day for s in sessions] == [
        date(2026, 10, 19), date(2026, 10, 20), date(2026, 10, 21),
        date(2026, 10, 29), date(2026, 11, 13), date(2026, 12, 5),
    ]
    assert all(s.original_day == s.day for s in sessions)
    assert not any(s.completed or s.rescheduled for s in sessions)
    assert all(s.success is None for s in sessions)


def test_generate_bumps_sunday_to_monday():
    sessions = generate_sessions(date(2026, 10, 20), offsets_for("classic"))
    last = sessions[-1]
    assert last.interval_key == "J+47"
    assert last.day == date(2026, 12, 7)
    assert last.original_day == date(2026, 12, 7)
    assert last.rescheduled is True
    assert sum(s.rescheduled for s in sessions) == 1


def test_generate_from_sunday_starts_monday():
    sessions = generate_sessions(date(2026, 10, 18), offsets_for("classic"))
    assert sessions[0].day == MONDAY
    assert sessions[0].rescheduled is False
    assert sessions[3].day == date(2026, 10, 29)


def test_generated_ids_are_unique():
    sessions = generate_sessions(MONDAY, offsets_for("extended"))
    assert len({s.id for s in sessions}) == len(sessions) == 7


# --- conflicts ---

def test_full_day_constraint_conflicts(settings):
    assert has_conflict(MONDAY, 1, [make_constraint(MONDAY)], settings)


def test_partial_constraint_overlapping_day_start(settings):
    assert has_conflict(MONDAY, 2, [make_constraint(MONDAY, 9, 11)], settings)


def test_partial_constraint_after_session(settings):
    assert not has_conflict(MONDAY, 2, [make_constraint(MONDAY, 11, 13)], settings)


def test_constraint_on_other_day_is_ignored(settings):
    assert not has_conflict(MONDAY, 2, [make_constraint(MONDAY + timedelta(days=1))], settings)


def test_busy_hours_by_day():
    constraints = [make_constraint(MONDAY, 9, 12), make_constraint(MONDAY, 14, 15),
                   make_constraint(MONDAY + timedelta(days=2))]
    busy = busy_hours_by_day(constraints, MONDAY)
    assert len(busy) == 7
    assert busy[MONDAY] == 4
    assert busy[MONDAY + timedelta(days=2)] == 24
    assert busy[MONDAY + timedelta(days=1)] == 0


# --- rebalancing ---

def test_capacity_pushes_later_interval(settings):
    a = _course("A", 5, [_session("J+1", MONDAY)])
    b = _course("B", 5, [_session("J+10", MONDAY)])
    result = rebalance([a, b], [], settings, MONDAY)
    placed = {c.name: c.sessions[0] for c in result.courses}
    assert placed["A"].day == MONDAY
    assert placed["A"].rescheduled is False
    assert placed["B"].day == MONDAY + timedelta(days=1)
    assert placed["B"].rescheduled is True
    assert result.moved == [placed["B"].id]


def test_full_day_constraint_moves_session(settings):
    course = make_course()
    wednesday = date(2026, 10, 21)
    result = rebalance([course], [make_constraint(wednesday)], settings, MONDAY)
    moved = next(s for s in result.courses[0].sessions if s.interval_key == "J+2")
    assert moved.day == date(2026, 10, 22)
    assert moved.original_day == wednesday
    assert moved.rescheduled is True


def test_input_courses_are_not_modified(settings):
    course = make_course()
    before = course.model_copy(deep=True)
    rebalance([course], [make_constraint(date(2026, 10, 21))], settings, MONDAY)
    assert course == before


def test_past_sessions_move_to_today(settings):
    course = make_course(start=date(2026, 10, 12))
    result = rebalance([course], [], settings, MONDAY)
    days = _days(result.courses[0])
    assert days["J0"] == days["J+1"] == days["J+2"] == MONDAY
    assert days["J+10"] == date(2026, 10, 22)


def test_completed_sessions_are_frozen(settings):
    course = make_course(start=date(2026, 10, 12))
    course.sessions[0].completed = True
    course.sessions[0].success = True
    result = rebalance([course], [make_constraint(date(2026, 10, 12))], settings, MONDAY)
    done = result.courses[0].sessions[0]
    assert done.day == date(2026, 10, 12)
    assert done.id not in result.moved


def test_completed_sessions_do_not_use_capacity(settings):
    a = _course("A", 5, [_session("J0", MONDAY)])
    a.sessions[0].completed = True
    b = _course("B", 5, [_session("J+1", MONDAY)])
    result = rebalance([a, b], [], settings, MONDAY)
    assert result.courses[1].sessions[0].day == MONDAY


def test_rebalanced_plan_respects_capacity_and_sundays(settings):
    courses = [make_course(name=f"Course {i}", hours=2, start=MONDAY) for i in range(7)]
    constraints = [make_constraint(date(2026, 10, 22), 9, 12)]
    result = rebalance(courses, constraints, settings, MONDAY)
    load = {}
    for c in result.courses:
        for s in c.sessions:
            assert not is_sunday(s.day)
            assert s.day != date(2026, 10, 22)
            assert s.day >= s.original_day
            load[s.day] = load.get(s.day, 0) + c.hours_per_day
    assert max(load.values()) <= settings.max_hours_per_day


def test_rebalance_is_deterministic_and_idempotent(settings):
    courses = [make_course(name=f"Course {i}", hours=3, start=MONDAY) for i in range(4)]
    first = rebalance(courses, [], settings, MONDAY)
    second = rebalance(courses, [], settings, MONDAY)
    assert [_days(c) for c in first.courses] == [_days(c) for c in second.courses]

    again = rebalance(first.courses, [], settings, MONDAY)
    assert again.moved == []
    assert [_days(c) for c in again.courses] == [_days(c) for c in first.courses]


def _blocked_week():
    return [make_constraint(MONDAY + timedelta(days=i)) for i in range(6)]


def test_exhaustion_raises_in_strict_mode():
    settings = Settings(max_search_days=5)
    course = _course("A", 2, [_session("J0", MONDAY)])
    with pytest.raises(SchedulingExhausted) as exc:
        rebalance([course], _blocked_week(), settings, MONDAY, strict=True)
    assert exc.value.course_id == "a"
    assert exc.value.start == MONDAY
    assert exc.value.days_searched == 5


def test_exhaustion_flags_session_for_review():
    settings = Settings(max_search_days=5)
    course = _course("A", 2, [_session("J0", MONDAY)])
    result = rebalance([course], _blocked_week(), settings, MONDAY)
    session = result.courses[0].sessions[0]
    assert not result.ok
    assert len(result.unresolved) == 1
    assert session.needs_review is True
    assert session.day == MONDAY


def test_session_longer_than_daily_limit_is_unresolved():
    settings = Settings(max_hours_per_day=4)
    course = _course("A", 6, [_session("J0", MONDAY)])
    result = rebalance([course], [], settings, MONDAY)
    assert result.courses[0].sessions[0].needs_review is True
    assert result.unresolved[0].session_id == course.sessions[0].id
