from datetime import date
import pytest
from commands import (
    AddConstraint,
    AddCourse,
    DeleteAllCourses,
    DeleteCourse,
    DeleteSession,
    Help,
    ListConstraints,
    MoveSession,
    ShowToday,
    ShowWeek,
    Unknown,
    execute,
    match_course,
    parse_command,
)
from errors import CourseNotFound
from tests.conftest import MONDAY


def test_parse_add_course():
    cmd = parse_command("Add Anatomy with 2 hours per day starting 19/10/2026", MONDAY)
    assert cmd == AddCourse(name="Anatomy", hours=2.0, start=date(2026, 10, 19))


def test_parse_add_course_defaults():
    cmd = parse_command("Add Biology with 1h", MONDAY)
    assert isinstance(cmd, AddCourse)
    assert cmd.name == "Biology"
    assert cmd.hours == 1.0
    assert cmd.start == MONDAY


def test_parse_constraint_with_hours():
    cmd = parse_command("Constraint on 21/10 from 9h to 12h", MONDAY)
    assert cmd == AddConstraint(day=date(2026, 10, 21), start_hour=9, end_hour=12,
                                description="Personal constraint")


def test_parse_medical_appointment_all_day():
    cmd = parse_command("Medical appointment on 20 september all day", MONDAY)
    assert isinstance(cmd, AddConstraint)
    assert cmd.day == date(2026, 9, 20)
    assert (cmd.start_hour, cmd.end_hour) == (0, 24)
    assert cmd.description == "Medical appointment"


def test_parse_move():
    cmd = parse_command("Move Anatomy J+10 from 29/10 to 30/10", MONDAY)
    assert cmd == MoveSession(course="Anatomy", interval_key="J+10",
                              from_day=date(2026, 10, 29), to_day=date(2026, 10, 30))


def test_parse_move_without_dates_is_unknown():
    cmd = parse_command("Move Anatomy somewhere", MONDAY)
    assert isinstance(cmd, Unknown)
    assert cmd.hint


@pytest.mark.parametrize("text,expected", [
    ("Delete session J+2 of Anatomy", DeleteSession(course="Anatomy", interval_key="J+2")),
    ("Remove j10 from Anatomy", DeleteSession(course="Anatomy", interval_key="J+10")),
    ("Delete course Anatomy", DeleteCourse(course="Anatomy")),
    ("Delete all courses", DeleteAllCourses()),
    ("my constraints", ListConstraints()),
    ("Week plan", ShowWeek(week_offset=0)),
    ("next week", ShowWeek(week_offset=1)),
    ("Today", ShowToday()),
    ("help", Help()),
])
def test_parse_simple_commands(text, expected):
    assert parse_command(text, MONDAY) == expected


def test_parse_gibberish_is_unknown():
    assert isinstance(parse_command("sing me a song", MONDAY), Unknown)


def test_execute_add_and_show_today(state):
    reply = execute(state, parse_command("Add Anatomy with 2 hours per day", MONDAY), MONDAY)
    assert "Anatomy" in reply
    assert len(state.courses[0].sessions) == 6

    today = execute(state, ShowToday(), MONDAY)
    assert "Anatomy (J0 (initial learning))" in today
    assert "Total: 2h" in today


def test_execute_constraint_reschedules(state):
    execute(state, parse_command("Add Anatomy with 2h", MONDAY), MONDAY)
    reply = execute(state, parse_command("Busy on 21/10 all day", MONDAY), MONDAY)
    assert "1 session(s) rescheduled" in reply
    j2 = next(s for s in state.courses[0].sessions if s.interval_key == "J+2")
    assert j2.day == date(2026, 10, 22)


def test_execute_move_and_rejections(state):
    execute(state, parse_command("Add Anatomy with 2h", MONDAY), MONDAY)
    reply = execute(state, parse_command("Move Anatomy J+10 from 29/10 to 30/10", MONDAY), MONDAY)
    assert reply.startswith("Moved")

    reply = execute(state, parse_command("Move Anatomy J+10 from 30/10 to 1/11", MONDAY), MONDAY)
    assert "Sunday" in reply

    reply = execute(state, parse_command("Move Anatomy J+10 from 29/10 to 2/11", MONDAY), MONDAY)
    assert reply.startswith("No J+10 session")


def test_execute_unknown_course_lists_available(state):
    execute(state, parse_command("Add Anatomy with 2h", MONDAY), MONDAY)
    reply = execute(state, DeleteCourse(course="Chemistry"), MONDAY)
    assert "not found" in reply
    assert "Anatomy" in reply
    assert len(state.courses) == 1


def test_execute_deletions(state):
    execute(state, parse_command("Add Anatomy with 2h", MONDAY), MONDAY)
    execute(state, parse_command("Add Biology with 1h", MONDAY), MONDAY)
    execute(state, parse_command("Delete session J+2 of Anatomy", MONDAY), MONDAY)
    anatomy = match_course(state, "anatomy")
    assert "J+2" not in [s.interval_key for s in anatomy.sessions]

    execute(state, parse_command("Delete course bio", MONDAY), MONDAY)
    assert [c.name for c in state.courses] == ["Anatomy"]

    assert execute(state, DeleteAllCourses(), MONDAY).startswith("Deleted 1 course")
    assert execute(state, DeleteAllCourses(), MONDAY) == "There are no courses to delete."


def test_execute_list_constraints(state):
    assert execute(state, ListConstraints(), MONDAY) == "No constraints recorded."
    execute(state, parse_command("Constraint on 21/10 from 9h to 12h", MONDAY), MONDAY)
    assert "1. Personal constraint on 2026-10-21 (9h-12h)" in execute(state, ListConstraints(), MONDAY)


def test_execute_week_and_help(state):
    assert "empty" in execute(state, ShowWeek(), MONDAY)
    execute(state, parse_command("Add Anatomy with 2h", MONDAY), MONDAY)
    week = execute(state, ShowWeek(), MONDAY)
    assert week.startswith("Monday 19/10:")
    assert "Rest - no sessions" in week
    assert "Available commands" in execute(state, Help(), MONDAY)


def test_match_course_prefers_exact_name(state):
    execute(state, parse_command("Add Anatomy II with 1h", MONDAY), MONDAY)
    execute(state, parse_command("Add Anatomy with 1h", MONDAY), MONDAY)
    assert match_course(state, "anatomy").name == "Anatomy"
    assert match_course(state, "ii").name == "Anatomy II"
    with pytest.raises(CourseNotFound):
        match_course(state, "chemistry")


def test_dash_hour_range_is_not_read_as_a_date():
    cmd = parse_command("Busy 9-12 on 21/10", MONDAY)
    assert cmd == AddConstraint(day=date(2026, 10, 21), start_hour=9, end_hour=12,
                                description="Personal constraint")

    cmd = parse_command("Busy from 14-16 on 21/10", MONDAY)
    assert (cmd.day, cmd.start_hour, cmd.end_hour) == (date(2026, 10, 21), 14, 16)


def test_impossible_date_is_rejected_not_replaced_by_today(state):
    cmd = parse_command("Constraint on 31/02 from 9h to 12h", MONDAY)
    assert isinstance(cmd, Unknown)
    assert cmd.hint == "Invalid date."
    execute(state, cmd, MONDAY)
    assert state.constraints == []

    cmd = parse_command("Add Anatomy with 2h starting 31/02", MONDAY)
    assert isinstance(cmd, Unknown)
    assert cmd.hint == "Invalid date."
