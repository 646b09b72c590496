"""
Free-text planner commands.

Text is first parsed into a typed command, then dispatched to the planning
operations in :mod:`agenda`. The parser never touches state.
"""
from __future__ import annotations
import re
from datetime import date
from typing import List, Literal, Optional, Union
from pydantic import BaseModel
import agenda
from errors import CourseNotFound, PlannerError
from intervals import normalize_key
from models import AppState, Course, DayPlan


MONTHS = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

NUMERIC_DATE = r"(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?"
WORD_DATE = r"(\d{1,2})\s*(" + "|".join(MONTHS) + r")(?:\s+(\d{4}))?"
INTERVAL = r"(j\+?\d+)"

MOVE_RE = re.compile(
    rf"move\s+(?:course\s+)?(.+?)\s+{INTERVAL}\s+from\s+{NUMERIC_DATE}\s+to\s+{NUMERIC_DATE}",
    re.IGNORECASE,
)
DELETE_SESSION_RE = re.compile(
    rf"(?:delete|remove)\s+(?:session\s+)?{INTERVAL}\s+(?:of|from)\s+(?:course\s+)?(.+?)[.!]?$",
    re.IGNORECASE,
)
DELETE_COURSE_RE = re.compile(r"(?:delete|remove)\s+(?:the\s+)?(?:course\s+)?(.+?)[.!]?$", re.IGNORECASE)
LIST_CONSTRAINTS_RE = re.compile(r"^(?:(?:my|list|show)\s+)?constraints\??$", re.IGNORECASE)
HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|h)\b", re.IGNORECASE)
COURSE_NAME_RE = re.compile(r"add\s+(?:course\s+|a\s+course\s+)?(.+?)\s+with\s+\d", re.IGNORECASE)
START_RE = re.compile(r"(?:starting|start|beginning|from)\s+(?:on\s+)?", re.IGNORECASE)
BETWEEN_RE = re.compile(r"between\s+(\d{1,2})h?\s+and\s+(\d{1,2})h?", re.IGNORECASE)
RANGE_RE = re.compile(r"(?:from\s+)?(\d{1,2})h?\s*(?:to|until|-)\s*(\d{1,2})h?\b", re.IGNORECASE)
SINGLE_HOUR_RE = re.compile(r"(?:\bat\s+(\d{1,2})h?\b|\b(\d{1,2})h\b)", re.IGNORECASE)

CONSTRAINT_WORDS = ("constraint", "busy", "appointment", "unavailable", "blocked")
ALL_DAY_WORDS = ("all day", "whole day", "full day")


class AddCourse(BaseModel):
    kind: Literal["add_course"] = "add_course"
    name: str
    hours: float
    start: date


class AddConstraint(BaseModel):
    kind: Literal["add_constraint"] = "add_constraint"
    day: date
    start_hour: int
    end_hour: int
    description: str


class MoveSession(BaseModel):
    kind: Literal["move_session"] = "move_session"
    course: str
    interval_key: str
    from_day: date
    to_day: date


class DeleteCourse(BaseModel):
    kind: Literal["delete_course"] = "delete_course"
    course: str


class DeleteAllCourses(BaseModel):
    kind: Literal["delete_all_courses"] = "delete_all_courses"


class DeleteSession(BaseModel):
    kind: Literal["delete_session"] = "delete_session"
    course: str
    interval_key: str


class ListConstraints(BaseModel):
    kind: Literal["list_constraints"] = "list_constraints"


class ShowWeek(BaseModel):
    kind: Literal["show_week"] = "show_week"
    week_offset: int = 0


class ShowToday(BaseModel):
    kind: Literal["show_today"] = "show_today"


class Help(BaseModel):
    kind: Literal["help"] = "help"


class Unknown(BaseModel):
    kind: Literal["unknown"] = "unknown"
    text: str
    hint: str = ""


Command = Union[
    AddCourse, AddConstraint, MoveSession, DeleteCourse, DeleteAllCourses,
    DeleteSession, ListConstraints, ShowWeek, ShowToday, Help, Unknown,
]

HELP_TEXT = """Available commands:

Courses
  - Add Anatomy with 2 hours per day
  - Add Anatomy with 2h starting 16/09
Deleting
  - Delete all courses
  - Delete course Anatomy
  - Delete session J+10 of Anatomy
Constraints
  - Constraint on 15/03 from 9h to 12h
  - Medical appointment on 20 september all day
  - My constraints
Planning
  - Today
  - Week plan (or: next week)
Moving
  - Move Anatomy J+10 from 16/09 to 19/09"""


def _make_date(day: str, month: int, year: Optional[str], today: date) -> Optional[date]:
    y = today.year if not year else int(year)
    if y < 100:
        y += 2000
    try:
        return date(y, month, int(day))
    except ValueError:
        return None


def _numeric_date(groups: tuple, today: date) -> Optional[date]:
    day, month, year = groups
    return _make_date(day, int(month), year, today)


def _find_date(text: str, today: date) -> tuple[Optional[date], str]:
    """Return the first date found and the text with that date removed.

    Raises ``ValueError`` when a date-like token names no real day (31/02).
    """
    m = re.search(NUMERIC_DATE, text)
    if m:
        found = _numeric_date(m.groups(), today)
    else:
        m = re.search(WORD_DATE, text, re.IGNORECASE)
        if not m:
            return None, text
        found = _make_date(m.group(1), MONTHS.index(m.group(2).lower()) + 1, m.group(3), today)
    if found is None:
        raise ValueError(f"Invalid date: {m.group(0)}")
    return found, text[:m.start()] + text[m.end():]


def _find_hours(text: str) -> tuple[int, int]:
    lower = text.lower()
    if any(w in lower for w in ALL_DAY_WORDS):
        return 0, 24
    for pattern in (BETWEEN_RE, RANGE_RE):
        m = pattern.search(text)
        if m:
            return int(m.group(1)), int(m.group(2))
    m = SINGLE_HOUR_RE.search(text)
    if m:
        start = int(m.group(1) or m.group(2))
        return start, start + 1
    return 0, 24


def _describe(lower: str) -> str:
    if "medical" in lower or "doctor" in lower:
        return "Medical appointment"
    if "appointment" in lower:
        return "Appointment"
    if "training" in lower:
        return "Training"
    if "travel" in lower or "trip" in lower:
        return "Travel"
    return "Personal constraint"


def _parse_add_course(text: str, today: date) -> AddCourse:
    hours_match = HOURS_RE.search(text)
    hours = float(hours_match.group(1)) if hours_match else 1.0

    start = today
    start_match = START_RE.search(text)
    if start_match:
        found, _ = _find_date(text[start_match.end():], today)
        if found:
            start = found

    name = "New course"
    name_match = COURSE_NAME_RE.search(text)
    if name_match:
        name = START_RE.split(name_match.group(1))[0].strip() or name
    else:
        m = re.search(r"add\s+(?:course\s+)?(.+)$", text, re.IGNORECASE)
        if m:
            name = START_RE.split(m.group(1))[0].strip() or name
    return AddCourse(name=name, hours=hours, start=start)


def parse_command(text: str, today: date) -> Command:
    text = text.strip()
    lower = text.lower()

    if lower.startswith("move"):
        m = MOVE_RE.search(text)
        if not m:
            return Unknown(text=text, hint="Use: Move <course> J+X from DD/MM to DD/MM")
        from_day = _numeric_date(m.groups()[2:5], today)
        to_day = _numeric_date(m.groups()[5:8], today)
        if from_day is None or to_day is None:
            return Unknown(text=text, hint="Invalid date.")
        return MoveSession(
            course=m.group(1).strip(),
            interval_key=normalize_key(m.group(2)),
            from_day=from_day,
            to_day=to_day,
        )

    if lower.startswith(("delete", "remove")):
        if re.search(r"\ball\b.*\bcourses\b", lower):
            return DeleteAllCourses()
        m = DELETE_SESSION_RE.search(text)
        if m:
            return DeleteSession(course=m.group(2).strip(), interval_key=normalize_key(m.group(1)))
        m = DELETE_COURSE_RE.search(text)
        if m:
            return DeleteCourse(course=m.group(1).strip())
        return Unknown(text=text, hint="Use: Delete course <name> or Delete session J+X of <course>")

    if LIST_CONSTRAINTS_RE.match(lower):
        return ListConstraints()

    if any(w in lower for w in CONSTRAINT_WORDS):
        try:
            day, rest = _find_date(text, today)
        except ValueError:
            return Unknown(text=text, hint="Invalid date.")
        start_hour, end_hour = _find_hours(rest)
        return AddConstraint(
            day=day or today,
            start_hour=start_hour,
            end_hour=end_hour,
            description=_describe(lower),
        )

    if lower.startswith("add") or "new course" in lower:
        try:
            return _parse_add_course(text, today)
        except ValueError:
            return Unknown(text=text, hint="Invalid date.")

    if "week" in lower:
        offset = 0
        if "next week" in lower:
            offset = 1
        elif "last week" in lower or "previous week" in lower:
            offset = -1
        return ShowWeek(week_offset=offset)

    if "today" in lower or "plan" in lower:
        return ShowToday()

    if lower in ("help", "?") or lower.startswith("help"):
        return Help()

    return Unknown(text=text)


def match_course(state: AppState, name: str) -> Course:
    wanted = name.strip().lower()
    for course in state.courses:
        if course.name.lower() == wanted:
            return course
    for course in state.courses:
        if wanted and wanted in course.name.lower():
            return course
    raise CourseNotFound(name)


def _hours_label(start_hour: int, end_hour: int) -> str:
    if start_hour == 0 and end_hour == 24:
        return "all day"
    return f"{start_hour}h-{end_hour}h"


def _fmt_hours(value: float) -> str:
    return f"{value:g}h"


def _render_day(plan: DayPlan) -> List[str]:
    lines = [plan.day.strftime("%A %d/%m") + ":"]
    for c in plan.constraints:
        lines.append(f"  ! {c.description} ({_hours_label(c.start_hour, c.end_hour)})")
    if not plan.sessions:
        lines.append("  Rest - no sessions")
        return lines
    for e in plan.sessions:
        status = ("done" if e.success else "failed") if e.completed else "pending"
        moved = " (rescheduled)" if e.rescheduled else ""
        lines.append(f"  [{status}] {e.course_name} ({e.label}) - {_fmt_hours(e.hours)}{moved}")
    lines.append(f"  Total: {_fmt_hours(plan.total_hours)}")
    return lines


def _rebalance_note(result) -> str:
    if result is None:
        return ""
    note = f"\n{len(result.moved)} session(s) rescheduled."
    if result.unresolved:
        note += f"\n{len(result.unresolved)} session(s) could not be placed and need review."
    return note


def execute(state: AppState, command: Command, today: date) -> str:
    """Apply a parsed command to ``state`` and return a reply for the user."""
    try:
        return _execute(state, command, today)
    except CourseNotFound as e:
        available = ", ".join(c.name for c in state.courses) or "none"
        return f"Course {e.course_id!r} not found. Available courses: {available}."
    except (PlannerError, ValueError) as e:
        return f"Cannot do that: {e}"


def _execute(state: AppState, command: Command, today: date) -> str:
    if isinstance(command, AddCourse):
        course, result = agenda.create_course(state, command.name, command.hours, command.start, today)
        return (
            f"Course {course.name!r} added with {_fmt_hours(course.hours_per_day)} per session, "
            f"{len(course.sessions)} sessions from {course.start_date.isoformat()}."
            + _rebalance_note(result)
        )

    if isinstance(command, AddConstraint):
        constraint, result = agenda.add_constraint(
            state, command.day, command.start_hour, command.end_hour, command.description, today
        )
        return (
            f"Constraint added: {constraint.description} on {constraint.day.isoformat()} "
            f"({_hours_label(constraint.start_hour, constraint.end_hour)})."
            + _rebalance_note(result)
        )

    if isinstance(command, MoveSession):
        course = match_course(state, command.course)
        session = next(
            (s for s in course.sessions
             if s.interval_key == command.interval_key and s.day == command.from_day),
            None,
        )
        if session is None:
            listing = ", ".join(f"{s.interval_key} on {s.day.isoformat()}" for s in course.sessions)
            return (
                f"No {command.interval_key} session of {course.name!r} on "
                f"{command.from_day.isoformat()}. Sessions: {listing}."
            )
        agenda.move_session(state, course.id, session.id, command.to_day)
        return (
            f"Moved {course.name!r} {command.interval_key} from "
            f"{command.from_day.isoformat()} to {command.to_day.isoformat()}."
        )

    if isinstance(command, DeleteAllCourses):
        if not state.courses:
            return "There are no courses to delete."
        count = agenda.delete_all_courses(state)
        return f"Deleted {count} course(s) and all their sessions."

    if isinstance(command, DeleteCourse):
        course = match_course(state, command.course)
        result = agenda.delete_course(state, course.id, today)
        return f"Deleted course {course.name!r} ({len(course.sessions)} sessions)." + _rebalance_note(result)

    if isinstance(command, DeleteSession):
        course = match_course(state, command.course)
        session = next((s for s in course.sessions if s.interval_key == command.interval_key), None)
        if session is None:
            keys = ", ".join(s.interval_key for s in course.sessions)
            return f"No {command.interval_key} session for {course.name!r}. Sessions: {keys}."
        if session.completed:
            return f"Session {command.interval_key} of {course.name!r} is already completed."
        result = agenda.delete_session(state, course.id, session.id, today)
        return f"Deleted session {command.interval_key} of {course.name!r}." + _rebalance_note(result)

    if isinstance(command, ListConstraints):
        if not state.constraints:
            return "No constraints recorded."
        lines = ["Your constraints:"]
        for i, c in enumerate(sorted(state.constraints, key=lambda x: (x.day, x.start_hour)), 1):
            lines.append(f"{i}. {c.description} on {c.day.isoformat()} ({_hours_label(c.start_hour, c.end_hour)})")
        return "\n".join(lines)

    if isinstance(command, ShowWeek):
        if not state.courses:
            return "Your weekly plan is empty. Start by adding a course."
        lines = []
        for plan in agenda.weekly_plan(state, command.week_offset, today):
            lines.extend(_render_day(plan))
        return "\n".join(lines)

    if isinstance(command, ShowToday):
        lines = _render_day(agenda.day_plan(state, today))
        if today.weekday() == 6:
            lines.append("Sunday is a rest day.")
        return "\n".join(lines)

    if isinstance(command, Help):
        return HELP_TEXT

    hint = command.hint or "Type 'help' to see available commands."
    return f"Sorry, I did not understand {command.text!r}. {hint}"
