from __future__ import annotations
from datetime import date, datetime, timedelta, timezone
from typing import List, Tuple
from icalendar import Alarm, Calendar, Event as IcsEvent
from agenda import day_plan
from models import AppState, PlanEntry

REMINDER_MINUTES = (60, 30)


def _alarm(minutes: int, course_name: str) -> Alarm:
    alarm = Alarm()
    alarm.add("action", "DISPLAY")
    alarm.add("trigger", timedelta(minutes=-minutes))
    alarm.add("description", f"Study session in {minutes} minutes - {course_name}")
    return alarm


def _session_event(entry: PlanEntry) -> IcsEvent:
    event = IcsEvent()
    event.add("uid", f"{entry.session_id}@study-planner")
    event.add("summary", f"Study: {entry.course_name} ({entry.label})")
    # Floating times: slot hours are wall-clock hours in the reader's zone.
    event.add("dtstart", entry.start)
    event.add("dtend", entry.end)
    event.add("dtstamp", datetime.now(timezone.utc))
    description = f"Spaced repetition session, interval {entry.interval_key}. Duration: {entry.hours:g}h."
    if entry.rescheduled:
        description += " Rescheduled from its original day."
    event.add("description", description)
    event.add("categories", ["EDUCATION", "REVISION"])
    for minutes in REMINDER_MINUTES:
        event.add_component(_alarm(minutes, entry.course_name))
    return event


def sessions_to_ics(
    state: AppState,
    start: date,
    end: date,
) -> Tuple[bytes, List[str]]:
    """Export pending sessions between ``start`` and ``end`` (inclusive)."""
    cal = Calendar()
    cal.add("PRODID", "-//Study Planner//Local//")
    cal.add("version", "2.0")
    cal.add("X-WR-CALNAME", "Study Plan")

    warnings: List[str] = []

    d = start
    while d <= end:
        plan = day_plan(state, d, with_times=True)
        if plan.overloaded:
            warnings.append(
                f"{d.isoformat()} holds {plan.total_hours:g}h, above the "
                f"{state.settings.max_hours_per_day:g}h daily limit."
            )
        for entry in plan.sessions:
            if entry.completed or entry.start is None:
                continue
            if entry.needs_review:
                warnings.append(f"{entry.course_name} {entry.interval_key} needs manual rescheduling.")
            cal.add_component(_session_event(entry))
        d += timedelta(days=1)

    return cal.to_ical(), warnings
