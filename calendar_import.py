from __future__ import annotations
import math
from datetime import datetime, date, timedelta
from typing import List
from uuid import uuid4
from icalendar import Calendar
from models import Constraint


def _normalize_to_datetime(value) -> datetime | None:
    dt_value = getattr(value, "dt", value)

    if isinstance(dt_value, date) and not isinstance(dt_value, datetime):
        dt_value = datetime.combine(dt_value, datetime.min.time())

    if isinstance(dt_value, datetime):
        if dt_value.tzinfo:
            dt_value = dt_value.astimezone().replace(tzinfo=None)
        return dt_value
    return None


def _is_all_day(value) -> bool:
    dt_value = getattr(value, "dt", value)
    return isinstance(dt_value, date) and not isinstance(dt_value, datetime)


def _hour_ceil(moment: datetime, day: date) -> int:
    hours = (moment - datetime.combine(day, datetime.min.time())).total_seconds() / 3600
    return min(24, math.ceil(hours))


def event_to_constraints(title: str, start: datetime, end: datetime, all_day: bool) -> List[Constraint]:
    """Split a busy event into one constraint per calendar day it touches."""
    out: List[Constraint] = []
    day = start.date()
    last = (end - timedelta(microseconds=1)).date()
    while day <= last:
        if all_day:
            start_hour, end_hour = 0, 24
        else:
            start_hour = start.hour if day == start.date() else 0
            end_hour = _hour_ceil(end, day) if day == end.date() else 24
        if end_hour > start_hour:
            out.append(Constraint(
                id=str(uuid4()),
                day=day,
                start_hour=start_hour,
                end_hour=end_hour,
                description=title,
                kind="calendar",
                created_at=datetime.now(),
            ))
        day += timedelta(days=1)
    return out


def parse_ics_bytes(data: bytes) -> List[Constraint]:
    cal = Calendar.from_ical(data)
    out: List[Constraint] = []

    for component in cal.walk():
        if component.name != "VEVENT":
            continue

        summary = str(component.get("SUMMARY", "Calendar event"))
        dtstart = component.get("DTSTART")
        dtend = component.get("DTEND")

        if not dtstart:
            continue

        all_day = _is_all_day(dtstart)
        start_dt = _normalize_to_datetime(dtstart)
        if dtend:
            end_dt = _normalize_to_datetime(dtend)
        elif all_day:
            end_dt = start_dt + timedelta(days=1)
        else:
            continue

        if not start_dt or not end_dt or end_dt <= start_dt:
            continue

        out.extend(event_to_constraints(summary, start_dt, end_dt, all_day))

    return sorted(out, key=lambda x: (x.day, x.start_hour))
