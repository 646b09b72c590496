from __future__ import annotations
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Sequence, Tuple
from models import Constraint, PlanEntry, Settings
from planner import constraints_on

STEP_HOURS = 0.5

Span = Tuple[float, float]


def _overlaps(start: float, end: float, other_start: float, other_end: float) -> bool:
    return not (end <= other_start or start >= other_end)


def _at(d: date, hour: float) -> datetime:
    return datetime.combine(d, time.min) + timedelta(hours=hour)


def _even_start(index: int, total: int, settings: Settings) -> float:
    window = settings.day_end_hour - settings.day_start_hour - settings.lunch_hours
    slot = window / total
    candidate = settings.day_start_hour + index * slot
    if settings.lunch_break_start <= candidate < settings.lunch_break_end:
        candidate = settings.lunch_break_end
    return candidate


def _sequential_start(duration: float, settings: Settings, placed: Sequence[Span]) -> float:
    candidate = float(settings.day_start_hour)
    latest = settings.day_end_hour - duration
    while candidate <= latest:
        end = candidate + duration
        blocked = _overlaps(candidate, end, settings.lunch_break_start, settings.lunch_break_end) or any(
            _overlaps(candidate, end, s, e) for s, e in placed
        )
        if not blocked:
            return candidate
        candidate += STEP_HOURS
    # Nothing free: start at the beginning of the day and let the clamp below apply.
    return float(settings.day_start_hour)


def compute_slot(
    d: date,
    duration: float,
    index: int,
    total: int,
    settings: Settings,
    constraints: List[Constraint],
    placed: Sequence[Span] = (),
) -> Tuple[datetime, datetime]:
    """Pick the time of day for one session on ``d``.

    ``placed`` holds (start_hour, end_hour) spans already given to other
    sessions that day; it is only consulted in sequential mode.
    """
    if settings.distribute_evenly and total > 1:
        candidate = _even_start(index, total, settings)
    else:
        candidate = _sequential_start(duration, settings, placed)

    for c in sorted(constraints_on(d, constraints), key=lambda x: x.start_hour):
        if _overlaps(candidate, candidate + duration, c.start_hour, c.end_hour):
            candidate = max(candidate, float(c.end_hour))

    if candidate + duration > settings.day_end_hour:
        candidate = max(0.0, settings.day_end_hour - duration)

    return _at(d, candidate), _at(d, candidate + duration)


def slots_for_day(
    d: date,
    entries: Iterable[PlanEntry],
    settings: Settings,
    constraints: List[Constraint],
) -> List[PlanEntry]:
    """Fill start/end on the pending entries of one day, in the given order."""
    pending = [e for e in entries if not e.completed]
    placed: List[Span] = []
    out = []
    for i, entry in enumerate(pending):
        start, end = compute_slot(d, entry.hours, i, len(pending), settings, constraints, placed)
        placed.append((_hour_of(start, d), _hour_of(end, d)))
        out.append(entry.model_copy(update={"start": start, "end": end}))
    return out


def _hour_of(moment: datetime, d: date) -> float:
    return (moment - datetime.combine(d, time.min)).total_seconds() / 3600
