from datetime import date, datetime
from uuid import uuid4
import pytest
from models import AppState, Constraint, Course, Settings
from planner import generate_sessions
from intervals import offsets_for

MONDAY = date(2026, 10, 19)


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def state():
    return AppState()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point profile storage at a temporary directory."""
    monkeypatch.setenv("STUDY_PLANNER_DATA_DIR", str(tmp_path))
    return tmp_path


def make_course(name="Anatomy", hours=2.0, start=MONDAY, catalog="classic"):
    return Course(
        id=str(uuid4()),
        name=name,
        hours_per_day=hours,
        start_date=start,
        created_at=datetime(2026, 10, 1, 8, 0),
        sessions=generate_sessions(start, offsets_for(catalog)),
    )


def make_constraint(day, start_hour=0, end_hour=24, description="Busy"):
    return Constraint(
        id=str(uuid4()),
        day=day,
        start_hour=start_hour,
        end_hour=end_hour,
        description=description,
    )
