from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from typing import List, Literal, Optional
from intervals import CATALOGS, DEFAULT_CATALOG


class Session(BaseModel):
    id: str
    interval_key: str
    day: date
    original_day: date
    completed: bool = False
    success: Optional[bool] = None
    rescheduled: bool = False
    needs_review: bool = False


class Course(BaseModel):
    id: str
    name: str = Field(min_length=1)
    hours_per_day: float = Field(gt=0, le=24)
    start_date: date
    created_at: datetime
    sessions: List[Session] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Course name cannot be empty.")
        return value


class Constraint(BaseModel):
    id: str
    day: date
    start_hour: int = Field(default=0, ge=0, le=23)
    end_hour: int = Field(default=24, ge=1, le=24)
    description: str = "Personal constraint"
    kind: Literal["manual", "calendar"] = "manual"
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_hours(self) -> "Constraint":
        if self.end_hour <= self.start_hour:
            raise ValueError("Constraint end hour must be after its start hour.")
        return self

    @property
    def is_full_day(self) -> bool:
        return self.start_hour == 0 and self.end_hour == 24


class Settings(BaseModel):
    day_start_hour: int = Field(default=9, ge=0, le=23)
    day_end_hour: int = Field(default=19, ge=1, le=24)
    lunch_break_start: float = Field(default=13, ge=0, le=24)
    lunch_break_end: float = Field(default=14, ge=0, le=24)
    max_hours_per_day: float = Field(default=9, gt=0, le=24)
    distribute_evenly: bool = False
    catalog: str = DEFAULT_CATALOG
    rebalance_on_delete: bool = False
    max_search_days: int = Field(default=3650, ge=1)

    @field_validator("catalog")
    @classmethod
    def _known_catalog(cls, value: str) -> str:
        if value not in CATALOGS:
            raise ValueError(f"Unknown interval catalog: {value}")
        return value

    @model_validator(mode="after")
    def _check_window(self) -> "Settings":
        if self.day_end_hour <= self.day_start_hour:
            raise ValueError("Working day must end after it starts.")
        if self.lunch_break_end < self.lunch_break_start:
            raise ValueError("Lunch break must end after it starts.")
        if not (self.day_start_hour <= self.lunch_break_start
                and self.lunch_break_end <= self.day_end_hour):
            raise ValueError("Lunch break must lie within working hours.")
        return self

    @property
    def lunch_hours(self) -> float:
        return self.lunch_break_end - self.lunch_break_start


class AppState(BaseModel):
    courses: List[Course] = Field(default_factory=list)
    constraints: List[Constraint] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)
    profile: str = "default"


class PlanEntry(BaseModel):
    course_id: str
    course_name: str
    session_id: str
    interval_key: str
    label: str
    hours: float
    completed: bool = False
    success: Optional[bool] = None
    rescheduled: bool = False
    needs_review: bool = False
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class DayPlan(BaseModel):
    day: date
    sessions: List[PlanEntry] = Field(default_factory=list)
    total_hours: float = 0
    constraints: List[Constraint] = Field(default_factory=list)
    overloaded: bool = False
