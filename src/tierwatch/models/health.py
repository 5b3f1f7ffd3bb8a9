"""Employee health-check report and DA issuance models."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from tierwatch.models.tier import TierName


class TrendDirection(StrEnum):
    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"


class CycleEvent(BaseModel):
    """A drop or climb inside the current probation cycle."""

    date: dt.date
    direction: str  # "Drop" or "Climb"
    tier: TierName
    da_status: str = ""
    details: str = ""


class TimelinePoint(BaseModel):
    date: dt.date
    score: int
    tier: TierName


class ActivityItem(BaseModel):
    date: dt.date
    type: str
    points: int = 0  # signed change recorded by the engine


class EmployeeStatus(BaseModel):
    current_tier: TierName
    tier_level: int
    current_points: int
    status_level_index: int  # Good Standing = 0
    emd_percentage: int
    sticky_da: str
    trend_direction: TrendDirection = TrendDirection.FLAT
    score_diff: int = 0


class Forecast(BaseModel):
    next_step_if_fail: str
    next_step_up: str
    days_to_promotion: int
    days_stabilized: int
    timeline: list[TimelinePoint] = Field(default_factory=list)


class CycleData(BaseModel):
    is_active: bool
    current_cycle_das: list[CycleEvent] = Field(default_factory=list)
    cycle_history: list[CycleEvent] = Field(default_factory=list)
    drops_from_good: int = 0
    max_drops: int = 3
    freeze_until: Optional[dt.date] = None


class ActivityData(BaseModel):
    shift_pickups_30d: int = 0
    early_arrivals_30d: int = 0
    violations_60d: list[ActivityItem] = Field(default_factory=list)
    total_violations_90d: int = 0
    surge_active: bool = False


class HealthReport(BaseModel):
    """Read-only digest of one employee's engine output at a reference date."""

    employee_id: str = ""
    report_date: dt.date
    status: EmployeeStatus
    forecast: Forecast
    cycle: CycleData
    activity: ActivityData


class RequiredDA(BaseModel):
    """A disciplinary action that must still be issued."""

    employee_id: str
    employee_name: str = ""
    tier: TierName
    quarter: str
    points: int
    key: str
