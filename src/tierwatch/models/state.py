"""Replay accumulator, audit log entries and the final engine snapshot."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from tierwatch.core.types import EscalationCounts, PeriodKey
from tierwatch.models.tier import DA_STAGES, Tier, TierName
from tierwatch.models.violation import SkippedViolation


class EventType(StrEnum):
    INITIAL = "initial"
    VIOLATION = "violation"
    DEMOTION = "demotion"
    PROMOTION = "promotion"
    PROMOTION_POINTS = "promotion_points"
    RESET = "reset"
    FREEZE_SKIP = "freeze_skip"
    INFO = "info"


class DropRecord(BaseModel):
    """One demotion, kept for yo-yo freeze evaluation."""

    model_config = {"frozen": True}

    date: dt.date
    from_tier: Tier
    to_tier: Tier
    freeze_until: Optional[dt.date] = None

    @property
    def is_drop_from_good_standing(self) -> bool:
        return self.from_tier.name == TierName.GOOD

    def freezes(self, day: dt.date) -> bool:
        """True when this drop's freeze window covers ``day``."""
        return self.freeze_until is not None and self.date <= day < self.freeze_until


class EngineState(BaseModel):
    """Immutable replay accumulator, evolved with ``model_copy(update=...)``."""

    model_config = {"frozen": True}

    current_points: int
    current_tier: Tier
    tier_start_date: dt.date
    da_stage_index: int = 0
    escalation_counts: EscalationCounts = Field(default_factory=dict)
    escalation_period: Optional[PeriodKey] = None
    last_callout_date: Optional[dt.date] = None
    processed_callouts: tuple[dt.date, ...] = ()
    processed_drops: tuple[DropRecord, ...] = ()

    @property
    def da_stage(self) -> str:
        return DA_STAGES[self.da_stage_index]


class EventLogEntry(BaseModel):
    """Append-only audit trail record."""

    date: dt.date
    type: EventType
    tier: TierName
    start_points: int
    points: int
    change: Optional[int] = None
    details: str = ""
    da_status: str = DA_STAGES[0]
    escalation: Optional[int] = None
    violation: Optional[str] = None
    entry_index: Optional[int] = None  # position of the source violation in the input
    cycle_start: dt.date
    cycle_target: dt.date
    days_in_cycle: int = 0


class EngineResult(BaseModel):
    """Final snapshot produced by a replay."""

    points: int
    tier: Tier
    da_stage: str
    da_stage_index: int
    tier_start_date: dt.date
    as_of: dt.date
    event_log: list[EventLogEntry] = Field(default_factory=list)
    drop_history: list[DropRecord] = Field(default_factory=list)
    skipped: list[SkippedViolation] = Field(default_factory=list)

    def points_on(self, day: dt.date) -> Optional[int]:
        """Balance at the end of ``day``, scanning forward from the initial entry."""
        points: Optional[int] = None
        for entry in self.event_log:
            if entry.date > day:
                break
            points = entry.points
        return points

    @property
    def freeze_until(self) -> Optional[dt.date]:
        """End of the yo-yo freeze active at ``as_of``, if any."""
        active = [d.freeze_until for d in self.drop_history if d.freezes(self.as_of)]
        return max(active) if active else None  # type: ignore[type-var]

    def events_of(self, *types: EventType) -> list[EventLogEntry]:
        return [e for e in self.event_log if e.type in types]
