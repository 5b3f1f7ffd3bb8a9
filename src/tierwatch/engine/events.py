"""Audit log entry construction shared by the state machine and projector."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from tierwatch.core.config import EngineConfig
from tierwatch.models.state import EngineState, EventLogEntry, EventType


def log_entry(
    state: EngineState,
    day: date,
    event_type: EventType,
    config: EngineConfig,
    *,
    start_points: Optional[int] = None,
    change: Optional[int] = None,
    details: str = "",
    escalation: Optional[int] = None,
    violation: Optional[str] = None,
    entry_index: Optional[int] = None,
) -> EventLogEntry:
    """Snapshot ``state`` as a log entry dated ``day``.

    The cycle fields describe the stabilization window the state is in:
    it started at ``state.tier_start_date`` and is evaluated for promotion
    ``stabilization_window_days`` later.
    """
    cycle_start = state.tier_start_date
    return EventLogEntry(
        date=day,
        type=event_type,
        tier=state.current_tier.name,
        start_points=state.current_points if start_points is None else start_points,
        points=state.current_points,
        change=change,
        details=details,
        da_status=state.da_stage,
        escalation=escalation,
        violation=violation,
        entry_index=entry_index,
        cycle_start=cycle_start,
        cycle_target=cycle_start + timedelta(days=config.stabilization_window_days),
        days_in_cycle=(day - cycle_start).days,
    )
