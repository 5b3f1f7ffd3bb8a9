"""HealthCheckService: employee health-check data read off engine output.

Tier transitions are never re-derived here: tiers, the sticky DA, cycle
history and drop counts all come from the engine snapshot and event log.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from tierwatch.core.config import EngineConfig
from tierwatch.core.dates import add_months, days_ago, days_between
from tierwatch.core.types import DateLike
from tierwatch.engine.normalizer import normalize_violations, parse_calendar_date
from tierwatch.engine.replay import ViolationInput, state_as_of
from tierwatch.models.health import (
    ActivityData,
    ActivityItem,
    CycleData,
    CycleEvent,
    EmployeeStatus,
    Forecast,
    HealthReport,
    TimelinePoint,
    TrendDirection,
)
from tierwatch.models.state import EngineResult, EventLogEntry, EventType
from tierwatch.models.tier import TierName, TierTable
from tierwatch.models.violation import NormalizedViolation, ViolationType

log = logging.getLogger(__name__)

TREND_LOOKBACK_DAYS = 14

# Meal-benefit allocation by tier, in percent.
EMD_ALLOCATION: dict[TierName, int] = {
    TierName.GOOD: 100,
    TierName.EDUCATIONAL: 75,
    TierName.COACHING: 50,
    TierName.SEVERE: 25,
    TierName.FINAL: 0,
    TierName.TERMINATION: 0,
}
EMD_GOOD_STANDING_BONUS: tuple[tuple[int, int], ...] = ((148, 120), (146, 110))

_CLIMB_EVENTS = (EventType.PROMOTION, EventType.PROMOTION_POINTS, EventType.RESET)


def emd_percentage(tier: TierName, points: int) -> int:
    if tier == TierName.GOOD:
        for floor, percent in EMD_GOOD_STANDING_BONUS:
            if points >= floor:
                return percent
    return EMD_ALLOCATION.get(tier, 0)


def current_cycle_events(result: EngineResult) -> list[EventLogEntry]:
    """Log entries after the last one recorded in Good Standing.

    Empty while the employee is in Good Standing: there is no open cycle.
    """
    if result.tier.name == TierName.GOOD:
        return []
    log_entries = result.event_log
    for index in range(len(log_entries) - 1, -1, -1):
        if log_entries[index].tier == TierName.GOOD:
            return log_entries[index + 1:]
    return list(log_entries)


def _cycle_event(entry: EventLogEntry) -> CycleEvent:
    return CycleEvent(
        date=entry.date,
        direction="Drop" if entry.type == EventType.DEMOTION else "Climb",
        tier=entry.tier,
        da_status=entry.da_status,
        details=entry.details,
    )


def _trend(current: int, previous: int) -> TrendDirection:
    if current > previous:
        return TrendDirection.UP
    if current < previous:
        return TrendDirection.DOWN
    return TrendDirection.FLAT


def _within(day: date, start: date, end: date) -> bool:
    return start <= day <= end


def _activity(
    normalized: list[NormalizedViolation],
    result: EngineResult,
    reference: date,
    config: EngineConfig,
) -> ActivityData:
    changes = {
        e.entry_index: e.change or 0
        for e in result.event_log
        if e.entry_index is not None and e.type in (EventType.VIOLATION, EventType.INFO)
    }
    start_30 = days_ago(reference, 30)
    start_60 = days_ago(reference, 60)
    start_90 = days_ago(reference, 90)
    surge_start = days_ago(reference, config.surge_lookback_days)

    activity = ActivityData()
    for v in normalized:
        if v.day > reference:
            continue
        if v.kind.is_positive:
            if _within(v.day, start_30, reference):
                if v.kind is ViolationType.SHIFT_PICKUP:
                    activity.shift_pickups_30d += 1
                else:
                    activity.early_arrivals_30d += 1
            continue
        if _within(v.day, start_60, reference):
            activity.violations_60d.append(
                ActivityItem(date=v.day, type=v.raw_type, points=changes.get(v.source_index, 0))
            )
        if _within(v.day, start_90, reference):
            activity.total_violations_90d += 1
        billable = v.kind.is_callout and not (v.exempt or v.consecutive)
        if billable and _within(v.day, surge_start, reference):
            activity.surge_active = True
    return activity


def build_health_report(
    violations: Iterable[ViolationInput],
    config: Optional[EngineConfig] = None,
    reference_date: Optional[DateLike] = None,
    employee_id: str = "",
) -> HealthReport:
    """Assemble the health-check payload for one employee at ``reference_date``."""
    config = config or EngineConfig()
    tiers: TierTable = config.tiers()
    history = list(violations)
    reference = (
        parse_calendar_date(reference_date)
        if reference_date is not None
        else config.target_date or date.today()
    )

    result = state_as_of(history, reference, config)
    previous = state_as_of(history, days_ago(reference, TREND_LOOKBACK_DAYS), config)
    tier = result.tier

    days_stabilized = max(0, days_between(result.tier_start_date, reference))
    if tier.level == tiers.top.level:
        next_step_up, days_to_promotion = "N/A (Max Tier)", 0
    else:
        next_step_up = tiers.next_up(tier).name.value
        days_to_promotion = max(0, config.stabilization_window_days - days_stabilized)
    next_step_if_fail = (
        "Termination" if tier.level == tiers.bottom.level else tiers.next_down(tier).name.value
    )

    cycle_entries = current_cycle_events(result)
    timeline = [TimelinePoint(date=e.date, score=e.points, tier=e.tier) for e in cycle_entries]
    if not timeline or timeline[-1].date != reference:
        timeline.append(TimelinePoint(date=reference, score=result.points, tier=tier.name))

    year_ago = add_months(reference, -12)
    drops_from_good = sum(
        1 for d in result.drop_history if d.is_drop_from_good_standing and d.date >= year_ago
    )

    normalized, _ = normalize_violations(
        history, reset_effective_date=config.reset_effective_date
    )

    report = HealthReport(
        employee_id=employee_id,
        report_date=reference,
        status=EmployeeStatus(
            current_tier=tier.name,
            tier_level=tier.level,
            current_points=result.points,
            status_level_index=tiers.top.level - tier.level,
            emd_percentage=emd_percentage(tier.name, result.points),
            sticky_da=result.da_stage,
            trend_direction=_trend(result.points, previous.points),
            score_diff=result.points - previous.points,
        ),
        forecast=Forecast(
            next_step_if_fail=next_step_if_fail,
            next_step_up=next_step_up,
            days_to_promotion=days_to_promotion,
            days_stabilized=days_stabilized,
            timeline=timeline,
        ),
        cycle=CycleData(
            is_active=tier.name != TierName.GOOD,
            current_cycle_das=[
                _cycle_event(e) for e in cycle_entries if e.type == EventType.DEMOTION
            ],
            cycle_history=[
                _cycle_event(e)
                for e in cycle_entries
                if e.type == EventType.DEMOTION or e.type in _CLIMB_EVENTS
            ],
            drops_from_good=drops_from_good,
            max_drops=config.freeze_trigger_drops,
            freeze_until=result.freeze_until,
        ),
        activity=_activity(normalized, result, reference, config),
    )
    log.debug(
        "Health report for %s at %s: %s, sticky DA %s",
        employee_id or "<anonymous>", reference, tier.name, result.da_stage,
    )
    return report
