"""Tier/DA State Machine: applies one priced violation and resolves tier changes.

Demotion forces the balance to the new tier's reset target, clears all
escalation counters, restarts the stabilization window and ratchets the DA
stage. A third drop out of Good Standing inside the lookback window opens a
yo-yo freeze that suppresses time-based promotions.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from tierwatch.core.config import EngineConfig
from tierwatch.core.dates import add_months
from tierwatch.engine.events import log_entry
from tierwatch.engine.penalties import apply_ceiling, compute_delta
from tierwatch.models.state import DropRecord, EngineState, EventLogEntry, EventType
from tierwatch.models.tier import MAX_DA_STAGE_INDEX, Tier, TierTable
from tierwatch.models.violation import NormalizedViolation

log = logging.getLogger(__name__)

Step = tuple[EngineState, list[EventLogEntry]]


def ratchet_da_stage(current_index: int, new_tier: Tier) -> int:
    """DA stage after a demotion into ``new_tier``: always advances, capped."""
    return min(max(current_index + 1, new_tier.da_stage_target), MAX_DA_STAGE_INDEX)


def active_freeze(drops: tuple[DropRecord, ...], day: date) -> Optional[DropRecord]:
    """The drop whose freeze window covers ``day``, if any."""
    for drop in drops:
        if drop.freezes(day):
            return drop
    return None


def recent_drops_from_good(
    drops: tuple[DropRecord, ...], day: date, lookback_months: int
) -> list[DropRecord]:
    window_start = add_months(day, -lookback_months)
    return [d for d in drops if d.is_drop_from_good_standing and d.date >= window_start]


def apply_violation(
    state: EngineState,
    violation: NormalizedViolation,
    config: EngineConfig,
    tiers: TierTable,
) -> Step:
    """Price ``violation``, apply it to the balance and resolve any tier change."""
    result = compute_delta(violation, state, config)

    if result.informational:
        entry = log_entry(
            state,
            violation.day,
            EventType.INFO,
            config,
            change=0,
            details=result.note,
            violation=violation.raw_type,
            entry_index=violation.source_index,
        )
        return state, [entry]

    start_points = state.current_points
    points = apply_ceiling(start_points, result.delta, config.max_points)
    updates: dict = {
        "current_points": points,
        "escalation_counts": result.counts,
        "escalation_period": result.period,
    }
    if violation.kind.is_callout:
        updates["processed_callouts"] = state.processed_callouts + (violation.day,)
        updates["last_callout_date"] = violation.day
    state = state.model_copy(update=updates)

    entry = log_entry(
        state,
        violation.day,
        EventType.VIOLATION,
        config,
        start_points=start_points,
        change=points - start_points,
        details=result.note,
        escalation=result.escalation,
        violation=violation.raw_type,
        entry_index=violation.source_index,
    )
    state, transitions = resolve_tier_change(state, violation.day, config, tiers)
    return state, [entry, *transitions]


def resolve_tier_change(
    state: EngineState, day: date, config: EngineConfig, tiers: TierTable
) -> Step:
    """Compare the balance's tier with the current tier and transition if needed."""
    new_tier = tiers.for_points(state.current_points)
    if new_tier.level < state.current_tier.level:
        return demote(state, new_tier, day, config, tiers)
    if new_tier.level > state.current_tier.level:
        return promote_by_points(state, new_tier, day, config, tiers)
    return state, []


def demote(
    state: EngineState, new_tier: Tier, day: date, config: EngineConfig, tiers: TierTable
) -> Step:
    prev_tier = state.current_tier
    points_before = state.current_points
    reset_points = min(new_tier.reset_target, config.max_points)

    freeze_until: Optional[date] = None
    if prev_tier.level == tiers.top.level:
        prior = recent_drops_from_good(state.processed_drops, day, config.freeze_lookback_months)
        if len(prior) + 1 >= config.freeze_trigger_drops:
            freeze_until = day + timedelta(days=config.freeze_duration_days)
            log.info(
                "Yo-yo freeze: drop #%d from %s since %s, promotions frozen until %s",
                len(prior) + 1, prev_tier.name, add_months(day, -config.freeze_lookback_months),
                freeze_until,
            )

    drop = DropRecord(date=day, from_tier=prev_tier, to_tier=new_tier, freeze_until=freeze_until)
    state = state.model_copy(
        update={
            "current_points": reset_points,
            "current_tier": new_tier,
            "tier_start_date": day,
            "da_stage_index": ratchet_da_stage(state.da_stage_index, new_tier),
            "escalation_counts": {},
            "escalation_period": None,
            "processed_drops": state.processed_drops + (drop,),
        }
    )

    details = f"Demoted from {prev_tier.name} to {new_tier.name}"
    if freeze_until is not None:
        details += f" (FROZEN until {freeze_until.isoformat()})"
    entry = log_entry(
        state,
        day,
        EventType.DEMOTION,
        config,
        start_points=points_before,
        change=reset_points - points_before,
        details=details,
    )
    return state, [entry]


def promote_by_points(
    state: EngineState, new_tier: Tier, day: date, config: EngineConfig, tiers: TierTable
) -> Step:
    """Tier change caused by a positive adjustment rather than elapsed time.

    The balance stands unless ``promotion_resets_points`` is set.
    """
    prev_tier = state.current_tier
    points_before = state.current_points
    points = (
        min(new_tier.reset_target, config.max_points)
        if config.promotion_resets_points
        else points_before
    )
    da_index = 0 if new_tier.level == tiers.top.level else state.da_stage_index

    state = state.model_copy(
        update={
            "current_points": points,
            "current_tier": new_tier,
            "tier_start_date": day,
            "da_stage_index": da_index,
            "escalation_counts": {},
            "escalation_period": None,
        }
    )
    entry = log_entry(
        state,
        day,
        EventType.PROMOTION_POINTS,
        config,
        start_points=points_before,
        change=points - points_before,
        details=f"Points Promotion from {prev_tier.name} to {new_tier.name}",
    )
    return state, [entry]
