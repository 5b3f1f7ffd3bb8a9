"""Time Projector: fast-forwards stabilization windows up to a reference date."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from tierwatch.core.config import EngineConfig
from tierwatch.engine.events import log_entry
from tierwatch.engine.tiers import Step, active_freeze
from tierwatch.models.state import EngineState, EventLogEntry, EventType
from tierwatch.models.tier import TierTable

log = logging.getLogger(__name__)


def catch_up(
    state: EngineState, reference: date, config: EngineConfig, tiers: TierTable
) -> Step:
    """Apply every stabilization window completed before ``reference``.

    While more than ``stabilization_window_days`` separate ``reference`` from
    the tier start date, the window closing at ``tier_start_date + window``
    is evaluated:

    - inside a yo-yo freeze: nothing changes but the window start (``freeze_skip``);
    - at the top tier: points back to ``max_points``, DA stage cleared (``reset``);
    - otherwise: up one tier at that tier's reset target (``promotion``).

    Escalation counters are cleared on every reset and promotion. With
    ``catch_up_limit`` unset the loop runs until caught up; each pass moves
    the window start forward, so it always terminates.
    """
    window = timedelta(days=config.stabilization_window_days)
    entries: list[EventLogEntry] = []
    passes = 0

    while (reference - state.tier_start_date).days > config.stabilization_window_days:
        if config.catch_up_limit is not None and passes >= config.catch_up_limit:
            log.warning(
                "Catch-up limit of %d windows reached at %s (tier start %s); "
                "projected state may understate recovery",
                config.catch_up_limit, reference, state.tier_start_date,
            )
            entries.append(
                log_entry(
                    state,
                    reference,
                    EventType.INFO,
                    config,
                    details=(
                        f"Projection truncated after {config.catch_up_limit} windows; "
                        f"tier start still {state.tier_start_date.isoformat()}"
                    ),
                )
            )
            break

        candidate = state.tier_start_date + window
        freeze = active_freeze(state.processed_drops, candidate)
        if freeze is not None:
            state = state.model_copy(update={"tier_start_date": candidate})
            entries.append(
                log_entry(
                    state,
                    candidate,
                    EventType.FREEZE_SKIP,
                    config,
                    details=f"Promotion skipped: Yo-Yo Freeze until {freeze.freeze_until.isoformat()}",
                )
            )
        elif state.current_tier.level == tiers.top.level:
            state, entry = _reset(state, candidate, config)
            entries.append(entry)
        else:
            state, entry = _promote(state, candidate, config, tiers)
            entries.append(entry)
        passes += 1

    return state, entries


def _reset(state: EngineState, day: date, config: EngineConfig) -> tuple[EngineState, EventLogEntry]:
    points_before = state.current_points
    state = state.model_copy(
        update={
            "current_points": config.max_points,
            "tier_start_date": day,
            "da_stage_index": 0,
            "escalation_counts": {},
            "escalation_period": None,
        }
    )
    entry = log_entry(
        state,
        day,
        EventType.RESET,
        config,
        start_points=points_before,
        change=config.max_points - points_before,
        details=f"Reset back to {config.max_points} points",
    )
    return state, entry


def _promote(
    state: EngineState, day: date, config: EngineConfig, tiers: TierTable
) -> tuple[EngineState, EventLogEntry]:
    prev_tier = state.current_tier
    next_tier = tiers.next_up(prev_tier)
    points_before = state.current_points
    points = min(next_tier.reset_target, config.max_points)
    state = state.model_copy(
        update={
            "current_points": points,
            "current_tier": next_tier,
            "tier_start_date": day,
            "da_stage_index": 0 if next_tier.level == tiers.top.level else state.da_stage_index,
            "escalation_counts": {},
            "escalation_period": None,
        }
    )
    entry = log_entry(
        state,
        day,
        EventType.PROMOTION,
        config,
        start_points=points_before,
        change=points - points_before,
        details=f"Promoted from {prev_tier.name} to {next_tier.name}",
    )
    return state, entry
