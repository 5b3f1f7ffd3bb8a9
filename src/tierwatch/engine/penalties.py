"""Penalty Calculator: signed point delta for one normalized violation.

Pricing rules:
- Callout: surge price when another callout falls inside the lookback window
  before it, standard price otherwise; a consecutive callout is always waived.
- Tardy: per-band escalation table indexed by the occurrence count of that
  band within the current escalation period; the last entry repeats.
- No call / no show: flat deduction.
- Early arrival, shift pickup: flat bonus, never escalated.
- Covered, protected or unrecognized entries: zero, counters untouched.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from tierwatch.core.config import (
    DEFAULT_POSITIVE_ADJUSTMENTS,
    DEFAULT_TARDY_PENALTIES,
    FALLBACK_TARDY_PENALTIES,
    EngineConfig,
)
from tierwatch.core.dates import quarter_key
from tierwatch.core.types import EscalationCounts, PenaltyTable, PeriodKey
from tierwatch.models.state import EngineState
from tierwatch.models.violation import NormalizedViolation, ViolationType


class PenaltyResult(BaseModel):
    """Outcome of pricing one violation against the current state."""

    model_config = {"frozen": True}

    delta: int = 0
    note: str = ""
    escalation: Optional[int] = None
    counts: EscalationCounts = Field(default_factory=dict)
    period: Optional[PeriodKey] = None
    informational: bool = False  # exempt or unrecognized: logged as info, counters untouched


def escalation_period_key(day: date, period: str) -> PeriodKey:
    if period == "quarterly":
        return quarter_key(day)
    return f"{day.year}-{day.month:02d}"


def tardy_table(config: EngineConfig, band: ViolationType) -> PenaltyTable:
    """Configured table for ``band``; built-in defaults when none is configured."""
    return (
        config.tardy_penalty_tables.get(band)
        or DEFAULT_TARDY_PENALTIES.get(band)
        or FALLBACK_TARDY_PENALTIES
    )


def escalated_penalty(table: PenaltyTable, occurrence: int) -> int:
    """Entry for the ``occurrence``-th event (1-based); overflow repeats the last entry."""
    return table[min(occurrence, len(table)) - 1]


def has_recent_callout(callouts: tuple[date, ...], day: date, lookback_days: int) -> bool:
    window_start = day - timedelta(days=lookback_days)
    return any(window_start <= d < day for d in callouts)


def apply_ceiling(points: int, delta: int, max_points: int) -> int:
    return min(points + delta, max_points)


def compute_delta(
    violation: NormalizedViolation, state: EngineState, config: EngineConfig
) -> PenaltyResult:
    """Price ``violation`` against ``state`` without mutating either."""
    if violation.exempt:
        return PenaltyResult(
            note=violation.exempt_reason,
            counts=state.escalation_counts,
            period=state.escalation_period,
            informational=True,
        )

    kind = violation.kind
    if kind is ViolationType.UNKNOWN:
        return PenaltyResult(
            note=f"Unrecognized violation type: {violation.raw_type}",
            counts=state.escalation_counts,
            period=state.escalation_period,
            informational=True,
        )

    if kind.is_positive:
        bonus = config.positive_adjustments.get(kind, DEFAULT_POSITIVE_ADJUSTMENTS.get(kind, 0))
        return PenaltyResult(
            delta=bonus,
            note="Bonus",
            counts=state.escalation_counts,
            period=state.escalation_period,
        )

    period = escalation_period_key(violation.day, config.escalation_reset_period)
    counts = dict(state.escalation_counts) if state.escalation_period == period else {}
    occurrence = counts.get(kind, 0) + 1
    counts[kind] = occurrence

    if kind.is_callout:
        if violation.consecutive:
            deduction, note = 0, "Consecutive Callout (Waived)"
        elif has_recent_callout(state.processed_callouts, violation.day, config.surge_lookback_days):
            deduction, note = config.callout_surge_penalty, "Surge Penalty"
        else:
            deduction, note = config.callout_standard_penalty, "Standard Penalty"
    elif kind is ViolationType.NO_SHOW:
        deduction, note = config.no_show_penalty, "No Call No Show"
    else:
        deduction = escalated_penalty(tardy_table(config, kind), occurrence)
        note = "Violation"

    return PenaltyResult(
        delta=-deduction,
        note=note,
        escalation=occurrence,
        counts=counts,
        period=period,
    )
