"""Point/tier state-replay engine."""

from __future__ import annotations

from tierwatch.engine.normalizer import (
    group_consecutive_callouts,
    normalize_violations,
    parse_calendar_date,
)
from tierwatch.engine.penalties import compute_delta
from tierwatch.engine.replay import compute_state, preview_penalty, quarterly_start, state_as_of

__all__ = [
    "compute_delta",
    "compute_state",
    "group_consecutive_callouts",
    "normalize_violations",
    "parse_calendar_date",
    "preview_penalty",
    "quarterly_start",
    "state_as_of",
]
