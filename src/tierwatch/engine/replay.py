"""Replay engine: folds a violation history into an ``EngineResult``.

The replay is a pure function of its inputs: the caller's violations are
never modified, no state outlives a call, and with an explicit ``as_of`` the
output does not depend on the wall clock.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Iterator, Optional, Sequence, Union

from tierwatch.core.config import EngineConfig
from tierwatch.core.dates import quarter_bounds
from tierwatch.core.types import DateLike, JsonDict, QuarterKey
from tierwatch.engine.events import log_entry
from tierwatch.engine.normalizer import normalize_violations, parse_calendar_date
from tierwatch.engine.projector import catch_up
from tierwatch.engine.tiers import apply_violation
from tierwatch.models.state import EngineResult, EngineState, EventLogEntry, EventType
from tierwatch.models.tier import TierTable
from tierwatch.models.violation import NormalizedViolation, Violation

log = logging.getLogger(__name__)

ViolationInput = Union[Violation, JsonDict]


def initial_state(config: EngineConfig, tiers: TierTable, start: date) -> EngineState:
    """Fresh accumulator: full points, top tier, window opening at ``start``."""
    return EngineState(
        current_points=config.max_points,
        current_tier=tiers.top,
        tier_start_date=start,
    )


def iter_replay(
    violations: Sequence[NormalizedViolation],
    config: EngineConfig,
    tiers: TierTable,
    as_of: date,
) -> Iterator[tuple[EngineState, EventLogEntry]]:
    """Yield ``(state, entry)`` pairs in log order.

    Each entry is paired with the state reached at the end of the stage that
    emitted it. Before every violation the projector catches up to the
    violation's day; after the last one it catches up to ``as_of``.
    """
    start = violations[0].day if violations else as_of
    state = initial_state(config, tiers, start)
    yield state, log_entry(state, start, EventType.INITIAL, config, details="Initial State")

    for violation in violations:
        state, entries = catch_up(state, violation.day, config, tiers)
        for entry in entries:
            yield state, entry
        state, entries = apply_violation(state, violation, config, tiers)
        for entry in entries:
            yield state, entry

    state, entries = catch_up(state, as_of, config, tiers)
    for entry in entries:
        yield state, entry


def _replay(
    violations: Iterable[ViolationInput],
    config: Optional[EngineConfig],
    as_of: Optional[DateLike],
    *,
    until: Optional[date] = None,
) -> EngineResult:
    config = config or EngineConfig()
    tiers = config.tiers()
    if as_of is not None:
        reference = parse_calendar_date(as_of)
    else:
        reference = config.target_date or date.today()

    normalized, skipped = normalize_violations(
        violations,
        reset_effective_date=config.reset_effective_date,
        strict=config.strict_dates,
    )
    if until is not None:
        normalized = [v for v in normalized if v.day <= until]

    state = initial_state(config, tiers, normalized[0].day if normalized else reference)
    event_log: list[EventLogEntry] = []
    for state, entry in iter_replay(normalized, config, tiers, reference):
        event_log.append(entry)

    log.debug(
        "Replayed %d violations to %s: %s at %d points (DA %s, %d skipped)",
        len(normalized), reference, state.current_tier.name, state.current_points,
        state.da_stage, len(skipped),
    )
    return EngineResult(
        points=state.current_points,
        tier=state.current_tier,
        da_stage=state.da_stage,
        da_stage_index=state.da_stage_index,
        tier_start_date=state.tier_start_date,
        as_of=reference,
        event_log=event_log,
        drop_history=list(state.processed_drops),
        skipped=skipped,
    )


def compute_state(
    violations: Iterable[ViolationInput],
    config: Optional[EngineConfig] = None,
    as_of: Optional[DateLike] = None,
) -> EngineResult:
    """Replay an employee's full history and project it to ``as_of``.

    ``as_of`` defaults to ``config.target_date`` and then to today.

    Raises:
        InvalidDateError: ``as_of`` is unparseable, or a violation date is
            unparseable while ``config.strict_dates`` is set.
    """
    return _replay(violations, config, as_of)


def state_as_of(
    violations: Iterable[ViolationInput],
    target_date: DateLike,
    config: Optional[EngineConfig] = None,
) -> EngineResult:
    """Point-in-time query: only violations on or before ``target_date`` count."""
    target = parse_calendar_date(target_date)
    return _replay(violations, config, target, until=target)


def quarterly_start(
    key: QuarterKey,
    violations: Iterable[ViolationInput],
    config: Optional[EngineConfig] = None,
) -> int:
    """Balance entering quarter ``key`` (e.g. ``"2025-Q3"``).

    Replays everything dated before the quarter's first day and projects the
    result to that day.
    """
    start, _ = quarter_bounds(key)
    return _replay(violations, config, start, until=start - timedelta(days=1)).points


def preview_penalty(
    new_violation: ViolationInput,
    existing: Iterable[ViolationInput],
    config: Optional[EngineConfig] = None,
) -> int:
    """Size of the point change ``new_violation`` would cause on its day.

    The history is replayed with the new entry appended; its own log entry
    is located by input position. Waived, covered and protected entries
    preview as 0.

    Raises:
        InvalidDateError: the new violation's date is unparseable.
    """
    history = [*existing, new_violation]
    candidate = (
        new_violation
        if isinstance(new_violation, Violation)
        else Violation.model_validate(new_violation)
    )
    day = parse_calendar_date(candidate.date)
    result = _replay(history, config, day, until=day)
    index = len(history) - 1
    for entry in reversed(result.event_log):
        if entry.entry_index == index and entry.change is not None:
            return abs(entry.change)
    return 0
