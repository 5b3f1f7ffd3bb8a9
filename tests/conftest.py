"""Shared fixtures for engine unit tests."""

from __future__ import annotations

from datetime import date
from typing import Optional

import pytest

from tierwatch.core.config import EngineConfig
from tierwatch.models.state import DropRecord, EngineState
from tierwatch.models.tier import TierName, TierTable
from tierwatch.models.violation import NormalizedViolation, ViolationType


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def tiers(config: EngineConfig) -> TierTable:
    return config.tiers()


@pytest.fixture
def make_state(tiers: TierTable):
    """Factory for an ``EngineState`` in a named tier."""

    def _make(
        tier: TierName = TierName.GOOD,
        points: Optional[int] = None,
        start: date = date(2024, 1, 1),
        da_stage_index: int = 0,
        drops: tuple[DropRecord, ...] = (),
        callouts: tuple[date, ...] = (),
        **updates,
    ) -> EngineState:
        current = tiers.by_name(tier)
        return EngineState(
            current_points=current.reset_target if points is None else points,
            current_tier=current,
            tier_start_date=start,
            da_stage_index=da_stage_index,
            processed_drops=drops,
            processed_callouts=callouts,
            **updates,
        )

    return _make


@pytest.fixture
def make_violation():
    """Factory for a ``NormalizedViolation``."""

    def _make(
        day: date,
        kind: ViolationType = ViolationType.CALLOUT,
        index: int = 0,
        **updates,
    ) -> NormalizedViolation:
        return NormalizedViolation(
            day=day, kind=kind, raw_type=kind.value, source_index=index, **updates
        )

    return _make
