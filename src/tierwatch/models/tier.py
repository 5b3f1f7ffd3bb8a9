"""Disciplinary tiers and the DA stage ladder."""

from __future__ import annotations

from enum import StrEnum
from typing import Iterable, Iterator, Mapping, Optional

from pydantic import BaseModel

from tierwatch.core.exceptions import ConfigurationError, UnknownTierError


class TierName(StrEnum):
    TERMINATION = "Termination Review"
    FINAL = "Final"
    SEVERE = "Severe"
    COACHING = "Coaching"
    EDUCATIONAL = "Educational Stage"
    GOOD = "Good Standing"


TIER_LEVELS: dict[TierName, int] = {
    TierName.TERMINATION: 0,
    TierName.FINAL: 1,
    TierName.SEVERE: 2,
    TierName.COACHING: 3,
    TierName.EDUCATIONAL: 4,
    TierName.GOOD: 5,
}

DA_STAGES: tuple[str, ...] = (
    "Good Standing",
    "Educational Stage",
    "Coaching",
    "Severe",
    "Final",
    "Termination Review",
)
MAX_DA_STAGE_INDEX = len(DA_STAGES) - 1


class TierThreshold(BaseModel):
    """Configured membership floor and reset target for one tier."""

    min_points: Optional[int] = None  # None: no lower bound
    reset_target: int


class Tier(BaseModel):
    model_config = {"frozen": True}

    name: TierName
    level: int
    min_points: Optional[int] = None
    reset_target: int

    @property
    def da_stage_target(self) -> int:
        """DA stage index implied by entering this tier."""
        return MAX_DA_STAGE_INDEX - self.level


class TierTable:
    """Ordered, immutable set of tiers for one engine instance."""

    def __init__(self, tiers: Iterable[Tier]) -> None:
        ordered = sorted(tiers, key=lambda t: t.level)
        levels = [t.level for t in ordered]
        if levels != list(range(len(TIER_LEVELS))):
            raise ConfigurationError(f"Tier levels must be exactly 0..5, got {levels}")
        for lower, upper in zip(ordered, ordered[1:]):
            if upper.min_points is None:
                raise ConfigurationError(f"Only the lowest tier may omit min_points ({upper.name})")
            if lower.min_points is not None and upper.min_points <= lower.min_points:
                raise ConfigurationError(
                    f"Thresholds must strictly increase with level: "
                    f"{lower.name}={lower.min_points} >= {upper.name}={upper.min_points}"
                )
        for tier, upper in zip(ordered, [*ordered[1:], None]):
            below = tier.min_points is not None and tier.reset_target < tier.min_points
            above = upper is not None and tier.reset_target >= upper.min_points
            if below or above:
                raise ConfigurationError(
                    f"Reset target {tier.reset_target} of {tier.name} falls outside its own band"
                )
        self._by_level = ordered
        self._by_name = {t.name: t for t in ordered}

    @classmethod
    def from_thresholds(cls, thresholds: Mapping[TierName, TierThreshold]) -> TierTable:
        missing = set(TIER_LEVELS) - set(thresholds)
        if missing:
            raise ConfigurationError(f"Missing tier thresholds: {sorted(missing)}")
        return cls(
            Tier(
                name=name,
                level=TIER_LEVELS[name],
                min_points=thresholds[name].min_points,
                reset_target=thresholds[name].reset_target,
            )
            for name in TIER_LEVELS
        )

    def __iter__(self) -> Iterator[Tier]:
        return iter(reversed(self._by_level))

    @property
    def top(self) -> Tier:
        return self._by_level[-1]

    @property
    def bottom(self) -> Tier:
        return self._by_level[0]

    def by_level(self, level: int) -> Tier:
        return self._by_level[max(0, min(level, len(self._by_level) - 1))]

    def by_name(self, name: str) -> Tier:
        try:
            return self._by_name[TierName(name)]
        except ValueError:
            raise UnknownTierError(name) from None

    def for_points(self, points: int) -> Tier:
        for tier in self:
            if tier.min_points is None or points >= tier.min_points:
                return tier
        return self.bottom

    def next_up(self, tier: Tier) -> Tier:
        return self.by_level(tier.level + 1)

    def next_down(self, tier: Tier) -> Tier:
        return self.by_level(tier.level - 1)
