"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from tierwatch.core.exceptions import ConfigurationError
from tierwatch.core.types import PenaltyTable
from tierwatch.models.tier import TierName, TierTable, TierThreshold
from tierwatch.models.violation import ViolationType

DEFAULT_TARDY_PENALTIES: dict[str, PenaltyTable] = {
    ViolationType.TARDY_1_5: [3, 6, 10, 15],
    ViolationType.TARDY_6_11: [5, 10, 15, 20],
    ViolationType.TARDY_12_29: [15, 20, 25, 30],
    ViolationType.TARDY_30_PLUS: [15, 20, 25, 30],
}

# Used when neither the configuration nor the band defaults know a band.
FALLBACK_TARDY_PENALTIES: PenaltyTable = [3, 5, 10, 15]

DEFAULT_POSITIVE_ADJUSTMENTS: dict[str, int] = {
    ViolationType.EARLY_ARRIVAL: 1,
    ViolationType.SHIFT_PICKUP: 5,
}

DEFAULT_TIER_THRESHOLDS: dict[TierName, TierThreshold] = {
    TierName.GOOD: TierThreshold(min_points=126, reset_target=150),
    TierName.EDUCATIONAL: TierThreshold(min_points=101, reset_target=125),
    TierName.COACHING: TierThreshold(min_points=76, reset_target=100),
    TierName.SEVERE: TierThreshold(min_points=51, reset_target=75),
    TierName.FINAL: TierThreshold(min_points=1, reset_target=50),
    TierName.TERMINATION: TierThreshold(min_points=None, reset_target=0),
}


class EngineConfig(BaseSettings):
    """Point/tier replay engine configuration."""

    model_config = {"env_prefix": "TIERWATCH_ENGINE_"}

    max_points: int = Field(default=150, ge=1)

    # --- Penalties ---
    tardy_penalty_tables: dict[str, PenaltyTable] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_TARDY_PENALTIES.items()}
    )
    callout_standard_penalty: int = 24
    callout_surge_penalty: int = 40
    surge_lookback_days: int = Field(default=60, ge=0)
    no_show_penalty: int = 50
    positive_adjustments: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_POSITIVE_ADJUSTMENTS)
    )
    escalation_reset_period: Literal["monthly", "quarterly"] = "monthly"

    # --- Tiers ---
    tier_thresholds: dict[TierName, TierThreshold] = Field(
        default_factory=lambda: dict(DEFAULT_TIER_THRESHOLDS)
    )
    promotion_resets_points: bool = False

    # --- Time projection ---
    stabilization_window_days: int = Field(default=30, ge=1)
    freeze_duration_days: int = Field(default=90, ge=1)
    freeze_trigger_drops: int = Field(default=3, ge=1)
    freeze_lookback_months: int = Field(default=12, ge=1)
    catch_up_limit: Optional[int] = Field(default=None, ge=1)

    # --- Query / history ---
    target_date: Optional[date] = None
    reset_effective_date: Optional[date] = None
    strict_dates: bool = False

    @field_validator("tardy_penalty_tables")
    @classmethod
    def _tables_not_empty(cls, tables: dict[str, PenaltyTable]) -> dict[str, PenaltyTable]:
        for band, table in tables.items():
            if not table:
                raise ConfigurationError(f"Empty tardy penalty table for {band!r}")
        return tables

    @field_validator("tier_thresholds")
    @classmethod
    def _complete_tier_thresholds(
        cls, thresholds: dict[TierName, TierThreshold]
    ) -> dict[TierName, TierThreshold]:
        merged = {**DEFAULT_TIER_THRESHOLDS, **thresholds}
        TierTable.from_thresholds(merged)  # raises ConfigurationError when inconsistent
        return merged

    def tiers(self) -> TierTable:
        return TierTable.from_thresholds(self.tier_thresholds)

    def with_overrides(self, overrides: dict[str, Any] | None) -> EngineConfig:
        """Return a validated copy with ``overrides`` applied.

        Raises:
            ConfigurationError: an override is unknown or fails validation.
        """
        if not overrides:
            return self
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            raise ConfigurationError(f"Unknown engine options: {sorted(unknown)}")
        try:
            return EngineConfig(**{**self.model_dump(), **overrides})
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid engine options: {exc.errors()[0]['msg']}") from exc


class ApiConfig(BaseSettings):
    """HTTP surface configuration."""

    model_config = {"env_prefix": "TIERWATCH_API_"}

    title: str = "TierWatch Attendance Points Engine"
    engine_prefix: str = "/engine"


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "TIERWATCH_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    engine: EngineConfig = EngineConfig()
    api: ApiConfig = ApiConfig()
