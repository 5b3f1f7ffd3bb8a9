"""Tests for configuration defaults, env overrides and validation."""

from __future__ import annotations

import logging

import pytest

from tierwatch.core.config import (
    DEFAULT_TARDY_PENALTIES,
    AppSettings,
    EngineConfig,
)
from tierwatch.core.exceptions import ConfigurationError, UnknownTierError
from tierwatch.core.logging import configure_logging
from tierwatch.models.tier import TierName, TierThreshold


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.engine.max_points == 150
    assert settings.api.engine_prefix == "/engine"


def test_engine_config_defaults():
    config = EngineConfig()
    assert config.callout_standard_penalty == 24
    assert config.callout_surge_penalty == 40
    assert config.surge_lookback_days == 60
    assert config.stabilization_window_days == 30
    assert config.freeze_duration_days == 90
    assert config.escalation_reset_period == "monthly"
    assert config.promotion_resets_points is False
    assert config.catch_up_limit is None
    assert config.tardy_penalty_tables == DEFAULT_TARDY_PENALTIES


def test_env_override(monkeypatch):
    monkeypatch.setenv("TIERWATCH_ENGINE_MAX_POINTS", "200")
    monkeypatch.setenv("TIERWATCH_ENGINE_ESCALATION_RESET_PERIOD", "quarterly")
    config = EngineConfig()
    assert config.max_points == 200
    assert config.escalation_reset_period == "quarterly"


def test_default_tier_table():
    tiers = EngineConfig().tiers()
    assert [t.name for t in tiers] == [
        TierName.GOOD,
        TierName.EDUCATIONAL,
        TierName.COACHING,
        TierName.SEVERE,
        TierName.FINAL,
        TierName.TERMINATION,
    ]
    assert tiers.top.reset_target == 150
    assert tiers.bottom.min_points is None


def test_partial_tier_thresholds_merge_with_defaults():
    config = EngineConfig(
        tier_thresholds={TierName.GOOD: TierThreshold(min_points=130, reset_target=150)}
    )
    tiers = config.tiers()
    assert tiers.top.min_points == 130
    assert tiers.by_name(TierName.COACHING).min_points == 76


def test_inconsistent_tier_thresholds_rejected():
    with pytest.raises(ConfigurationError):
        EngineConfig(
            tier_thresholds={TierName.COACHING: TierThreshold(min_points=130, reset_target=140)}
        )


def test_default_reset_targets_stay_in_band():
    tiers = EngineConfig().tiers()
    for tier in tiers:
        assert tiers.for_points(tier.reset_target) == tier


@pytest.mark.parametrize(
    "name, threshold",
    [
        (TierName.FINAL, TierThreshold(min_points=0, reset_target=50)),
        (TierName.COACHING, TierThreshold(min_points=76, reset_target=110)),
        (TierName.SEVERE, TierThreshold(min_points=51, reset_target=40)),
    ],
)
def test_reset_target_outside_band_rejected(name, threshold):
    with pytest.raises(ConfigurationError, match="outside its own band"):
        EngineConfig(tier_thresholds={name: threshold})


def test_empty_tardy_table_rejected():
    with pytest.raises(ConfigurationError):
        EngineConfig(tardy_penalty_tables={"Tardy (1-5 min)": []})


class TestWithOverrides:
    def test_no_overrides_returns_same_config(self):
        config = EngineConfig()
        assert config.with_overrides({}) is config
        assert config.with_overrides(None) is config

    def test_applies_overrides_on_a_copy(self):
        config = EngineConfig()
        changed = config.with_overrides({"no_show_penalty": 10})
        assert changed.no_show_penalty == 10
        assert config.no_show_penalty == 50

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError, match="bogus"):
            EngineConfig().with_overrides({"bogus": 1})

    def test_invalid_value_rejected(self):
        with pytest.raises(ConfigurationError):
            EngineConfig().with_overrides({"max_points": 0})


def test_unknown_tier_name():
    with pytest.raises(UnknownTierError):
        EngineConfig().tiers().by_name("Platinum")


def test_configure_logging_sets_package_level():
    configure_logging(AppSettings(log_level="debug"))
    assert logging.getLogger("tierwatch").level == logging.DEBUG
