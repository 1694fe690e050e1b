"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from dsc_engine.config import (
    AppConfig,
    CollateralConfig,
    EngineConfig,
    ThresholdsConfig,
    _interpolate_env,
    load_config,
)
from dsc_engine.constants import PRECISION
from dsc_engine.errors import ConfigError
from tests.conftest import SAMPLE_YAML


def _write(tmp_path: Path, content: str) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(content)
    return cfg_file


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        assert _interpolate_env({"a": ["${TOK}", 1]}) == {"a": ["secret", 1]}


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert [c.symbol for c in cfg.collateral] == ["WETH", "WBTC"]
        assert cfg.collateral[1].decimals == 8
        assert cfg.engine.liquidation_bonus == 10
        assert cfg.engine.min_health_factor_wad == PRECISION
        assert cfg.oracle.max_staleness_seconds == 3600
        assert cfg.oracle.pyth.feeds == {"ETH": "aaa", "BTC": "bbb"}
        assert cfg.monitor.thresholds.hf_critical == Decimal("1.1")
        assert cfg.notifications.telegram.chat_id == "999"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TG_TOKEN", "abc:123")
        content = SAMPLE_YAML.replace('bot_token: "tok1"', 'bot_token: "${TG_TOKEN}"')
        cfg = load_config(_write(tmp_path, content))
        assert cfg.notifications.telegram.bot_token == "abc:123"

    def test_defaults_for_optional_sections(self, tmp_path: Path) -> None:
        cfg = load_config(_write(tmp_path, "collateral:\n  - symbol: WETH\n"))
        assert cfg.engine == EngineConfig()
        assert cfg.collateral == (
            CollateralConfig(symbol="WETH", address="WETH", decimals=18, feed="WETH"),
        )
        assert cfg.monitor.thresholds == ThresholdsConfig()


class TestValidation:
    def test_no_collateral_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="At least one collateral"):
            load_config(_write(tmp_path, "collateral: []\n"))

    def test_duplicate_symbol_raises(self, tmp_path: Path) -> None:
        content = "collateral:\n  - {symbol: WETH, address: a}\n  - {symbol: WETH, address: b}\n"
        with pytest.raises(ConfigError, match="Duplicate collateral symbol"):
            load_config(_write(tmp_path, content))

    def test_duplicate_address_raises(self, tmp_path: Path) -> None:
        content = "collateral:\n  - {symbol: A, address: x}\n  - {symbol: B, address: x}\n"
        with pytest.raises(ConfigError, match="Duplicate collateral address"):
            load_config(_write(tmp_path, content))

    def test_threshold_out_of_range(self, tmp_path: Path) -> None:
        content = "engine: {liquidation_threshold: 100}\ncollateral:\n  - {symbol: A}\n"
        with pytest.raises(ConfigError, match="liquidation_threshold"):
            load_config(_write(tmp_path, content))

    def test_non_numeric_health_factor(self, tmp_path: Path) -> None:
        content = "engine: {min_health_factor: lots}\ncollateral:\n  - {symbol: A}\n"
        with pytest.raises(ConfigError, match="min_health_factor"):
            load_config(_write(tmp_path, content))

    def test_critical_above_warning(self, tmp_path: Path) -> None:
        content = (
            "collateral:\n  - {symbol: A}\n"
            "monitor: {thresholds: {hf_warning: 1.2, hf_critical: 1.3}}\n"
        )
        with pytest.raises(ConfigError, match="hf_critical"):
            load_config(_write(tmp_path, content))

    def test_config_error_is_value_error(self) -> None:
        assert issubclass(ConfigError, ValueError)


class TestFrozenConfigs:
    def test_engine_config_immutable(self) -> None:
        e = EngineConfig()
        with pytest.raises(AttributeError):
            e.liquidation_bonus = 50  # type: ignore[misc]
