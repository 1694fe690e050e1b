"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import (
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    PRECISION,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    liquidation_threshold: int = LIQUIDATION_THRESHOLD
    liquidation_bonus: int = LIQUIDATION_BONUS
    min_health_factor: Decimal = Decimal("1.0")
    address: str = "DSCEngine"

    @property
    def min_health_factor_wad(self) -> int:
        """Minimum health factor in 18-decimal fixed point."""
        return int(self.min_health_factor * PRECISION)


@dataclass(frozen=True)
class CollateralConfig:
    symbol: str = ""
    address: str = ""
    decimals: int = 18
    feed: str = ""


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class OracleConfig:
    max_staleness_seconds: int = 3 * 60 * 60
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class ThresholdsConfig:
    hf_warning: Decimal = Decimal("1.5")
    hf_critical: Decimal = Decimal("1.1")


@dataclass(frozen=True)
class MonitorConfig:
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    collateral: tuple[CollateralConfig, ...] = ()
    oracle: OracleConfig = field(default_factory=OracleConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _decimal(raw: Any, name: str) -> Decimal:
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        liquidation_threshold=int(raw.get("liquidation_threshold", LIQUIDATION_THRESHOLD)),
        liquidation_bonus=int(raw.get("liquidation_bonus", LIQUIDATION_BONUS)),
        min_health_factor=_decimal(raw.get("min_health_factor", "1.0"), "min_health_factor"),
        address=str(raw.get("address", "DSCEngine")),
    )


def _build_collateral(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    assets: list[CollateralConfig] = []
    for c in raw:
        symbol = str(c.get("symbol", ""))
        assets.append(
            CollateralConfig(
                symbol=symbol,
                address=str(c.get("address", symbol)),
                decimals=int(c.get("decimals", 18)),
                feed=str(c.get("feed", symbol)),
            )
        )
    return tuple(assets)


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    pyth_raw = raw.get("pyth", {})
    return OracleConfig(
        max_staleness_seconds=int(raw.get("max_staleness_seconds", 3 * 60 * 60)),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    thresholds = raw.get("thresholds", {})
    return MonitorConfig(
        thresholds=ThresholdsConfig(
            hf_warning=_decimal(thresholds.get("hf_warning", "1.5"), "hf_warning"),
            hf_critical=_decimal(thresholds.get("hf_critical", "1.1"), "hf_critical"),
        )
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            bot_token=tg.get("bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        )
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=_build_engine(raw.get("engine", {})),
        collateral=_build_collateral(raw.get("collateral", [])),
        oracle=_build_oracle(raw.get("oracle", {})),
        monitor=_build_monitor(raw.get("monitor", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise ConfigError on invalid configuration."""
    engine = cfg.engine
    if not 0 < engine.liquidation_threshold < LIQUIDATION_PRECISION:
        raise ConfigError(
            f"liquidation_threshold must be between 1 and {LIQUIDATION_PRECISION - 1}"
        )
    if not 0 <= engine.liquidation_bonus < LIQUIDATION_PRECISION:
        raise ConfigError(
            f"liquidation_bonus must be between 0 and {LIQUIDATION_PRECISION - 1}"
        )
    if engine.min_health_factor <= 0:
        raise ConfigError("min_health_factor must be positive")

    if not cfg.collateral:
        raise ConfigError("At least one collateral asset must be configured")

    symbols: set[str] = set()
    addresses: set[str] = set()
    for asset in cfg.collateral:
        if not asset.symbol:
            raise ConfigError("Collateral entry has no symbol")
        if asset.symbol in symbols:
            raise ConfigError(f"Duplicate collateral symbol '{asset.symbol}'")
        if asset.address in addresses:
            raise ConfigError(f"Duplicate collateral address '{asset.address}'")
        if asset.decimals < 0:
            raise ConfigError(f"Collateral '{asset.symbol}' has negative decimals")
        symbols.add(asset.symbol)
        addresses.add(asset.address)

    if cfg.oracle.max_staleness_seconds <= 0:
        raise ConfigError("max_staleness_seconds must be positive")

    thresholds = cfg.monitor.thresholds
    if thresholds.hf_critical > thresholds.hf_warning:
        raise ConfigError("hf_critical must not exceed hf_warning")
