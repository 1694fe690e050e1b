"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from dsc_engine.config import (
    AppConfig,
    CollateralConfig,
    EngineConfig,
    MonitorConfig,
    NotificationsConfig,
    OracleConfig,
    PythConfig,
    TelegramConfig,
    ThresholdsConfig,
)
from dsc_engine.engine import DSCEngine
from dsc_engine.oracles.static import StaticPriceOracle
from dsc_engine.registry import CollateralRegistry
from dsc_engine.tokens import DecentralizedStableCoin, Token

NOW = 1_700_000_000

ETH_USD_PRICE = 2000 * 10**8
BTC_USD_PRICE = 1000 * 10**8

COLLATERAL_AMOUNT = 10 * 10**18
AMOUNT_TO_MINT = 100 * 10**18
STARTING_BALANCE = 10 * 10**18

USER = "user"
LIQUIDATOR = "liquidator"
ENGINE = "DSCEngine"


def ether(amount: int | str) -> int:
    return int(Decimal(str(amount)) * 10**18)


# ---------------------------------------------------------------------------
# Deployment fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def oracle() -> StaticPriceOracle:
    o = StaticPriceOracle(clock=lambda: NOW)
    o.update_answer("ETH", ETH_USD_PRICE, 8)
    o.update_answer("BTC", BTC_USD_PRICE, 8)
    return o


@pytest.fixture()
def weth() -> Token:
    token = Token("0xWETH", symbol="WETH", decimals=18)
    token.mint_to(USER, STARTING_BALANCE)
    return token


@pytest.fixture()
def wbtc() -> Token:
    token = Token("0xWBTC", symbol="WBTC", decimals=8)
    token.mint_to(USER, 10 * 10**8)
    return token


@pytest.fixture()
def registry(weth: Token, wbtc: Token) -> CollateralRegistry:
    return CollateralRegistry(
        [weth.address, wbtc.address],
        ["ETH", "BTC"],
        decimals=[18, 8],
        symbols=["WETH", "WBTC"],
    )


@pytest.fixture()
def dsc() -> DecentralizedStableCoin:
    return DecentralizedStableCoin(owner="deployer")


@pytest.fixture()
def dsce(
    registry: CollateralRegistry,
    oracle: StaticPriceOracle,
    dsc: DecentralizedStableCoin,
    weth: Token,
    wbtc: Token,
) -> DSCEngine:
    engine = DSCEngine(
        registry, oracle, dsc, {weth.address: weth, wbtc.address: wbtc}, address=ENGINE
    )
    dsc.transfer_ownership("deployer", engine.address)
    return engine


@pytest.fixture()
def dsce_deposited(dsce: DSCEngine, weth: Token) -> DSCEngine:
    weth.approve(USER, ENGINE, COLLATERAL_AMOUNT)
    dsce.deposit_collateral(USER, weth.address, COLLATERAL_AMOUNT)
    return dsce


@pytest.fixture()
def dsce_minted(dsce: DSCEngine, weth: Token) -> DSCEngine:
    weth.approve(USER, ENGINE, COLLATERAL_AMOUNT)
    dsce.deposit_collateral_and_mint_dsc(
        USER, weth.address, COLLATERAL_AMOUNT, AMOUNT_TO_MINT
    )
    return dsce


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        engine=EngineConfig(),
        collateral=(
            CollateralConfig(symbol="WETH", address="0xWETH", decimals=18, feed="ETH"),
            CollateralConfig(symbol="WBTC", address="0xWBTC", decimals=8, feed="BTC"),
        ),
        oracle=OracleConfig(
            max_staleness_seconds=10800,
            pyth=PythConfig(
                hermes_url="https://hermes.example.com",
                feeds={"ETH": "aaa111", "BTC": "bbb222"},
            ),
        ),
        monitor=MonitorConfig(
            thresholds=ThresholdsConfig(
                hf_warning=Decimal("1.5"), hf_critical=Decimal("1.1")
            )
        ),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(enabled=True, bot_token="tok", chat_id="999")
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    engine:
      liquidation_threshold: 50
      liquidation_bonus: 10
      min_health_factor: 1.0
    collateral:
      - symbol: WETH
        address: "0xWETH"
        decimals: 18
        feed: ETH
      - symbol: WBTC
        address: "0xWBTC"
        decimals: 8
        feed: BTC
    oracle:
      max_staleness_seconds: 3600
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {ETH: "aaa", BTC: "bbb"}
    monitor:
      thresholds:
        hf_warning: 1.5
        hf_critical: 1.1
    notifications:
      telegram:
        enabled: true
        bot_token: "tok1"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
