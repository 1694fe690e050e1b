"""Scenario runner: deploys an in-memory engine and replays scripted steps.

A scenario is a YAML document::

    prices: {ETH: 2000}
    balances:
      alice: {WETH: 10}
    steps:
      - {op: deposit_collateral_and_mint_dsc, user: alice, asset: WETH, collateral: 1, dsc: 1000}
      - {op: set_price, feed: ETH, price: 1800}
      - {op: liquidate, liquidator: bob, user: alice, asset: WETH, debt_to_cover: 500}

Amounts are human-readable and converted to token units with ``Decimal``.
Before each step the runner approves the engine for exactly what the step
pulls, the way a test harness would.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from .config import AppConfig
from .engine import DSCEngine
from .errors import ConfigError, EngineError
from .oracles.staleness import StalenessCheckedOracle
from .oracles.static import StaticPriceOracle
from .registry import CollateralRegistry
from .tokens import DecentralizedStableCoin, Token

logger = logging.getLogger(__name__)

DEPLOYER = "deployer"


@dataclass
class Deployment:
    engine: DSCEngine
    dsc: DecentralizedStableCoin
    tokens: dict[str, Token]  # keyed by symbol
    oracle: StaticPriceOracle


def deploy(config: AppConfig, oracle: StaticPriceOracle | None = None) -> Deployment:
    """Create collateral tokens, the DSC and the engine, then hand the engine
    mint/burn authority over the DSC."""
    oracle = oracle or StaticPriceOracle()
    tokens = {
        c.symbol: Token(c.address, symbol=c.symbol, decimals=c.decimals)
        for c in config.collateral
    }
    registry = CollateralRegistry(
        [c.address for c in config.collateral],
        [c.feed for c in config.collateral],
        decimals=[c.decimals for c in config.collateral],
        symbols=[c.symbol for c in config.collateral],
    )
    dsc = DecentralizedStableCoin(owner=DEPLOYER)
    engine = DSCEngine(
        registry,
        StalenessCheckedOracle(oracle, config.oracle.max_staleness_seconds),
        dsc,
        {token.address: token for token in tokens.values()},
        address=config.engine.address,
        liquidation_threshold=config.engine.liquidation_threshold,
        liquidation_bonus=config.engine.liquidation_bonus,
        min_health_factor=config.engine.min_health_factor_wad,
    )
    dsc.transfer_ownership(DEPLOYER, engine.address)
    return Deployment(engine=engine, dsc=dsc, tokens=tokens, oracle=oracle)


@dataclass(frozen=True)
class Scenario:
    prices: dict[str, Decimal] = field(default_factory=dict)
    balances: dict[str, dict[str, Decimal]] = field(default_factory=dict)
    steps: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class StepResult:
    index: int
    op: str
    ok: bool
    error: str = ""


def load_scenario(path: str | Path) -> Scenario:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return parse_scenario(raw)


def parse_scenario(raw: dict[str, Any]) -> Scenario:
    steps = raw.get("steps", [])
    for i, step in enumerate(steps):
        if not isinstance(step, dict) or "op" not in step:
            raise ConfigError(f"Step {i} has no 'op'")
    return Scenario(
        prices={k: Decimal(str(v)) for k, v in raw.get("prices", {}).items()},
        balances={
            user: {sym: Decimal(str(v)) for sym, v in holdings.items()}
            for user, holdings in raw.get("balances", {}).items()
        },
        steps=tuple(steps),
    )


class ScenarioRunner:
    """Execute a ``Scenario`` against a fresh deployment.

    ``oracle`` may come pre-seeded (e.g. a Pyth snapshot); the scenario's own
    ``prices`` are applied on top of it.
    """

    def __init__(
        self,
        config: AppConfig,
        scenario: Scenario,
        oracle: StaticPriceOracle | None = None,
    ) -> None:
        self._scenario = scenario
        self.deployment = deploy(config, oracle)
        self._ops: dict[str, Callable[[dict[str, Any]], None]] = {
            "deposit_collateral": self._deposit_collateral,
            "redeem_collateral": self._redeem_collateral,
            "mint_dsc": self._mint_dsc,
            "burn_dsc": self._burn_dsc,
            "deposit_collateral_and_mint_dsc": self._deposit_and_mint,
            "redeem_collateral_for_dsc": self._redeem_for_dsc,
            "liquidate": self._liquidate,
            "set_price": self._set_price,
        }

    @property
    def engine(self) -> DSCEngine:
        return self.deployment.engine

    # ------------------------------------------------------------------
    # Unit conversion
    # ------------------------------------------------------------------

    def _token(self, symbol: str) -> Token:
        try:
            return self.deployment.tokens[symbol]
        except KeyError:
            raise ConfigError(f"Unknown collateral symbol '{symbol}'") from None

    @staticmethod
    def _units(amount: Any, decimals: int) -> int:
        return int(Decimal(str(amount)) * 10**decimals)

    def _collateral_units(self, symbol: str, amount: Any) -> int:
        return self._units(amount, self._token(symbol).decimals)

    def _dsc_units(self, amount: Any) -> int:
        return self._units(amount, self.deployment.dsc.decimals)

    def _approve(self, token: Token, owner: str, amount: int) -> None:
        token.approve(owner, self.engine.address, amount)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _deposit_collateral(self, step: dict[str, Any]) -> None:
        token = self._token(step["asset"])
        amount = self._collateral_units(step["asset"], step["amount"])
        self._approve(token, step["user"], amount)
        self.engine.deposit_collateral(step["user"], token.address, amount)

    def _redeem_collateral(self, step: dict[str, Any]) -> None:
        token = self._token(step["asset"])
        amount = self._collateral_units(step["asset"], step["amount"])
        self.engine.redeem_collateral(step["user"], token.address, amount)

    def _mint_dsc(self, step: dict[str, Any]) -> None:
        self.engine.mint_dsc(step["user"], self._dsc_units(step["amount"]))

    def _burn_dsc(self, step: dict[str, Any]) -> None:
        amount = self._dsc_units(step["amount"])
        self._approve(self.deployment.dsc, step["user"], amount)
        self.engine.burn_dsc(step["user"], amount)

    def _deposit_and_mint(self, step: dict[str, Any]) -> None:
        token = self._token(step["asset"])
        collateral = self._collateral_units(step["asset"], step["collateral"])
        self._approve(token, step["user"], collateral)
        self.engine.deposit_collateral_and_mint_dsc(
            step["user"], token.address, collateral, self._dsc_units(step["dsc"])
        )

    def _redeem_for_dsc(self, step: dict[str, Any]) -> None:
        token = self._token(step["asset"])
        dsc_amount = self._dsc_units(step["dsc"])
        self._approve(self.deployment.dsc, step["user"], dsc_amount)
        self.engine.redeem_collateral_for_dsc(
            step["user"],
            token.address,
            self._collateral_units(step["asset"], step["collateral"]),
            dsc_amount,
        )

    def _liquidate(self, step: dict[str, Any]) -> None:
        token = self._token(step["asset"])
        debt = self._dsc_units(step["debt_to_cover"])
        self._approve(self.deployment.dsc, step["liquidator"], debt)
        self.engine.liquidate(step["liquidator"], step["user"], token.address, debt)

    def _set_price(self, step: dict[str, Any]) -> None:
        self.deployment.oracle.set_price(step["feed"], step["price"])

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def setup(self) -> None:
        """Publish initial prices and fund wallets."""
        for feed, price in self._scenario.prices.items():
            self.deployment.oracle.set_price(feed, price)
        for user, holdings in self._scenario.balances.items():
            for symbol, amount in holdings.items():
                self._token(symbol).mint_to(user, self._collateral_units(symbol, amount))

    def run(self) -> list[StepResult]:
        self.setup()
        results: list[StepResult] = []
        for index, step in enumerate(self._scenario.steps):
            op = step["op"]
            handler = self._ops.get(op)
            if handler is None:
                raise ConfigError(f"Step {index}: unknown op '{op}'")
            try:
                handler(step)
            except KeyError as e:
                raise ConfigError(f"Step {index} ({op}) is missing field {e}") from None
            except EngineError as e:
                logger.info("Step %d (%s) failed: %s", index, op, e)
                results.append(StepResult(index, op, ok=False, error=f"{type(e).__name__}: {e}"))
                continue
            results.append(StepResult(index, op, ok=True))
        return results
