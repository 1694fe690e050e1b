"""Position-accounting and liquidation engine.

Users lock approved collateral, mint DSC against it and must keep their
health factor at or above ``min_health_factor`` whenever they owe debt.
Third parties may liquidate positions that fall below it, repaying debt in
exchange for the equivalent collateral plus a bonus.

Every public operation runs under one engine-wide lock inside a transaction:
ledger changes are applied first, invariants are checked against the new
state, and only then are the queued token movements executed. Any failure
restores the touched positions and compensates token movements already made.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Optional

from .constants import (
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MAX_HEALTH_FACTOR,
    MIN_HEALTH_FACTOR,
    PRECISION,
)
from .errors import (
    ConfigError,
    EngineError,
    HealthFactorNotImproved,
    HealthFactorOk,
    InsufficientCollateralToLiquidate,
    InsufficientHealthFactor,
    MintFailed,
    MustBeMoreThanZero,
    TokenError,
    TransferFailed,
    UnsupportedCollateral,
)
from .interfaces.price_oracle import PriceOracle
from .interfaces.token import CollateralToken, DebtToken
from .ledger import PositionLedger
from .models import (
    AccountInformation,
    CollateralDeposited,
    CollateralRedeemed,
    DscBurned,
    DscMinted,
    Liquidated,
    PositionSnapshot,
)
from .registry import CollateralRegistry
from .valuation import Valuator, calculate_health_factor

logger = logging.getLogger(__name__)

Action = Callable[[], None]


class _Transaction:
    """Queued token effects and events of one engine operation."""

    def __init__(self) -> None:
        self._inbound: list[tuple[Action, Optional[Action]]] = []
        self._outbound: list[Action] = []
        self.events: list[Any] = []

    def pull(self, apply: Action, undo: Optional[Action] = None) -> None:
        """Queue a movement of value into the engine."""
        self._inbound.append((apply, undo))

    def push(self, apply: Action) -> None:
        """Queue a movement of value out of engine custody."""
        self._outbound.append(apply)

    def emit(self, event: Any) -> None:
        self.events.append(event)

    def commit(self) -> None:
        # Inbound movements run first; only they are compensated on failure.
        applied: list[Action] = []
        try:
            for apply, undo in self._inbound:
                apply()
                if undo is not None:
                    applied.append(undo)
            for apply in self._outbound:
                apply()
        except Exception:
            for undo in reversed(applied):
                try:
                    undo()
                except Exception:
                    logger.exception("Compensating token movement failed")
            raise


class DSCEngine:
    """Over-collateralized DSC issuance engine."""

    def __init__(
        self,
        registry: CollateralRegistry,
        oracle: PriceOracle,
        dsc: DebtToken,
        collateral_tokens: Mapping[str, CollateralToken],
        address: str = "DSCEngine",
        liquidation_threshold: int = LIQUIDATION_THRESHOLD,
        liquidation_bonus: int = LIQUIDATION_BONUS,
        min_health_factor: int = MIN_HEALTH_FACTOR,
    ) -> None:
        if not 0 < liquidation_threshold < LIQUIDATION_PRECISION:
            raise ConfigError(
                f"liquidation_threshold must be in (0, {LIQUIDATION_PRECISION}), "
                f"got {liquidation_threshold}"
            )
        if not 0 <= liquidation_bonus < LIQUIDATION_PRECISION:
            raise ConfigError(
                f"liquidation_bonus must be in [0, {LIQUIDATION_PRECISION}), "
                f"got {liquidation_bonus}"
            )
        if min_health_factor <= 0:
            raise ConfigError("min_health_factor must be positive")
        missing = [a for a in registry.list_assets() if a not in collateral_tokens]
        if missing:
            raise ConfigError(f"no token handle for collateral {', '.join(missing)}")

        self._registry = registry
        self._valuator = Valuator(registry, oracle)
        self._dsc = dsc
        self._tokens = dict(collateral_tokens)
        self._address = address
        self._liquidation_threshold = liquidation_threshold
        self._liquidation_bonus = liquidation_bonus
        self._min_health_factor = min_health_factor

        self._ledger = PositionLedger()
        self._lock = threading.RLock()
        self.events: list[Any] = []

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, op: str, *users: str) -> Iterator[_Transaction]:
        with self._lock:
            checkpoint = self._ledger.checkpoint(*users)
            txn = _Transaction()
            try:
                yield txn
                txn.commit()
            except EngineError as e:
                self._ledger.restore(checkpoint)
                logger.warning("%s rejected: %s", op, e)
                raise
            except Exception:
                self._ledger.restore(checkpoint)
                raise
            self.events.extend(txn.events)
            for event in txn.events:
                logger.info("%s: %s", op, event)

    def _collateral_token(self, asset: str) -> CollateralToken:
        if asset not in self._registry:
            raise UnsupportedCollateral(asset)
        return self._tokens[asset]

    @staticmethod
    def _require_positive(amount: int) -> None:
        if amount <= 0:
            raise MustBeMoreThanZero(amount)

    def _pull_from(self, txn: _Transaction, token: CollateralToken, owner: str, amount: int) -> None:
        spent_allowance: list[int] = []

        def apply() -> None:
            allowance = token.allowance(owner, self._address)
            self._checked_transfer(
                token, owner, self._address, amount,
                lambda: token.transfer_from(self._address, owner, self._address, amount),
            )
            spent_allowance.append(allowance)

        def undo() -> None:
            token.transfer(self._address, owner, amount)
            # hand back the approval the pull consumed
            token.approve(owner, self._address, spent_allowance[0])

        txn.pull(apply, undo)

    def _send_to(self, txn: _Transaction, token: CollateralToken, to: str, amount: int) -> None:
        txn.push(
            lambda: self._checked_transfer(
                token, self._address, to, amount,
                lambda: token.transfer(self._address, to, amount),
            )
        )

    @staticmethod
    def _checked_transfer(
        token: CollateralToken, source: str, destination: str, amount: int,
        call: Callable[[], bool],
    ) -> None:
        try:
            ok = call()
        except TokenError as e:
            raise TransferFailed(token.address, source, destination, amount) from e
        if not ok:
            raise TransferFailed(token.address, source, destination, amount)

    # ------------------------------------------------------------------
    # Ledger mutations (no invariant checks)
    # ------------------------------------------------------------------

    def _deposit(self, txn: _Transaction, user: str, asset: str, amount: int) -> None:
        token = self._collateral_token(asset)
        self._ledger.credit_collateral(user, asset, amount)
        txn.emit(CollateralDeposited(user, asset, amount))
        self._pull_from(txn, token, user, amount)

    def _redeem(
        self, txn: _Transaction, asset: str, amount: int, from_user: str, to_user: str
    ) -> None:
        token = self._collateral_token(asset)
        self._ledger.debit_collateral(from_user, asset, amount)
        txn.emit(CollateralRedeemed(from_user, to_user, asset, amount))
        self._send_to(txn, token, to_user, amount)

    def _mint(self, txn: _Transaction, user: str, amount: int) -> None:
        self._ledger.add_debt(user, amount)
        txn.emit(DscMinted(user, amount))

        def apply() -> None:
            try:
                minted = self._dsc.mint(self._address, user, amount)
            except TokenError as e:
                raise MintFailed(user, amount) from e
            if not minted:
                raise MintFailed(user, amount)

        txn.push(apply)

    def _burn(self, txn: _Transaction, amount: int, on_behalf_of: str, payer: str) -> None:
        self._ledger.reduce_debt(on_behalf_of, amount)
        txn.emit(DscBurned(on_behalf_of, payer, amount))
        self._pull_from(txn, self._dsc, payer, amount)

        def burn() -> None:
            try:
                self._dsc.burn(self._address, amount)
            except TokenError as e:
                raise TransferFailed(self._dsc.address, self._address, "burn", amount) from e

        def unburn() -> None:
            self._dsc.mint(self._address, self._address, amount)

        txn.pull(burn, unburn)

    def _assert_healthy(self, user: str) -> None:
        health_factor = self._health_factor(user)
        if health_factor < self._min_health_factor:
            raise InsufficientHealthFactor(health_factor, user)

    # ------------------------------------------------------------------
    # Position operations
    # ------------------------------------------------------------------

    def deposit_collateral(self, user: str, asset: str, amount: int) -> None:
        """Move ``amount`` of ``asset`` from ``user`` into engine custody."""
        with self._transaction("deposit_collateral", user) as txn:
            self._require_positive(amount)
            self._deposit(txn, user, asset, amount)

    def redeem_collateral(self, user: str, asset: str, amount: int) -> None:
        """Return collateral to ``user``; rejected if it breaks their health factor."""
        with self._transaction("redeem_collateral", user) as txn:
            self._require_positive(amount)
            self._collateral_token(asset)
            self._redeem(txn, asset, amount, user, user)
            self._assert_healthy(user)

    def mint_dsc(self, user: str, amount: int) -> None:
        with self._transaction("mint_dsc", user) as txn:
            self._require_positive(amount)
            self._mint(txn, user, amount)
            self._assert_healthy(user)

    def burn_dsc(self, user: str, amount: int) -> None:
        """Repay debt. ``user`` must have approved the engine for ``amount`` DSC."""
        with self._transaction("burn_dsc", user) as txn:
            self._require_positive(amount)
            self._burn(txn, amount, user, user)

    def deposit_collateral_and_mint_dsc(
        self, user: str, asset: str, collateral_amount: int, dsc_amount: int
    ) -> None:
        with self._transaction("deposit_collateral_and_mint_dsc", user) as txn:
            self._require_positive(collateral_amount)
            self._require_positive(dsc_amount)
            self._deposit(txn, user, asset, collateral_amount)
            self._mint(txn, user, dsc_amount)
            self._assert_healthy(user)

    def redeem_collateral_for_dsc(
        self, user: str, asset: str, collateral_amount: int, dsc_to_burn: int
    ) -> None:
        """Burn DSC then redeem collateral, checking health once at the end."""
        with self._transaction("redeem_collateral_for_dsc", user) as txn:
            self._require_positive(collateral_amount)
            self._require_positive(dsc_to_burn)
            self._collateral_token(asset)
            self._burn(txn, dsc_to_burn, user, user)
            self._redeem(txn, asset, collateral_amount, user, user)
            self._assert_healthy(user)

    # ------------------------------------------------------------------
    # Liquidation
    # ------------------------------------------------------------------

    def liquidate(self, liquidator: str, user: str, asset: str, debt_to_cover: int) -> None:
        """Repay ``debt_to_cover`` of ``user``'s debt and seize collateral.

        The liquidator receives the ``asset`` amount worth ``debt_to_cover`` at
        the current price plus ``liquidation_bonus`` percent. The liquidator
        supplies the DSC (approved to the engine beforehand).

        Raises:
            HealthFactorOk: ``user`` is not below the minimum health factor.
            InsufficientCollateralToLiquidate: the bonus-inclusive amount
                exceeds what ``user`` holds of ``asset``.
            HealthFactorNotImproved: ``user`` would not end up strictly
                healthier than before.
            InsufficientHealthFactor: the liquidator's own position is unhealthy.
        """
        with self._transaction("liquidate", liquidator, user) as txn:
            starting_health_factor = self._health_factor(user)
            if starting_health_factor >= self._min_health_factor:
                raise HealthFactorOk(user, starting_health_factor)

            self._require_positive(debt_to_cover)
            self._collateral_token(asset)

            token_amount = self._valuator.token_amount_from_usd(asset, debt_to_cover)
            bonus = token_amount * self._liquidation_bonus // LIQUIDATION_PRECISION
            collateral_to_seize = token_amount + bonus

            available = self._ledger.collateral_of(user, asset)
            if collateral_to_seize > available:
                raise InsufficientCollateralToLiquidate(
                    user, asset, collateral_to_seize, available
                )

            self._redeem(txn, asset, collateral_to_seize, user, liquidator)
            self._burn(txn, debt_to_cover, user, liquidator)

            ending_health_factor = self._health_factor(user)
            if ending_health_factor <= starting_health_factor:
                raise HealthFactorNotImproved(
                    user, starting_health_factor, ending_health_factor
                )
            self._assert_healthy(liquidator)

            txn.emit(
                Liquidated(
                    liquidator=liquidator,
                    user=user,
                    asset=asset,
                    debt_covered=debt_to_cover,
                    collateral_seized=collateral_to_seize,
                    health_factor_before=starting_health_factor,
                    health_factor_after=ending_health_factor,
                )
            )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _health_factor(self, user: str) -> int:
        debt = self._ledger.debt_of(user)
        if debt == 0:
            return MAX_HEALTH_FACTOR
        collateral_value = self._valuator.total_collateral_value(
            self._ledger.position(user).collateral
        )
        return calculate_health_factor(
            debt, collateral_value, self._liquidation_threshold
        )

    def health_factor(self, user: str) -> int:
        with self._lock:
            return self._health_factor(user)

    def is_liquidatable(self, user: str) -> bool:
        return self.health_factor(user) < self._min_health_factor

    def calculate_health_factor(
        self, total_dsc_minted: int, collateral_value_in_usd: int
    ) -> int:
        return calculate_health_factor(
            total_dsc_minted, collateral_value_in_usd, self._liquidation_threshold
        )

    def get_account_information(self, user: str) -> AccountInformation:
        with self._lock:
            return AccountInformation(
                total_dsc_minted=self._ledger.debt_of(user),
                collateral_value_in_usd=self._valuator.total_collateral_value(
                    self._ledger.position(user).collateral
                ),
            )

    def get_account_collateral_value(self, user: str) -> int:
        return self.get_account_information(user).collateral_value_in_usd

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        if asset not in self._registry:
            raise UnsupportedCollateral(asset)
        with self._lock:
            return self._ledger.collateral_of(user, asset)

    def get_usd_value(self, asset: str, amount: int) -> int:
        if asset not in self._registry:
            raise UnsupportedCollateral(asset)
        return self._valuator.usd_value(asset, amount)

    def get_token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        if asset not in self._registry:
            raise UnsupportedCollateral(asset)
        return self._valuator.token_amount_from_usd(asset, usd_amount)

    def position(self, user: str) -> PositionSnapshot:
        with self._lock:
            return self._ledger.position(user)

    def users(self) -> tuple[str, ...]:
        with self._lock:
            return self._ledger.users()

    def get_collateral_tokens(self) -> tuple[str, ...]:
        return self._registry.list_assets()

    def get_collateral_token_price_feed(self, asset: str) -> str:
        return self._registry.price_feed_of(asset)

    @property
    def registry(self) -> CollateralRegistry:
        return self._registry

    @property
    def dsc(self) -> DebtToken:
        return self._dsc

    @property
    def address(self) -> str:
        return self._address

    def get_precision(self) -> int:
        return PRECISION

    def get_liquidation_threshold(self) -> int:
        return self._liquidation_threshold

    def get_liquidation_bonus(self) -> int:
        return self._liquidation_bonus

    def get_min_health_factor(self) -> int:
        return self._min_health_factor
