"""Valuation and health-factor math.

All values are integers. Prices and token amounts are first rescaled to the
18-decimal internal precision, so an asset with 8 decimals priced by a feed
with 8 decimals values the same as one with 18 and 18.

    usd_value       = price_18 * amount_18 / PRECISION
    adjusted        = total_collateral_usd * threshold / LIQUIDATION_PRECISION
    health_factor   = adjusted * PRECISION / debt

A position without debt has the ``MAX_HEALTH_FACTOR`` sentinel.
"""
from __future__ import annotations

import logging

from .constants import (
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MAX_HEALTH_FACTOR,
    PRECISION,
    PRECISION_DECIMALS,
)
from .errors import StaleOrInvalidPrice
from .interfaces.price_oracle import PriceOracle
from .registry import CollateralRegistry

logger = logging.getLogger(__name__)


def scale_decimals(value: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale ``value`` between decimal precisions, flooring on reduction."""
    if from_decimals == to_decimals:
        return value
    if from_decimals < to_decimals:
        return value * 10 ** (to_decimals - from_decimals)
    return value // 10 ** (from_decimals - to_decimals)


def calculate_health_factor(
    total_dsc_minted: int,
    collateral_value_in_usd: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
) -> int:
    if total_dsc_minted == 0:
        return MAX_HEALTH_FACTOR
    adjusted = collateral_value_in_usd * liquidation_threshold // LIQUIDATION_PRECISION
    return adjusted * PRECISION // total_dsc_minted


class Valuator:
    """Prices collateral through the injected oracle.

    Nothing is cached: every call reads the oracle again.
    """

    def __init__(self, registry: CollateralRegistry, oracle: PriceOracle) -> None:
        self._registry = registry
        self._oracle = oracle

    def normalized_price(self, asset: str) -> int:
        """Price of one whole unit of ``asset`` in 18-decimal USD."""
        feed = self._registry.price_feed_of(asset)
        data = self._oracle.latest_price(feed)
        if data.answer <= 0:
            logger.error("Feed %s returned invalid price %s", feed, data.answer)
            raise StaleOrInvalidPrice(feed, data.answer)
        return scale_decimals(data.answer, data.decimals, PRECISION_DECIMALS)

    def usd_value(self, asset: str, amount: int) -> int:
        price = self.normalized_price(asset)
        decimals = self._registry.decimals_of(asset)
        return price * scale_decimals(amount, decimals, PRECISION_DECIMALS) // PRECISION

    def token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        """Amount of ``asset`` worth ``usd_amount``, rounded down."""
        price = self.normalized_price(asset)
        decimals = self._registry.decimals_of(asset)
        amount_18 = usd_amount * PRECISION // price
        return scale_decimals(amount_18, PRECISION_DECIMALS, decimals)

    def total_collateral_value(self, collateral: dict[str, int]) -> int:
        total = 0
        for asset in self._registry.list_assets():
            total += self.usd_value(asset, collateral.get(asset, 0))
        return total
