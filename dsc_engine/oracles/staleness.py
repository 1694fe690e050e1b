"""Staleness window enforcement for any price oracle."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..errors import StalePrice
from ..interfaces.price_oracle import PriceOracle
from ..models import PriceData

logger = logging.getLogger(__name__)

DEFAULT_MAX_STALENESS_SECONDS = 3 * 60 * 60


class StalenessCheckedOracle:
    """Wrap an oracle and reject answers older than ``max_staleness_seconds``.

    Answers timestamped in the future are rejected as well.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        max_staleness_seconds: int = DEFAULT_MAX_STALENESS_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_staleness_seconds <= 0:
            raise ValueError(
                f"max_staleness_seconds must be positive: {max_staleness_seconds}"
            )
        self._oracle = oracle
        self._max_staleness = max_staleness_seconds
        self._clock = clock

    def latest_price(self, feed: str) -> PriceData:
        data = self._oracle.latest_price(feed)
        now = int(self._clock())
        if data.updated_at > now or now - data.updated_at > self._max_staleness:
            logger.error(
                "Stale price for %s: updated_at=%d now=%d", feed, data.updated_at, now
            )
            raise StalePrice(feed, data.updated_at, now)
        return data
