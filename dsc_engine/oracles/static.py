"""In-memory price feeds with settable answers."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal

from ..errors import UnknownFeed
from ..models import PriceData

logger = logging.getLogger(__name__)

DEFAULT_FEED_DECIMALS = 8


class StaticPriceOracle:
    """Deterministic oracle backed by a dict of feed -> ``PriceData``.

    ``clock`` supplies the ``updated_at`` timestamp for new answers.
    """

    def __init__(
        self,
        prices: Mapping[str, PriceData] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._prices: dict[str, PriceData] = dict(prices or {})
        self._clock = clock

    def latest_price(self, feed: str) -> PriceData:
        try:
            return self._prices[feed]
        except KeyError:
            raise UnknownFeed(feed) from None

    def update_answer(
        self, feed: str, answer: int, decimals: int = DEFAULT_FEED_DECIMALS
    ) -> None:
        """Set the raw feed answer, e.g. ``2000_00000000`` for $2000 at 8 decimals."""
        self._prices[feed] = PriceData(
            answer=answer, decimals=decimals, updated_at=int(self._clock())
        )
        logger.debug("Feed %s updated to %s (decimals %d)", feed, answer, decimals)

    def set_price(
        self, feed: str, usd: Decimal | int | str, decimals: int = DEFAULT_FEED_DECIMALS
    ) -> None:
        """Set a human-readable USD price, e.g. ``set_price("ETH", "1999.5")``."""
        answer = int(Decimal(str(usd)) * 10**decimals)
        self.update_answer(feed, answer, decimals)

    def feeds(self) -> tuple[str, ...]:
        return tuple(self._prices)
