"""Price oracle protocol: price feed abstraction."""
from typing import Protocol

from ..models import PriceData


class PriceOracle(Protocol):
    """Abstract interface for reading the latest USD price of a feed."""

    def latest_price(self, feed: str) -> PriceData: ...
