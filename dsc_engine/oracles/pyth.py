"""Pyth Network price oracle service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..models import PriceData
from .static import StaticPriceOracle

logger = logging.getLogger(__name__)


def parse_price_item(item: dict) -> PriceData:
    """Convert one Hermes ``parsed`` entry into integer ``PriceData``."""
    price_data = item.get("price", {})
    answer = int(price_data.get("price", 0))
    expo = int(price_data.get("expo", 0))
    publish_time = int(price_data.get("publish_time", 0))

    if expo > 0:
        return PriceData(answer=answer * 10**expo, decimals=0, updated_at=publish_time)
    return PriceData(answer=answer, decimals=-expo, updated_at=publish_time)


class PythOracle:
    """Fetch latest prices from the Pyth Hermes API."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    async def fetch_prices(self, feeds: list[str] | None = None) -> dict[str, PriceData]:
        """Fetch current prices keyed by feed name.

        Args:
            feeds: Optional list of feed names to fetch. If None, fetches all
                   configured feeds.
        """
        prices: dict[str, PriceData] = {}

        wanted = self.price_feeds
        if feeds is not None:
            wanted = {k: v for k, v in self.price_feeds.items() if k in feeds}

        feed_ids = sorted(set(wanted.values()))
        if not feed_ids:
            return prices

        query_params = "&".join(f"ids[]={fid}" for fid in feed_ids)
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()

                    # Hermes returns ids without the 0x prefix
                    id_to_feeds: dict[str, list[str]] = {}
                    for name, feed_id in wanted.items():
                        id_to_feeds.setdefault(feed_id.lower().removeprefix("0x"), []).append(name)

                    for item in data.get("parsed", []):
                        feed_id = str(item.get("id", "")).lower().removeprefix("0x")
                        for name in id_to_feeds.get(feed_id, []):
                            prices[name] = parse_price_item(item)

                    for name, price in sorted(prices.items()):
                        logger.info(
                            "  %s: %s (10^-%d) at %d",
                            name, price.answer, price.decimals, price.updated_at,
                        )

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices

    async def snapshot(self, feeds: list[str] | None = None) -> StaticPriceOracle:
        """Fetch prices and freeze them into a synchronous oracle for the engine."""
        return StaticPriceOracle(await self.fetch_prices(feeds))
