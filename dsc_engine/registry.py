"""Collateral registry: approved assets and their price feeds."""
from __future__ import annotations

from collections.abc import Iterator, Sequence

from .errors import RegistryError, UnknownAsset
from .models import CollateralAsset


class CollateralRegistry:
    """Static, ordered mapping of collateral asset to price feed.

    Populated once at construction; there is no way to add or remove assets
    afterwards.
    """

    def __init__(
        self,
        token_addresses: Sequence[str],
        price_feeds: Sequence[str],
        decimals: Sequence[int] | None = None,
        symbols: Sequence[str] | None = None,
    ) -> None:
        if len(token_addresses) != len(price_feeds):
            raise RegistryError(
                f"token addresses and price feeds must be the same length "
                f"({len(token_addresses)} != {len(price_feeds)})"
            )
        if decimals is not None and len(decimals) != len(token_addresses):
            raise RegistryError("decimals must match token addresses in length")
        if symbols is not None and len(symbols) != len(token_addresses):
            raise RegistryError("symbols must match token addresses in length")
        if not token_addresses:
            raise RegistryError("at least one collateral asset is required")

        assets: dict[str, CollateralAsset] = {}
        for i, address in enumerate(token_addresses):
            if address in assets:
                raise RegistryError(f"duplicate collateral asset {address!r}")
            assets[address] = CollateralAsset(
                address=address,
                feed=price_feeds[i],
                symbol=symbols[i] if symbols is not None else address,
                decimals=int(decimals[i]) if decimals is not None else 18,
            )
        self._assets = assets

    @classmethod
    def from_assets(cls, assets: Sequence[CollateralAsset]) -> CollateralRegistry:
        return cls(
            [a.address for a in assets],
            [a.feed for a in assets],
            decimals=[a.decimals for a in assets],
            symbols=[a.symbol for a in assets],
        )

    def list_assets(self) -> tuple[str, ...]:
        """Asset identifiers in registration order."""
        return tuple(self._assets)

    def price_feed_of(self, asset: str) -> str:
        return self.get(asset).feed

    def decimals_of(self, asset: str) -> int:
        return self.get(asset).decimals

    def get(self, asset: str) -> CollateralAsset:
        try:
            return self._assets[asset]
        except KeyError:
            raise UnknownAsset(asset) from None

    def __contains__(self, asset: object) -> bool:
        return asset in self._assets

    def __iter__(self) -> Iterator[CollateralAsset]:
        return iter(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)
