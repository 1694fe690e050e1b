"""Unit tests for the collateral registry."""
from __future__ import annotations

import pytest

from dsc_engine.errors import RegistryError, UnknownAsset
from dsc_engine.models import CollateralAsset
from dsc_engine.registry import CollateralRegistry


class TestConstruction:
    def test_reverts_if_token_length_doesnt_match_price_feeds(self) -> None:
        with pytest.raises(RegistryError, match="same length"):
            CollateralRegistry(["0xWBTC", "0xWETH", "0xWETH"], ["ETH", "BTC"])

    def test_rejects_empty(self) -> None:
        with pytest.raises(RegistryError, match="at least one"):
            CollateralRegistry([], [])

    def test_rejects_duplicates(self) -> None:
        with pytest.raises(RegistryError, match="duplicate"):
            CollateralRegistry(["0xWETH", "0xWETH"], ["ETH", "ETH2"])

    def test_rejects_decimals_mismatch(self) -> None:
        with pytest.raises(RegistryError, match="decimals"):
            CollateralRegistry(["0xWETH"], ["ETH"], decimals=[18, 8])

    def test_from_assets(self) -> None:
        registry = CollateralRegistry.from_assets(
            [CollateralAsset(address="0xWBTC", feed="BTC", symbol="WBTC", decimals=8)]
        )
        assert registry.get("0xWBTC").symbol == "WBTC"
        assert registry.decimals_of("0xWBTC") == 8


class TestLookups:
    def test_list_assets_keeps_insertion_order(self) -> None:
        registry = CollateralRegistry(["0xB", "0xA", "0xC"], ["b", "a", "c"])
        assert registry.list_assets() == ("0xB", "0xA", "0xC")
        assert [a.address for a in registry] == ["0xB", "0xA", "0xC"]
        assert len(registry) == 3

    def test_price_feed_of(self) -> None:
        registry = CollateralRegistry(["0xWETH", "0xWBTC"], ["ETH", "BTC"])
        assert registry.price_feed_of("0xWBTC") == "BTC"

    def test_unknown_asset(self) -> None:
        registry = CollateralRegistry(["0xWETH"], ["ETH"])
        with pytest.raises(UnknownAsset):
            registry.price_feed_of("0xDOGE")
        assert "0xDOGE" not in registry
        assert "0xWETH" in registry

    def test_defaults(self) -> None:
        registry = CollateralRegistry(["0xWETH"], ["ETH"])
        asset = registry.get("0xWETH")
        assert asset.decimals == 18
        assert asset.symbol == "0xWETH"
