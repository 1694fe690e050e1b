"""Data models: all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CollateralAsset:
    """Approved collateral token and the price feed that values it."""

    address: str
    feed: str
    symbol: str = ""
    decimals: int = 18


@dataclass(frozen=True)
class PriceData:
    """Latest answer of a price feed: ``answer / 10**decimals`` USD."""

    answer: int
    decimals: int
    updated_at: int = 0


@dataclass(frozen=True)
class PositionSnapshot:
    """Point-in-time copy of one user's position."""

    user: str
    collateral: dict[str, int] = field(default_factory=dict)
    debt: int = 0


@dataclass(frozen=True)
class AccountInformation:
    total_dsc_minted: int
    collateral_value_in_usd: int


@dataclass(frozen=True)
class CollateralDetail:
    """Single collateral holding within a position report."""

    asset: str
    symbol: str
    amount: int
    usd_value: int


@dataclass(frozen=True)
class PositionReport:
    """Valued position as seen by the liquidation monitor."""

    user: str
    collateral_value: int
    debt: int
    health_factor: int
    status: str = ""
    collateral_assets: tuple[CollateralDetail, ...] = ()


# ---------------------------------------------------------------------------
# Engine events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollateralDeposited:
    user: str
    asset: str
    amount: int


@dataclass(frozen=True)
class CollateralRedeemed:
    redeemed_from: str
    redeemed_to: str
    asset: str
    amount: int


@dataclass(frozen=True)
class DscMinted:
    user: str
    amount: int


@dataclass(frozen=True)
class DscBurned:
    on_behalf_of: str
    payer: str
    amount: int


@dataclass(frozen=True)
class Liquidated:
    liquidator: str
    user: str
    asset: str
    debt_covered: int
    collateral_seized: int
    health_factor_before: int
    health_factor_after: int
