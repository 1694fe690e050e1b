"""Position ledger: per-user collateral balances and minted debt."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .errors import BurnAmountExceedsMinted, InsufficientCollateral
from .models import PositionSnapshot


@dataclass
class _Position:
    collateral: dict[str, int] = field(default_factory=dict)
    debt: int = 0


# user -> position copy, None when the user had no entry
Checkpoint = dict[str, Optional[_Position]]


class PositionLedger:
    """Authoritative position state. Only the engine writes to it."""

    def __init__(self) -> None:
        self._positions: dict[str, _Position] = {}

    def _get(self, user: str) -> _Position:
        position = self._positions.get(user)
        if position is None:
            position = _Position()
            self._positions[user] = position
        return position

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def collateral_of(self, user: str, asset: str) -> int:
        position = self._positions.get(user)
        if position is None:
            return 0
        return position.collateral.get(asset, 0)

    def debt_of(self, user: str) -> int:
        position = self._positions.get(user)
        return position.debt if position is not None else 0

    def users(self) -> tuple[str, ...]:
        return tuple(self._positions)

    def position(self, user: str) -> PositionSnapshot:
        position = self._positions.get(user)
        if position is None:
            return PositionSnapshot(user=user)
        return PositionSnapshot(
            user=user,
            collateral={a: v for a, v in position.collateral.items() if v},
            debt=position.debt,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def credit_collateral(self, user: str, asset: str, amount: int) -> None:
        position = self._get(user)
        position.collateral[asset] = position.collateral.get(asset, 0) + amount

    def debit_collateral(self, user: str, asset: str, amount: int) -> None:
        available = self.collateral_of(user, asset)
        if amount > available:
            raise InsufficientCollateral(user, asset, amount, available)
        self._get(user).collateral[asset] = available - amount

    def add_debt(self, user: str, amount: int) -> None:
        self._get(user).debt += amount

    def reduce_debt(self, user: str, amount: int) -> None:
        minted = self.debt_of(user)
        if amount > minted:
            raise BurnAmountExceedsMinted(user, amount, minted)
        self._get(user).debt = minted - amount

    # ------------------------------------------------------------------
    # Rollback support
    # ------------------------------------------------------------------

    def checkpoint(self, *users: str) -> Checkpoint:
        saved: Checkpoint = {}
        for user in users:
            position = self._positions.get(user)
            saved[user] = (
                _Position(dict(position.collateral), position.debt)
                if position is not None
                else None
            )
        return saved

    def restore(self, checkpoint: Checkpoint) -> None:
        for user, position in checkpoint.items():
            if position is None:
                self._positions.pop(user, None)
            else:
                self._positions[user] = _Position(
                    dict(position.collateral), position.debt
                )
