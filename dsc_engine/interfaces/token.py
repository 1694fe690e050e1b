"""Token protocols: fungible ledgers the engine moves value through.

There is no implicit ``msg.sender``; every state-changing call names the
account acting.
"""
from typing import Protocol


class CollateralToken(Protocol):
    """Abstract interface for a collateral asset held in engine custody."""

    @property
    def address(self) -> str: ...

    def balance_of(self, who: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, owner: str, spender: str, amount: int) -> bool: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...


class DebtToken(CollateralToken, Protocol):
    """Mintable/burnable stable token; mint and burn are owner-only."""

    def mint(self, caller: str, to: str, amount: int) -> bool: ...

    def burn(self, caller: str, amount: int) -> None: ...
