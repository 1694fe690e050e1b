"""In-memory token ledgers used as the engine's external collaborators.

``Token`` is a plain fungible ledger with approve/transfer_from semantics.
``DecentralizedStableCoin`` adds owner-only mint and burn; ownership is handed
to the engine once at deployment.
"""
from __future__ import annotations

import logging

from .errors import NotOwner, TokenError

logger = logging.getLogger(__name__)


class Token:
    """Fungible token ledger keyed by account identifier."""

    def __init__(self, address: str, symbol: str = "", decimals: int = 18) -> None:
        self._address = address
        self.symbol = symbol or address
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    @property
    def address(self) -> str:
        return self._address

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, who: str) -> int:
        return self._balances.get(who, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise TokenError("approval amount cannot be negative")
        self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise TokenError(
                f"{spender} may spend {allowed} {self.symbol} of {owner}, not {amount}"
            )
        self._move(owner, to, amount)
        self._allowances[(owner, spender)] = allowed - amount
        return True

    def mint_to(self, to: str, amount: int) -> None:
        """Faucet used by tests and scenarios to fund wallets."""
        if amount <= 0:
            raise TokenError("mint amount must be positive")
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount

    def _move(self, source: str, to: str, amount: int) -> None:
        if amount < 0:
            raise TokenError("transfer amount cannot be negative")
        balance = self.balance_of(source)
        if amount > balance:
            raise TokenError(
                f"{source} holds {balance} {self.symbol}, cannot send {amount}"
            )
        self._balances[source] = balance - amount
        self._balances[to] = self.balance_of(to) + amount


class DecentralizedStableCoin(Token):
    """USD-pegged debt token. Only the owner may mint or burn."""

    def __init__(self, owner: str, address: str = "DSC", decimals: int = 18) -> None:
        super().__init__(address, symbol="DSC", decimals=decimals)
        self.owner = owner

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise NotOwner(caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._only_owner(caller)
        logger.info("DSC ownership transferred from %s to %s", self.owner, new_owner)
        self.owner = new_owner

    def mint(self, caller: str, to: str, amount: int) -> bool:
        self._only_owner(caller)
        if not to:
            raise TokenError("cannot mint to an empty address")
        if amount <= 0:
            raise TokenError("mint amount must be more than zero")
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount
        return True

    def burn(self, caller: str, amount: int) -> None:
        """Burn ``amount`` from the owner's own balance."""
        self._only_owner(caller)
        if amount <= 0:
            raise TokenError("burn amount must be more than zero")
        balance = self.balance_of(caller)
        if amount > balance:
            raise TokenError(f"burn amount {amount} exceeds balance {balance}")
        self._balances[caller] = balance - amount
        self._total_supply -= amount
