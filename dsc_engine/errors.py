"""Exception hierarchy for the engine.

Every operation either commits fully or rolls back and raises one of
these. Families mirror the kind of failure:

* ``InputError``: bad arguments (zero amounts, unknown assets).
* ``StateError``: the position cannot cover the request.
* ``InvariantViolation``: the health factor would drop below the minimum.
* ``OracleError``: the price feed returned an unusable answer.
* ``LiquidationError``: liquidation preconditions or postconditions failed.
* ``TransferError``: an external token movement failed.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every engine failure."""


class ConfigError(ValueError):
    """Raised on invalid configuration or engine parameters."""


class RegistryError(EngineError):
    """Raised when the collateral registry cannot be built."""


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class InputError(EngineError):
    pass


class MustBeMoreThanZero(InputError):
    def __init__(self, amount: int) -> None:
        self.amount = amount
        super().__init__(f"amount must be more than zero, got {amount}")


class UnknownAsset(InputError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"asset {asset!r} is not registered")


class UnsupportedCollateral(InputError):
    """Raised by position operations given an asset the registry lacks."""

    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"collateral {asset!r} is not supported")


# ---------------------------------------------------------------------------
# State errors
# ---------------------------------------------------------------------------


class StateError(EngineError):
    pass


class InsufficientCollateral(StateError):
    def __init__(self, user: str, asset: str, requested: int, available: int) -> None:
        self.user = user
        self.asset = asset
        self.requested = requested
        self.available = available
        super().__init__(
            f"{user} holds {available} of {asset}, cannot remove {requested}"
        )


class BurnAmountExceedsMinted(StateError):
    def __init__(self, user: str, requested: int, minted: int) -> None:
        self.user = user
        self.requested = requested
        self.minted = minted
        super().__init__(f"{user} minted {minted}, cannot burn {requested}")


# ---------------------------------------------------------------------------
# Invariant
# ---------------------------------------------------------------------------


class InvariantViolation(EngineError):
    pass


class InsufficientHealthFactor(InvariantViolation):
    def __init__(self, health_factor: int, user: str = "") -> None:
        self.health_factor = health_factor
        self.user = user
        super().__init__(f"health factor {health_factor} is below the minimum")


# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------


class OracleError(EngineError):
    pass


class StaleOrInvalidPrice(OracleError):
    def __init__(self, feed: str, answer: int) -> None:
        self.feed = feed
        self.answer = answer
        super().__init__(f"feed {feed!r} returned non-positive price {answer}")


class StalePrice(OracleError):
    def __init__(self, feed: str, updated_at: int, now: int) -> None:
        self.feed = feed
        self.updated_at = updated_at
        self.now = now
        super().__init__(
            f"feed {feed!r} last updated at {updated_at}, now {now}"
        )


class UnknownFeed(OracleError):
    def __init__(self, feed: str) -> None:
        self.feed = feed
        super().__init__(f"no price for feed {feed!r}")


# ---------------------------------------------------------------------------
# Liquidation
# ---------------------------------------------------------------------------


class LiquidationError(EngineError):
    pass


class HealthFactorOk(LiquidationError):
    def __init__(self, user: str, health_factor: int) -> None:
        self.user = user
        self.health_factor = health_factor
        super().__init__(f"{user} is healthy (health factor {health_factor})")


class HealthFactorNotImproved(LiquidationError):
    def __init__(self, user: str, before: int, after: int) -> None:
        self.user = user
        self.before = before
        self.after = after
        super().__init__(
            f"liquidation of {user} moved health factor {before} -> {after}"
        )


class InsufficientCollateralToLiquidate(LiquidationError):
    def __init__(self, user: str, asset: str, required: int, available: int) -> None:
        self.user = user
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            f"seizing {required} of {asset} from {user} exceeds balance {available}"
        )


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------


class TransferError(EngineError):
    pass


class TransferFailed(TransferError):
    def __init__(self, token: str, source: str, destination: str, amount: int) -> None:
        self.token = token
        self.source = source
        self.destination = destination
        self.amount = amount
        super().__init__(
            f"transfer of {amount} {token} from {source} to {destination} failed"
        )


class MintFailed(TransferError):
    def __init__(self, to: str, amount: int) -> None:
        self.to = to
        self.amount = amount
        super().__init__(f"minting {amount} to {to} failed")


# ---------------------------------------------------------------------------
# Token ledger (external collaborator)
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Raised by the in-memory token ledgers."""


class NotOwner(TokenError):
    def __init__(self, caller: str) -> None:
        self.caller = caller
        super().__init__(f"{caller} is not the token owner")
