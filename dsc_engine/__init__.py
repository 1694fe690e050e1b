"""Over-collateralized stablecoin issuance engine."""
from .engine import DSCEngine
from .registry import CollateralRegistry
from .tokens import DecentralizedStableCoin, Token

__all__ = ["CollateralRegistry", "DSCEngine", "DecentralizedStableCoin", "Token"]
