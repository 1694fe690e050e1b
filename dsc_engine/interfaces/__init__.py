"""Protocol interfaces for the engine's external collaborators."""
from .notifier import Notifier
from .price_oracle import PriceOracle
from .token import CollateralToken, DebtToken

__all__ = ["CollateralToken", "DebtToken", "Notifier", "PriceOracle"]
