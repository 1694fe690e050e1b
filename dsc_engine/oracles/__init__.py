"""Price oracle adapters."""
from .pyth import PythOracle
from .staleness import StalenessCheckedOracle
from .static import StaticPriceOracle

__all__ = ["PythOracle", "StalenessCheckedOracle", "StaticPriceOracle"]
