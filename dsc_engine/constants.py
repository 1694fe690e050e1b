"""Fixed-point constants shared across the engine."""
from __future__ import annotations

# All USD values and health factors are 18-decimal integers.
PRECISION_DECIMALS = 18
PRECISION = 10**PRECISION_DECIMALS

# Threshold and bonus are expressed in percent.
LIQUIDATION_PRECISION = 100

LIQUIDATION_THRESHOLD = 50  # 200% over-collateralized
LIQUIDATION_BONUS = 10  # 10% on top of the repaid debt's value
MIN_HEALTH_FACTOR = 1 * PRECISION

# Health factor reported for positions without debt.
MAX_HEALTH_FACTOR = 2**256 - 1
