"""
health.py - Health factor calculation (the solvency gate)

PURE FUNCTIONS - all inputs explicit, no engine state.

Key formulas:
    adjusted_collateral = collateral_value_usd * liquidation_threshold / 100
    health_factor       = adjusted_collateral * PRECISION / debt

A health factor >= MIN_HEALTH_FACTOR (1.0 scaled by 1e18) is solvent.
Zero debt is maximally solvent and returns MAX_HEALTH_FACTOR instead of
dividing by zero.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import (
    LIQUIDATION_PRECISION, LIQUIDATION_THRESHOLD,
    MAX_HEALTH_FACTOR, MIN_HEALTH_FACTOR, PRECISION,
)


@dataclass(frozen=True, slots=True)
class HealthReport:
    """
    Immutable result of a solvency assessment.

    Attributes:
        collateral_value_usd: Total collateral value, 18 decimals.
        adjusted_collateral_usd: Portion of collateral value counted toward solvency.
        debt: Outstanding debt, 18 decimals.
        health_factor: Scaled health factor (MAX_HEALTH_FACTOR when debt is 0).
        solvent: True if health_factor >= the minimum used for the assessment.
    """
    collateral_value_usd: int
    adjusted_collateral_usd: int
    debt: int
    health_factor: int
    solvent: bool


def adjusted_collateral(
    collateral_value_usd: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
) -> int:
    """Collateral value scaled down to the part that counts toward solvency."""
    return collateral_value_usd * liquidation_threshold // LIQUIDATION_PRECISION


def calculate_health_factor(
    collateral_value_usd: int,
    debt: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
) -> int:
    """
    Calculate the health factor of a position.

    Args:
        collateral_value_usd: Total collateral value in USD, 18 decimals.
        debt: Outstanding debt, 18 decimals.
        liquidation_threshold: Percent of collateral value counted (default: 50).

    Returns:
        adjusted_collateral * PRECISION // debt, or MAX_HEALTH_FACTOR for zero debt.

    Example:
        # $20,000 of collateral against 5,000 debt
        calculate_health_factor(20_000 * 10**18, 5_000 * 10**18)  # 2 * 10**18
    """
    if debt == 0:
        return MAX_HEALTH_FACTOR
    return adjusted_collateral(collateral_value_usd, liquidation_threshold) * PRECISION // debt


def is_solvent(health_factor: int, min_health_factor: int = MIN_HEALTH_FACTOR) -> bool:
    return health_factor >= min_health_factor


def health_report(
    collateral_value_usd: int,
    debt: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
    min_health_factor: int = MIN_HEALTH_FACTOR,
) -> HealthReport:
    """Build a HealthReport from explicit collateral value and debt."""
    health_factor = calculate_health_factor(collateral_value_usd, debt, liquidation_threshold)
    return HealthReport(
        collateral_value_usd=collateral_value_usd,
        adjusted_collateral_usd=adjusted_collateral(collateral_value_usd, liquidation_threshold),
        debt=debt,
        health_factor=health_factor,
        solvent=is_solvent(health_factor, min_health_factor),
    )
