"""
liquidation.py - Liquidation quotes and stages

A liquidation moves through five stages, executed by StableEngine.liquidate():

    DETECT -> SEIZE_COLLATERAL -> REPAY_DEBT -> VERIFY_IMPROVEMENT
           -> VERIFY_LIQUIDATOR_SOLVENCY

This module holds the pure parts: how much collateral a given debt repayment
buys (plus the liquidator's bonus), the immutable result record, and the
selection of unsafe positions from a set of health factors.

Key formulas:
    base_collateral  = to_asset_amount(asset, debt_to_cover)
    bonus_collateral = base_collateral * liquidation_bonus / 100
    total_seized     = base_collateral + bonus_collateral
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple

from .core import (
    LIQUIDATION_BONUS, LIQUIDATION_PRECISION, MIN_HEALTH_FACTOR,
    Address, AssetId, InvalidAmount,
)
from .pricing import PriceOracleAdapter


class LiquidationStage(Enum):
    """Stages of a liquidation, in execution order."""
    DETECT = "detect"
    SEIZE_COLLATERAL = "seize_collateral"
    REPAY_DEBT = "repay_debt"
    VERIFY_IMPROVEMENT = "verify_improvement"
    VERIFY_LIQUIDATOR_SOLVENCY = "verify_liquidator_solvency"


@dataclass(frozen=True, slots=True)
class LiquidationQuote:
    """
    Collateral owed to a liquidator for covering `debt_to_cover`.

    Attributes:
        collateral_asset: Asset seized from the target.
        debt_to_cover: Debt repaid by the liquidator (USD, 18 decimals).
        base_collateral: Collateral worth exactly debt_to_cover at the current price.
        bonus_collateral: Extra collateral paid as the liquidation bonus.
        total_seized: base_collateral + bonus_collateral.
    """
    collateral_asset: AssetId
    debt_to_cover: int
    base_collateral: int
    bonus_collateral: int
    total_seized: int


@dataclass(frozen=True, slots=True)
class LiquidationResult:
    """Immutable record of a completed liquidation."""
    liquidator: Address
    user: Address
    quote: LiquidationQuote
    starting_health_factor: int
    ending_health_factor: int


def compute_liquidation_quote(
    adapter: PriceOracleAdapter,
    collateral_asset: AssetId,
    debt_to_cover: int,
    liquidation_bonus: int = LIQUIDATION_BONUS,
) -> LiquidationQuote:
    """
    Price a liquidation of `debt_to_cover` against `collateral_asset`.

    Args:
        adapter: Valuation used to convert the debt into collateral units.
        collateral_asset: Asset to seize.
        debt_to_cover: Debt the liquidator repays (must be positive).
        liquidation_bonus: Bonus percent on top of the base collateral (default: 10).

    Returns:
        LiquidationQuote with base, bonus, and total collateral amounts.

    Raises:
        InvalidAmount: If debt_to_cover is not positive.
        UnsupportedAsset: If the asset has no price feed.

    Example:
        # 5,000 debt against an asset priced at $1: 5,000 + 500 bonus units
        quote = compute_liquidation_quote(adapter, "USDX", 5_000 * 10**18)
        quote.total_seized  # 5_500 * 10**18
    """
    if debt_to_cover <= 0:
        raise InvalidAmount(debt_to_cover)
    base = adapter.to_asset_amount(collateral_asset, debt_to_cover)
    bonus = base * liquidation_bonus // LIQUIDATION_PRECISION
    return LiquidationQuote(
        collateral_asset=collateral_asset,
        debt_to_cover=debt_to_cover,
        base_collateral=base,
        bonus_collateral=bonus,
        total_seized=base + bonus,
    )


def select_unsafe(
    health_factors: Iterable[Tuple[Address, int]],
    min_health_factor: int = MIN_HEALTH_FACTOR,
) -> List[Address]:
    """Users whose health factor is below the minimum, in input order."""
    return [user for user, health_factor in health_factors if health_factor < min_health_factor]
