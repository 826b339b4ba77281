"""
stable_engine - Overcollateralized Stable Token Engine

Collateral/debt accounting and liquidation for a synthetic stable token.

Usage:
    from stable_engine import (
        StableEngine, InMemoryAssetLedger, InMemoryStableToken, StaticPriceOracle,
    )

    weth = InMemoryAssetLedger("WETH")
    dsc = InMemoryStableToken(owner="engine")
    engine = StableEngine(
        token_addresses=["WETH"],
        price_feeds=[StaticPriceOracle(2000 * 10**8)],
        stable_token=dsc,
        tokens={"WETH": weth},
    )

    # Fund alice and let the engine pull her collateral
    weth.mint_to("alice", 10 * 10**18)
    weth.approve("alice", engine.address, 10 * 10**18)

    # $20,000 of collateral, 5,000 debt -> health factor 2.0
    engine.deposit_and_mint("alice", "WETH", 10 * 10**18, 5_000 * 10**18)
"""

# Core types
from .core import (
    PriceRound,
    PriceOracle,
    AssetLedger,
    StableToken,
    Revertible,
    EngineParameters,
    CollateralDeposited,
    CollateralRedeemed,
    EngineError,
    InvalidAmount,
    InvalidConfiguration,
    UnsupportedAsset,
    TransferFailed,
    MintFailed,
    HealthFactorBroken,
    HealthFactorIsFine,
    HealthFactorIsNotImproved,
    InsufficientCollateral,
    InsufficientDebt,
    ReentrantCall,
    InvalidPrice,
    StalePrice,
    NotOwner,
    to_fixed,
    from_fixed,
    PRECISION,
    ADDITIONAL_FEED_PRECISION,
    FEED_DECIMALS,
    LIQUIDATION_THRESHOLD,
    LIQUIDATION_PRECISION,
    LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR,
    MAX_HEALTH_FACTOR,
)

# Engine
from .engine import StableEngine, SupportedAsset, AccountInformation

# Ledgers
from .ledgers import CollateralLedger, DebtLedger

# Health factor
from .health import (
    HealthReport,
    adjusted_collateral,
    calculate_health_factor,
    is_solvent,
    health_report,
)

# Liquidation
from .liquidation import (
    LiquidationStage,
    LiquidationQuote,
    LiquidationResult,
    compute_liquidation_quote,
    select_unsafe,
)

# Pricing
from .pricing import (
    PriceOracleAdapter,
    StaticPriceOracle,
    TimeSeriesPriceOracle,
)

# Guards
from .guards import CallGuard, require_owner

# Token ledgers
from .tokens import InMemoryAssetLedger, InMemoryStableToken

# Stress runs
from .stress import (
    PathStep,
    generate_gbm_path,
    shock_path,
    run_price_path,
    first_liquidatable,
)

__all__ = [
    # Core
    'PriceRound', 'PriceOracle', 'AssetLedger', 'StableToken', 'Revertible',
    'EngineParameters', 'CollateralDeposited', 'CollateralRedeemed',
    'EngineError', 'InvalidAmount', 'InvalidConfiguration', 'UnsupportedAsset',
    'TransferFailed', 'MintFailed', 'HealthFactorBroken', 'HealthFactorIsFine',
    'HealthFactorIsNotImproved', 'InsufficientCollateral', 'InsufficientDebt',
    'ReentrantCall', 'InvalidPrice', 'StalePrice', 'NotOwner',
    'to_fixed', 'from_fixed',
    'PRECISION', 'ADDITIONAL_FEED_PRECISION', 'FEED_DECIMALS',
    'LIQUIDATION_THRESHOLD', 'LIQUIDATION_PRECISION', 'LIQUIDATION_BONUS',
    'MIN_HEALTH_FACTOR', 'MAX_HEALTH_FACTOR',
    # Engine
    'StableEngine', 'SupportedAsset', 'AccountInformation',
    # Ledgers
    'CollateralLedger', 'DebtLedger',
    # Health factor
    'HealthReport', 'adjusted_collateral', 'calculate_health_factor',
    'is_solvent', 'health_report',
    # Liquidation
    'LiquidationStage', 'LiquidationQuote', 'LiquidationResult',
    'compute_liquidation_quote', 'select_unsafe',
    # Pricing
    'PriceOracleAdapter', 'StaticPriceOracle', 'TimeSeriesPriceOracle',
    # Guards
    'CallGuard', 'require_owner',
    # Token ledgers
    'InMemoryAssetLedger', 'InMemoryStableToken',
    # Stress runs
    'PathStep', 'generate_gbm_path', 'shock_path', 'run_price_path',
    'first_liquidatable',
]

__version__ = '1.0.0'
