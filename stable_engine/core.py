"""
Core types and constants for the stable-token engine.

This module provides the foundational pieces every other module builds on:
1. Constants: fixed-point precision, liquidation threshold and bonus
2. Protocols: AssetLedger, StableToken, PriceOracle, Revertible collaborators
3. Immutable data structures: PriceRound, events, EngineParameters
4. Exceptions: EngineError and the domain-specific error taxonomy
5. Fixed-point helpers: to_fixed / from_fixed

All protocol arithmetic is exact integer arithmetic on 18-decimal fixed-point
amounts. Decimal is only used at the edges, to convert human-readable amounts.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_DOWN, localcontext
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Every collateral and debt amount is an 18-decimal fixed-point integer.
DECIMALS = 18
PRECISION = 10 ** DECIMALS

# Price feeds report 8 decimals; this lifts them to 18.
FEED_DECIMALS = 8
ADDITIONAL_FEED_PRECISION = 10 ** (DECIMALS - FEED_DECIMALS)

# Only LIQUIDATION_THRESHOLD percent of collateral value counts toward solvency.
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_PRECISION = 100

# Extra collateral (percent of the covered amount) paid to a liquidator.
LIQUIDATION_BONUS = 10

# A health factor of exactly 1.0 (scaled) is the solvency boundary.
MIN_HEALTH_FACTOR = PRECISION

# Sentinel for a debt-free position: the largest uint256.
MAX_HEALTH_FACTOR = 2 ** 256 - 1


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Account identifier (a user, the engine itself, or any token holder).
Address = str

# Identifier of a supported collateral asset.
AssetId = str

# Mapping from asset to the fixed-point amount a single user holds.
CollateralBalances = Dict[AssetId, int]


# ============================================================================
# PROTOCOLS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PriceRound:
    """
    One answer from a price feed.

    Attributes:
        price: Signed integer price with FEED_DECIMALS decimals.
        updated_at: When the answer was produced (None if the feed has no clock).
    """
    price: int
    updated_at: Optional[datetime] = None


@runtime_checkable
class PriceOracle(Protocol):
    """Per-asset price source. Only the price field is consumed by valuation."""

    def latest_price(self) -> PriceRound:
        ...


@runtime_checkable
class AssetLedger(Protocol):
    """
    ERC20-like token ledger for one collateral asset.

    The caller of each call is passed explicitly. A False return means the
    transfer did not happen and is fatal to the calling operation.
    """

    def balance_of(self, account: Address) -> int:
        ...

    def transfer(self, sender: Address, to: Address, amount: int) -> bool:
        ...

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: int) -> bool:
        ...


@runtime_checkable
class StableToken(AssetLedger, Protocol):
    """
    Token ledger of the stable token itself.

    mint and burn are privileged: only the engine (the token owner) may call them.
    burn destroys tokens from the caller's own balance.
    """

    def mint(self, caller: Address, to: Address, amount: int) -> bool:
        ...

    def burn(self, caller: Address, amount: int) -> None:
        ...


@runtime_checkable
class Revertible(Protocol):
    """
    Collaborator whose state can be captured and restored.

    The engine snapshots every Revertible collaborator on entry to a mutating
    call and restores it if the call fails, so a failed call leaves no trace
    in collaborator balances either.
    """

    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class EngineError(Exception):
    """Base exception for all engine errors."""
    pass


class InvalidAmount(EngineError):
    """Raised when a zero or negative amount is passed where a positive one is required."""

    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"Amount must be positive, got {amount}")


class InvalidConfiguration(EngineError):
    """Raised when the engine is constructed with inconsistent configuration."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid configuration: {reason}")


class UnsupportedAsset(EngineError):
    """Raised when an operation references an asset with no registered price feed."""

    def __init__(self, asset: AssetId):
        self.asset = asset
        super().__init__(f"Asset {asset} is not supported")


class TransferFailed(EngineError):
    """Raised when an asset or stable token transfer reports failure."""

    def __init__(self, asset: str, sender: Address, recipient: Address, amount: int):
        self.asset = asset
        self.sender = sender
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"Transfer of {amount} {asset} from {sender} to {recipient} failed")


class MintFailed(EngineError):
    """Raised when the stable token reports a failed mint."""

    def __init__(self, user: Address, amount: int):
        self.user = user
        self.amount = amount
        super().__init__(f"Mint of {amount} to {user} failed")


class HealthFactorBroken(EngineError):
    """Raised when a position is left below the minimum health factor."""

    def __init__(self, user: Address, health_factor: int, min_health_factor: int = MIN_HEALTH_FACTOR):
        self.user = user
        self.health_factor = health_factor
        self.min_health_factor = min_health_factor
        super().__init__(f"Health factor of {user} is broken: {health_factor} < {min_health_factor}")


class HealthFactorIsFine(EngineError):
    """Raised when liquidation targets a solvent position."""

    def __init__(self, user: Address, health_factor: int):
        self.user = user
        self.health_factor = health_factor
        super().__init__(f"Health factor of {user} is fine: {health_factor}")


class HealthFactorIsNotImproved(EngineError):
    """Raised when a liquidation does not strictly improve the target's health factor."""

    def __init__(self, user: Address, starting_health_factor: int, ending_health_factor: int):
        self.user = user
        self.starting_health_factor = starting_health_factor
        self.ending_health_factor = ending_health_factor
        super().__init__(
            f"Health factor of {user} not improved: "
            f"{starting_health_factor} -> {ending_health_factor}"
        )


class InsufficientCollateral(EngineError):
    """Raised when a debit would take a collateral position below zero."""

    def __init__(self, user: Address, asset: AssetId, balance: int, amount: int):
        self.user = user
        self.asset = asset
        self.balance = balance
        self.amount = amount
        super().__init__(f"{user} {asset}: cannot debit {amount}, balance is {balance}")


class InsufficientDebt(EngineError):
    """Raised when a debit would take a debt position below zero."""

    def __init__(self, user: Address, balance: int, amount: int):
        self.user = user
        self.balance = balance
        self.amount = amount
        super().__init__(f"{user}: cannot burn {amount}, debt is {balance}")


class ReentrantCall(EngineError):
    """Raised when a mutating entry point is entered while another one is running."""

    def __init__(self, entry_point: str):
        self.entry_point = entry_point
        super().__init__(f"Reentrant call to {entry_point}")


class InvalidPrice(EngineError):
    """Raised when a price feed answers with a non-positive price."""

    def __init__(self, asset: AssetId, price: int):
        self.asset = asset
        self.price = price
        super().__init__(f"Price feed for {asset} returned {price}")


class StalePrice(EngineError):
    """Raised when a price answer is older than the configured maximum age."""

    def __init__(self, asset: AssetId, updated_at: Optional[datetime], max_age: timedelta):
        self.asset = asset
        self.updated_at = updated_at
        self.max_age = max_age
        super().__init__(f"Price for {asset} updated at {updated_at} is older than {max_age}")


class NotOwner(EngineError):
    """Raised when a privileged token call comes from someone other than the owner."""

    def __init__(self, caller: Address, owner: Address):
        self.caller = caller
        self.owner = owner
        super().__init__(f"{caller} is not the owner ({owner})")


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class CollateralDeposited:
    """Emitted when collateral is credited to a user."""
    user: Address
    asset: AssetId
    amount: int


@dataclass(frozen=True, slots=True)
class CollateralRedeemed:
    """Emitted when collateral leaves a user's position (redemption or seizure)."""
    redeemed_from: Address
    redeemed_to: Address
    asset: AssetId
    amount: int


EngineEvent = Union[CollateralDeposited, CollateralRedeemed]


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class EngineParameters:
    """
    Risk parameters of an engine instance, fixed at construction.

    Attributes:
        liquidation_threshold: Percent of collateral value counted toward solvency.
        liquidation_bonus: Percent of covered collateral paid to liquidators.
        min_health_factor: Solvency boundary, scaled by PRECISION.
        max_price_age: Optional staleness limit for price answers (None disables it).
    """
    liquidation_threshold: int = LIQUIDATION_THRESHOLD
    liquidation_bonus: int = LIQUIDATION_BONUS
    min_health_factor: int = MIN_HEALTH_FACTOR
    max_price_age: Optional[timedelta] = None

    def __post_init__(self):
        if not 0 < self.liquidation_threshold <= LIQUIDATION_PRECISION:
            raise InvalidConfiguration(
                f"liquidation_threshold must be in (0, {LIQUIDATION_PRECISION}], "
                f"got {self.liquidation_threshold}"
            )
        if not 0 <= self.liquidation_bonus < LIQUIDATION_PRECISION:
            raise InvalidConfiguration(
                f"liquidation_bonus must be in [0, {LIQUIDATION_PRECISION}), "
                f"got {self.liquidation_bonus}"
            )
        if self.min_health_factor <= 0:
            raise InvalidConfiguration(
                f"min_health_factor must be positive, got {self.min_health_factor}"
            )
        if self.max_price_age is not None and self.max_price_age <= timedelta(0):
            raise InvalidConfiguration(
                f"max_price_age must be positive, got {self.max_price_age}"
            )


# ============================================================================
# FIXED-POINT HELPERS
# ============================================================================

def to_fixed(value: Union[Decimal, int, str], decimals: int = DECIMALS) -> int:
    """
    Convert a human-readable amount to a fixed-point integer.

    Fractional digits beyond `decimals` are truncated toward zero.

    Args:
        value: Amount as Decimal, int, or numeric string (e.g., "2000.5").
        decimals: Number of fixed-point decimals (default: 18).

    Returns:
        The scaled integer (e.g., to_fixed("1.5") == 1_500_000_000_000_000_000).

    Example:
        price = to_fixed("2000", decimals=FEED_DECIMALS)  # 200000000000
    """
    if isinstance(value, float):
        raise TypeError("Use Decimal or str for fixed-point amounts, not float")
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = Decimal(value) * (Decimal(10) ** decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_fixed(value: int, decimals: int = DECIMALS) -> Decimal:
    """Convert a fixed-point integer back to an exact Decimal."""
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(value) / (Decimal(10) ** decimals)
