"""
test_core_types.py - Unit tests for core constants, parameters, and errors

Tests:
- Fixed-point constants
- EngineParameters defaults and validation
- to_fixed / from_fixed conversion and truncation
- Error payloads carry the values that caused them
- Events are immutable
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta
from decimal import Decimal

from stable_engine import (
    PRECISION, ADDITIONAL_FEED_PRECISION, FEED_DECIMALS,
    LIQUIDATION_THRESHOLD, LIQUIDATION_PRECISION, LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR, MAX_HEALTH_FACTOR,
    EngineParameters, PriceRound,
    CollateralDeposited, CollateralRedeemed,
    EngineError, InvalidAmount, InvalidConfiguration, TransferFailed,
    HealthFactorBroken, HealthFactorIsNotImproved, InsufficientCollateral,
    StalePrice,
    to_fixed, from_fixed,
)


# ============================================================================
# CONSTANTS
# ============================================================================

class TestConstants:

    def test_precision(self):
        assert PRECISION == 10**18
        assert FEED_DECIMALS == 8
        assert ADDITIONAL_FEED_PRECISION == 10**10

    def test_liquidation_parameters(self):
        assert LIQUIDATION_THRESHOLD == 50
        assert LIQUIDATION_PRECISION == 100
        assert LIQUIDATION_BONUS == 10

    def test_health_factor_bounds(self):
        assert MIN_HEALTH_FACTOR == 10**18
        assert MAX_HEALTH_FACTOR == 2**256 - 1


# ============================================================================
# ENGINE PARAMETERS
# ============================================================================

class TestEngineParameters:

    def test_defaults(self):
        params = EngineParameters()
        assert params.liquidation_threshold == 50
        assert params.liquidation_bonus == 10
        assert params.min_health_factor == 10**18
        assert params.max_price_age is None

    def test_custom_values(self):
        params = EngineParameters(
            liquidation_threshold=80,
            liquidation_bonus=5,
            max_price_age=timedelta(hours=1),
        )
        assert params.liquidation_threshold == 80
        assert params.max_price_age == timedelta(hours=1)

    def test_immutable(self):
        params = EngineParameters()
        with pytest.raises(FrozenInstanceError):
            params.liquidation_threshold = 60

    @pytest.mark.parametrize("threshold", [0, -1, 101])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(InvalidConfiguration):
            EngineParameters(liquidation_threshold=threshold)

    def test_full_threshold_allowed(self):
        assert EngineParameters(liquidation_threshold=100).liquidation_threshold == 100

    @pytest.mark.parametrize("bonus", [-1, 100, 150])
    def test_bonus_out_of_range(self, bonus):
        with pytest.raises(InvalidConfiguration):
            EngineParameters(liquidation_bonus=bonus)

    def test_zero_bonus_allowed(self):
        assert EngineParameters(liquidation_bonus=0).liquidation_bonus == 0

    def test_min_health_factor_must_be_positive(self):
        with pytest.raises(InvalidConfiguration):
            EngineParameters(min_health_factor=0)

    def test_max_price_age_must_be_positive(self):
        with pytest.raises(InvalidConfiguration):
            EngineParameters(max_price_age=timedelta(0))


# ============================================================================
# FIXED POINT
# ============================================================================

class TestFixedPoint:

    def test_to_fixed_int(self):
        assert to_fixed(10) == 10 * 10**18

    def test_to_fixed_string(self):
        assert to_fixed("1.5") == 1_500_000_000_000_000_000

    def test_to_fixed_decimal(self):
        assert to_fixed(Decimal("0.000000000000000001")) == 1

    def test_to_fixed_feed_decimals(self):
        assert to_fixed("2000", decimals=8) == 200_000_000_000

    def test_to_fixed_truncates(self):
        assert to_fixed("0.0000000000000000019") == 1
        assert to_fixed("1.999", decimals=2) == 199

    def test_to_fixed_rejects_float(self):
        with pytest.raises(TypeError):
            to_fixed(1.5)

    def test_from_fixed(self):
        assert from_fixed(1_500_000_000_000_000_000) == Decimal("1.5")
        assert from_fixed(200_000_000_000, decimals=8) == Decimal("2000")

    def test_large_amount_is_exact(self):
        amount = "123456789012345678901234567890.123456789012345678"
        assert from_fixed(to_fixed(amount)) == Decimal(amount)


# ============================================================================
# ERRORS AND EVENTS
# ============================================================================

class TestErrors:

    def test_all_errors_share_base(self):
        assert issubclass(InvalidAmount, EngineError)
        assert issubclass(HealthFactorBroken, EngineError)
        assert issubclass(StalePrice, EngineError)

    def test_invalid_amount_payload(self):
        err = InvalidAmount(0)
        assert err.amount == 0
        assert "0" in str(err)

    def test_transfer_failed_payload(self):
        err = TransferFailed("WETH", "engine", "alice", 5)
        assert (err.asset, err.sender, err.recipient, err.amount) == ("WETH", "engine", "alice", 5)

    def test_health_factor_broken_payload(self):
        err = HealthFactorBroken("alice", 5 * 10**17)
        assert err.user == "alice"
        assert err.health_factor == 5 * 10**17
        assert err.min_health_factor == MIN_HEALTH_FACTOR

    def test_not_improved_payload(self):
        err = HealthFactorIsNotImproved("alice", 525 * 10**15, 5 * 10**17)
        assert err.starting_health_factor == 525 * 10**15
        assert err.ending_health_factor == 5 * 10**17

    def test_insufficient_collateral_payload(self):
        err = InsufficientCollateral("alice", "WETH", 1, 2)
        assert (err.balance, err.amount) == (1, 2)

    def test_stale_price_payload(self):
        when = datetime(2025, 1, 1)
        err = StalePrice("WETH", when, timedelta(hours=1))
        assert err.updated_at == when
        assert err.max_age == timedelta(hours=1)


class TestEvents:

    def test_deposit_event_fields(self):
        event = CollateralDeposited(user="alice", asset="WETH", amount=1)
        assert event == CollateralDeposited("alice", "WETH", 1)

    def test_redeem_event_immutable(self):
        event = CollateralRedeemed("alice", "bob", "WETH", 1)
        with pytest.raises(FrozenInstanceError):
            event.amount = 2

    def test_price_round_defaults(self):
        assert PriceRound(price=1).updated_at is None
