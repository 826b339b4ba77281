"""
Round-Trip Conformance Tests

INVARIANT: Converting to USD and back loses at most one unit.

    ∀ asset A with feed price p >= $1, ∀ amount x:
        x - 1 <= to_asset_amount(A, to_usd(A, x)) <= x

Both conversions round down. Below $1 the USD leg is coarser than one unit
of the asset, so the bound does not hold there.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from stable_engine import PriceOracleAdapter, StaticPriceOracle

from tests.scenario import ether, usd_price


prices = st.integers(min_value=usd_price(1), max_value=usd_price(10_000_000))
amounts = st.integers(min_value=0, max_value=ether(10**12))


class TestRoundTripProperties:
    """Property-based conversion tests."""

    @given(prices, amounts)
    @settings(max_examples=300)
    def test_usd_round_trip_within_one_unit(self, price, amount):
        """
        PROPERTY: to_asset_amount(to_usd(x)) is x or x - 1.
        """
        adapter = PriceOracleAdapter({"WETH": StaticPriceOracle(price)})
        back = adapter.to_asset_amount("WETH", adapter.to_usd("WETH", amount))
        assert amount - 1 <= back <= amount

    @given(prices, amounts)
    @settings(max_examples=300)
    def test_conversions_never_round_up(self, price, amount):
        """
        PROPERTY: Both directions truncate toward zero.
        """
        adapter = PriceOracleAdapter({"WETH": StaticPriceOracle(price)})
        usd = adapter.to_usd("WETH", amount)
        assert usd * 10**8 <= price * amount
        assert adapter.to_asset_amount("WETH", usd) * price <= usd * 10**8

    @given(prices, st.integers(min_value=1, max_value=ether(10**6)))
    @settings(max_examples=100)
    def test_usd_value_is_monotonic(self, price, amount):
        """
        PROPERTY: More collateral is never worth less.
        """
        adapter = PriceOracleAdapter({"WETH": StaticPriceOracle(price)})
        assert adapter.to_usd("WETH", amount + 1) >= adapter.to_usd("WETH", amount)
