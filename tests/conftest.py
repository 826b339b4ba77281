"""
conftest.py - Shared pytest fixtures for engine tests

Provides common fixtures used across unit, conformance, and functional tests:
- Token ledgers and price feeds (WETH at $2000, WBTC at $1000)
- Engines (empty, with a deposit, with a deposit and a mint)

Helpers and constants live in tests/scenario.py.
"""

import pytest

from stable_engine import (
    StableEngine,
    InMemoryAssetLedger,
    InMemoryStableToken,
    StaticPriceOracle,
)

from tests.scenario import (
    ENGINE, USER, WETH_PRICE, WBTC_PRICE, COLLATERAL, AMOUNT_TO_MINT, fund,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def weth():
    return InMemoryAssetLedger("WETH")


@pytest.fixture
def wbtc():
    return InMemoryAssetLedger("WBTC")


@pytest.fixture
def weth_feed():
    return StaticPriceOracle(WETH_PRICE)


@pytest.fixture
def wbtc_feed():
    return StaticPriceOracle(WBTC_PRICE)


@pytest.fixture
def dsc():
    return InMemoryStableToken(owner=ENGINE)


@pytest.fixture
def engine(weth, wbtc, weth_feed, wbtc_feed, dsc):
    """Engine accepting WETH ($2000) and WBTC ($1000)."""
    return StableEngine(
        token_addresses=["WETH", "WBTC"],
        price_feeds=[weth_feed, wbtc_feed],
        stable_token=dsc,
        tokens={"WETH": weth, "WBTC": wbtc},
        address=ENGINE,
    )


@pytest.fixture
def deposited(engine, weth):
    """alice has 10 WETH ($20,000) deposited and no debt."""
    fund(weth, USER, COLLATERAL)
    engine.deposit_collateral(USER, "WETH", COLLATERAL)
    return engine


@pytest.fixture
def minted(deposited):
    """alice has 10 WETH deposited and 5,000 minted: health factor 2.0."""
    deposited.mint(USER, AMOUNT_TO_MINT)
    return deposited
