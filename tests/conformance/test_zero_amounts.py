"""
Zero Amount Conformance Tests

INVARIANT: No mutating call accepts a zero amount.

    ∀ mutating call C, ∀ amount argument A of C:
        A == 0 ⟹ C raises InvalidAmount and changes nothing

The check runs before any other validation, so even an unsupported asset
or a healthy liquidation target reports InvalidAmount.
"""

import pytest

from stable_engine import InvalidAmount

from tests.scenario import USER, LIQUIDATOR, COLLATERAL, AMOUNT_TO_MINT, capture_state


ZERO_CALLS = {
    "deposit_collateral": lambda e: e.deposit_collateral(USER, "WETH", 0),
    "deposit_unsupported": lambda e: e.deposit_collateral(USER, "DOGE", 0),
    "mint": lambda e: e.mint(USER, 0),
    "deposit_and_mint_collateral": lambda e: e.deposit_and_mint(USER, "WETH", 0, AMOUNT_TO_MINT),
    "deposit_and_mint_debt": lambda e: e.deposit_and_mint(USER, "WETH", COLLATERAL, 0),
    "redeem_collateral": lambda e: e.redeem_collateral(USER, "WETH", 0),
    "burn": lambda e: e.burn(USER, 0),
    "redeem_and_burn_collateral": lambda e: e.redeem_and_burn(USER, "WETH", 0, AMOUNT_TO_MINT),
    "redeem_and_burn_debt": lambda e: e.redeem_and_burn(USER, "WETH", COLLATERAL, 0),
    "liquidate": lambda e: e.liquidate(LIQUIDATOR, USER, "WETH", 0),
    "liquidate_unsupported": lambda e: e.liquidate(LIQUIDATOR, USER, "DOGE", 0),
}


@pytest.mark.parametrize("name", sorted(ZERO_CALLS))
def test_zero_amount_rejected(minted, weth, dsc, name):
    weth.mint_to(USER, COLLATERAL)
    weth.approve(USER, minted.address, COLLATERAL)
    dsc.approve(USER, minted.address, AMOUNT_TO_MINT)
    before = capture_state(minted, {"WETH": weth}, dsc, [USER, LIQUIDATOR])

    with pytest.raises(InvalidAmount) as exc_info:
        ZERO_CALLS[name](minted)

    assert exc_info.value.amount == 0
    assert capture_state(minted, {"WETH": weth}, dsc, [USER, LIQUIDATOR]) == before


@pytest.mark.parametrize("amount", [-1, -10**18])
def test_negative_amounts_rejected(minted, amount):
    with pytest.raises(InvalidAmount):
        minted.mint(USER, amount)
    with pytest.raises(InvalidAmount):
        minted.redeem_collateral(USER, "WETH", amount)
