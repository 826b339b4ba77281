"""
ledgers.py - Collateral and debt bookkeeping

CollateralLedger and DebtLedger hold the only mutable position state of the
engine. They know nothing about prices, tokens, or solvency: they credit and
debit fixed-point integers and refuse to go below zero.

Both ledgers support snapshot()/restore() so the engine can unwind every
change made during a failed call.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, Iterator, List, Tuple

from .core import (
    Address, AssetId, CollateralBalances,
    InsufficientCollateral, InsufficientDebt, InvalidAmount,
)


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmount(amount)


class CollateralLedger:
    """
    Per-user, per-asset deposited collateral.

    Positions are created implicitly on first credit (default 0). Zero
    positions are dropped from storage to keep iteration compact.
    """

    def __init__(self):
        self._balances: Dict[Address, Dict[AssetId, int]] = defaultdict(dict)

    def balance_of(self, user: Address, asset: AssetId) -> int:
        """Collateral of `asset` deposited by `user` (0 if none)."""
        return self._balances.get(user, {}).get(asset, 0)

    def balances_of(self, user: Address) -> CollateralBalances:
        """Copy of all non-zero collateral balances for `user`."""
        return dict(self._balances.get(user, {}))

    def users(self) -> List[Address]:
        """Users holding any collateral, in first-deposit order."""
        return [user for user, balances in self._balances.items() if balances]

    def credit(self, user: Address, asset: AssetId, amount: int) -> int:
        """
        Add `amount` to the user's collateral of `asset`.

        Returns:
            The new balance.

        Raises:
            InvalidAmount: If amount is not positive.
        """
        _require_positive(amount)
        new_balance = self.balance_of(user, asset) + amount
        self._balances[user][asset] = new_balance
        return new_balance

    def debit(self, user: Address, asset: AssetId, amount: int) -> int:
        """
        Remove `amount` from the user's collateral of `asset`.

        Fails fast on underflow; nothing is mutated in that case.

        Returns:
            The new balance.

        Raises:
            InvalidAmount: If amount is not positive.
            InsufficientCollateral: If the balance is smaller than amount.
        """
        _require_positive(amount)
        balance = self.balance_of(user, asset)
        if amount > balance:
            raise InsufficientCollateral(user, asset, balance, amount)
        new_balance = balance - amount
        if new_balance:
            self._balances[user][asset] = new_balance
        else:
            self._balances[user].pop(asset, None)
        return new_balance

    def total(self, asset: AssetId) -> int:
        """Total collateral of `asset` held across all users."""
        return sum(balances.get(asset, 0) for balances in self._balances.values())

    def snapshot(self) -> Dict[Address, Dict[AssetId, int]]:
        return {user: dict(balances) for user, balances in self._balances.items()}

    def restore(self, snapshot: Dict[Address, Dict[AssetId, int]]) -> None:
        self._balances = defaultdict(dict, {user: dict(b) for user, b in snapshot.items()})


class DebtLedger:
    """Per-user outstanding stable token debt."""

    def __init__(self):
        self._debts: Dict[Address, int] = {}

    def debt_of(self, user: Address) -> int:
        """Outstanding debt of `user` (0 if none)."""
        return self._debts.get(user, 0)

    def credit(self, user: Address, amount: int) -> int:
        """
        Increase the user's debt by `amount`.

        Raises:
            InvalidAmount: If amount is not positive.
        """
        _require_positive(amount)
        new_debt = self.debt_of(user) + amount
        self._debts[user] = new_debt
        return new_debt

    def debit(self, user: Address, amount: int) -> int:
        """
        Reduce the user's debt by `amount`.

        Raises:
            InvalidAmount: If amount is not positive.
            InsufficientDebt: If the debt is smaller than amount.
        """
        _require_positive(amount)
        debt = self.debt_of(user)
        if amount > debt:
            raise InsufficientDebt(user, debt, amount)
        new_debt = debt - amount
        if new_debt:
            self._debts[user] = new_debt
        else:
            self._debts.pop(user, None)
        return new_debt

    def items(self) -> Iterator[Tuple[Address, int]]:
        """(user, debt) pairs for every user with debt, in first-mint order."""
        return iter(list(self._debts.items()))

    def total(self) -> int:
        """Total outstanding debt across all users."""
        return sum(self._debts.values())

    def snapshot(self) -> Dict[Address, int]:
        return dict(self._debts)

    def restore(self, snapshot: Dict[Address, int]) -> None:
        self._debts = dict(snapshot)
