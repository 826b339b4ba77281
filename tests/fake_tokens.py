"""
fake_tokens.py - Misbehaving token collaborators for tests

Token ledgers that fail or call back into the engine, used to check that
the engine rolls every change back when a collaborator lets it down.
"""

from __future__ import annotations
from typing import Callable, Optional

from stable_engine import InMemoryAssetLedger, InMemoryStableToken


class FailingAssetLedger(InMemoryAssetLedger):
    """
    Asset ledger whose transfers can be switched to report failure.

    Example:
        weth = FailingAssetLedger("WETH")
        weth.fail_transfer_from = True
        weth.transfer_from("engine", "alice", "engine", 1)  # False
    """

    def __init__(self, symbol: str):
        super().__init__(symbol)
        self.fail_transfer = False
        self.fail_transfer_from = False

    def transfer(self, sender, to, amount):
        if self.fail_transfer:
            return False
        return super().transfer(sender, to, amount)

    def transfer_from(self, spender, owner, to, amount):
        if self.fail_transfer_from:
            return False
        return super().transfer_from(spender, owner, to, amount)


class FailingStableToken(InMemoryStableToken):
    """Stable token whose mint and transfer_from can be switched to report failure."""

    def __init__(self, owner: str, symbol: str = "DSC"):
        super().__init__(owner, symbol)
        self.fail_mint = False
        self.fail_transfer_from = False

    def mint(self, caller, to, amount):
        if self.fail_mint:
            return False
        return super().mint(caller, to, amount)

    def transfer_from(self, spender, owner, to, amount):
        if self.fail_transfer_from:
            return False
        return super().transfer_from(spender, owner, to, amount)


class ReentrantAssetLedger(InMemoryAssetLedger):
    """
    Asset ledger that calls back into the engine from transfer_from.

    The callback runs after the transfer itself succeeded, so any state the
    outer call sees afterwards comes from the engine's own rollback.
    """

    def __init__(self, symbol: str):
        super().__init__(symbol)
        self.callback: Optional[Callable[[], None]] = None
        self.callback_error: Optional[Exception] = None

    def transfer_from(self, spender, owner, to, amount):
        moved = super().transfer_from(spender, owner, to, amount)
        if moved and self.callback is not None:
            try:
                self.callback()
            except Exception as exc:
                self.callback_error = exc
                raise
        return moved


class PlainAssetLedger:
    """
    Asset ledger without snapshot/restore.

    Satisfies AssetLedger but not Revertible, so the engine can only unwind
    its own ledgers around it.
    """

    def __init__(self):
        self.balances = {}

    def balance_of(self, account):
        return self.balances.get(account, 0)

    def transfer(self, sender, to, amount):
        if self.balance_of(sender) < amount:
            return False
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[to] = self.balance_of(to) + amount
        return True

    def transfer_from(self, spender, owner, to, amount):
        return self.transfer(owner, to, amount)
