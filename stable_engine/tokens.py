"""
tokens.py - In-memory token ledgers

Reference implementations of the AssetLedger and StableToken collaborators:

- InMemoryAssetLedger: ERC20-like balances and allowances for one asset
- InMemoryStableToken: the stable token, whose mint/burn are owner-only

Both report failed transfers by returning False (never by partially
applying them) and implement the Revertible protocol, so the engine can
restore them when a call it made into them is later rolled back.
"""

from __future__ import annotations
import logging
from typing import Dict, Tuple

from .core import Address, InvalidAmount
from .guards import require_owner


logger = logging.getLogger(__name__)


class InMemoryAssetLedger:
    """
    ERC20-like token ledger.

    Example:
        weth = InMemoryAssetLedger("WETH")
        weth.mint_to("alice", 10 * 10**18)
        weth.approve("alice", "engine", 10 * 10**18)
        weth.transfer_from("engine", "alice", "engine", 10 * 10**18)  # True
    """

    def __init__(self, symbol: str):
        self.symbol = symbol
        self._balances: Dict[Address, int] = {}
        self._allowances: Dict[Tuple[Address, Address], int] = {}
        self._total_supply = 0

    # ========================================================================
    # READS
    # ========================================================================

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: Address) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: Address, spender: Address) -> int:
        return self._allowances.get((owner, spender), 0)

    # ========================================================================
    # TRANSFERS
    # ========================================================================

    def approve(self, owner: Address, spender: Address, amount: int) -> bool:
        """Set the amount `spender` may move out of `owner`'s balance."""
        if amount < 0:
            raise InvalidAmount(amount)
        self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: Address, to: Address, amount: int) -> bool:
        """Move `amount` from `sender` to `to`. Returns False if the balance is short."""
        if amount < 0 or self.balance_of(sender) < amount:
            logger.debug("%s transfer %s -> %s of %d refused", self.symbol, sender, to, amount)
            return False
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: int) -> bool:
        """
        Move `amount` from `owner` to `to` on behalf of `spender`.

        Returns False if the allowance or the balance is short; nothing changes then.
        """
        allowed = self.allowance(owner, spender)
        if amount < 0 or allowed < amount or self.balance_of(owner) < amount:
            logger.debug(
                "%s transfer_from %s -> %s of %d by %s refused",
                self.symbol, owner, to, amount, spender,
            )
            return False
        self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, to, amount)
        return True

    def _move(self, source: Address, dest: Address, amount: int) -> None:
        self._balances[source] = self.balance_of(source) - amount
        self._balances[dest] = self.balance_of(dest) + amount

    # ========================================================================
    # SUPPLY
    # ========================================================================

    def mint_to(self, account: Address, amount: int) -> None:
        """Create `amount` new tokens for `account` (test and scenario funding)."""
        if amount <= 0:
            raise InvalidAmount(amount)
        self._balances[account] = self.balance_of(account) + amount
        self._total_supply += amount

    def _burn_from(self, account: Address, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount)
        balance = self.balance_of(account)
        if balance < amount:
            raise ValueError(f"{self.symbol}: burn amount {amount} exceeds balance {balance}")
        self._balances[account] = balance - amount
        self._total_supply -= amount

    # ========================================================================
    # REVERTIBLE
    # ========================================================================

    def snapshot(self):
        return dict(self._balances), dict(self._allowances), self._total_supply

    def restore(self, snapshot) -> None:
        balances, allowances, total_supply = snapshot
        self._balances = dict(balances)
        self._allowances = dict(allowances)
        self._total_supply = total_supply

    def __repr__(self):
        return f"{type(self).__name__}({self.symbol}, supply={self._total_supply})"


class InMemoryStableToken(InMemoryAssetLedger):
    """
    Stable token ledger whose supply is controlled by a single owner (the engine).

    mint() creates tokens for any account; burn() destroys tokens from the
    owner's own balance. Both reject callers other than the owner.
    """

    def __init__(self, owner: Address, symbol: str = "DSC"):
        super().__init__(symbol)
        self.owner = owner

    def mint(self, caller: Address, to: Address, amount: int) -> bool:
        """
        Mint `amount` to `to`.

        Raises:
            NotOwner: If caller is not the owner.
            InvalidAmount: If amount is not positive.
        """
        require_owner(caller, self.owner)
        if not to:
            return False
        self.mint_to(to, amount)
        logger.debug("%s minted %d to %s", self.symbol, amount, to)
        return True

    def burn(self, caller: Address, amount: int) -> None:
        """
        Burn `amount` from the caller's own balance.

        Raises:
            NotOwner: If caller is not the owner.
            InvalidAmount: If amount is not positive.
            ValueError: If the caller holds less than amount.
        """
        require_owner(caller, self.owner)
        self._burn_from(caller, amount)
        logger.debug("%s burned %d", self.symbol, amount)
