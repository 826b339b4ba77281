"""
engine.py - Collateral/debt engine of the stable token

StableEngine is the only component that mutates collateral and debt
positions. It composes the ledgers, the price adapter, the health factor
gate, and the external token collaborators into the user-facing operations:

    deposit_collateral, mint, deposit_and_mint,
    redeem_collateral, burn, redeem_and_burn,
    liquidate

Key responsibilities:
    - Every mutating entry point runs under a CallGuard (no reentrancy) and
      as one unit of work: any exception restores the ledgers, the event log,
      and every Revertible collaborator to their state at entry
    - Ledgers are updated before any collaborator is called
    - Operations that can reduce solvency end with the health factor gate
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from .core import (
    # Types
    Address, AssetId, AssetLedger, CollateralBalances, EngineEvent,
    EngineParameters, PriceOracle, Revertible, StableToken,
    CollateralDeposited, CollateralRedeemed,
    # Exceptions
    HealthFactorBroken, HealthFactorIsFine, HealthFactorIsNotImproved,
    InvalidAmount, InvalidConfiguration, MintFailed, TransferFailed,
    UnsupportedAsset,
)
from .guards import CallGuard
from .health import calculate_health_factor, is_solvent
from .ledgers import CollateralLedger, DebtLedger
from .liquidation import (
    LiquidationResult, LiquidationStage,
    compute_liquidation_quote, select_unsafe,
)
from .pricing import PriceOracleAdapter


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SupportedAsset:
    """A collateral asset accepted by the engine, with its feed and token ledger."""
    asset: AssetId
    price_feed: PriceOracle
    token: AssetLedger


@dataclass(frozen=True, slots=True)
class AccountInformation:
    """Debt and collateral value of a user, both 18 decimals."""
    total_debt: int
    collateral_value_usd: int


class StableEngine:
    """
    Overcollateralized stable token engine.

    Thread Safety:
        Not thread-safe. Calls are sequential; the CallGuard only rejects
        reentrant calls made by collaborators during a call.

    Example:
        engine = StableEngine(
            token_addresses=["WETH"],
            price_feeds=[StaticPriceOracle(2000 * 10**8)],
            stable_token=dsc,
            tokens={"WETH": weth},
        )
        weth.approve("alice", engine.address, 10 * 10**18)
        engine.deposit_and_mint("alice", "WETH", 10 * 10**18, 5_000 * 10**18)
        engine.health_factor("alice")  # 2 * 10**18
    """

    def __init__(
        self,
        token_addresses: Sequence[AssetId],
        price_feeds: Sequence[PriceOracle],
        stable_token: StableToken,
        tokens: Mapping[AssetId, AssetLedger],
        address: Address = "engine",
        parameters: Optional[EngineParameters] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Create an engine over a fixed set of collateral assets.

        Args:
            token_addresses: Supported collateral assets, in valuation order.
            price_feeds: Price feed per asset, same order and length.
            stable_token: Stable token ledger; the engine must be its owner.
            tokens: Token ledger for each supported asset.
            address: Account id of the engine (custody of collateral and burns).
            parameters: Risk parameters (default: EngineParameters()).
            clock: Time source for the optional price staleness check.

        Raises:
            InvalidConfiguration: On mismatched lists, duplicates, missing
                feeds, or missing token ledgers.
        """
        if len(token_addresses) != len(price_feeds):
            raise InvalidConfiguration(
                f"{len(token_addresses)} token addresses but {len(price_feeds)} price feeds"
            )
        if len(set(token_addresses)) != len(token_addresses):
            raise InvalidConfiguration("duplicate token address")
        if not address:
            raise InvalidConfiguration("engine address cannot be empty")

        self.address = address
        self.parameters = parameters or EngineParameters()
        self.stable_token = stable_token

        self._assets: Dict[AssetId, SupportedAsset] = {}
        for asset, feed in zip(token_addresses, price_feeds):
            if feed is None:
                raise InvalidConfiguration(f"no price feed for {asset}")
            if asset not in tokens:
                raise InvalidConfiguration(f"no token ledger for {asset}")
            self._assets[asset] = SupportedAsset(asset=asset, price_feed=feed, token=tokens[asset])

        self.pricing = PriceOracleAdapter(
            {asset: supported.price_feed for asset, supported in self._assets.items()},
            max_price_age=self.parameters.max_price_age,
            clock=clock,
        )
        self._collateral = CollateralLedger()
        self._debt = DebtLedger()
        self._guard = CallGuard()
        self.event_log: List[EngineEvent] = []

        logger.info(
            "Engine %s created with collateral %s",
            self.address, ", ".join(self._assets) or "(none)",
        )

    # ========================================================================
    # UNIT OF WORK
    # ========================================================================

    def _participants(self) -> List[Revertible]:
        """Collaborators whose state is restored with the engine's own."""
        participants: List[Revertible] = []
        for candidate in [self.stable_token, *(a.token for a in self._assets.values())]:
            if isinstance(candidate, Revertible) and not any(candidate is p for p in participants):
                participants.append(candidate)
        return participants

    @contextmanager
    def _atomic(self, entry_point: str) -> Iterator[None]:
        """
        Run one entry point under the call guard as an all-or-nothing unit.

        On any exception, the ledgers, the event log, and every Revertible
        collaborator are restored to their state at entry, then the
        exception propagates.
        """
        with self._guard.hold(entry_point):
            participants = self._participants()
            collateral_snapshot = self._collateral.snapshot()
            debt_snapshot = self._debt.snapshot()
            event_count = len(self.event_log)
            external = [(p, p.snapshot()) for p in participants]
            try:
                yield
            except Exception as exc:
                self._collateral.restore(collateral_snapshot)
                self._debt.restore(debt_snapshot)
                del self.event_log[event_count:]
                for participant, snapshot in external:
                    participant.restore(snapshot)
                logger.warning("%s rejected: %s", entry_point, exc)
                raise

    def _emit(self, event: EngineEvent) -> None:
        self.event_log.append(event)
        logger.info("event %r", event)

    def _require_supported(self, asset: AssetId) -> SupportedAsset:
        if asset not in self._assets:
            raise UnsupportedAsset(asset)
        return self._assets[asset]

    @property
    def _stable_symbol(self) -> str:
        return getattr(self.stable_token, "symbol", "stable")

    # ========================================================================
    # EXTERNAL ENTRY POINTS (Mutating)
    # ========================================================================

    def deposit_collateral(self, user: Address, asset: AssetId, amount: int) -> None:
        """
        Deposit `amount` of `asset` from `user` as collateral.

        The user must have approved the engine to pull the amount.

        Raises:
            InvalidAmount, UnsupportedAsset, TransferFailed
        """
        with self._atomic("deposit_collateral"):
            self._deposit(user, asset, amount)
        logger.info("%s deposited %d %s", user, amount, asset)

    def mint(self, user: Address, amount: int) -> None:
        """
        Mint `amount` stable tokens to `user` against their collateral.

        Raises:
            InvalidAmount, HealthFactorBroken, MintFailed
        """
        with self._atomic("mint"):
            self._mint(user, amount)
        logger.info("%s minted %d", user, amount)

    def deposit_and_mint(
        self, user: Address, asset: AssetId, collateral_amount: int, debt_amount: int
    ) -> None:
        """Deposit collateral then mint, as one atomic call."""
        with self._atomic("deposit_and_mint"):
            self._deposit(user, asset, collateral_amount)
            self._mint(user, debt_amount)
        logger.info(
            "%s deposited %d %s and minted %d", user, collateral_amount, asset, debt_amount
        )

    def redeem_collateral(self, user: Address, asset: AssetId, amount: int) -> None:
        """
        Withdraw `amount` of `asset` back to `user`.

        Raises:
            InvalidAmount, UnsupportedAsset, InsufficientCollateral,
            TransferFailed, HealthFactorBroken
        """
        with self._atomic("redeem_collateral"):
            self._redeem(user, user, asset, amount)
            self.assert_solvent(user)
        logger.info("%s redeemed %d %s", user, amount, asset)

    def burn(self, user: Address, amount: int) -> None:
        """
        Repay `amount` of the user's own debt with their stable tokens.

        The user must have approved the engine to pull the tokens.

        Raises:
            InvalidAmount, InsufficientDebt, TransferFailed
        """
        with self._atomic("burn"):
            self._burn(user, user, amount)
            self.assert_solvent(user)
        logger.info("%s burned %d", user, amount)

    def redeem_and_burn(
        self, user: Address, asset: AssetId, collateral_amount: int, debt_amount: int
    ) -> None:
        """
        Burn debt then withdraw collateral, as one atomic call.

        The debt is reduced before any collateral leaves, and the final
        position must be solvent.
        """
        with self._atomic("redeem_and_burn"):
            self._burn(user, user, debt_amount)
            self._redeem(user, user, asset, collateral_amount)
            self.assert_solvent(user)
        logger.info(
            "%s burned %d and redeemed %d %s", user, debt_amount, collateral_amount, asset
        )

    def liquidate(
        self,
        liquidator: Address,
        user: Address,
        collateral_asset: AssetId,
        debt_to_cover: int,
    ) -> LiquidationResult:
        """
        Repay part of an unsafe user's debt in exchange for their collateral plus a bonus.

        Stages:
            1. DETECT: the user's health factor must be below the minimum
            2. SEIZE_COLLATERAL: move base + bonus collateral to the liquidator
            3. REPAY_DEBT: pull debt_to_cover stable tokens from the liquidator and burn them
            4. VERIFY_IMPROVEMENT: the user's health factor must strictly increase
            5. VERIFY_LIQUIDATOR_SOLVENCY: the liquidator's own position must be solvent

        Args:
            liquidator: Account paying the debt and receiving the collateral.
            user: Account being liquidated.
            collateral_asset: Collateral to seize.
            debt_to_cover: Debt to repay (18 decimals).

        Returns:
            LiquidationResult with the quote and the before/after health factors.

        Raises:
            InvalidAmount, UnsupportedAsset, HealthFactorIsFine,
            InsufficientCollateral, InsufficientDebt, TransferFailed,
            HealthFactorIsNotImproved, HealthFactorBroken
        """
        with self._atomic("liquidate"):
            if debt_to_cover <= 0:
                raise InvalidAmount(debt_to_cover)
            self._require_supported(collateral_asset)

            self._log_stage(LiquidationStage.DETECT, user)
            starting = self.health_factor(user)
            if is_solvent(starting, self.parameters.min_health_factor):
                raise HealthFactorIsFine(user, starting)

            quote = compute_liquidation_quote(
                self.pricing, collateral_asset, debt_to_cover, self.parameters.liquidation_bonus
            )

            self._log_stage(LiquidationStage.SEIZE_COLLATERAL, user)
            self._redeem(user, liquidator, collateral_asset, quote.total_seized)

            self._log_stage(LiquidationStage.REPAY_DEBT, user)
            self._burn(liquidator, user, debt_to_cover)

            self._log_stage(LiquidationStage.VERIFY_IMPROVEMENT, user)
            ending = self.health_factor(user)
            if ending <= starting:
                raise HealthFactorIsNotImproved(user, starting, ending)

            self._log_stage(LiquidationStage.VERIFY_LIQUIDATOR_SOLVENCY, liquidator)
            self.assert_solvent(liquidator)

        logger.info(
            "%s liquidated %s: covered %d, seized %d %s, health factor %d -> %d",
            liquidator, user, debt_to_cover, quote.total_seized, collateral_asset,
            starting, ending,
        )
        return LiquidationResult(
            liquidator=liquidator,
            user=user,
            quote=quote,
            starting_health_factor=starting,
            ending_health_factor=ending,
        )

    def _log_stage(self, stage: LiquidationStage, account: Address) -> None:
        logger.debug("liquidation stage %s (%s)", stage.value, account)

    # ========================================================================
    # INTERNAL OPERATIONS (run inside a unit of work)
    # ========================================================================

    def _deposit(self, user: Address, asset: AssetId, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount)
        supported = self._require_supported(asset)
        self._collateral.credit(user, asset, amount)
        self._emit(CollateralDeposited(user=user, asset=asset, amount=amount))
        if not supported.token.transfer_from(self.address, user, self.address, amount):
            raise TransferFailed(asset, user, self.address, amount)

    def _redeem(self, user: Address, recipient: Address, asset: AssetId, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount)
        supported = self._require_supported(asset)
        self._collateral.debit(user, asset, amount)
        self._emit(CollateralRedeemed(
            redeemed_from=user, redeemed_to=recipient, asset=asset, amount=amount
        ))
        if not supported.token.transfer(self.address, recipient, amount):
            raise TransferFailed(asset, self.address, recipient, amount)

    def _mint(self, user: Address, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount)
        self._debt.credit(user, amount)
        self.assert_solvent(user)
        if not self.stable_token.mint(self.address, user, amount):
            raise MintFailed(user, amount)

    def _burn(self, payer: Address, on_behalf_of: Address, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount)
        self._debt.debit(on_behalf_of, amount)
        if not self.stable_token.transfer_from(self.address, payer, self.address, amount):
            raise TransferFailed(self._stable_symbol, payer, self.address, amount)
        self.stable_token.burn(self.address, amount)

    # ========================================================================
    # SOLVENCY
    # ========================================================================

    def health_factor(self, user: Address) -> int:
        """Current health factor of `user` (MAX_HEALTH_FACTOR when debt-free)."""
        return calculate_health_factor(
            self.total_collateral_value_usd(user),
            self._debt.debt_of(user),
            self.parameters.liquidation_threshold,
        )

    def calculate_health_factor(self, collateral_value_usd: int, debt: int) -> int:
        """Health factor for explicit values, using this engine's threshold."""
        return calculate_health_factor(
            collateral_value_usd, debt, self.parameters.liquidation_threshold
        )

    def assert_solvent(self, user: Address) -> None:
        """
        Raises:
            HealthFactorBroken: If the user's health factor is below the minimum.
        """
        health_factor = self.health_factor(user)
        if not is_solvent(health_factor, self.parameters.min_health_factor):
            raise HealthFactorBroken(user, health_factor, self.parameters.min_health_factor)

    def liquidatable_users(self) -> List[Address]:
        """Users with debt whose health factor is below the minimum, in first-mint order."""
        return select_unsafe(
            ((user, self.health_factor(user)) for user, _ in self._debt.items()),
            self.parameters.min_health_factor,
        )

    # ========================================================================
    # READS
    # ========================================================================

    def total_collateral_value_usd(self, user: Address) -> int:
        """USD value (18 decimals) of everything `user` has deposited."""
        return self.pricing.total_collateral_value_usd(self._collateral, user)

    def get_account_information(self, user: Address) -> AccountInformation:
        return AccountInformation(
            total_debt=self._debt.debt_of(user),
            collateral_value_usd=self.total_collateral_value_usd(user),
        )

    def get_collateral_balance(self, user: Address, asset: AssetId) -> int:
        return self._collateral.balance_of(user, asset)

    def get_collateral_balances(self, user: Address) -> CollateralBalances:
        return self._collateral.balances_of(user)

    def get_debt(self, user: Address) -> int:
        return self._debt.debt_of(user)

    def get_collateral_assets(self) -> List[AssetId]:
        """Supported collateral assets, in valuation order."""
        return list(self._assets)

    def get_price_feed(self, asset: AssetId) -> PriceOracle:
        return self._require_supported(asset).price_feed

    def get_usd_value(self, asset: AssetId, amount: int) -> int:
        return self.pricing.to_usd(asset, amount)

    def get_token_amount_from_usd(self, asset: AssetId, usd_amount: int) -> int:
        return self.pricing.to_asset_amount(asset, usd_amount)

    def total_debt(self) -> int:
        """Outstanding debt across all users."""
        return self._debt.total()

    def total_collateral(self, asset: AssetId) -> int:
        """Deposited collateral of `asset` across all users."""
        self._require_supported(asset)
        return self._collateral.total(asset)

    def users(self) -> List[Address]:
        """Every user with collateral or debt, in first-seen order."""
        seen = dict.fromkeys(self._collateral.users())
        seen.update(dict.fromkeys(user for user, _ in self._debt.items()))
        return list(seen)

    @property
    def in_call(self) -> bool:
        """True while a mutating entry point is running."""
        return self._guard.locked

    def __repr__(self):
        return (
            f"StableEngine({self.address}, assets={list(self._assets)}, "
            f"debt={self._debt.total()})"
        )
