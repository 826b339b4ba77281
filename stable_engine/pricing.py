"""
pricing.py - Price feeds and USD valuation

Provides the valuation layer between collateral amounts and USD:

- PriceOracleAdapter: converts native asset amounts to USD value and back,
  lifting 8-decimal feed prices to 18-decimal precision
- StaticPriceOracle: settable single price (tests, fixed scenarios)
- TimeSeriesPriceOracle: price path with a forward-only clock (stress runs)

Prices are integers with FEED_DECIMALS decimals, quoted in USD.
"""

from __future__ import annotations
from bisect import bisect_right
from datetime import datetime, timedelta, timezone
import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .core import (
    ADDITIONAL_FEED_PRECISION, PRECISION,
    AssetId, PriceOracle, PriceRound,
    InvalidPrice, StalePrice, UnsupportedAsset,
)
from .ledgers import CollateralLedger


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class PriceOracleAdapter:
    """
    USD valuation over a fixed, ordered set of per-asset price feeds.

    No caching: every conversion reads the latest answer from the feed.

    Example:
        adapter = PriceOracleAdapter({"WETH": StaticPriceOracle(2000 * 10**8)})
        adapter.to_usd("WETH", 10**18)            # 2000 * 10**18
        adapter.to_asset_amount("WETH", 2000 * 10**18)  # 10**18
    """

    def __init__(
        self,
        feeds: Mapping[AssetId, PriceOracle],
        max_price_age: Optional[timedelta] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            feeds: Ordered mapping of asset to price feed. Order is kept for valuation.
            max_price_age: Reject answers older than this (None disables the check).
            clock: Source of the current time for the staleness check
                (default: current UTC time). Naive datetimes, from the clock or
                from feeds, are read as UTC.
        """
        self._feeds: Dict[AssetId, PriceOracle] = dict(feeds)
        self.max_price_age = max_price_age
        self._clock = clock or _utc_now

    @property
    def assets(self) -> List[AssetId]:
        """Supported assets in registration order."""
        return list(self._feeds)

    def feed_for(self, asset: AssetId) -> PriceOracle:
        if asset not in self._feeds:
            raise UnsupportedAsset(asset)
        return self._feeds[asset]

    def price_of(self, asset: AssetId) -> int:
        """
        Latest price of `asset` with FEED_DECIMALS decimals.

        Raises:
            UnsupportedAsset: If the asset has no feed.
            InvalidPrice: If the feed answers with a non-positive price.
            StalePrice: If a staleness limit is set and the answer is too old.
        """
        answer: PriceRound = self.feed_for(asset).latest_price()
        if answer.price <= 0:
            raise InvalidPrice(asset, answer.price)
        if self.max_price_age is not None:
            if answer.updated_at is None:
                raise StalePrice(asset, None, self.max_price_age)
            age = _as_utc(self._clock()) - _as_utc(answer.updated_at)
            if age > self.max_price_age:
                raise StalePrice(asset, answer.updated_at, self.max_price_age)
        logger.debug("price %s = %d", asset, answer.price)
        return answer.price

    def to_usd(self, asset: AssetId, amount: int) -> int:
        """USD value (18 decimals) of `amount` native units of `asset`."""
        price = self.price_of(asset)
        return price * ADDITIONAL_FEED_PRECISION * amount // PRECISION

    def to_asset_amount(self, asset: AssetId, usd_amount: int) -> int:
        """Native units of `asset` worth `usd_amount` (18 decimals), rounded down."""
        price = self.price_of(asset)
        return usd_amount * PRECISION // (price * ADDITIONAL_FEED_PRECISION)

    def total_collateral_value_usd(self, collateral: CollateralLedger, user: str) -> int:
        """
        Sum of USD values of every supported collateral the user holds.

        Assets with a zero balance contribute zero and their feeds are not read.
        """
        total = 0
        for asset in self._feeds:
            amount = collateral.balance_of(user, asset)
            if amount:
                total += self.to_usd(asset, amount)
        return total


class StaticPriceOracle:
    """
    Price feed with a single settable answer.

    Example:
        feed = StaticPriceOracle(2000 * 10**8)
        feed.update_price(1800 * 10**8)
    """

    def __init__(self, price: int, updated_at: Optional[datetime] = None):
        self._round = PriceRound(price=price, updated_at=updated_at)

    def latest_price(self) -> PriceRound:
        return self._round

    def update_price(self, price: int, updated_at: Optional[datetime] = None) -> None:
        """Replace the current answer."""
        self._round = PriceRound(price=price, updated_at=updated_at)

    def __repr__(self):
        return f"StaticPriceOracle(price={self._round.price})"


class TimeSeriesPriceOracle:
    """
    Price feed backed by a historical price path.

    Answers with the most recent observation at or before its own clock,
    which only moves forward via advance_time().
    """

    def __init__(self, path: List[Tuple[datetime, int]], start_time: Optional[datetime] = None):
        """
        Args:
            path: (timestamp, price) observations; sorted on construction.
            start_time: Initial clock (default: first observation).
        """
        if not path:
            raise ValueError("Price path cannot be empty")
        self._history = sorted(path, key=lambda x: x[0])
        self._timestamps = [ts for ts, _ in self._history]
        self._current_time = start_time or self._timestamps[0]

    @property
    def current_time(self) -> datetime:
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the feed clock forward.

        Raises:
            ValueError: If new_time is before the current time.
        """
        if new_time < self._current_time:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._current_time}")
        self._current_time = new_time

    def latest_price(self) -> PriceRound:
        idx = bisect_right(self._timestamps, self._current_time)
        if idx == 0:
            # No observation yet: report an invalid answer rather than guess.
            return PriceRound(price=0, updated_at=None)
        ts, price = self._history[idx - 1]
        return PriceRound(price=price, updated_at=ts)

    def timestamps(self) -> List[datetime]:
        """All observation times, ascending."""
        return list(self._timestamps)

    def __repr__(self):
        return f"TimeSeriesPriceOracle({len(self._history)} observations, at={self._current_time})"
