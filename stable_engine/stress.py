"""
stress.py - Price path stress runs

Walks an engine through a simulated price path and records, at every step,
which positions have become liquidatable.

- generate_gbm_path: Geometric Brownian Motion path of feed prices (numpy)
- shock_path: deterministic path from a list of relative price moves
- run_price_path: step a TimeSeriesPriceOracle through its path and scan the engine

Uses the discrete GBM formula:
    S(t+dt) = S(t) * exp((mu - 0.5*sigma^2)*dt + sigma*sqrt(dt)*Z),  Z ~ N(0,1)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .core import Address
from .engine import StableEngine
from .pricing import TimeSeriesPriceOracle


logger = logging.getLogger(__name__)

# Trading days per year, for annualized volatility and drift.
STEPS_PER_YEAR = 252.0


@dataclass(frozen=True, slots=True)
class PathStep:
    """Engine state observed at one point of a price path."""
    timestamp: datetime
    price: int
    liquidatable: Tuple[Address, ...]


def generate_gbm_path(
    start_price: int,
    start_time: datetime,
    num_steps: int,
    volatility: float,
    drift: float = 0.0,
    step: timedelta = timedelta(days=1),
    seed: int = 42,
) -> List[Tuple[datetime, int]]:
    """
    Generate a GBM path of integer feed prices.

    Args:
        start_price: Initial feed price (FEED_DECIMALS decimals).
        start_time: Timestamp of the first observation.
        num_steps: Number of observations, including the first.
        volatility: Annualized volatility (e.g., 0.8 for 80%).
        drift: Annualized drift (default 0).
        step: Time between observations.
        seed: Random seed for reproducibility.

    Returns:
        List of (timestamp, price) tuples for TimeSeriesPriceOracle. Prices
        are floored to integers and never drop below 1.
    """
    if start_price <= 0:
        raise ValueError(f"start_price must be positive, got {start_price}")
    if num_steps < 1:
        raise ValueError(f"num_steps must be at least 1, got {num_steps}")

    rng = np.random.default_rng(seed)
    dt = 1.0 / STEPS_PER_YEAR
    z = rng.standard_normal(num_steps - 1)
    log_returns = (drift - 0.5 * volatility ** 2) * dt + volatility * np.sqrt(dt) * z
    factors = np.exp(np.concatenate(([0.0], np.cumsum(log_returns))))
    prices = np.maximum(np.floor(start_price * factors), 1).astype(np.int64)

    return [(start_time + step * i, int(price)) for i, price in enumerate(prices)]


def shock_path(
    start_price: int,
    start_time: datetime,
    moves: Sequence[float],
    step: timedelta = timedelta(days=1),
) -> List[Tuple[datetime, int]]:
    """
    Build a path from relative price moves (e.g., [-0.1, -0.25] for -10% then -25%).

    The first observation is start_price; each move compounds on the previous price.
    """
    factors = np.cumprod(np.concatenate(([1.0], 1.0 + np.asarray(moves, dtype=float))))
    if np.any(factors <= 0):
        raise ValueError("moves must keep the price positive")
    prices = np.maximum(np.floor(start_price * factors), 1).astype(np.int64)
    return [(start_time + step * i, int(price)) for i, price in enumerate(prices)]


def run_price_path(engine: StableEngine, feed: TimeSeriesPriceOracle) -> List[PathStep]:
    """
    Step `feed` through every observation and scan `engine` for unsafe positions.

    `feed` must be one of the engine's price feeds. The engine is only read,
    never mutated.
    """
    steps: List[PathStep] = []
    for timestamp in feed.timestamps():
        if timestamp < feed.current_time:
            continue
        feed.advance_time(timestamp)
        unsafe = tuple(engine.liquidatable_users())
        steps.append(PathStep(timestamp=timestamp, price=feed.latest_price().price, liquidatable=unsafe))
        if unsafe:
            logger.info("%s price %d: %d liquidatable", timestamp, steps[-1].price, len(unsafe))
    return steps


def first_liquidatable(steps: Sequence[PathStep], user: Address) -> Optional[PathStep]:
    """First step at which `user` became liquidatable, or None."""
    for path_step in steps:
        if user in path_step.liquidatable:
            return path_step
    return None
