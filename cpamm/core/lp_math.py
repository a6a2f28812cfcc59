"""
Liquidity math: LP share minting on deposit and redemption on withdraw.

Pure functions with explicit rounding. Rounding always favors the pool:
shares are floored, required deposits are ceiled and withdrawals are floored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, unique

from .errors import InsufficientLiquidity, InsufficientLpBalance, InvalidAmount, ZeroAmount


DEFAULT_FIXED_INITIAL_SHARES = 1_000_000_000


@unique
class BootstrapPolicy(Enum):
    """How many LP shares the first deposit into an empty pool mints."""

    GEOMETRIC_MEAN = "geometric_mean"  # isqrt(amount_x * amount_y)
    FIXED = "fixed"  # a configured constant


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_non_negative(**values: int) -> None:
    for name, v in values.items():
        _require_int(name, v)
        if v < 0:
            raise InvalidAmount(f"{name} must be non-negative: {v}")


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@dataclass(frozen=True)
class DepositQuote:
    amount_x: int
    amount_y: int
    lp_minted: int  # credited to the depositor
    lp_locked: int = 0  # minted to the dead address on bootstrap

    @property
    def lp_total(self) -> int:
        return self.lp_minted + self.lp_locked


@dataclass(frozen=True)
class WithdrawQuote:
    amount_x: int
    amount_y: int


def bootstrap_shares(
    amount_x: int,
    amount_y: int,
    *,
    policy: BootstrapPolicy = BootstrapPolicy.GEOMETRIC_MEAN,
    fixed_shares: int = DEFAULT_FIXED_INITIAL_SHARES,
) -> int:
    _require_non_negative(amount_x=amount_x, amount_y=amount_y, fixed_shares=fixed_shares)
    if policy is BootstrapPolicy.FIXED:
        return fixed_shares
    # Integer sqrt: float sqrt loses precision for large products.
    return math.isqrt(amount_x * amount_y)


def quote_initial_deposit(
    *,
    amount_x: int,
    amount_y: int,
    policy: BootstrapPolicy = BootstrapPolicy.GEOMETRIC_MEAN,
    fixed_shares: int = DEFAULT_FIXED_INITIAL_SHARES,
    minimum_liquidity: int = 0,
) -> DepositQuote:
    """
    First deposit into an empty pool: both amounts are used exactly.

    `minimum_liquidity` shares are withheld from the depositor and locked
    forever, so the pool can never be fully drained back to an undefined price.
    """
    _require_non_negative(amount_x=amount_x, amount_y=amount_y, minimum_liquidity=minimum_liquidity)
    if amount_x == 0 or amount_y == 0:
        raise ZeroAmount(f"initial deposit requires both amounts: ({amount_x}, {amount_y})")

    shares = bootstrap_shares(amount_x, amount_y, policy=policy, fixed_shares=fixed_shares)
    if shares <= minimum_liquidity:
        raise InsufficientLiquidity(
            f"initial liquidity too small: {shares} shares <= minimum_liquidity {minimum_liquidity}"
        )
    return DepositQuote(
        amount_x=amount_x,
        amount_y=amount_y,
        lp_minted=shares - minimum_liquidity,
        lp_locked=minimum_liquidity,
    )


def quote_deposit(
    *,
    reserve_x: int,
    reserve_y: int,
    lp_supply: int,
    amount_x_max: int,
    amount_y_max: int,
) -> DepositQuote:
    """
    Ratio-preserving deposit into a funded pool.

    The limiting asset decides the share count:
        lp = min(floor(amount_x_max * S / X), floor(amount_y_max * S / Y))
    and the depositor pays exactly what those shares are worth, rounded up:
        amount_x = ceil(lp * X / S), amount_y = ceil(lp * Y / S)
    Both stay within the caller's maxima because lp * X / S <= amount_x_max.
    """
    _require_non_negative(
        reserve_x=reserve_x,
        reserve_y=reserve_y,
        lp_supply=lp_supply,
        amount_x_max=amount_x_max,
        amount_y_max=amount_y_max,
    )
    if lp_supply == 0:
        raise ValueError("pool has no LP supply; use quote_initial_deposit")
    if reserve_x == 0 or reserve_y == 0:
        raise InsufficientLiquidity("cannot add proportional liquidity to an empty reserve")
    if amount_x_max == 0 or amount_y_max == 0:
        raise ZeroAmount(f"deposit maxima must be positive: ({amount_x_max}, {amount_y_max})")

    lp = min((amount_x_max * lp_supply) // reserve_x, (amount_y_max * lp_supply) // reserve_y)
    if lp == 0:
        raise ZeroAmount("deposit too small to mint any LP shares")

    amount_x = _ceil_div(lp * reserve_x, lp_supply)
    amount_y = _ceil_div(lp * reserve_y, lp_supply)
    if amount_x > amount_x_max or amount_y > amount_y_max:
        raise AssertionError("deposit exceeds caller maxima")
    return DepositQuote(amount_x=amount_x, amount_y=amount_y, lp_minted=lp)


def quote_withdraw(
    *,
    reserve_x: int,
    reserve_y: int,
    lp_supply: int,
    lp_amount: int,
) -> WithdrawQuote:
    """
    Pro-rata redemption, floored:
        amount_x = floor(X * lp_amount / S), amount_y = floor(Y * lp_amount / S)
    """
    _require_non_negative(reserve_x=reserve_x, reserve_y=reserve_y, lp_supply=lp_supply, lp_amount=lp_amount)
    if lp_amount == 0:
        raise ZeroAmount("lp_amount must be positive")
    if lp_amount > lp_supply:
        raise InsufficientLpBalance(f"cannot burn more LP than supply: {lp_amount} > {lp_supply}")
    return WithdrawQuote(
        amount_x=(reserve_x * lp_amount) // lp_supply,
        amount_y=(reserve_y * lp_amount) // lp_supply,
    )
