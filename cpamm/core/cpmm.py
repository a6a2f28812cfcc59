"""
Constant product swap math.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per swap
- Invariant: reserve_in' * reserve_out' >= reserve_in * reserve_out

Pricing (exact-in, fee taken from the input before pricing):

    fee          = floor(amount_in * fee_bps / 10_000)
    effective_in = amount_in - fee
    amount_out   = reserve_out - floor(k / (reserve_in + effective_in))

The whole `amount_in`, fee included, stays in the pool, so the fee accrues to
LP holders. Under `SwapRounding.POOL_FAVORING` the new output reserve is
rounded up instead, which makes `k` non-decreasing even when the fee
truncates to zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from .errors import InsufficientLiquidity, InvalidAmount, InvalidFee, ZeroAmount


BPS_DENOM = 10_000


@unique
class SwapRounding(Enum):
    TRUNCATE = "truncate"
    POOL_FAVORING = "pool_favoring"


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@dataclass(frozen=True)
class SwapQuote:
    amount_in: int
    fee: int
    effective_in: int
    amount_out: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


def validate_fee_bps(fee_bps: int) -> None:
    _require_int("fee_bps", fee_bps)
    if not (0 <= fee_bps < BPS_DENOM):
        raise InvalidFee(f"fee_bps must be in [0, {BPS_DENOM}): {fee_bps}")


def compute_fee(amount_in: int, fee_bps: int) -> int:
    """`floor(amount_in * fee_bps / 10_000)`."""
    _require_int("amount_in", amount_in)
    validate_fee_bps(fee_bps)
    if amount_in < 0:
        raise InvalidAmount(f"amount_in must be non-negative: {amount_in}")
    return (amount_in * fee_bps) // BPS_DENOM


def quote_swap(
    *,
    reserve_in: int,
    reserve_out: int,
    amount_in: int,
    fee_bps: int,
    rounding: SwapRounding = SwapRounding.TRUNCATE,
) -> SwapQuote:
    """
    Exact-in swap quote and post-swap reserves.

    Does not enforce the k invariant: the engine checks it on the post-state so
    that a violation can lock the pool.

    Raises:
        ZeroAmount: amount_in is zero, or the output rounds to zero
        InsufficientLiquidity: a reserve is empty, or the swap would drain reserve_out
        InvalidFee / InvalidAmount: out-of-domain parameters
    """
    for name, v in (("reserve_in", reserve_in), ("reserve_out", reserve_out), ("amount_in", amount_in)):
        _require_int(name, v)
    if reserve_in < 0 or reserve_out < 0:
        raise InvalidAmount(f"reserves must be non-negative: ({reserve_in}, {reserve_out})")
    if amount_in < 0:
        raise InvalidAmount(f"amount_in must be non-negative: {amount_in}")
    if amount_in == 0:
        raise ZeroAmount("amount_in must be positive")
    if reserve_in == 0 or reserve_out == 0:
        raise InsufficientLiquidity("cannot swap against an empty reserve")

    fee = compute_fee(amount_in, fee_bps)
    effective_in = amount_in - fee

    k_before = reserve_in * reserve_out
    denominator = reserve_in + effective_in
    if rounding is SwapRounding.POOL_FAVORING:
        remaining_out = _ceil_div(k_before, denominator)
    else:
        remaining_out = k_before // denominator
    amount_out = reserve_out - remaining_out

    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"swap would drain reserve: amount_out {amount_out} >= {reserve_out}")
    if amount_out <= 0:
        raise ZeroAmount("amount_out rounds to zero (trade too small)")

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    return SwapQuote(
        amount_in=amount_in,
        fee=fee,
        effective_in=effective_in,
        amount_out=amount_out,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=k_before,
        k_after=new_reserve_in * new_reserve_out,
    )
