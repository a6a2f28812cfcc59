"""Invariant checkers for pool state.

Each `inv_*` function returns True when the invariant holds on a post-state;
`check_all()` returns the violated invariant IDs (empty = all pass).
`check_transition()` adds the checks that compare pre- and post-state.
"""

from __future__ import annotations

from typing import Callable

from ..state.canonical import U64_MAX
from ..state.pools import PoolConfig


def inv_reserves_non_negative(p: PoolConfig) -> bool:
    return p.reserve_x >= 0 and p.reserve_y >= 0


def inv_lp_supply_non_negative(p: PoolConfig) -> bool:
    return p.lp_supply >= 0


def inv_fits_u64(p: PoolConfig) -> bool:
    return p.reserve_x <= U64_MAX and p.reserve_y <= U64_MAX and p.lp_supply <= U64_MAX


def inv_reserves_paired(p: PoolConfig) -> bool:
    # Both reserves are empty or both are funded; a one-sided pool has no price.
    return (p.reserve_x == 0) == (p.reserve_y == 0)


def inv_supply_backed(p: PoolConfig) -> bool:
    # Outstanding shares always have reserves behind them, and vice versa.
    return (p.lp_supply == 0) == (p.reserve_x == 0)


INVARIANT_REGISTRY: dict[str, Callable[[PoolConfig], bool]] = {
    "inv_reserves_non_negative": inv_reserves_non_negative,
    "inv_lp_supply_non_negative": inv_lp_supply_non_negative,
    "inv_fits_u64": inv_fits_u64,
    "inv_reserves_paired": inv_reserves_paired,
    "inv_supply_backed": inv_supply_backed,
}


def check_all(pool: PoolConfig) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [inv_id for inv_id, check_fn in INVARIANT_REGISTRY.items() if not check_fn(pool)]


def inv_k_non_decreasing(before: PoolConfig, after: PoolConfig) -> bool:
    return after.k >= before.k


def inv_config_immutable(before: PoolConfig, after: PoolConfig) -> bool:
    return (
        before.seed,
        before.mint_x,
        before.mint_y,
        before.mint_lp,
        before.vault_x,
        before.vault_y,
        before.fee_bps,
        before.authority,
    ) == (
        after.seed,
        after.mint_x,
        after.mint_y,
        after.mint_lp,
        after.vault_x,
        after.vault_y,
        after.fee_bps,
        after.authority,
    )


def check_transition(before: PoolConfig, after: PoolConfig, *, swap: bool = False) -> list[str]:
    violations = check_all(after)
    if not inv_config_immutable(before, after):
        violations.append("inv_config_immutable")
    if swap and not inv_k_non_decreasing(before, after):
        violations.append("inv_k_non_decreasing")
    return violations
