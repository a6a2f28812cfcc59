"""Authority gate.

A pure check run before the engine accepts an instruction. Liquidity and
trading instructions are permissionless once a pool exists; privileged
instructions require the caller to be the pool's authority, and a pool with
no authority has no privileged path at all.
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional

from ..state.pools import PoolConfig
from .errors import AmmError, InsufficientFunding, NotInitialized, Unauthorized


@unique
class InstructionKind(Enum):
    INITIALIZE = "initialize"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    SWAP = "swap"
    LOCK = "lock"


PERMISSIONLESS = frozenset({InstructionKind.DEPOSIT, InstructionKind.WITHDRAW, InstructionKind.SWAP})
PRIVILEGED = frozenset({InstructionKind.LOCK})


def authorize(
    kind: InstructionKind,
    caller: str,
    pool: Optional[PoolConfig] = None,
    *,
    funding_ok: bool = True,
) -> None:
    """Raise if `caller` may not perform `kind`; return None otherwise."""
    if kind is InstructionKind.INITIALIZE:
        if not funding_ok:
            raise InsufficientFunding(f"{caller} cannot cover account creation")
        return

    if pool is None:
        raise NotInitialized(f"{kind.value} requires an initialized pool")

    if kind in PERMISSIONLESS:
        return

    if kind in PRIVILEGED:
        if pool.authority is None:
            raise Unauthorized("pool has no authority; privileged instructions are disabled")
        if caller != pool.authority:
            raise Unauthorized(f"{caller} is not the pool authority")
        return

    raise Unauthorized(f"unsupported instruction kind: {kind!r}")


def is_allowed(
    kind: InstructionKind,
    caller: str,
    pool: Optional[PoolConfig] = None,
    *,
    funding_ok: bool = True,
) -> bool:
    try:
        authorize(kind, caller, pool, funding_ok=funding_ok)
    except AmmError:
        return False
    return True
