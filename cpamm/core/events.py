"""Structured events emitted by committed instructions.

All events are frozen dataclasses; `to_dict()` gives a canonical-JSON-safe
form (ints, strings, bools, None).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, unique
from typing import Any, Dict, Optional, Union


@unique
class EventKind(Enum):
    POOL_CREATED = "PoolCreated"
    LIQUIDITY_ADDED = "LiquidityAdded"
    LIQUIDITY_REMOVED = "LiquidityRemoved"
    SWAPPED = "Swapped"
    POOL_LOCKED = "PoolLocked"


@dataclass(frozen=True)
class PoolCreated:
    config: str
    seed: int
    mint_x: str
    mint_y: str
    mint_lp: str
    fee_bps: int
    authority: Optional[str]

    kind = EventKind.POOL_CREATED


@dataclass(frozen=True)
class LiquidityAdded:
    config: str
    depositor: str
    amount_x: int
    amount_y: int
    lp_minted: int
    lp_locked: int
    reserve_x: int
    reserve_y: int
    lp_supply: int

    kind = EventKind.LIQUIDITY_ADDED


@dataclass(frozen=True)
class LiquidityRemoved:
    config: str
    owner: str
    lp_burned: int
    amount_x: int
    amount_y: int
    reserve_x: int
    reserve_y: int
    lp_supply: int

    kind = EventKind.LIQUIDITY_REMOVED


@dataclass(frozen=True)
class Swapped:
    config: str
    trader: str
    x_to_y: bool
    amount_in: int
    fee: int
    amount_out: int
    reserve_x: int
    reserve_y: int

    kind = EventKind.SWAPPED


@dataclass(frozen=True)
class PoolLockedEvent:
    config: str
    reason: str  # "authority" or "invariant:<ids>"

    kind = EventKind.POOL_LOCKED


PoolEvent = Union[PoolCreated, LiquidityAdded, LiquidityRemoved, Swapped, PoolLockedEvent]


def event_to_dict(event: PoolEvent) -> Dict[str, Any]:
    d = asdict(event)
    d["event"] = event.kind.value
    return d
