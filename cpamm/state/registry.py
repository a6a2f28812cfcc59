"""
Pool registry: config address -> PoolConfig.

Pools are looked up by config address (derived from the seed) and can also be
found by their token pair and seed. Registration is the only way a pool comes
into existence and is refused for an address that is already taken.
"""

from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from .balances import AssetId, PubKey
from .pools import PoolConfig


PairKey = Tuple[AssetId, AssetId, int]


def pair_key(mint_x: AssetId, mint_y: AssetId, seed: int) -> PairKey:
    """Order-independent identity of (token pair, seed)."""
    a, b = sorted((mint_x, mint_y))
    return (a, b, seed)


class PoolRegistry:
    def __init__(self) -> None:
        self._pools: Dict[PubKey, PoolConfig] = {}
        self._by_pair: Dict[PairKey, PubKey] = {}

    def __contains__(self, address: object) -> bool:
        return address in self._pools

    def __len__(self) -> int:
        return len(self._pools)

    def __iter__(self) -> Iterator[PubKey]:
        return iter(sorted(self._pools))

    def get(self, address: PubKey) -> Optional[PoolConfig]:
        return self._pools.get(address)

    def find(self, mint_x: AssetId, mint_y: AssetId, seed: int) -> Optional[PubKey]:
        return self._by_pair.get(pair_key(mint_x, mint_y, seed))

    def register(self, address: PubKey, pool: PoolConfig) -> None:
        if address in self._pools:
            raise ValueError(f"pool already registered at {address}")
        key = pair_key(pool.mint_x, pool.mint_y, pool.seed)
        if key in self._by_pair:
            raise ValueError(f"pool already registered for pair/seed {key}")
        self._pools[address] = pool
        self._by_pair[key] = address

    def replace(self, address: PubKey, pool: PoolConfig) -> None:
        """Store the next state of an existing pool. Identity fields must not change."""
        current = self._pools.get(address)
        if current is None:
            raise KeyError(f"no pool at {address}")
        if (current.seed, current.mint_x, current.mint_y, current.mint_lp) != (
            pool.seed,
            pool.mint_x,
            pool.mint_y,
            pool.mint_lp,
        ):
            raise ValueError("pool identity fields are immutable")
        self._pools[address] = pool

    def __repr__(self) -> str:
        return f"PoolRegistry({len(self._pools)} pools)"
