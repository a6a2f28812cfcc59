"""
Nonce table for replay protection.

Tracks, per signer, the last accepted instruction nonce. The instruction
processor requires strictly sequential nonces (last + 1).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from .balances import PubKey
from .canonical import U64_MAX, canonical_id


@dataclass
class NonceTable:
    """Mutable mapping: signer -> last_used_nonce."""

    _last: Dict[PubKey, int] = field(default_factory=dict)

    def get_last(self, signer: PubKey) -> int:
        return self._last.get(canonical_id(signer, name="signer"), 0)

    def expected_next(self, signer: PubKey) -> int:
        return self.get_last(signer) + 1

    def set_last(self, signer: PubKey, last_nonce: int) -> None:
        if not isinstance(last_nonce, int) or isinstance(last_nonce, bool) or last_nonce < 0:
            raise TypeError("last_nonce must be a non-negative int")
        if last_nonce > U64_MAX:
            raise TypeError("last_nonce must fit in u64")
        self._last[canonical_id(signer, name="signer")] = last_nonce

    def get_all(self) -> Mapping[PubKey, int]:
        return dict(self._last)
