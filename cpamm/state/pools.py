"""
Pool config account: definition, validation and persistence.

Binary layout (all integers little-endian):

    discriminator   8 bytes   sha256("account:PoolConfig")[:8]
    seed            u64
    authority       u8 tag (0 = none, 1 = some) + length-prefixed bytes
    mint_x          length-prefixed bytes
    mint_y          length-prefixed bytes
    mint_lp         length-prefixed bytes
    vault_x         length-prefixed bytes
    vault_y         length-prefixed bytes
    fee_bps         u16
    locked          u8 (0 or 1)
    config_bump     u8
    lp_bump         u8
    reserve_x       u64
    reserve_y       u64
    lp_supply       u64

Length prefixes are unsigned LEB128. Decoding rejects trailing bytes, so
`encode_pool_config(decode_pool_config(b)) == b` for every accepted `b`.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .balances import Amount, AssetId, PubKey
from .canonical import (
    U8_MAX,
    U64_MAX,
    canonical_id,
    decode_bytes,
    encode_bytes,
    encode_u64_le,
    id_to_bytes,
)


BPS_DENOM = 10_000

POOL_CONFIG_DISCRIMINATOR = hashlib.sha256(b"account:PoolConfig").digest()[:8]

_ID_FIELDS = ("mint_x", "mint_y", "mint_lp", "vault_x", "vault_y")
_AMOUNT_FIELDS = ("reserve_x", "reserve_y", "lp_supply")


def _require_int(name: str, value: Any) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class PoolConfig:
    """
    State of one constant-product pool.

    Attributes:
        seed: Caller-chosen u64, part of the config address
        mint_x: First tradable asset
        mint_y: Second tradable asset
        mint_lp: LP-share mint owned by the config
        vault_x: Token account holding the x reserve
        vault_y: Token account holding the y reserve
        fee_bps: Trading fee in basis points, [0, 10000)
        authority: Privileged signer, or None for an immutable pool
        locked: Permanently halts deposit/withdraw/swap once set
        reserve_x: Accounted reserve of mint_x
        reserve_y: Accounted reserve of mint_y
        lp_supply: Outstanding LP shares (including any locked minimum)
        config_bump: Derivation proof of the config address
        lp_bump: Derivation proof of the LP mint address
    """

    seed: int
    mint_x: AssetId
    mint_y: AssetId
    mint_lp: AssetId
    vault_x: PubKey
    vault_y: PubKey
    fee_bps: int
    authority: Optional[PubKey] = None
    locked: bool = False
    reserve_x: Amount = 0
    reserve_y: Amount = 0
    lp_supply: Amount = 0
    config_bump: int = 255
    lp_bump: int = 255

    def __post_init__(self) -> None:
        _require_int("seed", self.seed)
        if not (0 <= self.seed <= U64_MAX):
            raise ValueError(f"seed must be a u64: {self.seed}")

        for name in _ID_FIELDS:
            value = getattr(self, name)
            if canonical_id(value, name=name) != value:
                raise ValueError(f"{name} must be canonical lowercase 0x hex: {value!r}")
        if self.authority is not None and canonical_id(self.authority, name="authority") != self.authority:
            raise ValueError(f"authority must be canonical lowercase 0x hex: {self.authority!r}")

        if self.mint_x == self.mint_y:
            raise ValueError("mint_x and mint_y must differ")

        _require_int("fee_bps", self.fee_bps)
        if not (0 <= self.fee_bps < BPS_DENOM):
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {self.fee_bps}")

        if not isinstance(self.locked, bool):
            raise TypeError("locked must be a bool")

        for name in _AMOUNT_FIELDS:
            value = getattr(self, name)
            _require_int(name, value)
            if value < 0:
                raise ValueError(f"{name} must be non-negative: {value}")

        for name in ("config_bump", "lp_bump"):
            value = getattr(self, name)
            _require_int(name, value)
            if not (0 <= value <= U8_MAX):
                raise ValueError(f"{name} must be a u8: {value}")

    @property
    def k(self) -> int:
        """Constant product reserve_x * reserve_y."""
        return self.reserve_x * self.reserve_y

    def reserve_of(self, asset: AssetId) -> Amount:
        if asset == self.mint_x:
            return self.reserve_x
        if asset == self.mint_y:
            return self.reserve_y
        raise ValueError(f"asset {asset} not in pool")

    def vault_of(self, asset: AssetId) -> PubKey:
        if asset == self.mint_x:
            return self.vault_x
        if asset == self.mint_y:
            return self.vault_y
        raise ValueError(f"asset {asset} not in pool")

    def __repr__(self) -> str:
        return (
            f"PoolConfig(seed={self.seed}, "
            f"mints=({self.mint_x[:10]}..., {self.mint_y[:10]}...), "
            f"reserves=({self.reserve_x}, {self.reserve_y}), "
            f"lp_supply={self.lp_supply}, fee_bps={self.fee_bps}, locked={self.locked})"
        )


def encode_pool_config(pool: PoolConfig) -> bytes:
    out = bytearray(POOL_CONFIG_DISCRIMINATOR)
    out += encode_u64_le(pool.seed)
    if pool.authority is None:
        out.append(0)
    else:
        out.append(1)
        out += encode_bytes(id_to_bytes(pool.authority))
    for name in _ID_FIELDS:
        out += encode_bytes(id_to_bytes(getattr(pool, name)))
    out += struct.pack("<HBBB", pool.fee_bps, int(pool.locked), pool.config_bump, pool.lp_bump)
    for name in _AMOUNT_FIELDS:
        out += encode_u64_le(getattr(pool, name))
    return bytes(out)


def decode_pool_config(data: bytes) -> PoolConfig:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("data must be bytes")
    data = bytes(data)
    if data[:8] != POOL_CONFIG_DISCRIMINATOR:
        raise ValueError("not a PoolConfig account (discriminator mismatch)")
    pos = 8

    def take(n: int) -> bytes:
        nonlocal pos
        if pos + n > len(data):
            raise ValueError("truncated PoolConfig account")
        chunk = data[pos:pos + n]
        pos += n
        return chunk

    fields: Dict[str, Any] = {"seed": int.from_bytes(take(8), "little")}

    tag = take(1)[0]
    if tag == 0:
        fields["authority"] = None
    elif tag == 1:
        raw, pos = decode_bytes(data, pos)
        fields["authority"] = "0x" + raw.hex()
    else:
        raise ValueError(f"invalid authority tag: {tag}")

    for name in _ID_FIELDS:
        raw, pos = decode_bytes(data, pos)
        fields[name] = "0x" + raw.hex()

    fee_bps, locked, config_bump, lp_bump = struct.unpack("<HBBB", take(5))
    if locked not in (0, 1):
        raise ValueError(f"invalid locked flag: {locked}")
    fields.update(fee_bps=fee_bps, locked=bool(locked), config_bump=config_bump, lp_bump=lp_bump)

    for name in _AMOUNT_FIELDS:
        fields[name] = int.from_bytes(take(8), "little")

    if pos != len(data):
        raise ValueError(f"trailing bytes in PoolConfig account: {len(data) - pos}")
    return PoolConfig(**fields)


def pool_config_to_dict(pool: PoolConfig) -> Dict[str, Any]:
    return {name: getattr(pool, name) for name in PoolConfig.__dataclass_fields__}


def pool_config_from_dict(d: Mapping[str, Any]) -> PoolConfig:
    """Rebuild a PoolConfig. Raises KeyError on missing fields and ValueError on unknown ones."""
    unknown = set(d) - set(PoolConfig.__dataclass_fields__)
    if unknown:
        raise ValueError(f"unknown PoolConfig fields: {sorted(unknown)}")
    return PoolConfig(**{name: d[name] for name in PoolConfig.__dataclass_fields__})
