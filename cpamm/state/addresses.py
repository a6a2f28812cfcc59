"""
Deterministic address derivation.

Program-derived addresses are `sha256(seeds || bump || program_id || marker)`.
The bump byte is the derivation proof: whoever holds the seeds and the bump
can re-derive the address and so authenticate that an account belongs to the
program. There is no curve check in this model, so the canonical bump is
always the highest one.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Sequence

from .canonical import canonical_id, encode_u64_le, id_to_bytes, sha256_hex


PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LEN = 32
CANONICAL_BUMP = 255

TOKEN_PROGRAM_ID = sha256_hex(b"cpamm:token-program")
ASSOCIATED_TOKEN_PROGRAM_ID = sha256_hex(b"cpamm:associated-token-program")

CONFIG_SEED = b"config"
LP_MINT_SEED = b"lp"


@dataclass(frozen=True)
class ProgramAddress:
    address: str
    bump: int


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"too many seeds: {len(seeds)} > {MAX_SEEDS}")
    for i, seed in enumerate(seeds):
        if not isinstance(seed, (bytes, bytearray)):
            raise TypeError(f"seed {i} must be bytes")
        if len(seed) > MAX_SEED_LEN:
            raise ValueError(f"seed {i} longer than {MAX_SEED_LEN} bytes")


def create_program_address(seeds: Sequence[bytes], program_id: str) -> str:
    """Derive the address for `seeds` (bump included as the last seed)."""
    _check_seeds(seeds)
    h = hashlib.sha256()
    for seed in seeds:
        h.update(bytes(seed))
    h.update(id_to_bytes(program_id, name="program_id"))
    h.update(PDA_MARKER)
    return "0x" + h.hexdigest()


def find_program_address(seeds: Sequence[bytes], program_id: str) -> ProgramAddress:
    _check_seeds(list(seeds) + [bytes([CANONICAL_BUMP])])
    address = create_program_address([*seeds, bytes([CANONICAL_BUMP])], program_id)
    return ProgramAddress(address=address, bump=CANONICAL_BUMP)


def verify_program_address(address: str, seeds: Sequence[bytes], bump: int, program_id: str) -> bool:
    """True iff `address` re-derives from `seeds` and `bump` under `program_id`."""
    if not isinstance(bump, int) or isinstance(bump, bool) or not (0 <= bump <= 255):
        return False
    try:
        expected = create_program_address([*seeds, bytes([bump])], program_id)
        return canonical_id(address, name="address") == expected
    except (TypeError, ValueError):
        return False


def config_seeds(seed: int) -> list[bytes]:
    return [CONFIG_SEED, encode_u64_le(seed)]


def lp_mint_seeds(config_address: str) -> list[bytes]:
    return [LP_MINT_SEED, id_to_bytes(config_address, name="config_address")]


def derive_config_address(seed: int, program_id: str) -> ProgramAddress:
    return find_program_address(config_seeds(seed), program_id)


def derive_lp_mint_address(config_address: str, program_id: str) -> ProgramAddress:
    return find_program_address(lp_mint_seeds(config_address), program_id)


def associated_token_address(owner: str, mint: str) -> str:
    """Token account address holding `mint` on behalf of `owner`."""
    seeds = [
        id_to_bytes(owner, name="owner"),
        id_to_bytes(TOKEN_PROGRAM_ID, name="token_program_id"),
        id_to_bytes(mint, name="mint"),
    ]
    return find_program_address(seeds, ASSOCIATED_TOKEN_PROGRAM_ID).address
