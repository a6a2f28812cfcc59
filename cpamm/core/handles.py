"""Capability handles for a pool's accounts.

`initialize` hands out a `PoolHandle`; every later instruction takes it back
as a parameter. The engine re-derives each address from the config before
trusting a handle, so a forged or mixed-up handle is rejected with
`AccountMismatch` instead of touching another pool's vaults.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..state.addresses import (
    associated_token_address,
    config_seeds,
    lp_mint_seeds,
    verify_program_address,
)
from ..state.balances import AssetId, PubKey
from ..state.pools import PoolConfig
from .errors import AccountMismatch


@dataclass(frozen=True)
class VaultHandle:
    address: PubKey  # token account address
    owner: PubKey  # always the config address
    mint: AssetId


@dataclass(frozen=True)
class MintHandle:
    mint: AssetId
    authority: PubKey  # always the config address


@dataclass(frozen=True)
class PoolHandle:
    config: PubKey
    seed: int
    vault_x: VaultHandle
    vault_y: VaultHandle
    mint_lp: MintHandle

    def vaults(self) -> tuple[VaultHandle, VaultHandle]:
        return self.vault_x, self.vault_y


def handle_for(config_address: PubKey, pool: PoolConfig) -> PoolHandle:
    return PoolHandle(
        config=config_address,
        seed=pool.seed,
        vault_x=VaultHandle(address=pool.vault_x, owner=config_address, mint=pool.mint_x),
        vault_y=VaultHandle(address=pool.vault_y, owner=config_address, mint=pool.mint_y),
        mint_lp=MintHandle(mint=pool.mint_lp, authority=config_address),
    )


def verify_handle(handle: PoolHandle, pool: PoolConfig, *, program_id: str) -> None:
    """Raise AccountMismatch unless every account in `handle` belongs to `pool`."""
    if handle.seed != pool.seed:
        raise AccountMismatch("handle seed does not match pool")
    if not verify_program_address(handle.config, config_seeds(pool.seed), pool.config_bump, program_id):
        raise AccountMismatch("config address does not derive from seed")
    if not verify_program_address(pool.mint_lp, lp_mint_seeds(handle.config), pool.lp_bump, program_id):
        raise AccountMismatch("LP mint does not derive from config")
    if handle.mint_lp != MintHandle(mint=pool.mint_lp, authority=handle.config):
        raise AccountMismatch("LP mint handle does not match pool")

    for vault, mint, expected in (
        (handle.vault_x, pool.mint_x, pool.vault_x),
        (handle.vault_y, pool.mint_y, pool.vault_y),
    ):
        if vault.mint != mint or vault.owner != handle.config or vault.address != expected:
            raise AccountMismatch(f"vault handle for {mint} does not match pool")
        if associated_token_address(handle.config, mint) != vault.address:
            raise AccountMismatch(f"vault for {mint} is not owned by the config")
