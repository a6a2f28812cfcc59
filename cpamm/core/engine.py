"""
Pool engine: initialize, deposit, withdraw, swap and lock.

Every instruction follows the same shape:

1. Canonicalize and range-check parameters.
2. Load the pool, verify the caller's handle and run the authority gate.
3. Quote the outcome with the pure liquidity math.
4. Build the full post-state and every ledger operation, then check all
   invariants on the post-state.
5. Apply the ledger batch (atomic) and store the post-state.

Nothing is written before step 5, so a rejected instruction leaves balances,
reserves and supply untouched. The one exception is an invariant violation,
which stores `locked=True` on the pool and then raises.

The engine does no locking of its own: callers must serialize instructions
per pool.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum, unique
from typing import List, Optional, Sequence

from ..state.addresses import associated_token_address, derive_config_address, derive_lp_mint_address
from ..state.balances import NATIVE_ASSET, AssetId, Burn, InsufficientFunds, Ledger, LedgerOp, MintTo, PubKey, Transfer
from ..state.canonical import U64_MAX, canonical_id
from ..state.pools import PoolConfig
from ..state.registry import PoolRegistry
from .authority import InstructionKind, authorize
from .config import EngineConfig
from .cpmm import SwapQuote, quote_swap, validate_fee_bps
from .errors import (
    AlreadyInitialized,
    IdenticalMints,
    InsufficientBalance,
    InsufficientLpBalance,
    InvalidAmount,
    InvariantViolation,
    NotInitialized,
    PoolLocked,
    SlippageExceeded,
    UnknownMint,
    ZeroAmount,
)
from .events import LiquidityAdded, LiquidityRemoved, PoolCreated, PoolEvent, PoolLockedEvent, Swapped
from .handles import PoolHandle, handle_for, verify_handle
from .invariants import check_transition
from .lp_math import DepositQuote, quote_deposit, quote_initial_deposit, quote_withdraw


logger = logging.getLogger(__name__)

# Holder of the permanently locked minimum liquidity shares.
LP_LOCK_ADDRESS: PubKey = "0x" + "00" * 48


@unique
class SwapDirection(Enum):
    X_TO_Y = "x_to_y"
    Y_TO_X = "y_to_x"


def _require_amounts(**values: int) -> None:
    for name, v in values.items():
        if not isinstance(v, int) or isinstance(v, bool):
            raise TypeError(f"{name} must be an int")
        if not (0 <= v <= U64_MAX):
            raise InvalidAmount(f"{name} must be in [0, 2^64): {v}")


def _require_fits_u64(after: PoolConfig) -> None:
    # Must run before _commit: an overflow caught there locks the pool.
    for name in ("reserve_x", "reserve_y", "lp_supply"):
        value = getattr(after, name)
        if value > U64_MAX:
            raise InvalidAmount(f"{name} would exceed 2^64 - 1: {value}")


class PoolEngine:
    """
    State-transition engine for constant-product pools.

    Args:
        ledger: Token ledger holding user balances, vaults and mints
        config: Policy and program configuration
        registry: Pool store (a fresh one is created if omitted)
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        config: Optional[EngineConfig] = None,
        registry: Optional[PoolRegistry] = None,
    ) -> None:
        self.ledger = ledger
        self.config = config or EngineConfig()
        self.registry = registry if registry is not None else PoolRegistry()
        self.events: List[PoolEvent] = []

    # -- lookups -------------------------------------------------------------

    def config_address(self, seed: int) -> PubKey:
        return derive_config_address(seed, self.config.program_id).address

    def pool(self, config_address: PubKey) -> PoolConfig:
        pool = self.registry.get(config_address)
        if pool is None:
            raise NotInitialized(f"no pool at {config_address}")
        return pool

    def handle(self, config_address: PubKey) -> PoolHandle:
        return handle_for(config_address, self.pool(config_address))

    def vault_balances(self, handle: PoolHandle) -> tuple[int, int]:
        return (
            self.ledger.balance(handle.vault_x.address, handle.vault_x.mint),
            self.ledger.balance(handle.vault_y.address, handle.vault_y.mint),
        )

    # -- initialize ----------------------------------------------------------

    def initialize(
        self,
        payer: PubKey,
        *,
        seed: int,
        fee_bps: int,
        mint_x: AssetId,
        mint_y: AssetId,
        authority: Optional[PubKey] = None,
    ) -> PoolHandle:
        """
        Create a pool config, its LP mint and both vaults.

        The payer funds `account_creation_cost` per created account in the
        native asset. Reserves and LP supply start at zero.

        Raises:
            InvalidFee, IdenticalMints, UnknownMint, InvalidAmount: bad parameters
            AlreadyInitialized: a pool already exists for this seed
            InsufficientFunding: payer cannot cover account creation
        """
        payer = canonical_id(payer, name="payer")
        mint_x = canonical_id(mint_x, name="mint_x")
        mint_y = canonical_id(mint_y, name="mint_y")
        if authority is not None:
            authority = canonical_id(authority, name="authority")
        _require_amounts(seed=seed)
        validate_fee_bps(fee_bps)
        if mint_x == mint_y:
            raise IdenticalMints(f"mint_x and mint_y are both {mint_x}")
        for mint in (mint_x, mint_y):
            if not self.ledger.has_mint(mint):
                raise UnknownMint(f"mint does not exist: {mint}")

        program_id = self.config.program_id
        config_pda = derive_config_address(seed, program_id)
        if config_pda.address in self.registry:
            raise AlreadyInitialized(f"pool with seed {seed} already exists at {config_pda.address}")
        lp_pda = derive_lp_mint_address(config_pda.address, program_id)
        if self.ledger.has_mint(lp_pda.address):
            raise AlreadyInitialized(f"LP mint already exists: {lp_pda.address}")

        cost = self.config.initialize_cost
        authorize(
            InstructionKind.INITIALIZE,
            payer,
            funding_ok=self.ledger.balance(payer, NATIVE_ASSET) >= cost,
        )

        pool = PoolConfig(
            seed=seed,
            mint_x=mint_x,
            mint_y=mint_y,
            mint_lp=lp_pda.address,
            vault_x=associated_token_address(config_pda.address, mint_x),
            vault_y=associated_token_address(config_pda.address, mint_y),
            fee_bps=fee_bps,
            authority=authority,
            config_bump=config_pda.bump,
            lp_bump=lp_pda.bump,
        )

        # All preconditions hold; the writes below cannot fail.
        self.ledger.apply([Transfer(asset=NATIVE_ASSET, source=payer, dest=config_pda.address, amount=cost)])
        self.ledger.create_mint(lp_pda.address, authority=config_pda.address, decimals=self.config.lp_decimals)
        self.registry.register(config_pda.address, pool)

        event = PoolCreated(
            config=config_pda.address,
            seed=seed,
            mint_x=mint_x,
            mint_y=mint_y,
            mint_lp=pool.mint_lp,
            fee_bps=fee_bps,
            authority=authority,
        )
        self.events.append(event)
        logger.info(
            "pool created config=%s seed=%d mint_x=%s mint_y=%s fee_bps=%d",
            config_pda.address,
            seed,
            mint_x,
            mint_y,
            fee_bps,
        )
        return handle_for(config_pda.address, pool)

    # -- deposit -------------------------------------------------------------

    def preview_deposit(self, handle: PoolHandle, *, amount_x_max: int, amount_y_max: int) -> DepositQuote:
        _require_amounts(amount_x_max=amount_x_max, amount_y_max=amount_y_max)
        return self._quote_deposit(self.pool(handle.config), amount_x_max, amount_y_max)

    def _quote_deposit(self, pool: PoolConfig, amount_x_max: int, amount_y_max: int) -> DepositQuote:
        if pool.lp_supply == 0:
            return quote_initial_deposit(
                amount_x=amount_x_max,
                amount_y=amount_y_max,
                policy=self.config.bootstrap,
                fixed_shares=self.config.fixed_initial_shares,
                minimum_liquidity=self.config.minimum_liquidity,
            )
        return quote_deposit(
            reserve_x=pool.reserve_x,
            reserve_y=pool.reserve_y,
            lp_supply=pool.lp_supply,
            amount_x_max=amount_x_max,
            amount_y_max=amount_y_max,
        )

    def deposit(
        self,
        handle: PoolHandle,
        depositor: PubKey,
        *,
        amount_x_max: int,
        amount_y_max: int,
        min_lp_out: int = 0,
    ) -> LiquidityAdded:
        """
        Add liquidity in the pool's current ratio and mint LP shares.

        On an empty pool both amounts are used exactly and the share count
        follows the configured bootstrap policy.
        """
        depositor = canonical_id(depositor, name="depositor")
        _require_amounts(amount_x_max=amount_x_max, amount_y_max=amount_y_max, min_lp_out=min_lp_out)
        pool = self._load(handle, InstructionKind.DEPOSIT, depositor)

        quote = self._quote_deposit(pool, amount_x_max, amount_y_max)
        if quote.lp_minted < min_lp_out:
            raise SlippageExceeded("lp_minted", quote.lp_minted, min_lp_out)
        after = replace(
            pool,
            reserve_x=pool.reserve_x + quote.amount_x,
            reserve_y=pool.reserve_y + quote.amount_y,
            lp_supply=pool.lp_supply + quote.lp_total,
        )
        _require_fits_u64(after)
        self._require_balance(depositor, pool.mint_x, quote.amount_x)
        self._require_balance(depositor, pool.mint_y, quote.amount_y)

        mint_authority = handle.mint_lp.authority
        ops: List[LedgerOp] = [
            Transfer(asset=pool.mint_x, source=depositor, dest=handle.vault_x.address, amount=quote.amount_x),
            Transfer(asset=pool.mint_y, source=depositor, dest=handle.vault_y.address, amount=quote.amount_y),
            MintTo(asset=pool.mint_lp, dest=depositor, amount=quote.lp_minted, authority=mint_authority),
        ]
        if quote.lp_locked:
            ops.append(
                MintTo(asset=pool.mint_lp, dest=LP_LOCK_ADDRESS, amount=quote.lp_locked, authority=mint_authority)
            )

        event = LiquidityAdded(
            config=handle.config,
            depositor=depositor,
            amount_x=quote.amount_x,
            amount_y=quote.amount_y,
            lp_minted=quote.lp_minted,
            lp_locked=quote.lp_locked,
            reserve_x=after.reserve_x,
            reserve_y=after.reserve_y,
            lp_supply=after.lp_supply,
        )
        self._commit(handle.config, pool, after, ops, event)
        return event

    # -- withdraw ------------------------------------------------------------

    def withdraw(
        self,
        handle: PoolHandle,
        owner: PubKey,
        *,
        lp_amount: int,
        min_x_out: int = 0,
        min_y_out: int = 0,
    ) -> LiquidityRemoved:
        """Burn LP shares and return the pro-rata share of both reserves (floored)."""
        owner = canonical_id(owner, name="owner")
        _require_amounts(lp_amount=lp_amount, min_x_out=min_x_out, min_y_out=min_y_out)
        pool = self._load(handle, InstructionKind.WITHDRAW, owner)

        if lp_amount == 0:
            raise ZeroAmount("lp_amount must be positive")
        held = self.ledger.balance(owner, pool.mint_lp)
        if lp_amount > held:
            raise InsufficientLpBalance(f"{owner} holds {held} LP, cannot burn {lp_amount}")

        quote = quote_withdraw(
            reserve_x=pool.reserve_x,
            reserve_y=pool.reserve_y,
            lp_supply=pool.lp_supply,
            lp_amount=lp_amount,
        )
        if quote.amount_x < min_x_out:
            raise SlippageExceeded("amount_x", quote.amount_x, min_x_out)
        if quote.amount_y < min_y_out:
            raise SlippageExceeded("amount_y", quote.amount_y, min_y_out)

        after = replace(
            pool,
            reserve_x=pool.reserve_x - quote.amount_x,
            reserve_y=pool.reserve_y - quote.amount_y,
            lp_supply=pool.lp_supply - lp_amount,
        )
        ops: List[LedgerOp] = [
            Burn(asset=pool.mint_lp, source=owner, amount=lp_amount),
            Transfer(asset=pool.mint_x, source=handle.vault_x.address, dest=owner, amount=quote.amount_x),
            Transfer(asset=pool.mint_y, source=handle.vault_y.address, dest=owner, amount=quote.amount_y),
        ]
        event = LiquidityRemoved(
            config=handle.config,
            owner=owner,
            lp_burned=lp_amount,
            amount_x=quote.amount_x,
            amount_y=quote.amount_y,
            reserve_x=after.reserve_x,
            reserve_y=after.reserve_y,
            lp_supply=after.lp_supply,
        )
        self._commit(handle.config, pool, after, ops, event)
        return event

    # -- swap ----------------------------------------------------------------

    def preview_swap(self, handle: PoolHandle, *, direction: SwapDirection, amount_in: int) -> SwapQuote:
        _require_amounts(amount_in=amount_in)
        pool = self.pool(handle.config)
        reserve_in, reserve_out = self._sides(pool, direction)
        return quote_swap(
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            amount_in=amount_in,
            fee_bps=pool.fee_bps,
            rounding=self.config.swap_rounding,
        )

    @staticmethod
    def _sides(pool: PoolConfig, direction: SwapDirection) -> tuple[int, int]:
        if not isinstance(direction, SwapDirection):
            raise TypeError("direction must be a SwapDirection")
        if direction is SwapDirection.X_TO_Y:
            return pool.reserve_x, pool.reserve_y
        return pool.reserve_y, pool.reserve_x

    def swap(
        self,
        handle: PoolHandle,
        trader: PubKey,
        *,
        direction: SwapDirection,
        amount_in: int,
        min_amount_out: int = 0,
    ) -> Swapped:
        """
        Exact-in swap. The full input, fee included, is added to the input reserve.

        Raises InvariantViolation (and locks the pool) if the post-swap
        constant product would be below the pre-swap one, which only
        `SwapRounding.TRUNCATE` allows.
        """
        trader = canonical_id(trader, name="trader")
        _require_amounts(amount_in=amount_in, min_amount_out=min_amount_out)
        pool = self._load(handle, InstructionKind.SWAP, trader)

        reserve_in, reserve_out = self._sides(pool, direction)
        quote = quote_swap(
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            amount_in=amount_in,
            fee_bps=pool.fee_bps,
            rounding=self.config.swap_rounding,
        )
        if quote.amount_out < min_amount_out:
            raise SlippageExceeded("amount_out", quote.amount_out, min_amount_out)

        if direction is SwapDirection.X_TO_Y:
            vault_in, vault_out = handle.vault_x, handle.vault_y
            after = replace(pool, reserve_x=quote.new_reserve_in, reserve_y=quote.new_reserve_out)
        else:
            vault_in, vault_out = handle.vault_y, handle.vault_x
            after = replace(pool, reserve_y=quote.new_reserve_in, reserve_x=quote.new_reserve_out)
        _require_fits_u64(after)
        self._require_balance(trader, vault_in.mint, amount_in)

        ops: List[LedgerOp] = [
            Transfer(asset=vault_in.mint, source=trader, dest=vault_in.address, amount=amount_in),
            Transfer(asset=vault_out.mint, source=vault_out.address, dest=trader, amount=quote.amount_out),
        ]
        event = Swapped(
            config=handle.config,
            trader=trader,
            x_to_y=direction is SwapDirection.X_TO_Y,
            amount_in=amount_in,
            fee=quote.fee,
            amount_out=quote.amount_out,
            reserve_x=after.reserve_x,
            reserve_y=after.reserve_y,
        )
        self._commit(handle.config, pool, after, ops, event, swap=True)
        return event

    # -- lock (privileged) ---------------------------------------------------

    def lock(self, handle: PoolHandle, caller: PubKey) -> PoolLockedEvent:
        """Emergency halt by the pool authority. Irreversible."""
        caller = canonical_id(caller, name="caller")
        pool = self._load(handle, InstructionKind.LOCK, caller, allow_locked=True)
        if pool.locked:
            raise PoolLocked(f"pool {handle.config} is already locked")
        self.registry.replace(handle.config, replace(pool, locked=True))
        event = PoolLockedEvent(config=handle.config, reason="authority")
        self.events.append(event)
        logger.info("pool locked by authority config=%s", handle.config)
        return event

    # -- internals -----------------------------------------------------------

    def _load(
        self,
        handle: PoolHandle,
        kind: InstructionKind,
        caller: PubKey,
        *,
        allow_locked: bool = False,
    ) -> PoolConfig:
        if not isinstance(handle, PoolHandle):
            raise TypeError("handle must be a PoolHandle")
        pool = self.pool(handle.config)
        verify_handle(handle, pool, program_id=self.config.program_id)
        authorize(kind, caller, pool)
        if pool.locked and not allow_locked:
            raise PoolLocked(f"pool {handle.config} is locked")

        vault_x, vault_y = self.vault_balances(handle)
        if not pool.locked and (vault_x < pool.reserve_x or vault_y < pool.reserve_y):
            self._fail_invariant(handle.config, pool, ["inv_vault_solvent"])
        return pool

    def _require_balance(self, holder: PubKey, asset: AssetId, amount: int) -> None:
        held = self.ledger.balance(holder, asset)
        if held < amount:
            raise InsufficientBalance(f"{holder} holds {held} of {asset}, needs {amount}")

    def _commit(
        self,
        address: PubKey,
        before: PoolConfig,
        after: PoolConfig,
        ops: Sequence[LedgerOp],
        event: PoolEvent,
        *,
        swap: bool = False,
    ) -> None:
        violations = check_transition(before, after, swap=swap)
        if violations:
            self._fail_invariant(address, before, violations)
        try:
            self.ledger.apply(ops)
        except InsufficientFunds as exc:
            raise InsufficientBalance(str(exc)) from exc
        self.registry.replace(address, after)
        self.events.append(event)
        logger.debug("%s committed config=%s %r", event.kind.value, address, after)

    def _fail_invariant(self, address: PubKey, pool: PoolConfig, violations: List[str]) -> None:
        self.registry.replace(address, replace(pool, locked=True))
        self.events.append(PoolLockedEvent(config=address, reason="invariant:" + ",".join(violations)))
        logger.error("pool locked after invariant violation config=%s violations=%s", address, violations)
        raise InvariantViolation(violations)
