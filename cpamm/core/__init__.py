"""
Pool engine and liquidity math
"""

from .authority import InstructionKind, authorize, is_allowed
from .config import EngineConfig, load_engine_config
from .cpmm import SwapQuote, SwapRounding, compute_fee, quote_swap
from .engine import LP_LOCK_ADDRESS, PoolEngine, SwapDirection
from .errors import AmmError, InvariantViolation
from .events import (
    EventKind,
    LiquidityAdded,
    LiquidityRemoved,
    PoolCreated,
    PoolLockedEvent,
    Swapped,
    event_to_dict,
)
from .handles import MintHandle, PoolHandle, VaultHandle
from .invariants import INVARIANT_REGISTRY, check_all
from .lp_math import BootstrapPolicy, DepositQuote, WithdrawQuote, quote_deposit, quote_initial_deposit, quote_withdraw

__all__ = [
    "InstructionKind",
    "authorize",
    "is_allowed",
    "EngineConfig",
    "load_engine_config",
    "SwapQuote",
    "SwapRounding",
    "compute_fee",
    "quote_swap",
    "LP_LOCK_ADDRESS",
    "PoolEngine",
    "SwapDirection",
    "AmmError",
    "InvariantViolation",
    "EventKind",
    "LiquidityAdded",
    "LiquidityRemoved",
    "PoolCreated",
    "PoolLockedEvent",
    "Swapped",
    "event_to_dict",
    "MintHandle",
    "PoolHandle",
    "VaultHandle",
    "INVARIANT_REGISTRY",
    "check_all",
    "BootstrapPolicy",
    "DepositQuote",
    "WithdrawQuote",
    "quote_deposit",
    "quote_initial_deposit",
    "quote_withdraw",
]
