"""
Account model for the cpamm pool engine
"""

from .balances import NATIVE_ASSET, Burn, Ledger, LedgerError, MintTo, Transfer
from .pools import PoolConfig, decode_pool_config, encode_pool_config
from .registry import PoolRegistry
from .nonces import NonceTable

__all__ = [
    "NATIVE_ASSET",
    "Burn",
    "Ledger",
    "LedgerError",
    "MintTo",
    "Transfer",
    "PoolConfig",
    "decode_pool_config",
    "encode_pool_config",
    "PoolRegistry",
    "NonceTable",
]
