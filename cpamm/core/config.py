"""
Engine configuration: policy points for rounding and LP bootstrap, account
creation cost and program identity.

Configs are frozen dataclasses; `load_engine_config` reads the same fields
from a YAML file and fails closed on unknown keys or wrongly typed values.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from ..state.canonical import canonical_id, sha256_hex
from .cpmm import SwapRounding
from .lp_math import DEFAULT_FIXED_INITIAL_SHARES, BootstrapPolicy


DEFAULT_PROGRAM_ID = sha256_hex(b"cpamm:program")

# Rent-exempt deposit per created account, in native units.
DEFAULT_ACCOUNT_CREATION_COST = 2_039_280

# Accounts created by initialize: config, LP mint, vault_x, vault_y.
ACCOUNTS_PER_POOL = 4


@dataclass(frozen=True)
class EngineConfig:
    program_id: str = DEFAULT_PROGRAM_ID
    account_creation_cost: int = DEFAULT_ACCOUNT_CREATION_COST
    lp_decimals: int = 6

    # First-deposit share policy.
    bootstrap: BootstrapPolicy = BootstrapPolicy.GEOMETRIC_MEAN
    fixed_initial_shares: int = DEFAULT_FIXED_INITIAL_SHARES
    # Shares withheld from the first depositor and locked forever (0 disables).
    minimum_liquidity: int = 0

    # POOL_FAVORING rounds the output reserve up, so k never shrinks. TRUNCATE
    # is the plain floor formula and locks the pool on a k-shrinking swap.
    swap_rounding: SwapRounding = SwapRounding.POOL_FAVORING

    def __post_init__(self) -> None:
        canonical_id(self.program_id, name="program_id", nbytes=32)
        for name in ("account_creation_cost", "fixed_initial_shares", "minimum_liquidity"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ValueError(f"{name} must be a non-negative int")
        if self.fixed_initial_shares == 0:
            raise ValueError("fixed_initial_shares must be positive")
        if not isinstance(self.lp_decimals, int) or isinstance(self.lp_decimals, bool) or not (0 <= self.lp_decimals <= 18):
            raise ValueError("lp_decimals must be in [0, 18]")
        if not isinstance(self.bootstrap, BootstrapPolicy):
            raise TypeError("bootstrap must be a BootstrapPolicy")
        if not isinstance(self.swap_rounding, SwapRounding):
            raise TypeError("swap_rounding must be a SwapRounding")

    @property
    def initialize_cost(self) -> int:
        return self.account_creation_cost * ACCOUNTS_PER_POOL


_ENUM_FIELDS = {
    "bootstrap": BootstrapPolicy,
    "swap_rounding": SwapRounding,
}


def engine_config_from_mapping(obj: Mapping[str, Any]) -> EngineConfig:
    if not isinstance(obj, Mapping):
        raise TypeError("engine config must be a mapping")
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(obj) - known)
    if unknown:
        raise ValueError(f"unknown engine config keys: {unknown}")

    kwargs: dict[str, Any] = {}
    for key, value in obj.items():
        enum_cls = _ENUM_FIELDS.get(key)
        if enum_cls is not None:
            if not isinstance(value, str):
                raise TypeError(f"{key} must be a string")
            try:
                kwargs[key] = enum_cls(value.strip().lower())
            except ValueError as exc:
                choices = ", ".join(m.value for m in enum_cls)
                raise ValueError(f"{key} must be one of: {choices}") from exc
        elif key == "program_id":
            if not isinstance(value, str):
                raise TypeError("program_id must be a string")
            kwargs[key] = canonical_id(value, name="program_id", nbytes=32)
        else:
            kwargs[key] = value
    return EngineConfig(**kwargs)


def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    """
    Load an EngineConfig from YAML. An empty file yields the defaults.

    Example:

        swap_rounding: truncate
        bootstrap: geometric_mean
        minimum_liquidity: 1000
    """
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return EngineConfig()
    return engine_config_from_mapping(obj)
