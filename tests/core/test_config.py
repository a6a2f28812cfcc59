# [TESTER] v1

from __future__ import annotations

from pathlib import Path

import pytest

from cpamm.core.config import (
    ACCOUNTS_PER_POOL,
    DEFAULT_ACCOUNT_CREATION_COST,
    EngineConfig,
    engine_config_from_mapping,
    load_engine_config,
)
from cpamm.core.cpmm import SwapRounding
from cpamm.core.lp_math import BootstrapPolicy


def test_defaults() -> None:
    config = EngineConfig()
    assert config.swap_rounding is SwapRounding.POOL_FAVORING
    assert config.bootstrap is BootstrapPolicy.GEOMETRIC_MEAN
    assert config.minimum_liquidity == 0
    assert config.initialize_cost == DEFAULT_ACCOUNT_CREATION_COST * ACCOUNTS_PER_POOL


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "engine.yaml"
    path.write_text(
        "swap_rounding: Truncate\n"
        "bootstrap: fixed\n"
        "fixed_initial_shares: 1000\n"
        "minimum_liquidity: 10\n"
        "account_creation_cost: 0\n",
        encoding="utf-8",
    )
    config = load_engine_config(path)
    assert config.swap_rounding is SwapRounding.TRUNCATE
    assert config.bootstrap is BootstrapPolicy.FIXED
    assert config.fixed_initial_shares == 1_000
    assert config.minimum_liquidity == 10
    assert config.initialize_cost == 0


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_engine_config(path) == EngineConfig()


def test_unknown_key_rejected() -> None:
    with pytest.raises(ValueError, match="unknown engine config keys"):
        engine_config_from_mapping({"swap_roundng": "truncate"})


def test_bad_enum_value_rejected() -> None:
    with pytest.raises(ValueError, match="swap_rounding must be one of"):
        engine_config_from_mapping({"swap_rounding": "nearest"})


def test_wrong_types_rejected() -> None:
    with pytest.raises(ValueError):
        engine_config_from_mapping({"minimum_liquidity": -1})
    with pytest.raises(ValueError):
        engine_config_from_mapping({"lp_decimals": 19})
    with pytest.raises(TypeError):
        engine_config_from_mapping(["swap_rounding"])  # type: ignore[arg-type]


def test_program_id_must_be_32_bytes() -> None:
    with pytest.raises(ValueError):
        EngineConfig(program_id="0x" + "ab" * 20)
    config = engine_config_from_mapping({"program_id": "0x" + "AB" * 32})
    assert config.program_id == "0x" + "ab" * 32
