"""
Instruction parsing for the pool engine shell.

An instruction arrives as a JSON-like object:

    {
        "kind": "swap",
        "pool": "0x<config address>",   # omitted for "initialize"
        "signer": "0x<pubkey>",
        "nonce": 7,
        "args": {"direction": "x_to_y", "amount_in": 1000, "min_amount_out": 990},
        "signature": "0x<bls signature>"  # optional
    }

Parsing is strict: unknown keys, missing required arguments and wrongly typed
values are all rejected with ValueError.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, MISSING
from typing import Any, Dict, Optional, Union

from ..core.authority import InstructionKind
from ..core.engine import SwapDirection
from ..state.canonical import U64_MAX, canonical_id


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if not (0 <= value <= U64_MAX):
        raise ValueError(f"{name} must be in [0, 2^64)")
    return int(value)


def _require_id(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    try:
        return canonical_id(value, name=name)
    except (TypeError, ValueError) as exc:
        raise ValueError(str(exc)) from exc


def _require_dict_str_keys(value: Any, *, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object")
    for k in value.keys():
        if not isinstance(k, str):
            raise ValueError(f"{name} keys must be strings")
    return value


@dataclass(frozen=True)
class InitializeArgs:
    seed: int
    fee_bps: int
    mint_x: str
    mint_y: str
    authority: Optional[str] = None


@dataclass(frozen=True)
class DepositArgs:
    amount_x_max: int
    amount_y_max: int
    min_lp_out: int = 0


@dataclass(frozen=True)
class WithdrawArgs:
    lp_amount: int
    min_x_out: int = 0
    min_y_out: int = 0


@dataclass(frozen=True)
class SwapArgs:
    direction: SwapDirection
    amount_in: int
    min_amount_out: int = 0


@dataclass(frozen=True)
class LockArgs:
    pass


InstructionArgs = Union[InitializeArgs, DepositArgs, WithdrawArgs, SwapArgs, LockArgs]

ARGS_BY_KIND = {
    InstructionKind.INITIALIZE: InitializeArgs,
    InstructionKind.DEPOSIT: DepositArgs,
    InstructionKind.WITHDRAW: WithdrawArgs,
    InstructionKind.SWAP: SwapArgs,
    InstructionKind.LOCK: LockArgs,
}

_ID_ARGS = {"mint_x", "mint_y", "authority"}


@dataclass(frozen=True)
class Instruction:
    kind: InstructionKind
    signer: str
    nonce: int
    args: InstructionArgs
    pool: Optional[str] = None


@dataclass(frozen=True)
class SignedInstruction:
    instruction: Instruction
    signature: Optional[str] = None


def _parse_args(kind: InstructionKind, raw: Dict[str, Any]) -> InstructionArgs:
    cls = ARGS_BY_KIND[kind]
    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ValueError(f"unknown {kind.value} args: {unknown}")

    kwargs: Dict[str, Any] = {}
    for name, f in known.items():
        if name not in raw:
            if f.default is MISSING:
                raise ValueError(f"missing required arg: {name}")
            continue
        value = raw[name]
        if name == "direction":
            if not isinstance(value, str):
                raise ValueError("direction must be a string")
            try:
                kwargs[name] = SwapDirection(value)
            except ValueError as exc:
                raise ValueError(f"invalid direction: {value}") from exc
        elif name in _ID_ARGS:
            kwargs[name] = None if value is None and name == "authority" else _require_id(value, name=name)
        else:
            kwargs[name] = _require_int(value, name=name)
    return cls(**kwargs)


def parse_instruction(data: Mapping[str, Any]) -> SignedInstruction:
    """
    Parse one instruction object.

    Raises:
        ValueError: If the structure is invalid
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"instruction must be an object, got {type(data)}")
    data = _require_dict_str_keys(dict(data), name="instruction")

    allowed = {"kind", "pool", "signer", "nonce", "args", "signature"}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"unknown instruction keys: {unknown}")
    for key in ("kind", "signer", "nonce"):
        if key not in data:
            raise ValueError(f"Missing required field: {key}")

    kind_raw = data["kind"]
    if not isinstance(kind_raw, str):
        raise ValueError("kind must be a string")
    try:
        kind = InstructionKind(kind_raw)
    except ValueError as exc:
        raise ValueError(f"Invalid instruction kind: {kind_raw}") from exc

    signer = _require_id(data["signer"], name="signer")
    nonce = _require_int(data["nonce"], name="nonce")
    if nonce == 0:
        raise ValueError("nonce must be positive")

    pool_raw = data.get("pool")
    if kind is InstructionKind.INITIALIZE:
        if pool_raw is not None:
            raise ValueError("initialize must not name a pool")
        pool = None
    else:
        if pool_raw is None:
            raise ValueError(f"{kind.value} requires a pool")
        pool = _require_id(pool_raw, name="pool")

    args = _parse_args(kind, _require_dict_str_keys(data.get("args", {}), name="args"))

    signature = data.get("signature")
    if signature is not None:
        if not isinstance(signature, str):
            raise ValueError("signature must be a string")
        if len(signature) > 4096:
            raise ValueError("signature too large")

    return SignedInstruction(
        instruction=Instruction(kind=kind, signer=signer, nonce=nonce, args=args, pool=pool),
        signature=signature,
    )


def args_to_dict(args: InstructionArgs) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(args):
        value = getattr(args, f.name)
        if isinstance(value, SwapDirection):
            value = value.value
        out[f.name] = value
    return out


def instruction_to_dict(ix: Instruction) -> Dict[str, Any]:
    """Canonical dict form of an instruction, without signature."""
    d: Dict[str, Any] = {
        "kind": ix.kind.value,
        "signer": ix.signer,
        "nonce": ix.nonce,
        "args": args_to_dict(ix.args),
    }
    if ix.pool is not None:
        d["pool"] = ix.pool
    return d


def create_instruction(
    kind: Union[InstructionKind, str],
    *,
    signer: str,
    nonce: int,
    pool: Optional[str] = None,
    **args: Any,
) -> Dict[str, Any]:
    """
    Build an instruction object, validating it through `parse_instruction`.

    Example:
        create_instruction("swap", signer=pk, nonce=1, pool=addr,
                           direction="x_to_y", amount_in=1000)
    """
    kind_value = kind.value if isinstance(kind, InstructionKind) else kind
    raw_args = {k: (v.value if isinstance(v, SwapDirection) else v) for k, v in args.items()}
    data: Dict[str, Any] = {"kind": kind_value, "signer": signer, "nonce": nonce, "args": raw_args}
    if pool is not None:
        data["pool"] = pool
    return instruction_to_dict(parse_instruction(data).instruction)
