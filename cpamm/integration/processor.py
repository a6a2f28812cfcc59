"""
Instruction processor: the imperative shell around the pool engine.

- Bounds and parses a raw instruction object.
- Authenticates the signer (BLS signature, or the outer tx sender for
  unsigned instructions when policy allows it).
- Enforces strictly sequential per-signer nonces.
- Dispatches to `PoolEngine` and converts typed errors into a `TxResult`.

A nonce is consumed only when the instruction succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from ..core.authority import InstructionKind
from ..core.engine import PoolEngine
from ..core.errors import AmmError
from ..core.events import PoolEvent
from ..state.canonical import bounded_json_utf8_size, canonical_id
from ..state.nonces import NonceTable
from ..state.pools import PoolConfig
from .operations import DepositArgs, InitializeArgs, Instruction, SwapArgs, WithdrawArgs, parse_instruction
from .signing import verify_instruction_signature


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessorConfig:
    # Bind signatures to a specific deployment.
    chain_id: str = "cpamm-local"

    # Signature policy:
    # - If `require_signatures` is True, each instruction must carry a signature by its
    #   signer, unless `allow_unsigned_if_tx_sender_matches` is True and the outer tx
    #   sender is the signer.
    # - If `require_signatures` is False, signatures are ignored and every instruction
    #   must be submitted by its declared signer (tx_sender).
    require_signatures: bool = True
    allow_unsigned_if_tx_sender_matches: bool = True

    # Applied before any hashing or signature verification.
    max_instruction_bytes: int = 16_000


@dataclass(frozen=True)
class TxResult:
    ok: bool
    pool: Optional[PoolConfig] = None
    events: Tuple[PoolEvent, ...] = ()
    error: Optional[str] = None
    code: Optional[str] = None


def _sender_matches(tx_sender: Optional[str], signer: str) -> bool:
    if tx_sender is None:
        return False
    try:
        return canonical_id(tx_sender, name="tx_sender") == signer
    except (TypeError, ValueError):
        return False


def _authenticate(
    config: ProcessorConfig,
    ix: Instruction,
    signature: Optional[str],
    tx_sender: Optional[str],
) -> Optional[str]:
    """Return an error string, or None if the signer is authenticated."""
    if not config.require_signatures:
        if not _sender_matches(tx_sender, ix.signer):
            return "instruction must be submitted by its signer"
        return None
    if signature is None:
        if config.allow_unsigned_if_tx_sender_matches and _sender_matches(tx_sender, ix.signer):
            return None
        return "missing signature"
    if not verify_instruction_signature(ix, signature, chain_id=config.chain_id):
        return "invalid signature"
    return None


def _dispatch(engine: PoolEngine, ix: Instruction) -> str:
    """Run `ix` against the engine; returns the touched pool's config address."""
    args = ix.args
    if ix.kind is InstructionKind.INITIALIZE:
        if not isinstance(args, InitializeArgs):
            raise TypeError(f"initialize expects InitializeArgs, got {type(args).__name__}")
        handle = engine.initialize(
            ix.signer,
            seed=args.seed,
            fee_bps=args.fee_bps,
            mint_x=args.mint_x,
            mint_y=args.mint_y,
            authority=args.authority,
        )
        return handle.config

    if ix.pool is None:
        raise ValueError(f"{ix.kind.value} requires a pool")
    handle = engine.handle(ix.pool)
    if ix.kind is InstructionKind.DEPOSIT:
        if not isinstance(args, DepositArgs):
            raise TypeError(f"deposit expects DepositArgs, got {type(args).__name__}")
        engine.deposit(
            handle,
            ix.signer,
            amount_x_max=args.amount_x_max,
            amount_y_max=args.amount_y_max,
            min_lp_out=args.min_lp_out,
        )
    elif ix.kind is InstructionKind.WITHDRAW:
        if not isinstance(args, WithdrawArgs):
            raise TypeError(f"withdraw expects WithdrawArgs, got {type(args).__name__}")
        engine.withdraw(
            handle,
            ix.signer,
            lp_amount=args.lp_amount,
            min_x_out=args.min_x_out,
            min_y_out=args.min_y_out,
        )
    elif ix.kind is InstructionKind.SWAP:
        if not isinstance(args, SwapArgs):
            raise TypeError(f"swap expects SwapArgs, got {type(args).__name__}")
        engine.swap(
            handle,
            ix.signer,
            direction=args.direction,
            amount_in=args.amount_in,
            min_amount_out=args.min_amount_out,
        )
    elif ix.kind is InstructionKind.LOCK:
        engine.lock(handle, ix.signer)
    else:
        raise ValueError(f"unsupported instruction kind: {ix.kind!r}")
    return handle.config


def apply_instruction(
    *,
    config: ProcessorConfig,
    engine: PoolEngine,
    nonces: NonceTable,
    instruction: Mapping[str, Any],
    tx_sender: Optional[str] = None,
) -> TxResult:
    try:
        bounded_json_utf8_size(instruction, max_bytes=config.max_instruction_bytes)
        signed = parse_instruction(instruction)
    except (TypeError, ValueError) as exc:
        return TxResult(ok=False, error=str(exc), code="MalformedInstruction")

    ix = signed.instruction
    auth_error = _authenticate(config, ix, signed.signature, tx_sender)
    if auth_error is not None:
        logger.warning("rejected %s from %s: %s", ix.kind.value, ix.signer, auth_error)
        return TxResult(ok=False, error=auth_error, code="Unauthorized")

    expected = nonces.expected_next(ix.signer)
    if ix.nonce != expected:
        return TxResult(ok=False, error=f"nonce invalid: expected {expected}, got {ix.nonce}", code="InvalidNonce")

    first_event = len(engine.events)
    try:
        address = _dispatch(engine, ix)
    except AmmError as exc:
        logger.warning("rejected %s from %s: %s: %s", ix.kind.value, ix.signer, exc.code, exc)
        return TxResult(
            ok=False,
            events=tuple(engine.events[first_event:]),
            error=str(exc),
            code=exc.code,
        )
    except Exception:
        logger.exception("internal error while applying %s from %s", ix.kind.value, ix.signer)
        return TxResult(ok=False, error="internal error", code="InternalError")

    nonces.set_last(ix.signer, ix.nonce)
    return TxResult(ok=True, pool=engine.pool(address), events=tuple(engine.events[first_event:]))
