# [TESTER] v1

from __future__ import annotations

import logging

import pytest

from cpamm.core.authority import InstructionKind
from cpamm.core.engine import PoolEngine
from cpamm.core.events import EventKind
from cpamm.integration.operations import DepositArgs, Instruction, LockArgs, create_instruction
from cpamm.integration.processor import ProcessorConfig, _dispatch, apply_instruction
from cpamm.state.balances import Ledger
from cpamm.state.nonces import NonceTable


ADMIN = "0x" + "ad" * 32
ALICE = "0x" + "a1" * 32
BOB = "0x" + "b0" * 32
MINT_X = "0x" + "11" * 32
MINT_Y = "0x" + "22" * 32

UNSIGNED = ProcessorConfig(require_signatures=False)


def _engine() -> PoolEngine:
    ledger = Ledger()
    for mint in (MINT_X, MINT_Y):
        ledger.create_mint(mint, authority=ADMIN)
        for who in (ALICE, BOB):
            ledger.mint_to(mint, who, 10**9, authority=ADMIN)
    ledger.set_native(ALICE, 10**10)
    return PoolEngine(ledger)


def _apply(engine: PoolEngine, nonces: NonceTable, ix: dict, *, sender: str | None, config: ProcessorConfig = UNSIGNED):
    return apply_instruction(config=config, engine=engine, nonces=nonces, instruction=ix, tx_sender=sender)


def _init(engine: PoolEngine, nonces: NonceTable, *, authority: str | None = None) -> str:
    ix = create_instruction(
        "initialize",
        signer=ALICE,
        nonce=nonces.expected_next(ALICE),
        seed=1,
        fee_bps=30,
        mint_x=MINT_X,
        mint_y=MINT_Y,
        authority=authority,
    )
    res = _apply(engine, nonces, ix, sender=ALICE)
    assert res.ok, res.error
    return engine.config_address(1)


def test_full_lifecycle_with_sequential_nonces() -> None:
    engine, nonces = _engine(), NonceTable()
    pool = _init(engine, nonces)

    res = _apply(
        engine,
        nonces,
        create_instruction("deposit", signer=ALICE, nonce=2, pool=pool, amount_x_max=1_000_000, amount_y_max=1_000_000),
        sender=ALICE,
    )
    assert res.ok, res.error
    assert res.pool is not None and res.pool.lp_supply == 1_000_000
    assert [e.kind for e in res.events] == [EventKind.LIQUIDITY_ADDED]

    res = _apply(
        engine,
        nonces,
        create_instruction("swap", signer=BOB, nonce=1, pool=pool, direction="x_to_y", amount_in=10_000),
        sender=BOB,
    )
    assert res.ok, res.error
    assert res.events[0].amount_out > 0

    res = _apply(
        engine,
        nonces,
        create_instruction("withdraw", signer=ALICE, nonce=3, pool=pool, lp_amount=500_000),
        sender=ALICE,
    )
    assert res.ok, res.error
    assert res.pool.lp_supply == 500_000
    assert nonces.get_all() == {ALICE: 3, BOB: 1}


def test_replayed_nonce_rejected() -> None:
    engine, nonces = _engine(), NonceTable()
    pool = _init(engine, nonces)
    ix = create_instruction("deposit", signer=ALICE, nonce=2, pool=pool, amount_x_max=100, amount_y_max=100)
    assert _apply(engine, nonces, ix, sender=ALICE).ok

    res = _apply(engine, nonces, ix, sender=ALICE)
    assert not res.ok
    assert res.code == "InvalidNonce"
    assert engine.pool(pool).lp_supply == 100


def test_failed_instruction_does_not_consume_nonce(caplog: pytest.LogCaptureFixture) -> None:
    engine, nonces = _engine(), NonceTable()
    pool = _init(engine, nonces)
    ix = create_instruction("swap", signer=BOB, nonce=1, pool=pool, direction="x_to_y", amount_in=10)
    with caplog.at_level(logging.WARNING, logger="cpamm.integration.processor"):
        res = _apply(engine, nonces, ix, sender=BOB)
    assert not res.ok
    assert res.code == "InsufficientLiquidity"
    assert "rejected swap" in caplog.text
    assert nonces.get_last(BOB) == 0


def test_engine_errors_keep_their_code() -> None:
    engine, nonces = _engine(), NonceTable()
    pool = _init(engine, nonces)
    _apply(
        engine,
        nonces,
        create_instruction("deposit", signer=ALICE, nonce=2, pool=pool, amount_x_max=10**6, amount_y_max=10**6),
        sender=ALICE,
    )
    ix = create_instruction(
        "swap", signer=BOB, nonce=1, pool=pool, direction="x_to_y", amount_in=1_000, min_amount_out=10**6
    )
    res = _apply(engine, nonces, ix, sender=BOB)
    assert (res.ok, res.code) == (False, "SlippageExceeded")


def test_lock_through_the_shell() -> None:
    engine, nonces = _engine(), NonceTable()
    pool = _init(engine, nonces, authority=ADMIN)

    res = _apply(engine, nonces, create_instruction("lock", signer=BOB, nonce=1, pool=pool), sender=BOB)
    assert res.code == "Unauthorized"

    res = _apply(engine, nonces, create_instruction("lock", signer=ADMIN, nonce=1, pool=pool), sender=ADMIN)
    assert res.ok, res.error
    assert res.pool.locked is True


def test_unknown_pool() -> None:
    engine, nonces = _engine(), NonceTable()
    ix = create_instruction("lock", signer=ALICE, nonce=1, pool="0x" + "c9" * 32)
    res = _apply(engine, nonces, ix, sender=ALICE)
    assert res.code == "NotInitialized"


def test_malformed_instruction() -> None:
    engine, nonces = _engine(), NonceTable()
    res = _apply(engine, nonces, {"kind": "swap"}, sender=ALICE)
    assert (res.ok, res.code) == (False, "MalformedInstruction")


def test_oversized_instruction() -> None:
    engine, nonces = _engine(), NonceTable()
    ix = create_instruction("lock", signer=ALICE, nonce=1, pool="0x" + "c9" * 32)
    res = _apply(engine, nonces, ix, sender=ALICE, config=ProcessorConfig(require_signatures=False, max_instruction_bytes=32))
    assert res.code == "MalformedInstruction"


def test_sender_must_match_signer_when_unsigned() -> None:
    engine, nonces = _engine(), NonceTable()
    ix = create_instruction("initialize", signer=ALICE, nonce=1, seed=1, fee_bps=30, mint_x=MINT_X, mint_y=MINT_Y)
    res = _apply(engine, nonces, ix, sender=BOB)
    assert res.code == "Unauthorized"
    res = _apply(engine, nonces, ix, sender=None)
    assert res.code == "Unauthorized"


def test_signatures_required_unless_sender_is_signer() -> None:
    engine, nonces = _engine(), NonceTable()
    ix = create_instruction("initialize", signer=ALICE, nonce=1, seed=1, fee_bps=30, mint_x=MINT_X, mint_y=MINT_Y)

    strict = ProcessorConfig(require_signatures=True, allow_unsigned_if_tx_sender_matches=False)
    res = _apply(engine, nonces, ix, sender=ALICE, config=strict)
    assert (res.code, res.error) == ("Unauthorized", "missing signature")

    res = _apply(engine, nonces, ix, sender=ALICE, config=ProcessorConfig())
    assert res.ok, res.error


def test_unexpected_exception_is_contained(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    engine, nonces = _engine(), NonceTable()
    pool = _init(engine, nonces)

    def boom(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(engine, "withdraw", boom)
    ix = create_instruction("withdraw", signer=ALICE, nonce=2, pool=pool, lp_amount=1)
    with caplog.at_level(logging.ERROR, logger="cpamm.integration.processor"):
        res = _apply(engine, nonces, ix, sender=ALICE)
    assert (res.ok, res.error, res.code) == (False, "internal error", "InternalError")
    assert "disk on fire" in caplog.text
    assert nonces.get_last(ALICE) == 1


def test_mismatched_args_are_rejected_by_dispatch() -> None:
    engine, nonces = _engine(), NonceTable()
    pool = _init(engine, nonces)
    ix = Instruction(kind=InstructionKind.SWAP, signer=ALICE, nonce=2, args=DepositArgs(1, 1), pool=pool)
    with pytest.raises(TypeError, match="swap expects SwapArgs"):
        _dispatch(engine, ix)
    with pytest.raises(ValueError, match="requires a pool"):
        _dispatch(engine, Instruction(kind=InstructionKind.LOCK, signer=ALICE, nonce=2, args=LockArgs()))
