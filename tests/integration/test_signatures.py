# [TESTER] v1

from __future__ import annotations

from dataclasses import replace

import pytest

from cpamm.core.engine import PoolEngine
from cpamm.integration.operations import create_instruction, parse_instruction
from cpamm.integration.processor import ProcessorConfig, apply_instruction
from cpamm.integration.signing import generate_keypair, sign_instruction, verify_instruction_signature
from cpamm.state.balances import Ledger
from cpamm.state.nonces import NonceTable


CHAIN_ID = "cpamm-test"
MINT_X = "0x" + "11" * 32
MINT_Y = "0x" + "22" * 32

# Deterministic keypair from fixed seed.
SK, PK = generate_keypair(b"\x01" * 32)


def _ix():
    d = create_instruction("initialize", signer=PK, nonce=1, seed=5, fee_bps=30, mint_x=MINT_X, mint_y=MINT_Y)
    return parse_instruction(d).instruction


def test_pubkey_is_48_bytes() -> None:
    assert len(PK) == 2 + 96


def test_sign_and_verify() -> None:
    ix = _ix()
    sig = sign_instruction(ix, privkey=SK, chain_id=CHAIN_ID)
    assert verify_instruction_signature(ix, sig, chain_id=CHAIN_ID)
    assert not verify_instruction_signature(ix, sig, chain_id="other-chain")
    assert not verify_instruction_signature(replace(ix, nonce=2), sig, chain_id=CHAIN_ID)


def test_malformed_signature_is_just_invalid() -> None:
    ix = _ix()
    assert not verify_instruction_signature(ix, "0x1234", chain_id=CHAIN_ID)
    assert not verify_instruction_signature(ix, "0x" + "zz" * 96, chain_id=CHAIN_ID)


def test_short_ikm_rejected() -> None:
    with pytest.raises(ValueError):
        generate_keypair(b"\x01" * 16)


def test_processor_accepts_signed_instruction_from_any_sender() -> None:
    ledger = Ledger()
    for mint in (MINT_X, MINT_Y):
        ledger.create_mint(mint, authority=PK)
    ledger.set_native(PK, 10**10)
    engine, nonces = PoolEngine(ledger), NonceTable()
    config = ProcessorConfig(chain_id=CHAIN_ID)

    ix = _ix()
    payload = create_instruction(
        "initialize", signer=PK, nonce=1, seed=5, fee_bps=30, mint_x=MINT_X, mint_y=MINT_Y
    )
    payload["signature"] = sign_instruction(ix, privkey=SK, chain_id=CHAIN_ID)
    res = apply_instruction(config=config, engine=engine, nonces=nonces, instruction=payload, tx_sender=None)
    assert res.ok, res.error
    assert nonces.get_last(PK) == 1

    tampered = dict(payload, nonce=2)
    tampered["args"] = dict(payload["args"], seed=6)
    res = apply_instruction(config=config, engine=engine, nonces=nonces, instruction=tampered, tx_sender=None)
    assert (res.ok, res.error) == (False, "invalid signature")
