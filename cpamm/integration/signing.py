"""
BLS12-381 instruction signatures (py_ecc `G2Basic`).

The signed message is:
- domain-separated by `chain_id` (prevents cross-network replay),
- the canonical JSON of the instruction without its signature,
- bound to the signer and nonce, both of which are part of the instruction.
"""

from __future__ import annotations

import hashlib
from typing import Tuple

from py_ecc.bls import G2Basic

from ..state.canonical import canonical_json_bytes, domain_sep_bytes
from .operations import Instruction, instruction_to_dict


PUBKEY_BYTES = 48
SIGNATURE_BYTES = 96


def _hex_to_bytes(value: str, *, name: str, nbytes: int) -> bytes:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    s = value[2:] if value.startswith("0x") else value
    if len(s) != 2 * nbytes:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {2 * nbytes})")
    return bytes.fromhex(s)


def _require_chain_id(chain_id: str) -> None:
    if not isinstance(chain_id, str) or not chain_id:
        raise ValueError("chain_id must be a non-empty string")


def generate_keypair(ikm: bytes) -> Tuple[int, str]:
    """Derive (secret key, 0x pubkey hex) from at least 32 bytes of key material."""
    if not isinstance(ikm, (bytes, bytearray)) or len(ikm) < 32:
        raise ValueError("ikm must be at least 32 bytes")
    sk = G2Basic.KeyGen(bytes(ikm))
    return sk, "0x" + G2Basic.SkToPk(sk).hex()


def instruction_message_hash(ix: Instruction, *, chain_id: str) -> bytes:
    _require_chain_id(chain_id)
    msg = domain_sep_bytes(f"cpamm_ix_sig:{chain_id}", version=1) + canonical_json_bytes(instruction_to_dict(ix))
    return hashlib.sha256(msg).digest()


def sign_instruction(ix: Instruction, *, privkey: int, chain_id: str) -> str:
    """Returns a hex signature string with a `0x` prefix."""
    if not isinstance(privkey, int) or isinstance(privkey, bool) or privkey <= 0:
        raise ValueError("privkey must be a positive int")
    sig_bytes = G2Basic.Sign(privkey, instruction_message_hash(ix, chain_id=chain_id))
    return "0x" + sig_bytes.hex()


def verify_instruction_signature(ix: Instruction, signature: str, *, chain_id: str) -> bool:
    """True iff `signature` is a valid signature of `ix` by `ix.signer`."""
    try:
        pubkey = _hex_to_bytes(ix.signer, name="signer", nbytes=PUBKEY_BYTES)
        sig = _hex_to_bytes(signature, name="signature", nbytes=SIGNATURE_BYTES)
    except (TypeError, ValueError):
        return False
    return bool(G2Basic.Verify(pubkey, instruction_message_hash(ix, chain_id=chain_id), sig))
