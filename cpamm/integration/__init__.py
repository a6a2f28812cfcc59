"""
Instruction shell: parsing, signatures, nonces
"""

from .operations import (
    Instruction,
    SignedInstruction,
    create_instruction,
    instruction_to_dict,
    parse_instruction,
)
from .processor import ProcessorConfig, TxResult, apply_instruction
from .signing import generate_keypair, sign_instruction, verify_instruction_signature

__all__ = [
    "Instruction",
    "SignedInstruction",
    "create_instruction",
    "instruction_to_dict",
    "parse_instruction",
    "ProcessorConfig",
    "TxResult",
    "apply_instruction",
    "generate_keypair",
    "sign_instruction",
    "verify_instruction_signature",
]
