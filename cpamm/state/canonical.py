"""
Deterministic encoding primitives.

Used for instruction signing payloads, address derivation seeds and the
binary account layout of pool configs.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Tuple


CANONICAL_ENCODING_VERSION = 1

U8_MAX = 0xFF
U16_MAX = 0xFFFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF

# Longest identifier accepted anywhere (BLS12-381 G1 pubkeys are 48 bytes).
MAX_ID_BYTES = 64

_HEX_CHARS_RE = re.compile(r"^[0-9a-f]+$")


def _reject_non_canonical(value: Any, depth: int) -> int:
    """Return the number of JSON items in `value`, rejecting floats and non-str keys."""
    if depth <= 0:
        raise ValueError("json nesting too deep")
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, str):
        if any(0xD800 <= ord(ch) <= 0xDFFF for ch in value):
            raise TypeError("surrogate code points are not allowed in canonical encoding")
        return 1
    if isinstance(value, dict):
        count = 1
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
            count += _reject_non_canonical(k, depth - 1)
            count += _reject_non_canonical(v, depth - 1)
        return count
    if isinstance(value, (list, tuple)):
        return 1 + sum(_reject_non_canonical(item, depth - 1) for item in value)
    return 1


def canonical_json_bytes(value: Any, *, max_depth: int = 32) -> bytes:
    """
    Canonical JSON encoding for hashing/signing.

    UTF-8, sorted keys, no whitespace, no NaN, no floats.
    """
    _reject_non_canonical(value, max_depth)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def bounded_json_utf8_size(value: Any, *, max_bytes: int, max_depth: int = 32, max_items: int = 10_000) -> int:
    """
    Size of `canonical_json_bytes(value)`, failing with ValueError above `max_bytes`.

    Item count and depth are checked before anything is serialized.
    """
    if not isinstance(max_bytes, int) or isinstance(max_bytes, bool) or max_bytes <= 0:
        raise ValueError("max_bytes must be a positive int")
    items = _reject_non_canonical(value, max_depth)
    if items > max_items:
        raise ValueError("json item count exceeds max_items")
    size = len(canonical_json_bytes(value, max_depth=max_depth))
    if size > max_bytes:
        raise ValueError("json size exceeds max_bytes")
    return size


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    Domain separation prefix: ASCII and NUL-terminated.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label:
        raise ValueError("label must not contain NUL")
    try:
        label_bytes = label.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError("label must be ASCII") from exc
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return b"cpamm:" + label_bytes + b":v" + str(version).encode("ascii") + b"\x00"


def canonical_id(value: str, *, name: str, nbytes: int | None = None) -> str:
    """
    Canonicalize an account/mint/signer identifier to lowercase 0x-prefixed hex.
    """
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str")
    s = value.strip().lower()
    if s.startswith("0x"):
        s = s[2:]
    if not s or len(s) % 2 != 0:
        raise ValueError(f"{name} must be non-empty even-length hex")
    if not _HEX_CHARS_RE.fullmatch(s):
        raise ValueError(f"{name} must be valid hex")
    n = len(s) // 2
    if nbytes is not None and n != nbytes:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {2 * nbytes})")
    if n > MAX_ID_BYTES:
        raise ValueError(f"{name} exceeds {MAX_ID_BYTES} bytes")
    return "0x" + s


def id_to_bytes(value: str, *, name: str = "id") -> bytes:
    return bytes.fromhex(canonical_id(value, name=name)[2:])


def encode_u64_le(value: int) -> bytes:
    if not isinstance(value, int) or isinstance(value, bool) or not (0 <= value <= U64_MAX):
        raise ValueError(f"u64 out of range: {value!r}")
    return value.to_bytes(8, "little")


def encode_uvarint(value: int) -> bytes:
    """Unsigned LEB128."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"uvarint must be a non-negative int, got {value!r}")
    out = bytearray()
    n = value
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_uvarint(data: bytes, offset: int) -> Tuple[int, int]:
    """Decode LEB128 at `offset`; returns (value, next_offset). Rejects non-minimal encodings."""
    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise ValueError("truncated uvarint")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            break
        shift += 7
        if shift > 63:
            raise ValueError("uvarint too long")
    if pos - offset > 1 and data[pos - 1] == 0:
        raise ValueError("non-minimal uvarint")
    return value, pos


def encode_bytes(value: bytes) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("value must be bytes")
    value_bytes = bytes(value)
    return encode_uvarint(len(value_bytes)) + value_bytes


def decode_bytes(data: bytes, offset: int) -> Tuple[bytes, int]:
    length, pos = decode_uvarint(data, offset)
    end = pos + length
    if end > len(data):
        raise ValueError("truncated byte string")
    return bytes(data[pos:end]), end
