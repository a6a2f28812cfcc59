# [TESTER] v1

from __future__ import annotations

import pytest

from cpamm.state.nonces import NonceTable


SIGNER = "0x" + "a1" * 48


def test_starts_at_one() -> None:
    table = NonceTable()
    assert table.get_last(SIGNER) == 0
    assert table.expected_next(SIGNER) == 1


def test_keys_are_canonical() -> None:
    table = NonceTable()
    table.set_last(SIGNER.upper(), 3)
    assert table.expected_next(SIGNER) == 4
    assert table.get_all() == {SIGNER: 3}


def test_rejects_bad_values() -> None:
    table = NonceTable()
    with pytest.raises(TypeError):
        table.set_last(SIGNER, -1)
    with pytest.raises(TypeError):
        table.set_last(SIGNER, 2**64)
