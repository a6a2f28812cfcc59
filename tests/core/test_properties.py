"""Property tests for the liquidity math and the pool engine.

Hypothesis drives random reserves, fees and instruction sequences; every
committed state must satisfy the pool invariants and match the ledger.
"""

from __future__ import annotations

import hypothesis.strategies as st
from hypothesis import given, settings

from cpamm.core.config import EngineConfig
from cpamm.core.cpmm import SwapRounding, quote_swap
from cpamm.core.engine import PoolEngine, SwapDirection
from cpamm.core.errors import AmmError, InsufficientLiquidity, InvariantViolation
from cpamm.core.invariants import check_all
from cpamm.core.lp_math import quote_deposit, quote_withdraw
from cpamm.state.balances import Ledger


reserves = st.integers(min_value=1, max_value=10**15)
amounts = st.integers(min_value=1, max_value=10**12)
fees = st.integers(min_value=0, max_value=9_999)


@given(reserve_in=reserves, reserve_out=reserves, amount_in=amounts, fee_bps=fees)
def test_pool_favoring_never_shrinks_k(reserve_in: int, reserve_out: int, amount_in: int, fee_bps: int) -> None:
    try:
        q = quote_swap(
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            amount_in=amount_in,
            fee_bps=fee_bps,
            rounding=SwapRounding.POOL_FAVORING,
        )
    except AmmError:
        return
    assert q.k_after >= q.k_before
    assert 0 < q.amount_out < reserve_out


@given(reserve_in=reserves, reserve_out=reserves, amount_in=amounts, fee_bps=fees)
def test_output_never_exceeds_exact_price(reserve_in: int, reserve_out: int, amount_in: int, fee_bps: int) -> None:
    try:
        q = quote_swap(reserve_in=reserve_in, reserve_out=reserve_out, amount_in=amount_in, fee_bps=fee_bps)
    except AmmError:
        return
    # amount_out <= reserve_out * effective_in / (reserve_in + effective_in), rounded up.
    exact_num = reserve_out * q.effective_in
    exact_den = reserve_in + q.effective_in
    assert q.amount_out * exact_den <= exact_num + exact_den


@given(
    reserve_in=reserves,
    reserve_out=reserves,
    amount_in=amounts,
    extra=amounts,
    fee_bps=fees,
    rounding=st.sampled_from(SwapRounding),
)
def test_output_grows_with_input(
    reserve_in: int, reserve_out: int, amount_in: int, extra: int, fee_bps: int, rounding: SwapRounding
) -> None:
    def amount_out(value: int) -> int:
        return quote_swap(
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            amount_in=value,
            fee_bps=fee_bps,
            rounding=rounding,
        ).amount_out

    try:
        smaller = amount_out(amount_in)
    except AmmError:
        return
    try:
        larger = amount_out(amount_in + extra)
    except InsufficientLiquidity:
        # Only the floor formula can round a large trade into draining the reserve.
        assert rounding is SwapRounding.TRUNCATE
        return
    assert larger >= smaller


@given(
    reserve_x=reserves,
    reserve_y=reserves,
    lp_supply=st.integers(min_value=2, max_value=10**15),
    data=st.data(),
)
def test_withdraw_then_proportional_redeposit_restores_reserves(
    reserve_x: int, reserve_y: int, lp_supply: int, data: st.DataObject
) -> None:
    lp_amount = data.draw(st.integers(min_value=1, max_value=lp_supply - 1))
    out = quote_withdraw(reserve_x=reserve_x, reserve_y=reserve_y, lp_supply=lp_supply, lp_amount=lp_amount)
    x_left = reserve_x - out.amount_x
    y_left = reserve_y - out.amount_y
    lp_left = lp_supply - lp_amount
    try:
        back = quote_deposit(
            reserve_x=x_left,
            reserve_y=y_left,
            lp_supply=lp_left,
            amount_x_max=out.amount_x,
            amount_y_max=out.amount_y,
        )
    except AmmError:
        return
    assert back.lp_minted <= lp_amount

    # Each reserve comes back short by less than one share's worth plus one
    # unit of the other token at the post-withdraw price.
    short_x = out.amount_x - back.amount_x
    short_y = out.amount_y - back.amount_y
    assert short_x >= 0 and short_y >= 0
    assert short_x * lp_left * y_left < x_left * y_left + reserve_x * lp_left
    assert short_y * lp_left * x_left < y_left * x_left + reserve_y * lp_left


@given(
    reserve_x=reserves,
    reserve_y=reserves,
    lp_supply=reserves,
    amount_x_max=amounts,
    amount_y_max=amounts,
)
def test_deposit_then_withdraw_never_profits(
    reserve_x: int, reserve_y: int, lp_supply: int, amount_x_max: int, amount_y_max: int
) -> None:
    try:
        dep = quote_deposit(
            reserve_x=reserve_x,
            reserve_y=reserve_y,
            lp_supply=lp_supply,
            amount_x_max=amount_x_max,
            amount_y_max=amount_y_max,
        )
    except AmmError:
        return
    assert dep.amount_x <= amount_x_max
    assert dep.amount_y <= amount_y_max
    back = quote_withdraw(
        reserve_x=reserve_x + dep.amount_x,
        reserve_y=reserve_y + dep.amount_y,
        lp_supply=lp_supply + dep.lp_minted,
        lp_amount=dep.lp_minted,
    )
    assert back.amount_x <= dep.amount_x
    assert back.amount_y <= dep.amount_y


@given(reserve_x=reserves, reserve_y=reserves, lp_supply=reserves, data=st.data())
def test_withdraw_is_floored_pro_rata(reserve_x: int, reserve_y: int, lp_supply: int, data: st.DataObject) -> None:
    lp_amount = data.draw(st.integers(min_value=1, max_value=lp_supply))
    q = quote_withdraw(reserve_x=reserve_x, reserve_y=reserve_y, lp_supply=lp_supply, lp_amount=lp_amount)
    assert q.amount_x * lp_supply <= reserve_x * lp_amount < (q.amount_x + 1) * lp_supply
    assert q.amount_y * lp_supply <= reserve_y * lp_amount < (q.amount_y + 1) * lp_supply


# ---------------------------------------------------------------------------
# Engine sequences
# ---------------------------------------------------------------------------

ADMIN = "0x" + "ad" * 32
USERS = ["0x" + "a1" * 32, "0x" + "a2" * 32, "0x" + "a3" * 32]
MINT_X = "0x" + "11" * 32
MINT_Y = "0x" + "22" * 32

actions = st.one_of(
    st.tuples(st.just("deposit"), st.sampled_from(USERS), amounts, amounts),
    st.tuples(st.just("withdraw"), st.sampled_from(USERS), st.integers(min_value=1, max_value=10**9)),
    st.tuples(st.just("swap"), st.sampled_from(USERS), st.booleans(), amounts),
)


@settings(max_examples=60, deadline=None)
@given(
    fee_bps=st.integers(min_value=1, max_value=1_000),
    minimum_liquidity=st.sampled_from([0, 1_000]),
    steps=st.lists(actions, min_size=1, max_size=25),
)
def test_engine_sequences_preserve_invariants(fee_bps: int, minimum_liquidity: int, steps: list) -> None:
    ledger = Ledger()
    for mint in (MINT_X, MINT_Y):
        ledger.create_mint(mint, authority=ADMIN)
        for user in USERS:
            ledger.mint_to(mint, user, 10**13, authority=ADMIN)
    ledger.set_native(USERS[0], 10**10)
    engine = PoolEngine(
        ledger,
        config=EngineConfig(minimum_liquidity=minimum_liquidity),
    )
    handle = engine.initialize(USERS[0], seed=7, fee_bps=fee_bps, mint_x=MINT_X, mint_y=MINT_Y)

    for step in steps:
        before = engine.pool(handle.config)
        try:
            if step[0] == "deposit":
                engine.deposit(handle, step[1], amount_x_max=step[2], amount_y_max=step[3])
            elif step[0] == "withdraw":
                engine.withdraw(handle, step[1], lp_amount=step[2])
            else:
                direction = SwapDirection.X_TO_Y if step[2] else SwapDirection.Y_TO_X
                engine.swap(handle, step[1], direction=direction, amount_in=step[3])
        except InvariantViolation:
            raise
        except AmmError:
            assert engine.pool(handle.config) == before
            continue

        after = engine.pool(handle.config)
        assert check_all(after) == []
        assert after.locked is False
        if step[0] == "swap":
            assert after.k >= before.k
        assert ledger.supply(after.mint_lp) == after.lp_supply
        assert engine.vault_balances(handle) == (after.reserve_x, after.reserve_y)
        assert ledger.verify_non_negative()

