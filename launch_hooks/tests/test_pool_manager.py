#!/usr/bin/env python3
"""
Pool Manager Test Suite

Hookless pools on the in-memory settlement engine:
1. Initialization and key ordering
2. Liquidity add/remove/poke with v4 rounding
3. Exact input and exact output swaps, including tick crossings
4. LP fee accrual
5. Transition rollback on failure
"""

import pytest

from launch_hooks.core.errors import (
    CannotUpdateEmptyPosition, CurrenciesOutOfOrder, InsufficientBalance,
    InsufficientLiquidity, InvalidPriceLimit, PoolAlreadyExists, PoolNotInitialized,
    SwapAmountCannotBeZero, TickMisaligned,
)
from launch_hooks.core.tick_math import Q96, tick_to_sqrt_price_x96
from launch_hooks.core.types import ModifyLiquidityParams, PoolKey, SwapParams
from launch_hooks.settlement.ledger import TokenLedger
from launch_hooks.settlement.pool_manager import PoolManager
from launch_hooks.tests.factories import ASSET, NUMERAIRE, OTHER_TRADER, TRADER

LP = "0x0000000000000000000000000000000000001111"
LIQUIDITY = 10 ** 22


class TestPoolManager:
    """Settlement engine without hooks"""

    def setup_method(self):
        self.ledger = TokenLedger()
        self.pool_manager = PoolManager(self.ledger)
        self.key = PoolKey(ASSET, NUMERAIRE, 3000, 60)

        for holder in (LP, TRADER):
            self.ledger.mint(ASSET, holder, 10 ** 24)
            self.ledger.mint(NUMERAIRE, holder, 10 ** 24)

        self.pool_manager.initialize(LP, self.key, Q96)
        self.pool_id = self.key.pool_id

    def add(self, tick_lower, tick_upper, liquidity=LIQUIDITY, salt=0):
        return self.pool_manager.modify_liquidity(
            LP, self.key, ModifyLiquidityParams(tick_lower, tick_upper, liquidity, salt)
        )

    # Initialization

    def test_initialize_sets_price_and_tick(self):
        slot0 = self.pool_manager.get_slot0(self.pool_id)
        assert slot0.sqrt_price_x96 == Q96
        assert slot0.tick == 0
        assert slot0.lp_fee == 3000

    def test_currencies_must_be_ordered(self):
        with pytest.raises(CurrenciesOutOfOrder):
            self.pool_manager.initialize(LP, PoolKey(NUMERAIRE, ASSET, 0, 60), Q96)

    def test_pool_cannot_be_initialized_twice(self):
        with pytest.raises(PoolAlreadyExists):
            self.pool_manager.initialize(LP, self.key, Q96)

    def test_unknown_pool_raises(self):
        other = PoolKey(ASSET, NUMERAIRE, 500, 10)
        with pytest.raises(PoolNotInitialized):
            self.pool_manager.get_slot0(other.pool_id)

    # Liquidity

    def test_add_in_range_pulls_both_tokens(self):
        asset_before = self.ledger.balance_of(ASSET, LP)
        numeraire_before = self.ledger.balance_of(NUMERAIRE, LP)

        delta, fees = self.add(-600, 600)

        assert delta.amount0 < 0 and delta.amount1 < 0
        assert fees.amount0 == 0 and fees.amount1 == 0
        assert self.ledger.balance_of(ASSET, LP) == asset_before + delta.amount0
        assert self.ledger.balance_of(NUMERAIRE, LP) == numeraire_before + delta.amount1
        assert self.pool_manager.get_liquidity(self.pool_id) == LIQUIDITY

    def test_add_above_price_is_single_sided(self):
        delta, _ = self.add(600, 1200)
        assert delta.amount0 < 0
        assert delta.amount1 == 0
        assert self.pool_manager.get_liquidity(self.pool_id) == 0

    def test_remove_returns_no_more_than_added(self):
        added, _ = self.add(-600, 600)
        removed, _ = self.pool_manager.modify_liquidity(
            LP, self.key, ModifyLiquidityParams(-600, 600, -LIQUIDITY)
        )

        assert 0 <= -added.amount0 - removed.amount0 <= 2
        assert 0 <= -added.amount1 - removed.amount1 <= 2
        assert self.pool_manager.get_position(self.pool_id, LP, -600, 600) is None

    def test_poke_of_empty_position_fails(self):
        with pytest.raises(CannotUpdateEmptyPosition):
            self.pool_manager.modify_liquidity(LP, self.key, ModifyLiquidityParams(-600, 600, 0))

    def test_cannot_remove_more_than_held(self):
        self.add(-600, 600)
        with pytest.raises(InsufficientLiquidity):
            self.pool_manager.modify_liquidity(
                LP, self.key, ModifyLiquidityParams(-600, 600, -LIQUIDITY - 1)
            )

    def test_positions_are_keyed_by_salt(self):
        self.add(-600, 600, salt=0)
        self.add(-600, 600, salt=1)

        assert self.pool_manager.get_position(self.pool_id, LP, -600, 600, 0).liquidity == LIQUIDITY
        assert self.pool_manager.get_position(self.pool_id, LP, -600, 600, 1).liquidity == LIQUIDITY

    def test_misaligned_ticks_rejected(self):
        with pytest.raises(TickMisaligned):
            self.add(-610, 600)

    # Swaps

    def test_exact_input_swap_settles_with_caller(self):
        self.add(-6000, 6000)
        numeraire_before = self.ledger.balance_of(NUMERAIRE, TRADER)
        asset_before = self.ledger.balance_of(ASSET, TRADER)

        delta = self.pool_manager.swap(TRADER, self.key, SwapParams(False, -10 ** 18))

        assert delta.amount1 == -10 ** 18
        assert delta.amount0 > 0
        assert self.ledger.balance_of(NUMERAIRE, TRADER) == numeraire_before - 10 ** 18
        assert self.ledger.balance_of(ASSET, TRADER) == asset_before + delta.amount0
        assert self.pool_manager.current_tick(self.pool_id) >= 0

    def test_exact_output_swap_delivers_exact_amount(self):
        self.add(-6000, 6000)

        delta = self.pool_manager.swap(TRADER, self.key, SwapParams(True, 10 ** 18))

        assert delta.amount1 == 10 ** 18
        assert delta.amount0 < 0
        assert self.pool_manager.current_tick(self.pool_id) < 0

    def test_swap_crosses_into_next_range(self):
        self.add(0, 600)
        self.add(600, 6000)

        self.pool_manager.swap(TRADER, self.key, SwapParams(False, -10 ** 21, tick_to_sqrt_price_x96(1200)))

        assert self.pool_manager.current_tick(self.pool_id) == 1200
        assert self.pool_manager.get_liquidity(self.pool_id) == LIQUIDITY

    def test_swap_without_liquidity_moves_to_limit(self):
        delta = self.pool_manager.swap(TRADER, self.key, SwapParams(False, -10 ** 18, tick_to_sqrt_price_x96(600)))

        assert delta.amount0 == 0 and delta.amount1 == 0
        assert self.pool_manager.current_tick(self.pool_id) == 600

    def test_zero_amount_rejected(self):
        with pytest.raises(SwapAmountCannotBeZero):
            self.pool_manager.swap(TRADER, self.key, SwapParams(True, 0))

    def test_price_limit_on_wrong_side_rejected(self):
        with pytest.raises(InvalidPriceLimit):
            self.pool_manager.swap(TRADER, self.key, SwapParams(True, -10 ** 18, tick_to_sqrt_price_x96(60)))

    # Fees

    def test_lp_fees_paid_on_poke(self):
        self.add(-6000, 6000)
        self.pool_manager.swap(TRADER, self.key, SwapParams(False, -10 ** 20))

        numeraire_before = self.ledger.balance_of(NUMERAIRE, LP)
        delta, fees = self.pool_manager.modify_liquidity(LP, self.key, ModifyLiquidityParams(-6000, 6000, 0))

        # 0.3% of the numeraire input; the unconsumed rounding remainder is kept as fee
        assert fees.amount0 == 0
        assert 10 ** 20 * 3000 // 1_000_000 <= fees.amount1 <= 10 ** 20 * 3000 // 1_000_000 + 2
        assert delta == fees
        assert self.ledger.balance_of(NUMERAIRE, LP) == numeraire_before + fees.amount1

    # Rollback

    def test_failed_swap_rolls_back_pool_state(self):
        self.add(-6000, 6000)
        slot0_before = self.pool_manager.get_slot0(self.pool_id)
        manager_asset_before = self.ledger.balance_of(ASSET, self.pool_manager.address)

        # OTHER_TRADER holds no numeraire
        with pytest.raises(InsufficientBalance):
            self.pool_manager.swap(OTHER_TRADER, self.key, SwapParams(False, -10 ** 18))

        assert self.pool_manager.get_slot0(self.pool_id) == slot0_before
        assert self.ledger.balance_of(ASSET, self.pool_manager.address) == manager_asset_before
        assert self.ledger.balance_of(ASSET, OTHER_TRADER) == 0
