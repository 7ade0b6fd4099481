#!/usr/bin/env python3
"""
Fee Distribution Hook Test Suite

Test scenarios:
1. Exact split of a before-swap fee among three beneficiaries
2. Floor rounding with the remainder tracked as undistributed dust
3. Each swap kind charged at exactly one stage
4. Fail-open when custody cannot cover the fee or nobody is owed
5. Initializer gating and pool key validation at initialization
6. Rollback of fee payouts when the swap itself fails
"""

import pytest

from launch_hooks.core.errors import (
    HookAlreadyRegistered, InsufficientBalance, InvalidFeeFraction,
    InvalidNumerairePosition, InvalidPoolFee, SenderNotInitializer,
)
from launch_hooks.core.fixed_point import WAD
from launch_hooks.core.tick_math import Q96
from launch_hooks.core.types import (
    BeneficiaryData, Currency, ModifyLiquidityParams, PoolKey, PoolStatus,
)
from launch_hooks.hooks.fee_hook import FeeDistributionHook
from launch_hooks.tests.factories import (
    AIRLOCK, BENEFICIARY_1, BENEFICIARY_2, BENEFICIARY_3, OTHER_TRADER, SUPPLY,
    TRADER, LaunchFixture, default_beneficiaries,
)

HALF_UNIT = 5 * 10 ** 17


def beneficiary_balances(fx):
    return [fx.balance(fx.numeraire, b) for b in (BENEFICIARY_1, BENEFICIARY_2, BENEFICIARY_3)]


class TestFeeSplit:
    """Fee of 10% split 5% / 45% / 50%"""

    def setup_method(self):
        self.fx = LaunchFixture("fee", fee_wad=WAD // 10)
        self.fx.launch(self.fx.init_data(beneficiaries=default_beneficiaries()))
        self.fx.fund()
        self.fx.seed_custody(10 ** 18)

    def test_pool_is_locked_with_beneficiaries(self):
        assert self.fx.initializer.get_status(self.fx.asset) == PoolStatus.LOCKED

    def test_exact_input_buy_splits_fee_exactly(self):
        trader_before = self.fx.balance(self.fx.numeraire, TRADER)

        delta = self.fx.buy_exact_in(HALF_UNIT)

        assert beneficiary_balances(self.fx) == [25 * 10 ** 14, 225 * 10 ** 14, 25 * 10 ** 15]
        assert self.fx.hook.undistributed.get(self.fx.numeraire, 0) == 0
        # Swapper pays exactly the specified amount, fee included
        assert delta.amount1 == -HALF_UNIT
        assert self.fx.balance(self.fx.numeraire, TRADER) == trader_before - HALF_UNIT

        event = self.fx.hook.events.of_type("FeeCollected")[-1]
        assert event.amount == 5 * 10 ** 16
        assert event.meta["stage"] == "before_swap"
        assert event.meta["basis"] == HALF_UNIT

    def test_fee_only_swaps_the_net_amount(self):
        reference = LaunchFixture("fee", fee_wad=WAD // 10)
        reference.launch(reference.init_data(beneficiaries=[]))
        reference.fund()
        expected_out = reference.buy_exact_in(HALF_UNIT - 5 * 10 ** 16).amount0

        assert self.fx.buy_exact_in(HALF_UNIT).amount0 == expected_out


class TestFeeRounding:
    """Floor division leaves at most one unit per beneficiary undistributed"""

    def setup_method(self):
        self.fx = LaunchFixture("fee", fee_wad=WAD // 10)
        third = WAD // 3
        self.beneficiaries = [
            BeneficiaryData(BENEFICIARY_1, third),
            BeneficiaryData(BENEFICIARY_2, third),
            BeneficiaryData(BENEFICIARY_3, WAD - 2 * third),
        ]
        self.fx.launch(self.fx.init_data(beneficiaries=self.beneficiaries))
        self.fx.fund()
        self.fx.seed_custody(10 ** 18)

    def test_remainder_is_tracked_as_dust(self):
        amount = 10 ** 18 + 7
        fee = amount * (WAD // 10) // WAD

        self.fx.buy_exact_in(amount)

        paid = sum(beneficiary_balances(self.fx))
        remainder = self.fx.hook.undistributed[self.fx.numeraire]
        assert paid + remainder == fee
        assert 0 < remainder < len(self.beneficiaries)
        assert self.fx.balance(self.fx.numeraire, self.fx.hook.address) == remainder


class TestChargeStage:
    """Every swap kind is charged once, at the stage where its numeraire leg is known"""

    def setup_method(self):
        self.fx = LaunchFixture("fee", fee_wad=WAD // 10)
        self.fx.launch(self.fx.init_data(beneficiaries=default_beneficiaries()))
        self.fx.fund()
        self.fx.seed_custody(10 ** 22)
        # Inventory for the sell side
        self.fx.buy_exact_in(10 ** 21)
        self.events_before = len(self.fx.hook.events.of_type("FeeCollected"))

    def last_fee(self):
        fees = self.fx.hook.events.of_type("FeeCollected")
        assert len(fees) == self.events_before + 1
        return fees[-1]

    def test_exact_input_numeraire_for_asset(self):
        self.fx.buy_exact_in(10 ** 18)
        event = self.last_fee()
        assert event.meta["stage"] == "before_swap"
        assert event.meta["kind"] == "exact_in_numeraire_for_asset"

    def test_exact_output_asset_for_numeraire(self):
        trader_before = self.fx.balance(self.fx.numeraire, TRADER)
        paid_before = sum(beneficiary_balances(self.fx))

        delta = self.fx.sell_exact_out(10 ** 18)

        event = self.last_fee()
        assert event.meta["stage"] == "before_swap"
        assert event.amount == 10 ** 17
        # Seller still receives exactly what was asked for
        assert delta.amount1 == 10 ** 18
        assert self.fx.balance(self.fx.numeraire, TRADER) == trader_before + 10 ** 18
        assert sum(beneficiary_balances(self.fx)) - paid_before == 10 ** 17

    def test_exact_input_asset_for_numeraire(self):
        trader_before = self.fx.balance(self.fx.numeraire, TRADER)

        delta = self.fx.sell_exact_in(10 ** 18)

        event = self.last_fee()
        assert event.meta["stage"] == "after_swap"
        assert event.meta["kind"] == "exact_in_asset_for_numeraire"
        realized = event.meta["basis"]
        assert event.amount == realized * (WAD // 10) // WAD
        # Fee comes out of the seller's proceeds
        assert delta.amount1 == realized - event.amount
        assert self.fx.balance(self.fx.numeraire, TRADER) == trader_before + realized - event.amount

    def test_exact_output_numeraire_for_asset(self):
        trader_before = self.fx.balance(self.fx.numeraire, TRADER)
        asset_before = self.fx.balance(self.fx.asset, TRADER)

        delta = self.fx.buy_exact_out(10 ** 18)

        event = self.last_fee()
        assert event.meta["stage"] == "after_swap"
        realized = event.meta["basis"]
        assert delta.amount0 == 10 ** 18
        assert self.fx.balance(self.fx.asset, TRADER) == asset_before + 10 ** 18
        # Buyer pays the pool's input plus the fee on top
        assert delta.amount1 == -(realized + event.amount)
        assert self.fx.balance(self.fx.numeraire, TRADER) == trader_before - realized - event.amount

        swap = self.fx.hook.events.of_type("Swap")[-1]
        assert swap.meta["fee_after_swap"] == event.amount


class TestFailOpen:
    """Skipped fees leave the swap untouched"""

    def test_insufficient_custody_skips_fee(self):
        fx = LaunchFixture("fee", fee_wad=WAD // 10)
        fx.launch(fx.init_data(beneficiaries=default_beneficiaries()))
        fx.fund()

        trader_before = fx.balance(fx.numeraire, TRADER)
        delta = fx.buy_exact_in(HALF_UNIT)

        assert beneficiary_balances(fx) == [0, 0, 0]
        assert fx.hook.events.of_type("FeeCollected") == []
        assert delta.amount1 == -HALF_UNIT
        assert delta.amount0 > 0
        assert fx.balance(fx.numeraire, TRADER) == trader_before - HALF_UNIT
        assert fx.balance(fx.asset, TRADER) == delta.amount0

    def test_no_beneficiaries_no_fee(self):
        fx = LaunchFixture("fee", fee_wad=WAD // 10)
        fx.launch(fx.init_data(beneficiaries=[]))
        fx.fund()
        fx.seed_custody(10 ** 18)

        fx.buy_exact_in(HALF_UNIT)
        fx.buy_exact_out(10 ** 17)

        assert fx.initializer.get_status(fx.asset) == PoolStatus.INITIALIZED
        assert fx.hook.events.of_type("FeeCollected") == []
        assert len(fx.hook.events.of_type("Swap")) == 2

    def test_zero_fee_fraction_takes_nothing(self):
        fx = LaunchFixture("fee", fee_wad=0)
        fx.launch(fx.init_data(beneficiaries=default_beneficiaries()))
        fx.fund()
        fx.seed_custody(10 ** 18)

        fx.buy_exact_in(HALF_UNIT)

        assert beneficiary_balances(fx) == [0, 0, 0]


class TestNativeNumeraire:
    """Native numeraire sorts as currency0 and the asset as currency1"""

    def setup_method(self):
        self.fx = LaunchFixture("fee", native_numeraire=True, fee_wad=WAD // 10)
        self.fx.launch(self.fx.init_data(beneficiaries=default_beneficiaries()))
        self.fx.fund()
        self.fx.seed_custody(10 ** 18)

    def test_curves_are_mirrored(self):
        state = self.fx.initializer.get_state(self.fx.asset)
        assert not self.fx.asset_is_token0
        assert state.pool_key.currency0 == self.fx.numeraire
        assert state.far_tick == -60_000
        assert self.fx.tick == 0

    def test_buy_splits_fee(self):
        delta = self.fx.buy_exact_in(HALF_UNIT)

        assert beneficiary_balances(self.fx) == [25 * 10 ** 14, 225 * 10 ** 14, 25 * 10 ** 15]
        assert delta.amount0 == -HALF_UNIT
        assert delta.amount1 > 0
        assert self.fx.tick < 0

    @pytest.mark.parametrize("swap, stage, kind", [
        ("buy_exact_in", "before_swap", "exact_in_numeraire_for_asset"),
        ("sell_exact_out", "before_swap", "exact_out_asset_for_numeraire"),
        ("sell_exact_in", "after_swap", "exact_in_asset_for_numeraire"),
        ("buy_exact_out", "after_swap", "exact_out_numeraire_for_asset"),
    ])
    def test_each_kind_charged_once(self, swap, stage, kind):
        self.fx.seed_custody(10 ** 22)
        self.fx.buy_exact_in(10 ** 21)
        fees_before = len(self.fx.hook.events.of_type("FeeCollected"))

        getattr(self.fx, swap)(10 ** 17)

        fees = self.fx.hook.events.of_type("FeeCollected")
        assert len(fees) == fees_before + 1
        event = fees[-1]
        assert event.meta["stage"] == stage
        assert event.meta["kind"] == kind
        assert event.amount == event.meta["basis"] * (WAD // 10) // WAD > 0

        swap_event = self.fx.hook.events.of_type("Swap")[-1]
        assert swap_event.meta["fee_after_swap"] == (event.amount if stage == "after_swap" else 0)


class TestGating:
    """Only the paired initializer creates pools and changes liquidity"""

    def setup_method(self):
        self.fx = LaunchFixture("fee", fee_wad=WAD // 10)

    def test_fee_fraction_bounds(self):
        with pytest.raises(InvalidFeeFraction):
            FeeDistributionHook(self.fx.pool_manager, self.fx.initializer, WAD + 1)

    def test_initializer_pairs_once(self):
        with pytest.raises(HookAlreadyRegistered):
            FeeDistributionHook(self.fx.pool_manager, self.fx.initializer, WAD // 10)

    def test_outsider_cannot_initialize_hooked_pool(self):
        key = PoolKey(self.fx.asset, self.fx.numeraire, 0, 60, self.fx.hook)
        with pytest.raises(SenderNotInitializer):
            self.fx.pool_manager.initialize(TRADER, key, Q96)

    def test_outsider_cannot_modify_liquidity(self):
        self.fx.launch()
        self.fx.ledger.mint(self.fx.asset, OTHER_TRADER, 10 ** 24)
        with pytest.raises(SenderNotInitializer):
            self.fx.pool_manager.modify_liquidity(
                OTHER_TRADER, self.fx.key, ModifyLiquidityParams(6_000, 12_000, 10 ** 18)
            )

    def test_nonzero_lp_fee_rejected_and_rolled_back(self):
        self.fx.lp_fee = 3000
        init_data = self.fx.init_data(beneficiaries=default_beneficiaries())

        with pytest.raises(InvalidPoolFee):
            self.fx.launch(init_data)

        assert self.fx.initializer.get_status(self.fx.asset) == PoolStatus.UNINITIALIZED
        assert self.fx.balance(self.fx.asset, AIRLOCK) == SUPPLY
        assert self.fx.balance(self.fx.asset, self.fx.initializer.address) == 0

    def test_numeraire_on_wrong_side_rejected(self):
        # ERC20 numeraire sorting below the asset would land in slot 0
        self.fx.numeraire = Currency("0x0000000000000000000000000000000000000001", "LOW")

        with pytest.raises(InvalidNumerairePosition):
            self.fx.launch()

        assert self.fx.initializer.get_status(self.fx.asset) == PoolStatus.UNINITIALIZED
        assert self.fx.balance(self.fx.asset, AIRLOCK) == SUPPLY


class TestRollback:

    def test_failed_swap_reverts_fee_payouts(self):
        fx = LaunchFixture("fee", fee_wad=WAD // 10)
        fx.launch(fx.init_data(beneficiaries=default_beneficiaries()))
        fx.seed_custody(10 ** 18)
        # Enough for the fee but not the swap
        fx.fund(OTHER_TRADER, 10 ** 16)

        with pytest.raises(InsufficientBalance):
            fx.buy_exact_in(HALF_UNIT, trader=OTHER_TRADER)

        assert beneficiary_balances(fx) == [0, 0, 0]
        assert fx.hook.undistributed == {}
        assert fx.hook.events.of_type("FeeCollected") == []
        assert fx.balance(fx.numeraire, fx.pool_manager.address) == 10 ** 18
        assert fx.balance(fx.numeraire, OTHER_TRADER) == 10 ** 16
        assert fx.tick == 0
