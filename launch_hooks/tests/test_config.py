#!/usr/bin/env python3
"""
Launch Configuration Tests

Pydantic validation of launch layouts and the conversion of fractions and
whole-token amounts into the integer structures the initializers consume.
"""

import json

import pytest
from pydantic import ValidationError

from launch_hooks.config.schemas import (
    BeneficiaryConfig, CurveConfig, HookType, LaunchConfig, MilestoneConfig,
    create_default_config, load_config,
)
from launch_hooks.core.fixed_point import WAD, fractions_to_wad, to_wad
from launch_hooks.core.types import InitData, MilestoneInitData, MilestonePositionSpec

RECIPIENT = "0x000000000000000000000000000000000000a001"


def single_curve():
    return [CurveConfig(tick_lower=0, tick_upper=60_000, shares=1.0)]


class TestValidation:

    def test_curve_shares_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            LaunchConfig(curves=[
                CurveConfig(tick_lower=0, tick_upper=600, shares=0.5),
                CurveConfig(tick_lower=600, tick_upper=1_200, shares=0.4),
            ])

    def test_curves_required(self):
        with pytest.raises(ValidationError):
            LaunchConfig(curves=[])

    def test_inverted_curve_rejected(self):
        with pytest.raises(ValidationError):
            CurveConfig(tick_lower=600, tick_upper=0, shares=1.0)

    def test_beneficiary_shares_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            LaunchConfig(curves=single_curve(), beneficiaries=[
                BeneficiaryConfig(address="0x000000000000000000000000000000000000b001", shares=0.5),
                BeneficiaryConfig(address="0x000000000000000000000000000000000000b002", shares=0.3),
            ])

    def test_duplicate_beneficiaries_rejected(self):
        with pytest.raises(ValidationError):
            LaunchConfig(curves=single_curve(), beneficiaries=[
                BeneficiaryConfig(address="0x000000000000000000000000000000000000b001", shares=0.5),
                BeneficiaryConfig(address="0x000000000000000000000000000000000000B001", shares=0.5),
            ])

    def test_fee_hook_requires_zero_lp_fee(self):
        with pytest.raises(ValidationError):
            LaunchConfig(curves=single_curve(), hook_type=HookType.FEE, lp_fee=3000)

    def test_milestone_hook_requires_milestones(self):
        with pytest.raises(ValidationError):
            LaunchConfig(curves=single_curve(), hook_type=HookType.MILESTONE)

    def test_fee_fraction_bounded(self):
        with pytest.raises(ValidationError):
            LaunchConfig(curves=single_curve(), fee_fraction=1.5)


class TestConversions:

    def test_to_units_respects_decimals(self):
        config = LaunchConfig(curves=single_curve(), decimals=6)
        assert config.to_units(1.5) == 1_500_000

        config = LaunchConfig(curves=single_curve())
        assert config.to_units(1_000_000) == 10 ** 24

    def test_fee_wad(self):
        config = LaunchConfig(curves=single_curve(), fee_fraction=0.1)
        assert config.fee_wad == WAD // 10

    def test_shares_sum_to_exactly_wad(self):
        shares = fractions_to_wad([1 / 3, 1 / 3, 1 / 3])
        assert sum(shares) == WAD
        assert to_wad("0.05") == 5 * 10 ** 16

    def test_curve_and_beneficiary_specs(self):
        config = create_default_config(HookType.FEE)

        curves = config.curve_specs()
        assert [c.shares for c in curves] == [WAD // 2, WAD // 2]
        assert curves[0].num_positions == 5

        beneficiaries = config.beneficiary_specs()
        assert sum(b.shares for b in beneficiaries) == WAD
        assert beneficiaries[0].shares == 5 * WAD // 100

    def test_milestones_mirrored_for_token1_assets(self):
        config = LaunchConfig(
            curves=single_curve(), hook_type=HookType.MILESTONE,
            milestones=[MilestoneConfig(tick_lower=600, tick_upper=660, amount=10, recipient=RECIPIENT)],
        )

        assert config.milestone_specs(True) == [MilestonePositionSpec(600, 660, 10 * 10 ** 18, RECIPIENT)]
        assert config.milestone_specs(False) == [MilestonePositionSpec(-660, -600, 10 * 10 ** 18, RECIPIENT)]

    def test_init_data_type_follows_hook(self):
        fee_data = create_default_config(HookType.FEE).init_data(True)
        milestone_data = create_default_config(HookType.MILESTONE).init_data(True)

        assert type(fee_data) is InitData
        assert fee_data.fee == 0
        assert isinstance(milestone_data, MilestoneInitData)
        assert milestone_data.fee == 3000
        assert len(milestone_data.milestone_positions) == 3


class TestLoading:

    def test_load_config_from_json(self, tmp_path):
        path = tmp_path / "launch.json"
        path.write_text(json.dumps({
            "name": "from_file",
            "hook_type": "milestone",
            "lp_fee": 500,
            "curves": [{"tick_lower": 0, "tick_upper": 6000, "num_positions": 2, "shares": 1.0}],
            "milestones": [{"tick_lower": 600, "tick_upper": 660, "amount": 5, "recipient": RECIPIENT}],
            "trading": {"num_swaps": 10},
        }))

        config = load_config(path)

        assert config.name == "from_file"
        assert config.hook_type == HookType.MILESTONE
        assert config.trading.num_swaps == 10
        assert config.trading.num_traders == 5

    def test_invalid_file_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"curves": [{"tick_lower": 0, "tick_upper": 60, "shares": 0.5}]}))

        with pytest.raises(ValidationError):
            load_config(path)

    @pytest.mark.parametrize("hook_type", list(HookType))
    def test_default_configs_are_valid(self, hook_type):
        config = create_default_config(hook_type)
        assert config.hook_type == hook_type
        assert config.random_seed == 42
