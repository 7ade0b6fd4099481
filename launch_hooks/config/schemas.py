#!/usr/bin/env python3
"""
Configuration schemas for launch simulations.

Pydantic schemas for the launch layout (curves, beneficiaries, milestones),
the fee hook parameters and the random trading flow. Human-friendly fractions
and token amounts are converted to WAD shares and base units here, so the
hooks and initializers only ever see integers.
"""

import json
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.fixed_point import fractions_to_wad, to_wad
from ..core.types import (
    BeneficiaryData, Curve, InitData, MilestoneInitData, MilestonePositionSpec,
)


class HookType(str, Enum):
    """Which hook/initializer pair a launch uses"""
    FEE = "fee"
    MILESTONE = "milestone"


class CurveConfig(BaseModel):
    """Curve written for an asset sorting as currency0 (mirrored otherwise)"""
    tick_lower: int = Field(description="Lower tick of the curve")
    tick_upper: int = Field(description="Upper tick of the curve")
    num_positions: int = Field(gt=0, default=1, description="Number of slices")
    shares: float = Field(gt=0, le=1, description="Fraction of the bonding-curve supply")

    @model_validator(mode="after")
    def validate_bounds(self):
        if self.tick_lower >= self.tick_upper:
            raise ValueError(f"tick_lower {self.tick_lower} must be below tick_upper {self.tick_upper}")
        return self


class BeneficiaryConfig(BaseModel):
    """Fee recipient"""
    address: str = Field(description="Recipient address")
    shares: float = Field(gt=0, le=1, description="Fraction of each collected fee")


class MilestoneConfig(BaseModel):
    """Reserved liquidity released to `recipient` once the price passes the range"""
    tick_lower: int = Field(description="Lower tick, oriented like the curves")
    tick_upper: int = Field(description="Upper tick, oriented like the curves")
    amount: float = Field(gt=0, description="Asset tokens reserved (whole tokens)")
    recipient: str = Field(description="Recipient of the unlocked numeraire")

    @model_validator(mode="after")
    def validate_bounds(self):
        if self.tick_lower >= self.tick_upper:
            raise ValueError(f"tick_lower {self.tick_lower} must be below tick_upper {self.tick_upper}")
        return self


class TradingConfig(BaseModel):
    """Random order flow driven against the launched pool"""
    num_swaps: int = Field(ge=0, default=200, description="Swaps to simulate")
    num_traders: int = Field(gt=0, default=5, description="Independent trader accounts")
    trader_numeraire_balance: float = Field(gt=0, default=1_000_000.0, description="Starting numeraire per trader")
    buy_probability: float = Field(ge=0, le=1, default=0.65, description="Probability a swap buys the asset")
    exact_output_probability: float = Field(ge=0, le=1, default=0.25, description="Probability a swap is exact-output")
    mean_trade_size: float = Field(gt=0, default=2_000.0, description="Median buy size in numeraire")
    trade_size_sigma: float = Field(ge=0, default=1.0, description="Log-normal sigma of trade sizes")
    custody_seed: float = Field(ge=0, default=10_000.0, description="Numeraire already in pool manager custody")


class LaunchConfig(BaseModel):
    """Complete launch simulation configuration"""
    name: str = Field(default="launch", description="Run name")
    description: str = Field(default="", description="Run description")
    hook_type: HookType = Field(default=HookType.FEE)

    # Tokens
    asset_symbol: str = Field(default="ASSET")
    numeraire_symbol: str = Field(default="NUM")
    native_numeraire: bool = Field(default=False, description="Numeraire is the chain's native currency")
    decimals: int = Field(ge=0, le=36, default=18)
    bonding_curve_supply: float = Field(gt=0, default=1_000_000.0, description="Asset tokens on the curve")

    # Pool
    lp_fee: int = Field(ge=0, lt=1_000_000, default=0, description="LP fee in pips")
    tick_spacing: int = Field(gt=0, default=60)
    curves: List[CurveConfig] = Field(min_length=1)

    # Fee distribution
    fee_fraction: float = Field(ge=0, le=1, default=0.01, description="Fraction of the numeraire leg taken as fee")
    beneficiaries: List[BeneficiaryConfig] = Field(default_factory=list)

    # Milestones
    milestones: List[MilestoneConfig] = Field(default_factory=list)

    trading: TradingConfig = Field(default_factory=TradingConfig)
    random_seed: Optional[int] = Field(default=42)

    @field_validator("curves")
    @classmethod
    def validate_curve_shares(cls, v):
        total = sum(c.shares for c in v)
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Curve shares must sum to 1.0, got {total}")
        return v

    @field_validator("beneficiaries")
    @classmethod
    def validate_beneficiary_shares(cls, v):
        if v:
            total = sum(b.shares for b in v)
            if abs(total - 1.0) > 1e-9:
                raise ValueError(f"Beneficiary shares must sum to 1.0, got {total}")
            addresses = [b.address.lower() for b in v]
            if len(set(addresses)) != len(addresses):
                raise ValueError("Beneficiary addresses must be unique")
        return v

    @model_validator(mode="after")
    def validate_hook_requirements(self):
        if self.hook_type == HookType.FEE and self.lp_fee != 0:
            raise ValueError("Fee hook launches require lp_fee == 0")
        if self.hook_type == HookType.MILESTONE and not self.milestones:
            raise ValueError("Milestone launches require at least one milestone")
        return self

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def to_units(self, amount: float) -> int:
        return to_wad(amount) * 10 ** self.decimals // 10 ** 18

    @property
    def fee_wad(self) -> int:
        return to_wad(self.fee_fraction)

    def curve_specs(self) -> List[Curve]:
        shares = fractions_to_wad([c.shares for c in self.curves])
        return [Curve(c.tick_lower, c.tick_upper, c.num_positions, s) for c, s in zip(self.curves, shares)]

    def beneficiary_specs(self) -> List[BeneficiaryData]:
        shares = fractions_to_wad([b.shares for b in self.beneficiaries])
        return [BeneficiaryData(b.address, s) for b, s in zip(self.beneficiaries, shares)]

    def milestone_specs(self, asset_is_token0: bool) -> List[MilestonePositionSpec]:
        """Milestones in pool ticks; mirrored around tick 0 when the asset sorts as currency1"""
        specs = []
        for m in self.milestones:
            if asset_is_token0:
                tick_lower, tick_upper = m.tick_lower, m.tick_upper
            else:
                tick_lower, tick_upper = -m.tick_upper, -m.tick_lower
            specs.append(MilestonePositionSpec(tick_lower, tick_upper, self.to_units(m.amount), m.recipient))
        return specs

    def init_data(self, asset_is_token0: bool) -> Union[InitData, MilestoneInitData]:
        if self.hook_type == HookType.MILESTONE:
            return MilestoneInitData(
                fee=self.lp_fee,
                tick_spacing=self.tick_spacing,
                curves=self.curve_specs(),
                beneficiaries=self.beneficiary_specs(),
                milestone_positions=self.milestone_specs(asset_is_token0),
            )
        return InitData(
            fee=self.lp_fee,
            tick_spacing=self.tick_spacing,
            curves=self.curve_specs(),
            beneficiaries=self.beneficiary_specs(),
        )


def create_default_config(hook_type: HookType = HookType.FEE) -> LaunchConfig:
    """Default launch: price starts at tick 0 and the curve runs 60,000 ticks up"""
    curves = [
        CurveConfig(tick_lower=0, tick_upper=30_000, num_positions=5, shares=0.5),
        CurveConfig(tick_lower=30_000, tick_upper=60_000, num_positions=5, shares=0.5),
    ]

    if hook_type == HookType.MILESTONE:
        return LaunchConfig(
            name="milestone_launch",
            description="Team allocation released at three price milestones",
            hook_type=HookType.MILESTONE,
            curves=curves,
            lp_fee=3000,
            milestones=[
                MilestoneConfig(tick_lower=600, tick_upper=660, amount=10_000,
                                recipient="0x000000000000000000000000000000000000a001"),
                MilestoneConfig(tick_lower=1_200, tick_upper=1_260, amount=10_000,
                                recipient="0x000000000000000000000000000000000000a002"),
                MilestoneConfig(tick_lower=1_800, tick_upper=1_860, amount=10_000,
                                recipient="0x000000000000000000000000000000000000a003"),
            ],
        )

    return LaunchConfig(
        name="fee_launch",
        description="One percent numeraire fee split among three beneficiaries",
        hook_type=HookType.FEE,
        curves=curves,
        fee_fraction=0.01,
        beneficiaries=[
            BeneficiaryConfig(address="0x000000000000000000000000000000000000b001", shares=0.05),
            BeneficiaryConfig(address="0x000000000000000000000000000000000000b002", shares=0.45),
            BeneficiaryConfig(address="0x000000000000000000000000000000000000b003", shares=0.50),
        ],
    )


def load_config(path: Union[str, Path]) -> LaunchConfig:
    """Load a LaunchConfig from a JSON file"""
    return LaunchConfig.model_validate(json.loads(Path(path).read_text()))
