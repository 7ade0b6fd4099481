#!/usr/bin/env python3
"""
Launch Hook Data Model

Value types shared by the pool manager, the initializers and the hooks:
- Currency / PoolKey: canonical pool identity (currency0 sorts below currency1)
- SwapParams / BalanceDelta / BeforeSwapDelta: v4-style swap accounting
- Position / PoolState / MilestonePositionDetails: per-asset lifecycle records
- Curve / InitData / MilestoneInitData: launch parameters
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property, total_ordering
from typing import List, Optional, Tuple

from eth_abi import encode
from web3 import Web3

from .addresses import ZERO_ADDRESS, normalize_address


@total_ordering
@dataclass(frozen=True)
class Currency:
    """A token identified by address; the zero address is the native currency"""
    address: str
    symbol: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "address", normalize_address(self.address))

    @property
    def is_native(self) -> bool:
        return int(self.address, 16) == 0

    def __lt__(self, other: "Currency") -> bool:
        if not isinstance(other, Currency):
            return NotImplemented
        return int(self.address, 16) < int(other.address, 16)

    def __str__(self) -> str:
        return self.symbol or self.address


NATIVE = Currency(ZERO_ADDRESS, "ETH")


@dataclass(frozen=True)
class PoolKey:
    """Immutable pool identity; currencies must already be in canonical order"""
    currency0: Currency
    currency1: Currency
    fee: int
    tick_spacing: int
    hooks: Optional[object] = field(default=None, compare=False)

    @property
    def hooks_address(self) -> str:
        return getattr(self.hooks, "address", ZERO_ADDRESS)

    @cached_property
    def pool_id(self) -> str:
        """keccak256 of the ABI-encoded key"""
        encoded = encode(
            ["address", "address", "uint24", "int24", "address"],
            [
                self.currency0.address,
                self.currency1.address,
                self.fee,
                self.tick_spacing,
                self.hooks_address,
            ],
        )
        return Web3.to_hex(Web3.keccak(encoded))

    def other(self, currency: Currency) -> Currency:
        return self.currency1 if currency == self.currency0 else self.currency0


@dataclass(frozen=True)
class SwapParams:
    """Swap request; negative amount_specified is exact input, positive is exact output"""
    zero_for_one: bool
    amount_specified: int
    sqrt_price_limit_x96: Optional[int] = None

    @property
    def exact_input(self) -> bool:
        return self.amount_specified < 0


@dataclass(frozen=True)
class ModifyLiquidityParams:
    tick_lower: int
    tick_upper: int
    liquidity_delta: int
    salt: int = 0


@dataclass(frozen=True)
class BalanceDelta:
    """Token amounts from the caller's perspective (negative = owed by the caller)"""
    amount0: int = 0
    amount1: int = 0

    def __add__(self, other: "BalanceDelta") -> "BalanceDelta":
        return BalanceDelta(self.amount0 + other.amount0, self.amount1 + other.amount1)

    def __sub__(self, other: "BalanceDelta") -> "BalanceDelta":
        return BalanceDelta(self.amount0 - other.amount0, self.amount1 - other.amount1)

    def amount_for(self, key: PoolKey, currency: Currency) -> int:
        return self.amount0 if currency == key.currency0 else self.amount1


ZERO_DELTA = BalanceDelta()


@dataclass(frozen=True)
class BeforeSwapDelta:
    """Hook-side delta returned from before_swap (positive = owed to the hook)"""
    specified: int = 0
    unspecified: int = 0


ZERO_BEFORE_SWAP_DELTA = BeforeSwapDelta()


@dataclass(frozen=True)
class Slot0:
    sqrt_price_x96: int
    tick: int
    lp_fee: int


@dataclass(frozen=True)
class BeneficiaryData:
    """Fee recipient and its WAD-scaled share"""
    beneficiary: str
    shares: int

    def __post_init__(self):
        object.__setattr__(self, "beneficiary", normalize_address(self.beneficiary))


@dataclass(frozen=True)
class Position:
    """Liquidity position minted by an initializer"""
    tick_lower: int
    tick_upper: int
    liquidity: int
    salt: int = 0


class PoolStatus(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    LOCKED = "locked"
    EXITED = "exited"


@dataclass
class PoolState:
    """Per-asset lifecycle record owned by the initializer"""
    numeraire: Currency
    beneficiaries: Tuple[BeneficiaryData, ...]
    positions: List[Position]
    status: PoolStatus
    pool_key: PoolKey
    far_tick: int
    # positions[:curve_position_count] are curve slices, the rest are reserved ranges
    curve_position_count: int


@dataclass
class MilestonePositionDetails:
    """Reserved liquidity released to `recipient` once the price crosses its range"""
    tick_lower: int
    tick_upper: int
    liquidity: int
    salt: int
    recipient: str
    withdrawn: bool = False

    @property
    def position(self) -> Position:
        return Position(self.tick_lower, self.tick_upper, self.liquidity, self.salt)


@dataclass(frozen=True)
class Curve:
    """Tick range receiving `shares` (WAD) of the bonding-curve supply in `num_positions` slices"""
    tick_lower: int
    tick_upper: int
    num_positions: int
    shares: int


@dataclass(frozen=True)
class MilestonePositionSpec:
    """Milestone request: `amount` asset tokens reserved in [tick_lower, tick_upper]"""
    tick_lower: int
    tick_upper: int
    amount: int
    recipient: str


@dataclass
class InitData:
    fee: int
    tick_spacing: int
    curves: List[Curve]
    beneficiaries: List[BeneficiaryData] = field(default_factory=list)


@dataclass
class MilestoneInitData(InitData):
    milestone_positions: List[MilestonePositionSpec] = field(default_factory=list)


@dataclass(frozen=True)
class ExitResult:
    """Proceeds paid to the airlock when a pool exits"""
    sqrt_price_x96: int
    token0: Currency
    token1: Currency
    fees0: int
    fees1: int
    balance0: int
    balance1: int
