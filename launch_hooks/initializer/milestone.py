#!/usr/bin/env python3
"""
Milestone Initializer

Multicurve launch that also reserves asset liquidity in ranges beyond the
starting price. Each reserved range is released to its recipient once the
post-swap price moves past it (see MilestoneUnlockHook). The only way to
release a reserved range is `unlock_position` with the capability handed to
the paired hook at registration.
"""

import logging
from typing import List, Tuple

from ..core.errors import (
    ConfigurationError, InvalidMilestonePosition, MilestoneRangeNotBeyondPrice,
    NoMilestonePositions, SenderNotUnlockHook,
)
from ..core.tick_math import (
    in_tick_bounds, is_aligned, liquidity_for_amount0, liquidity_for_amount1,
    tick_to_sqrt_price_x96,
)
from ..core.types import (
    Currency, InitData, MilestoneInitData, MilestonePositionDetails,
    ModifyLiquidityParams, PoolState, Position,
)
from .multicurve import MulticurveInitializer
from .store import MilestonePositionStore

logger = logging.getLogger(__name__)


class UnlockCapability:
    """Proof that a caller is the hook paired with `initializer`; created once per initializer"""
    __slots__ = ("_initializer",)

    def __init__(self, initializer):
        self._initializer = initializer

    def __repr__(self) -> str:
        return f"UnlockCapability({type(self._initializer).__name__})"


class MilestoneInitializer(MulticurveInitializer):
    """Multicurve initializer with milestone-gated reserved positions"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.milestones = MilestonePositionStore()
        self.pool_manager.register_participant(self.milestones)
        self._unlock_capability = None

    def register_hook(self, hook) -> UnlockCapability:
        """Pair with `hook` and hand it the unlock capability"""
        super().register_hook(hook)
        self._unlock_capability = UnlockCapability(self)
        return self._unlock_capability

    # ------------------------------------------------------------------
    # Launch extension points
    # ------------------------------------------------------------------

    def _validate_init_data(self, init_data: InitData) -> None:
        if not isinstance(init_data, MilestoneInitData) or not init_data.milestone_positions:
            raise NoMilestonePositions()
        for i, spec in enumerate(init_data.milestone_positions):
            if spec.amount <= 0:
                raise InvalidMilestonePosition(f"Milestone {i} reserves a non-positive amount {spec.amount}")

    def _reserved_amount(self, init_data: MilestoneInitData) -> int:
        return sum(spec.amount for spec in init_data.milestone_positions)

    def _plan_reserved_positions(
        self,
        asset: Currency,
        init_data: MilestoneInitData,
        is_token0: bool,
        start_tick: int,
        salt_offset: int
    ) -> List[MilestonePositionDetails]:
        """Validate each milestone range and size its single-sided asset liquidity"""
        details = []
        for i, spec in enumerate(init_data.milestone_positions):
            if spec.tick_lower >= spec.tick_upper:
                raise InvalidMilestonePosition(
                    f"Milestone {i} has inverted bounds [{spec.tick_lower}, {spec.tick_upper}]"
                )
            if not (in_tick_bounds(spec.tick_lower) and in_tick_bounds(spec.tick_upper)):
                raise InvalidMilestonePosition(f"Milestone {i} lies outside the tick bounds")
            if not (is_aligned(spec.tick_lower, init_data.tick_spacing)
                    and is_aligned(spec.tick_upper, init_data.tick_spacing)):
                raise InvalidMilestonePosition(
                    f"Milestone {i} is not aligned to tick spacing {init_data.tick_spacing}"
                )

            # Reserved asset must sit entirely on the unsold side of the starting price
            if is_token0 and spec.tick_lower <= start_tick:
                raise MilestoneRangeNotBeyondPrice(i, spec.tick_lower, spec.tick_upper, start_tick)
            if not is_token0 and spec.tick_upper >= start_tick:
                raise MilestoneRangeNotBeyondPrice(i, spec.tick_lower, spec.tick_upper, start_tick)

            sqrt_lower = tick_to_sqrt_price_x96(spec.tick_lower)
            sqrt_upper = tick_to_sqrt_price_x96(spec.tick_upper)
            if is_token0:
                liquidity = liquidity_for_amount0(sqrt_lower, sqrt_upper, spec.amount)
            else:
                liquidity = liquidity_for_amount1(sqrt_lower, sqrt_upper, spec.amount)
            if liquidity <= 0:
                raise InvalidMilestonePosition(f"Milestone {i} amount {spec.amount} buys no liquidity")

            details.append(MilestonePositionDetails(
                tick_lower=spec.tick_lower,
                tick_upper=spec.tick_upper,
                liquidity=liquidity,
                salt=salt_offset + i,
                recipient=spec.recipient,
            ))
        return details

    def _record_reserved_positions(self, asset: Currency, details: List[MilestonePositionDetails]) -> None:
        self.milestones.create(asset, details)

    def _live_positions(self, asset: Currency, state: PoolState) -> List[Position]:
        """Curve positions plus the milestone positions not yet withdrawn"""
        count = state.curve_position_count
        return list(state.positions[:count]) + [
            state.positions[count + index] for index, _ in self.milestones.active(asset)
        ]

    # ------------------------------------------------------------------
    # Unlock
    # ------------------------------------------------------------------

    def unlock_position(self, asset: Currency, numeraire: Currency, index: int, capability: UnlockCapability) -> int:
        """
        Burn milestone position `index` and forward the numeraire it returns to
        its recipient.

        Returns:
            Numeraire amount forwarded
        """
        if self._unlock_capability is None or capability is not self._unlock_capability:
            raise SenderNotUnlockHook()

        state = self.pool_states.get(asset)
        if state.numeraire != numeraire:
            raise ConfigurationError(f"{numeraire} is not the numeraire of {asset}")

        details = self.milestones.get(asset, index)
        key = state.pool_key

        with self.pool_manager.transition():
            self.milestones.mark_withdrawn(asset, index)

            balance_before = self.ledger.balance_of(numeraire, self.address)
            self.pool_manager.modify_liquidity(self, key, ModifyLiquidityParams(
                details.tick_lower, details.tick_upper, -details.liquidity, details.salt
            ))
            received = self.ledger.balance_of(numeraire, self.address) - balance_before

            if received > 0:
                self.ledger.transfer(numeraire, self.address, details.recipient, received)

        logger.info(
            "Unlocked milestone %d of %s [%d, %d]: %d %s to %s",
            index, asset, details.tick_lower, details.tick_upper, received, numeraire, details.recipient
        )
        return received

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_milestone_position_details(self, asset: Currency, index: int) -> MilestonePositionDetails:
        return self.milestones.get(asset, index)

    def get_milestone_positions(self, asset: Currency) -> List[MilestonePositionDetails]:
        return self.milestones.all(asset)

    def get_active_milestone_positions(self, asset: Currency) -> List[Tuple[int, MilestonePositionDetails]]:
        return self.milestones.active(asset)

    def get_num_of_active_milestone_positions(self, asset: Currency) -> int:
        return len(self.milestones.active(asset))
