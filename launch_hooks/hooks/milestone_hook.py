#!/usr/bin/env python3
"""
Milestone Unlock Hook

After every swap, reads the pool's post-swap tick from the pool manager and
releases each still-locked milestone position the price has moved past:
- asset is currency0 (price rises as it is bought): tick > tick_upper
- asset is currency1 (price falls as it is bought): tick < tick_lower

Positions are checked in storage order and several may unlock in one swap.
Unlocks are one-way; a position never relocks when the price comes back.
"""

import logging
from typing import List, Optional

from ..core.interfaces import MilestoneRegistry
from ..core.types import BalanceDelta, MilestonePositionDetails, PoolKey, SwapParams
from .base import InitializerGatedHook

logger = logging.getLogger(__name__)


def milestone_crossed(details: MilestonePositionDetails, tick: int, asset_is_token0: bool) -> bool:
    if asset_is_token0:
        return tick > details.tick_upper
    return tick < details.tick_lower


class MilestoneUnlockHook(InitializerGatedHook):
    """Releases reserved liquidity to milestone recipients as price thresholds are crossed"""

    def __init__(self, pool_manager, initializer: MilestoneRegistry, address: Optional[str] = None):
        super().__init__(pool_manager, initializer, address)

    def after_swap(self, sender, key: PoolKey, params: SwapParams, delta: BalanceDelta) -> int:
        asset = self.initializer.asset_for_pool(key.pool_id)
        numeraire = key.other(asset)
        asset_is_token0 = asset == key.currency0
        tick = self.pool_manager.current_tick(key.pool_id)

        unlocked: List[int] = []
        for index, details in self.initializer.get_active_milestone_positions(asset):
            if not milestone_crossed(details, tick, asset_is_token0):
                continue
            received = self.initializer.unlock_position(asset, numeraire, index, self._capability)
            unlocked.append(index)
            self._emit(
                "MilestoneUnlocked", key, amount=received,
                index=index,
                tick=tick,
                tick_lower=details.tick_lower,
                tick_upper=details.tick_upper,
                recipient=details.recipient,
            )

        self._emit(
            "Swap", key, sender,
            amount=params.amount_specified,
            amount0=delta.amount0,
            amount1=delta.amount1,
            tick=tick,
            unlocked=unlocked,
        )
        return 0
