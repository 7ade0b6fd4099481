"""
Per-asset lifecycle stores owned by an initializer.

Lookups for an asset or pool the store has never seen raise instead of
returning an empty default.
"""

import copy
from dataclasses import replace
from typing import Dict, List, Tuple

from ..core.errors import (
    PositionAlreadyWithdrawn, UnknownAsset, UnknownMilestonePosition, UnknownPool,
)
from ..core.types import Currency, MilestonePositionDetails, PoolState, PoolStatus


class PoolStateStore:
    """asset -> PoolState, plus the pool id -> asset index"""

    def __init__(self) -> None:
        self._states: Dict[Currency, PoolState] = {}
        self._assets_by_pool: Dict[str, Currency] = {}

    def status(self, asset: Currency) -> PoolStatus:
        state = self._states.get(asset)
        return state.status if state else PoolStatus.UNINITIALIZED

    def get(self, asset: Currency) -> PoolState:
        state = self._states.get(asset)
        if state is None:
            raise UnknownAsset(asset)
        return state

    def create(self, asset: Currency, state: PoolState) -> None:
        self._states[asset] = state
        self._assets_by_pool[state.pool_key.pool_id] = asset

    def set_status(self, asset: Currency, status: PoolStatus) -> None:
        self.get(asset).status = status

    def asset_for_pool(self, pool_id: str) -> Currency:
        asset = self._assets_by_pool.get(pool_id)
        if asset is None:
            raise UnknownPool(pool_id)
        return asset

    # Pool manager transition participation
    def snapshot(self):
        states = {a: replace(s, positions=list(s.positions)) for a, s in self._states.items()}
        return states, dict(self._assets_by_pool)

    def restore(self, snapshot) -> None:
        states, assets_by_pool = snapshot
        self._states = states
        self._assets_by_pool = assets_by_pool


class MilestonePositionStore:
    """asset -> ordered milestone positions; only `withdrawn` ever changes"""

    def __init__(self) -> None:
        self._positions: Dict[Currency, List[MilestonePositionDetails]] = {}

    def create(self, asset: Currency, details: List[MilestonePositionDetails]) -> None:
        self._positions[asset] = list(details)

    def _list(self, asset: Currency) -> List[MilestonePositionDetails]:
        positions = self._positions.get(asset)
        if positions is None:
            raise UnknownAsset(asset)
        return positions

    def get(self, asset: Currency, index: int) -> MilestonePositionDetails:
        positions = self._list(asset)
        if index < 0 or index >= len(positions):
            raise UnknownMilestonePosition(asset, index)
        return copy.copy(positions[index])

    def all(self, asset: Currency) -> List[MilestonePositionDetails]:
        return [copy.copy(p) for p in self._list(asset)]

    def active(self, asset: Currency) -> List[Tuple[int, MilestonePositionDetails]]:
        """(index, details) of every position not yet withdrawn, in storage order"""
        return [(i, copy.copy(p)) for i, p in enumerate(self._list(asset)) if not p.withdrawn]

    def mark_withdrawn(self, asset: Currency, index: int) -> None:
        positions = self._list(asset)
        if index < 0 or index >= len(positions):
            raise UnknownMilestonePosition(asset, index)
        if positions[index].withdrawn:
            raise PositionAlreadyWithdrawn(asset, index)
        positions[index].withdrawn = True

    # Pool manager transition participation
    def snapshot(self):
        return {a: [copy.copy(p) for p in ps] for a, ps in self._positions.items()}

    def restore(self, snapshot) -> None:
        self._positions = snapshot
