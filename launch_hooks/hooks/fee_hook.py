#!/usr/bin/env python3
"""
Fee Distribution Hook

Levies a fixed fraction of the numeraire leg of every swap and splits it among
the asset's beneficiaries:
- Numeraire known up front (specified leg): charged in before_swap
- Numeraire known only after settlement: charged in after_swap
- Each swap is charged at exactly one of the two stages

Collection fails open: no beneficiaries, a non-positive realized amount or
insufficient numeraire in pool manager custody skip the fee and the swap
proceeds untouched. Per-beneficiary payouts are floored; the remainder stays
with the hook and is tracked in `undistributed`.
"""

import logging
from typing import Dict, Optional

from ..core.errors import InvalidFeeFraction, InvalidNumerairePosition, InvalidPoolFee
from ..core.fixed_point import WAD, mul_wad_down, split_pro_rata
from ..core.interfaces import BeneficiaryRegistry
from ..core.swap_kind import SwapKind, asset_of, classify_swap, numeraire_of
from ..core.types import (
    ZERO_BEFORE_SWAP_DELTA, BalanceDelta, BeforeSwapDelta, Currency, PoolKey,
    PoolStatus, SwapParams,
)
from .base import InitializerGatedHook

logger = logging.getLogger(__name__)


class FeeDistributionHook(InitializerGatedHook):
    """Numeraire fee on every swap, paid out to beneficiaries"""

    def __init__(
        self,
        pool_manager,
        initializer: BeneficiaryRegistry,
        fee_wad: int,
        address: Optional[str] = None
    ):
        if fee_wad < 0 or fee_wad > WAD:
            raise InvalidFeeFraction(fee_wad)
        super().__init__(pool_manager, initializer, address)
        self.fee_wad = fee_wad
        self.undistributed: Dict[Currency, int] = {}

        pool_manager.register_participant(self)

    # Pool manager transition participation
    def snapshot(self):
        return dict(self.undistributed)

    def restore(self, snapshot) -> None:
        self.undistributed = dict(snapshot)

    # ------------------------------------------------------------------
    # Gating
    # ------------------------------------------------------------------

    def before_initialize(self, sender, key: PoolKey, sqrt_price_x96: int) -> None:
        super().before_initialize(sender, key, sqrt_price_x96)
        if key.fee != 0:
            raise InvalidPoolFee(key.fee)

        asset, numeraire = asset_of(key), numeraire_of(key)
        if (self.initializer.get_status(asset) == PoolStatus.UNINITIALIZED
                or self.initializer.get_state(asset).numeraire != numeraire):
            raise InvalidNumerairePosition(key)

    # ------------------------------------------------------------------
    # Swap
    # ------------------------------------------------------------------

    def before_swap(self, sender, key: PoolKey, params: SwapParams) -> BeforeSwapDelta:
        kind = classify_swap(key, params)
        if not kind.charged_before_swap:
            return ZERO_BEFORE_SWAP_DELTA

        fee = self._collect(key, kind, abs(params.amount_specified), "before_swap")
        return BeforeSwapDelta(specified=fee, unspecified=0)

    def after_swap(self, sender, key: PoolKey, params: SwapParams, delta: BalanceDelta) -> int:
        kind = classify_swap(key, params)

        fee = 0
        if not kind.charged_before_swap:
            numeraire = numeraire_of(key)
            realized = kind.realized_numeraire(delta.amount_for(key, numeraire))
            if realized > 0:
                fee = self._collect(key, kind, realized, "after_swap")

        self._emit(
            "Swap", key, sender,
            amount=params.amount_specified,
            kind=kind.value,
            amount0=delta.amount0,
            amount1=delta.amount1,
            fee_after_swap=fee,
        )
        return fee

    def _collect(self, key: PoolKey, kind: SwapKind, basis: int, stage: str) -> int:
        """Withdraw and distribute the fee on `basis`; returns the fee actually taken"""
        asset, numeraire = asset_of(key), numeraire_of(key)

        beneficiaries = self.initializer.get_beneficiaries(asset)
        if not beneficiaries:
            return 0

        fee = mul_wad_down(basis, self.fee_wad)
        if fee <= 0:
            return 0

        custody = self.pool_manager.balance_of(numeraire, self.pool_manager.address)
        if custody < fee:
            logger.warning(
                "Skipping %s fee of %d %s: pool manager holds only %d", stage, fee, numeraire, custody
            )
            return 0

        self.pool_manager.withdraw(numeraire, self.address, fee)

        payouts, remainder = split_pro_rata(fee, beneficiaries)
        for recipient, payout in payouts:
            self.pool_manager.ledger.transfer(numeraire, self.address, recipient, payout)
        if remainder:
            self.undistributed[numeraire] = self.undistributed.get(numeraire, 0) + remainder

        self._emit(
            "FeeCollected", key, amount=fee,
            stage=stage,
            kind=kind.value,
            basis=basis,
            payouts=payouts,
            remainder=remainder,
        )
        return fee
