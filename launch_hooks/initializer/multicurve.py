#!/usr/bin/env python3
"""
Multicurve Initializer

Creates one pool per asset, mints the bonding-curve positions and owns the
pool lifecycle:
- initialize: UNINITIALIZED -> INITIALIZED (no beneficiaries) or LOCKED
- exit_liquidity: INITIALIZED -> EXITED once the price reaches the far tick
- collect_fees: harvest LP fees of a LOCKED pool and split them among beneficiaries

The initializer is paired with exactly one hook, which registers itself at
construction and is used as the `hooks` of every pool created here.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from ..core.addresses import derive_address, normalize_address
from ..core.curves import adjust_curves, curve_to_positions
from ..core.errors import (
    CannotMigrateInsufficientTick, ConfigurationError, HookAlreadyRegistered,
    HookNotRegistered, PoolAlreadyInitialized, WrongPoolStatus,
)
from ..core.fixed_point import split_pro_rata, validate_beneficiaries
from ..core.interfaces import CurveToPositions, SettlementEngine, TokenTransfer
from ..core.tick_math import tick_to_sqrt_price_x96
from ..core.types import (
    BalanceDelta, BeneficiaryData, Currency, ExitResult, InitData,
    MilestonePositionDetails, ModifyLiquidityParams, PoolKey, PoolState,
    PoolStatus, Position,
)
from .store import PoolStateStore

logger = logging.getLogger(__name__)


class MulticurveInitializer:
    """Launches assets into multicurve pools and manages their lifecycle"""

    def __init__(
        self,
        pool_manager: SettlementEngine,
        ledger: TokenTransfer,
        airlock: str,
        curve_layout: CurveToPositions = curve_to_positions,
        address: Optional[str] = None
    ):
        self.pool_manager = pool_manager
        self.ledger = ledger
        self.airlock = normalize_address(airlock)
        self.curve_layout = curve_layout
        self.address = address or derive_address(type(self).__name__)
        self.hook = None

        self.pool_states = PoolStateStore()
        pool_manager.register_participant(self.pool_states)

    def register_hook(self, hook):
        """Pair this initializer with `hook`; allowed once"""
        if self.hook is not None:
            raise HookAlreadyRegistered()
        self.hook = hook
        return None

    # ------------------------------------------------------------------
    # Launch
    # ------------------------------------------------------------------

    def initialize(
        self,
        asset: Currency,
        numeraire: Currency,
        total_tokens_on_bonding_curve: int,
        init_data: InitData
    ) -> str:
        """
        Create the asset's pool and mint its positions.

        Pulls `total_tokens_on_bonding_curve` asset tokens from the airlock and
        returns the leftover dust to it.

        Returns:
            The new pool id
        """
        if self.hook is None:
            raise HookNotRegistered()
        if self.pool_states.status(asset) != PoolStatus.UNINITIALIZED:
            raise PoolAlreadyInitialized(asset)
        if asset == numeraire:
            raise ConfigurationError("Asset and numeraire must differ")
        if total_tokens_on_bonding_curve <= 0:
            raise ConfigurationError("Bonding curve supply must be positive")

        beneficiaries = tuple(init_data.beneficiaries)
        validate_beneficiaries(beneficiaries)
        self._validate_init_data(init_data)

        is_token0 = asset < numeraire
        currency0, currency1 = (asset, numeraire) if is_token0 else (numeraire, asset)
        curves, start_tick, far_tick = adjust_curves(init_data.curves, init_data.tick_spacing, is_token0)

        reserved = self._reserved_amount(init_data)
        if reserved >= total_tokens_on_bonding_curve:
            raise ConfigurationError(
                f"Reserved amount {reserved} leaves no supply for the curves ({total_tokens_on_bonding_curve})"
            )

        # Salts are assigned here so curve and reserved positions never share a position key
        curve_positions = [
            replace(p, salt=i) for i, p in enumerate(self.curve_layout(
                curves, init_data.tick_spacing, total_tokens_on_bonding_curve - reserved, is_token0
            ))
        ]
        reserved_details = self._plan_reserved_positions(
            asset, init_data, is_token0, start_tick, len(curve_positions)
        )
        positions = list(curve_positions) + [d.position for d in reserved_details]

        key = PoolKey(currency0, currency1, init_data.fee, init_data.tick_spacing, self.hook)
        status = PoolStatus.LOCKED if beneficiaries else PoolStatus.INITIALIZED

        with self.pool_manager.transition():
            held_before = self.ledger.balance_of(asset, self.address)
            self.ledger.transfer(asset, self.airlock, self.address, total_tokens_on_bonding_curve)

            # State goes in before the pool exists so hooks can resolve it during initialization
            self.pool_states.create(asset, PoolState(
                numeraire=numeraire,
                beneficiaries=beneficiaries,
                positions=positions,
                status=status,
                pool_key=key,
                far_tick=far_tick,
                curve_position_count=len(curve_positions),
            ))
            self._record_reserved_positions(asset, reserved_details)

            self.pool_manager.initialize(self, key, tick_to_sqrt_price_x96(start_tick))

            for position in positions:
                self.pool_manager.modify_liquidity(self, key, ModifyLiquidityParams(
                    position.tick_lower, position.tick_upper, position.liquidity, position.salt
                ))

            dust = self.ledger.balance_of(asset, self.address) - held_before
            if dust > 0:
                self.ledger.transfer(asset, self.address, self.airlock, dust)

        logger.info(
            "Launched %s against %s: %d positions, start tick %d, far tick %d, status %s",
            asset, numeraire, len(positions), start_tick, far_tick, status.name
        )
        return key.pool_id

    # Variant extension points; the base launch reserves nothing

    def _validate_init_data(self, init_data: InitData) -> None:
        pass

    def _reserved_amount(self, init_data: InitData) -> int:
        return 0

    def _plan_reserved_positions(
        self,
        asset: Currency,
        init_data: InitData,
        is_token0: bool,
        start_tick: int,
        salt_offset: int
    ) -> List[MilestonePositionDetails]:
        return []

    def _record_reserved_positions(self, asset: Currency, details: List[MilestonePositionDetails]) -> None:
        pass

    def _exit_positions(self, asset: Currency, state: PoolState) -> List[Position]:
        """Curve positions, burned at exit"""
        return list(state.positions[:state.curve_position_count])

    def _live_positions(self, asset: Currency, state: PoolState) -> List[Position]:
        """Positions still holding liquidity in the pool"""
        return list(state.positions)

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def exit_liquidity(self, asset: Currency) -> ExitResult:
        """Burn the curve positions of an INITIALIZED pool and pay proceeds to the airlock"""
        state = self.pool_states.get(asset)
        if state.status != PoolStatus.INITIALIZED:
            raise WrongPoolStatus(asset, PoolStatus.INITIALIZED, state.status)

        key = state.pool_key
        slot0 = self.pool_manager.get_slot0(key.pool_id)
        is_token0 = asset == key.currency0
        if (is_token0 and slot0.tick < state.far_tick) or (not is_token0 and slot0.tick > state.far_tick):
            raise CannotMigrateInsufficientTick(state.far_tick, slot0.tick)

        with self.pool_manager.transition():
            self.pool_states.set_status(asset, PoolStatus.EXITED)

            total = BalanceDelta()
            fees = BalanceDelta()
            for position in self._exit_positions(asset, state):
                delta, fees_accrued = self.pool_manager.modify_liquidity(self, key, ModifyLiquidityParams(
                    position.tick_lower, position.tick_upper, -position.liquidity, position.salt
                ))
                total = total + delta
                fees = fees + fees_accrued

            self.ledger.transfer(key.currency0, self.address, self.airlock, total.amount0)
            self.ledger.transfer(key.currency1, self.address, self.airlock, total.amount1)

        logger.info("Exited %s at tick %d: paid (%d, %d) to airlock", asset, slot0.tick, total.amount0, total.amount1)
        return ExitResult(
            sqrt_price_x96=slot0.sqrt_price_x96,
            token0=key.currency0,
            token1=key.currency1,
            fees0=fees.amount0,
            fees1=fees.amount1,
            balance0=total.amount0,
            balance1=total.amount1,
        )

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def collect_fees(self, pool_id: str) -> BalanceDelta:
        """
        Harvest LP fees from every live position of a LOCKED pool and split them
        among its beneficiaries. Ranges and status are unchanged; split
        remainders stay with the initializer.

        Returns:
            Total fees harvested
        """
        asset = self.pool_states.asset_for_pool(pool_id)
        state = self.pool_states.get(asset)
        if state.status != PoolStatus.LOCKED:
            raise WrongPoolStatus(asset, PoolStatus.LOCKED, state.status)

        key = state.pool_key
        with self.pool_manager.transition():
            fees = BalanceDelta()
            for position in self._live_positions(asset, state):
                _, fees_accrued = self.pool_manager.modify_liquidity(self, key, ModifyLiquidityParams(
                    position.tick_lower, position.tick_upper, 0, position.salt
                ))
                fees = fees + fees_accrued

            for currency, amount in ((key.currency0, fees.amount0), (key.currency1, fees.amount1)):
                if amount <= 0:
                    continue
                payouts, remainder = split_pro_rata(amount, state.beneficiaries)
                for recipient, payout in payouts:
                    self.ledger.transfer(currency, self.address, recipient, payout)
                if remainder:
                    logger.debug("Kept %d %s of undistributed fee dust", remainder, currency)

        logger.info("Collected fees for %s: (%d, %d)", asset, fees.amount0, fees.amount1)
        return fees

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_status(self, asset: Currency) -> PoolStatus:
        return self.pool_states.status(asset)

    def get_state(self, asset: Currency) -> PoolState:
        state = self.pool_states.get(asset)
        return replace(state, positions=list(state.positions))

    def get_beneficiaries(self, asset: Currency) -> Tuple[BeneficiaryData, ...]:
        return self.pool_states.get(asset).beneficiaries

    def get_positions(self, asset: Currency) -> Tuple[Position, ...]:
        return tuple(self.pool_states.get(asset).positions)

    def asset_for_pool(self, pool_id: str) -> Currency:
        return self.pool_states.asset_for_pool(pool_id)
