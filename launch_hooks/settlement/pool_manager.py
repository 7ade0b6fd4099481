#!/usr/bin/env python3
"""
In-Memory Pool Manager

Singleton settlement engine holding every pool's state and token custody:
- Concentrated liquidity pools keyed by PoolKey id (tick bitmap, per-tick liquidity)
- v4-style hook callbacks around initialize, modify_liquidity and swap
- Hook deltas: a before_swap specified delta adjusts the amount swapped, and the
  caller settles swap delta minus hook delta
- LP fees accrued pro rata to in-range positions and paid on every modification
- Transitions: every operation is all-or-nothing across registered participants
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..core.addresses import address_of, derive_address
from ..core.errors import (
    CannotUpdateEmptyPosition, CurrenciesOutOfOrder, HookDeltaExceedsSwapAmount,
    InsufficientLiquidity, InvalidPriceLimit, InvalidTickRange, PoolAlreadyExists,
    PoolNotInitialized, SwapAmountCannotBeZero, TickMisaligned,
)
from ..core.tick_math import (
    MAX_SQRT_RATIO, MIN_SQRT_RATIO, MAX_TICK, MIN_TICK, TickBitmap, TickInfo,
    compute_swap_step, get_amount0_delta, get_amount1_delta, in_tick_bounds,
    is_aligned, sqrt_price_x96_to_tick, tick_to_sqrt_price_x96,
)
from ..core.types import (
    ZERO_BEFORE_SWAP_DELTA, ZERO_DELTA, BalanceDelta, Currency,
    ModifyLiquidityParams, PoolKey, Slot0, SwapParams,
)
from .ledger import TokenLedger

logger = logging.getLogger(__name__)


@dataclass
class PositionInfo:
    """Liquidity and uncollected fees of one (owner, range, salt) position"""
    tick_lower: int
    tick_upper: int
    liquidity: int = 0
    tokens_owed0: int = 0
    tokens_owed1: int = 0


@dataclass
class PoolSlot:
    """Mutable state of a single pool"""
    sqrt_price_x96: int
    tick: int
    lp_fee: int
    tick_spacing: int
    liquidity: int = 0
    ticks: Dict[int, TickInfo] = field(default_factory=dict)
    tick_bitmap: TickBitmap = field(default_factory=TickBitmap)
    positions: Dict[Tuple[str, int, int, int], PositionInfo] = field(default_factory=dict)


class PoolManager:
    """Settlement engine: pool math, token custody and hook dispatch"""

    def __init__(self, ledger: TokenLedger, address: Optional[str] = None, max_swap_iterations: int = 1000):
        self.ledger = ledger
        self.address = address or derive_address("PoolManager")
        self.max_swap_iterations = max_swap_iterations

        self._pools: Dict[str, PoolSlot] = {}
        self._keys: Dict[str, PoolKey] = {}
        self._participants: List = []
        self._depth = 0

        self.register_participant(ledger)
        self.register_participant(self)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def register_participant(self, participant) -> None:
        """Include `participant` (snapshot/restore) in every transition rollback"""
        self._participants.append(participant)

    @contextmanager
    def transition(self):
        """All-or-nothing scope; nested transitions join the outermost one"""
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshots = [(p, p.snapshot()) for p in self._participants]
        self._depth = 1
        try:
            yield
        except Exception as exc:
            for participant, snapshot in snapshots:
                participant.restore(snapshot)
            logger.warning("Transition rolled back: %s: %s", type(exc).__name__, exc)
            raise
        finally:
            self._depth = 0

    def snapshot(self):
        return copy.deepcopy(self._pools), dict(self._keys)

    def restore(self, snapshot) -> None:
        pools, keys = snapshot
        self._pools = pools
        self._keys = keys

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _slot(self, pool_id: str) -> PoolSlot:
        slot = self._pools.get(pool_id)
        if slot is None:
            raise PoolNotInitialized(pool_id)
        return slot

    def get_slot0(self, pool_id: str) -> Slot0:
        slot = self._slot(pool_id)
        return Slot0(slot.sqrt_price_x96, slot.tick, slot.lp_fee)

    def current_tick(self, pool_id: str) -> int:
        return self._slot(pool_id).tick

    def get_liquidity(self, pool_id: str) -> int:
        return self._slot(pool_id).liquidity

    def get_position(self, pool_id: str, owner, tick_lower: int, tick_upper: int, salt: int = 0) -> Optional[PositionInfo]:
        position = self._slot(pool_id).positions.get((address_of(owner), tick_lower, tick_upper, salt))
        return copy.copy(position) if position else None

    def pool_key(self, pool_id: str) -> PoolKey:
        self._slot(pool_id)
        return self._keys[pool_id]

    def balance_of(self, currency: Currency, holder) -> int:
        return self.ledger.balance_of(currency, holder)

    # ------------------------------------------------------------------
    # Custody
    # ------------------------------------------------------------------

    def withdraw(self, currency: Currency, to, amount: int) -> None:
        """Take tokens out of custody"""
        self.ledger.transfer(currency, self.address, to, amount)

    def _settle(self, owner: str, key: PoolKey, delta: BalanceDelta) -> None:
        """Pull what the caller owes and pay what it is owed"""
        for currency, amount in ((key.currency0, delta.amount0), (key.currency1, delta.amount1)):
            if amount < 0:
                self.ledger.transfer(currency, owner, self.address, -amount)
            elif amount > 0:
                self.ledger.transfer(currency, self.address, owner, amount)

    # ------------------------------------------------------------------
    # Initialize
    # ------------------------------------------------------------------

    def initialize(self, sender, key: PoolKey, sqrt_price_x96: int) -> int:
        """Create the pool at `sqrt_price_x96`; returns the starting tick"""
        if not key.currency0 < key.currency1:
            raise CurrenciesOutOfOrder(key.currency0, key.currency1)
        if key.tick_spacing <= 0:
            raise ValueError(f"Tick spacing must be positive, got {key.tick_spacing}")

        pool_id = key.pool_id
        if pool_id in self._pools:
            raise PoolAlreadyExists(pool_id)

        with self.transition():
            if key.hooks is not None:
                key.hooks.before_initialize(sender, key, sqrt_price_x96)

            tick = sqrt_price_x96_to_tick(sqrt_price_x96)
            self._pools[pool_id] = PoolSlot(sqrt_price_x96, tick, key.fee, key.tick_spacing)
            self._keys[pool_id] = key

            if key.hooks is not None:
                key.hooks.after_initialize(sender, key, sqrt_price_x96, tick)

        logger.info("Initialized pool %s (%s/%s) at tick %d", pool_id[:10], key.currency0, key.currency1, tick)
        return tick

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def modify_liquidity(
        self,
        sender,
        key: PoolKey,
        params: ModifyLiquidityParams
    ) -> Tuple[BalanceDelta, BalanceDelta]:
        """
        Add (positive delta), remove (negative) or poke (zero) a position.

        Returns:
            (caller delta including fees, fees accrued since the last modification)
        """
        with self.transition():
            slot = self._slot(key.pool_id)
            self._check_ticks(params.tick_lower, params.tick_upper, key.tick_spacing)

            adding = params.liquidity_delta > 0
            if key.hooks is not None:
                if adding:
                    key.hooks.before_add_liquidity(sender, key, params)
                else:
                    key.hooks.before_remove_liquidity(sender, key, params)

            owner = address_of(sender)
            position_key = (owner, params.tick_lower, params.tick_upper, params.salt)
            position = slot.positions.get(position_key)
            held = position.liquidity if position else 0

            if params.liquidity_delta == 0 and held == 0:
                raise CannotUpdateEmptyPosition()
            if params.liquidity_delta < 0 and held < -params.liquidity_delta:
                raise InsufficientLiquidity(held, -params.liquidity_delta)

            if position is None:
                position = PositionInfo(params.tick_lower, params.tick_upper)
                slot.positions[position_key] = position

            fees_accrued = BalanceDelta(position.tokens_owed0, position.tokens_owed1)
            position.tokens_owed0 = 0
            position.tokens_owed1 = 0

            principal = ZERO_DELTA
            if params.liquidity_delta != 0:
                self._update_tick(slot, params.tick_lower, params.liquidity_delta, upper=False)
                self._update_tick(slot, params.tick_upper, params.liquidity_delta, upper=True)
                position.liquidity += params.liquidity_delta
                principal = self._principal_delta(slot, params.tick_lower, params.tick_upper, params.liquidity_delta)

            if position.liquidity == 0:
                del slot.positions[position_key]

            delta = principal + fees_accrued

            if key.hooks is not None:
                if adding:
                    key.hooks.after_add_liquidity(sender, key, params, delta, fees_accrued)
                else:
                    key.hooks.after_remove_liquidity(sender, key, params, delta, fees_accrued)

            self._settle(owner, key, delta)

        logger.debug(
            "modify_liquidity %s [%d, %d] salt=%d delta=%d -> (%d, %d)",
            owner, params.tick_lower, params.tick_upper, params.salt,
            params.liquidity_delta, delta.amount0, delta.amount1
        )
        return delta, fees_accrued

    def _check_ticks(self, tick_lower: int, tick_upper: int, tick_spacing: int) -> None:
        if tick_lower >= tick_upper or not in_tick_bounds(tick_lower) or not in_tick_bounds(tick_upper):
            raise InvalidTickRange(tick_lower, tick_upper)
        for tick in (tick_lower, tick_upper):
            if not is_aligned(tick, tick_spacing):
                raise TickMisaligned(tick, tick_spacing)

    def _update_tick(self, slot: PoolSlot, tick: int, liquidity_delta: int, upper: bool) -> None:
        info = slot.ticks.get(tick) or TickInfo()
        gross_before = info.liquidity_gross

        info.liquidity_gross += liquidity_delta
        # Lower ticks add liquidity when crossed upward, upper ticks remove it
        info.liquidity_net += -liquidity_delta if upper else liquidity_delta

        if (gross_before == 0) != (info.liquidity_gross == 0):
            slot.tick_bitmap.flip_tick(tick, slot.tick_spacing)

        if info.liquidity_gross == 0:
            slot.ticks.pop(tick, None)
        else:
            slot.ticks[tick] = info

    def _principal_delta(self, slot: PoolSlot, tick_lower: int, tick_upper: int, liquidity_delta: int) -> BalanceDelta:
        """Token amounts for a liquidity change; adds round up, removals round down"""
        round_up = liquidity_delta > 0
        liquidity = abs(liquidity_delta)
        sqrt_lower = tick_to_sqrt_price_x96(tick_lower)
        sqrt_upper = tick_to_sqrt_price_x96(tick_upper)

        amount0 = 0
        amount1 = 0
        if slot.tick < tick_lower:
            amount0 = get_amount0_delta(sqrt_lower, sqrt_upper, liquidity, round_up)
        elif slot.tick < tick_upper:
            amount0 = get_amount0_delta(slot.sqrt_price_x96, sqrt_upper, liquidity, round_up)
            amount1 = get_amount1_delta(sqrt_lower, slot.sqrt_price_x96, liquidity, round_up)
            slot.liquidity += liquidity_delta
        else:
            amount1 = get_amount1_delta(sqrt_lower, sqrt_upper, liquidity, round_up)

        if round_up:
            return BalanceDelta(-amount0, -amount1)
        return BalanceDelta(amount0, amount1)

    # ------------------------------------------------------------------
    # Swap
    # ------------------------------------------------------------------

    def swap(self, sender, key: PoolKey, params: SwapParams) -> BalanceDelta:
        """
        Execute a swap and settle it with `sender`.

        The caller's input leg is pulled before after_swap runs, so hooks see
        custody that already includes it. Returns the caller's final delta.
        """
        if params.amount_specified == 0:
            raise SwapAmountCannotBeZero()

        with self.transition():
            slot = self._slot(key.pool_id)
            hooks = key.hooks
            exact_input = params.exact_input

            before = hooks.before_swap(sender, key, params) if hooks is not None else ZERO_BEFORE_SWAP_DELTA

            amount_to_swap = params.amount_specified + before.specified
            if (exact_input and amount_to_swap > 0) or (not exact_input and amount_to_swap < 0):
                raise HookDeltaExceedsSwapAmount()

            if amount_to_swap != 0:
                swap_delta = self._execute_swap(slot, params.zero_for_one, amount_to_swap, params.sqrt_price_limit_x96)
            else:
                swap_delta = ZERO_DELTA

            owner = address_of(sender)
            paid = BalanceDelta(min(swap_delta.amount0, 0), min(swap_delta.amount1, 0))
            self._settle(owner, key, paid)

            unspecified = hooks.after_swap(sender, key, params, swap_delta) if hooks is not None else 0

            hook_unspecified = before.unspecified + unspecified
            specified_is_currency0 = exact_input == params.zero_for_one
            if specified_is_currency0:
                hook_delta = BalanceDelta(before.specified, hook_unspecified)
            else:
                hook_delta = BalanceDelta(hook_unspecified, before.specified)

            caller_delta = swap_delta - hook_delta
            self._settle(owner, key, caller_delta - paid)

        logger.debug(
            "swap %s zero_for_one=%s amount=%d -> (%d, %d) tick=%d",
            owner, params.zero_for_one, params.amount_specified,
            caller_delta.amount0, caller_delta.amount1, slot.tick
        )
        return caller_delta

    def _execute_swap(
        self,
        slot: PoolSlot,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: Optional[int]
    ) -> BalanceDelta:
        """Walk the liquidity curve; returns the pool-side delta from the caller's perspective"""
        exact_input = amount_specified < 0

        if sqrt_price_limit_x96 is None:
            sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

        if zero_for_one:
            if not MIN_SQRT_RATIO < sqrt_price_limit_x96 < slot.sqrt_price_x96:
                raise InvalidPriceLimit(slot.sqrt_price_x96, sqrt_price_limit_x96)
        else:
            if not slot.sqrt_price_x96 < sqrt_price_limit_x96 < MAX_SQRT_RATIO:
                raise InvalidPriceLimit(slot.sqrt_price_x96, sqrt_price_limit_x96)

        state = {
            'amount_specified_remaining': amount_specified,
            'amount_calculated': 0,
            'sqrt_price_x96': slot.sqrt_price_x96,
            'tick': slot.tick,
            'liquidity': slot.liquidity
        }

        iteration_count = 0
        while (state['amount_specified_remaining'] != 0 and
               state['sqrt_price_x96'] != sqrt_price_limit_x96):

            iteration_count += 1
            if iteration_count > self.max_swap_iterations:
                logger.warning("Swap stopped after %d steps with %d unfilled",
                               self.max_swap_iterations, state['amount_specified_remaining'])
                break

            step_start_price = state['sqrt_price_x96']

            tick_next = slot.tick_bitmap.next_initialized_tick(state['tick'], slot.tick_spacing, zero_for_one)
            tick_next = max(MIN_TICK, min(MAX_TICK, tick_next))
            sqrt_price_next_tick = tick_to_sqrt_price_x96(tick_next)

            if zero_for_one:
                sqrt_price_target_x96 = max(sqrt_price_next_tick, sqrt_price_limit_x96)
            else:
                sqrt_price_target_x96 = min(sqrt_price_next_tick, sqrt_price_limit_x96)

            sqrt_price_after_step, amount_in, amount_out, fee_amount = compute_swap_step(
                state['sqrt_price_x96'],
                sqrt_price_target_x96,
                state['liquidity'],
                state['amount_specified_remaining'],
                slot.lp_fee
            )

            if exact_input:
                state['amount_specified_remaining'] += amount_in + fee_amount
                state['amount_calculated'] += amount_out
            else:
                state['amount_specified_remaining'] -= amount_out
                state['amount_calculated'] -= amount_in + fee_amount

            self._accrue_fees(slot, state['tick'], state['liquidity'], fee_amount, zero_for_one)
            state['sqrt_price_x96'] = sqrt_price_after_step

            if sqrt_price_after_step == sqrt_price_next_tick:
                # Crossed into the next range
                info = slot.ticks.get(tick_next)
                if info is not None:
                    liquidity_net = -info.liquidity_net if zero_for_one else info.liquidity_net
                    state['liquidity'] += liquidity_net
                state['tick'] = tick_next - 1 if zero_for_one else tick_next
            elif sqrt_price_after_step != step_start_price:
                state['tick'] = sqrt_price_x96_to_tick(sqrt_price_after_step)

        slot.sqrt_price_x96 = state['sqrt_price_x96']
        slot.tick = state['tick']
        slot.liquidity = state['liquidity']

        filled = amount_specified - state['amount_specified_remaining']
        if zero_for_one == exact_input:
            return BalanceDelta(filled, state['amount_calculated'])
        return BalanceDelta(state['amount_calculated'], filled)

    def _accrue_fees(self, slot: PoolSlot, tick: int, liquidity: int, fee_amount: int, zero_for_one: bool) -> None:
        """Credit a step's LP fee to the positions active during that step"""
        if fee_amount <= 0 or liquidity <= 0:
            return

        for position in slot.positions.values():
            if position.liquidity and position.tick_lower <= tick < position.tick_upper:
                share = fee_amount * position.liquidity // liquidity
                if zero_for_one:
                    position.tokens_owed0 += share
                else:
                    position.tokens_owed1 += share
