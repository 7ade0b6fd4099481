"""
Base hook paired with a single initializer.

Pools and liquidity can only be created or changed by the initializer the hook
was constructed with; every liquidity change is written to the audit log.
"""

import logging
from typing import Optional

from ..core.addresses import address_of, derive_address
from ..core.errors import SenderNotInitializer
from ..core.events import EventLog, HookEvent
from ..core.types import (
    ZERO_BEFORE_SWAP_DELTA, BalanceDelta, BeforeSwapDelta, ModifyLiquidityParams,
    PoolKey, SwapParams,
)

logger = logging.getLogger(__name__)


class InitializerGatedHook:
    """Hook callbacks with initializer-only pool creation and liquidity changes"""

    def __init__(self, pool_manager, initializer, address: Optional[str] = None, event_log_size: Optional[int] = 10_000):
        self.pool_manager = pool_manager
        self.initializer = initializer
        self.address = address or derive_address(f"{type(self).__name__}:{initializer.address}")
        self.events = EventLog(maxlen=event_log_size)

        # Pairing hands back whatever capability the initializer grants its hook
        self._capability = initializer.register_hook(self)
        pool_manager.register_participant(self.events)

    def _only_initializer(self, sender) -> None:
        if sender is not self.initializer:
            raise SenderNotInitializer(sender)

    def _emit(self, event_type: str, key: PoolKey, sender=None, amount: Optional[int] = None, **meta) -> None:
        event = HookEvent(
            event_type=event_type,
            pool_id=key.pool_id,
            sender=address_of(sender) if sender is not None else None,
            amount=amount,
            meta=meta,
        )
        self.events.add(event)
        logger.debug("%s %s %s", event_type, key.pool_id[:10], meta)

    # Initialize

    def before_initialize(self, sender, key: PoolKey, sqrt_price_x96: int) -> None:
        self._only_initializer(sender)

    def after_initialize(self, sender, key: PoolKey, sqrt_price_x96: int, tick: int) -> None:
        self._emit("Initialize", key, sender, tick=tick, sqrt_price_x96=sqrt_price_x96)

    # Liquidity

    def before_add_liquidity(self, sender, key: PoolKey, params: ModifyLiquidityParams) -> None:
        self._only_initializer(sender)

    def after_add_liquidity(
        self, sender, key: PoolKey, params: ModifyLiquidityParams,
        delta: BalanceDelta, fees_accrued: BalanceDelta
    ) -> None:
        self._emit_modify_liquidity(sender, key, params, delta, fees_accrued)

    def before_remove_liquidity(self, sender, key: PoolKey, params: ModifyLiquidityParams) -> None:
        self._only_initializer(sender)

    def after_remove_liquidity(
        self, sender, key: PoolKey, params: ModifyLiquidityParams,
        delta: BalanceDelta, fees_accrued: BalanceDelta
    ) -> None:
        self._emit_modify_liquidity(sender, key, params, delta, fees_accrued)

    def _emit_modify_liquidity(self, sender, key, params, delta, fees_accrued) -> None:
        self._emit(
            "ModifyLiquidity", key, sender,
            amount=params.liquidity_delta,
            tick_lower=params.tick_lower,
            tick_upper=params.tick_upper,
            salt=params.salt,
            amount0=delta.amount0,
            amount1=delta.amount1,
            fees0=fees_accrued.amount0,
            fees1=fees_accrued.amount1,
        )

    # Swap

    def before_swap(self, sender, key: PoolKey, params: SwapParams) -> BeforeSwapDelta:
        return ZERO_BEFORE_SWAP_DELTA

    def after_swap(self, sender, key: PoolKey, params: SwapParams, delta: BalanceDelta) -> int:
        return 0
