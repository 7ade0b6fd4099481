"""Core data model, tick math and error types"""

from .types import Currency, PoolKey, SwapParams, BalanceDelta, BeforeSwapDelta, PoolStatus, PoolState
from .swap_kind import SwapKind, classify_swap, numeraire_of, asset_of
from .errors import LaunchHooksError, AuthorizationError, ConfigurationError, SettlementError

__all__ = [
    "Currency", "PoolKey", "SwapParams", "BalanceDelta", "BeforeSwapDelta", "PoolStatus", "PoolState",
    "SwapKind", "classify_swap", "numeraire_of", "asset_of",
    "LaunchHooksError", "AuthorizationError", "ConfigurationError", "SettlementError"
]
