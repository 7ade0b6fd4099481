"""
Launch Hooks

Token launch tooling for an in-memory, v4-style concentrated liquidity pool
manager: a numeraire fee distribution hook, a milestone unlock hook, the
multicurve initializers that own each pool's lifecycle, and a simulation
engine that drives random order flow against a launch.
"""

__version__ = "1.0.0"
__author__ = "Launch Hooks Team"

# Core components
from .core.types import (
    Currency, PoolKey, SwapParams, BalanceDelta, BeforeSwapDelta, PoolStatus,
    BeneficiaryData, Curve, InitData, MilestoneInitData, MilestonePositionSpec,
)
from .core.swap_kind import SwapKind, classify_swap

# Settlement
from .settlement.ledger import TokenLedger
from .settlement.pool_manager import PoolManager

# Initializers and hooks
from .initializer.multicurve import MulticurveInitializer
from .initializer.milestone import MilestoneInitializer
from .hooks.fee_hook import FeeDistributionHook
from .hooks.milestone_hook import MilestoneUnlockHook

# Simulation
from .config.schemas import LaunchConfig, HookType, create_default_config, load_config
from .engine.launch_engine import LaunchSimulationEngine

__all__ = [
    # Core
    "Currency", "PoolKey", "SwapParams", "BalanceDelta", "BeforeSwapDelta", "PoolStatus",
    "BeneficiaryData", "Curve", "InitData", "MilestoneInitData", "MilestonePositionSpec",
    "SwapKind", "classify_swap",

    # Settlement
    "TokenLedger", "PoolManager",

    # Launch
    "MulticurveInitializer", "MilestoneInitializer",
    "FeeDistributionHook", "MilestoneUnlockHook",

    # Simulation
    "LaunchConfig", "HookType", "create_default_config", "load_config",
    "LaunchSimulationEngine",
]
