"""Pool initializers and their state stores"""

from .multicurve import MulticurveInitializer
from .milestone import MilestoneInitializer, UnlockCapability
from .store import PoolStateStore, MilestonePositionStore

__all__ = [
    "MulticurveInitializer", "MilestoneInitializer", "UnlockCapability",
    "PoolStateStore", "MilestonePositionStore"
]
