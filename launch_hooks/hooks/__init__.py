"""Pool hooks"""

from .base import InitializerGatedHook
from .fee_hook import FeeDistributionHook
from .milestone_hook import MilestoneUnlockHook

__all__ = ["InitializerGatedHook", "FeeDistributionHook", "MilestoneUnlockHook"]
