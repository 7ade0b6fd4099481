"""Launch simulation engine"""

from .launch_engine import LaunchSimulationEngine

__all__ = ["LaunchSimulationEngine"]
