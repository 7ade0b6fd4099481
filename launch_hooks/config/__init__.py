"""Launch configuration schemas"""

from .schemas import LaunchConfig, HookType, TradingConfig, create_default_config, load_config

__all__ = ["LaunchConfig", "HookType", "TradingConfig", "create_default_config", "load_config"]
