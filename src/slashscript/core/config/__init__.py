# Configuration package

from slashscript.core.config.app_config import EngineConfig, load_config

__all__ = [
    "EngineConfig",
    "load_config",
]
