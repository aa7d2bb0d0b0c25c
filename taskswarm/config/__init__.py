"""Configuration module."""

from taskswarm.config.loader import get_config_path, load_config, save_config
from taskswarm.config.schema import Config, ExecutorConfig, SwarmConfig

__all__ = [
    "Config",
    "ExecutorConfig",
    "SwarmConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
