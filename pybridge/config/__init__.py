"""Configuration module for pybridge."""

from pybridge.config.loader import get_config_path, load_config, save_config
from pybridge.config.schema import BridgeConfig

__all__ = ["BridgeConfig", "get_config_path", "load_config", "save_config"]
