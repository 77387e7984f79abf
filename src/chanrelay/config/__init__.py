"""Configuration: YAML + env overlay."""

from chanrelay.config.loader import load_config, load_config_with_env, read_token
from chanrelay.config.schema import Config

__all__ = ["Config", "load_config", "load_config_with_env", "read_token"]
