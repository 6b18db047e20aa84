"""Configuration module for varbridge."""

from varbridge.config.loader import get_config_path, load_config
from varbridge.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
