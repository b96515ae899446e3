"""Configuration management module."""

from .loader import ServerConfig, find_config_file, load_config

__all__ = ["ServerConfig", "load_config", "find_config_file"]
