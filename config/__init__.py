"""Configuration management package for chatgpt-auth"""

from .loader import ENV_PREFIX, ConfigLoader, get_config_loader

__all__ = [
    "ENV_PREFIX",
    "ConfigLoader",
    "get_config_loader",
]
