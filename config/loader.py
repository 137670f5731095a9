"""Configuration loader for the ChatGPT sign-in tool

Loads configuration from multiple sources with the following priority:
1. Environment variables (highest priority)
2. .env file
3. Hardcoded defaults (lowest priority)
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Prefix shared by every variable this tool reads
ENV_PREFIX = "CHATGPT_AUTH_"


class ConfigLoader:
    """Handles loading configuration from various sources"""

    def __init__(self, env_path: Optional[str] = None, prefix: str = ENV_PREFIX):
        """Initialize the config loader

        Args:
            env_path: Optional path to .env file.
                     Defaults to '.env' in the current directory.
            prefix: Prefix prepended to every variable name looked up
        """
        self.env_path = Path(env_path) if env_path else Path(".env")
        self.prefix = prefix
        self._load_env_file()

    def _load_env_file(self):
        """Load environment variables from .env file if it exists"""
        if self.env_path.exists():
            # Real environment wins over the file
            load_dotenv(dotenv_path=self.env_path, override=False)
            logger.debug(f"Loaded environment variables from {self.env_path}")
        else:
            logger.debug(f".env file not found at {self.env_path}, using environment variables and defaults only")

    def get(self, name: str, default: Any) -> Any:
        """Get a configuration value with priority: env > default

        The value is coerced to the type of ``default`` (bool, int, float).
        Values that fail to parse fall back to the default with a warning.

        Args:
            name: Variable name without the prefix
            default: Default value if not found in environment

        Returns:
            The configuration value from environment or default
        """
        env_var = f"{self.prefix}{name}"
        env_value = os.getenv(env_var)
        if env_value is None:
            if isinstance(default, str) and default.startswith("~/"):
                return str(Path(default).expanduser())
            return default

        # bool before int: bool is a subclass of int
        if isinstance(default, bool):
            return env_value.strip().lower() in ("true", "1", "yes", "on")
        if isinstance(default, int):
            try:
                return int(env_value)
            except ValueError:
                logger.warning(f"Failed to parse {env_var}={env_value} as int, using default: {default}")
                return default
        if isinstance(default, float):
            try:
                return float(env_value)
            except ValueError:
                logger.warning(f"Failed to parse {env_var}={env_value} as float, using default: {default}")
                return default
        if env_value.startswith("~/"):
            return str(Path(env_value).expanduser())
        return env_value


_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Get or create the global ConfigLoader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
