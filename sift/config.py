"""
Configuration management for Sift.
"""
import copy
import os
import json
import logging
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = 'SIFT_'

# Default configuration
DEFAULT_CONFIG = {
    "store": {
        "path": "sift_models.db",
        "max_tries": 3
    },
    "scoring": {
        "method": "network"
    },
    "training": {
        "progress": False
    },
    "logging": {
        "level": "INFO",
        "file": None
    },
    "report": {
        "title": "Article Triage"
    }
}

class Config:
    """
    Configuration manager for Sift.
    """
    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the Config.

        Args:
            config_path: Path to a YAML or JSON configuration file
        """
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """
        Load configuration from file or use defaults.

        Returns:
            Configuration dictionary
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            path = Path(self.config_path)
            if path.exists():
                try:
                    user_config = self._read_file(path)
                except (OSError, ValueError, yaml.YAMLError) as e:
                    logger.warning(f"Error loading config from {self.config_path}: {e}")
                    logger.warning("Using default configuration")
                else:
                    if isinstance(user_config, dict):
                        self._update_dict(config, user_config)

        # Override with environment variables
        self._override_from_env(config)

        return config

    def _read_file(self, path: Path) -> Any:
        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'r') as f:
                return yaml.safe_load(f)
        if path.suffix.lower() == '.json':
            with open(path, 'r') as f:
                return json.load(f)
        raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _update_dict(self, target: Dict, source: Dict) -> None:
        """
        Recursively update a dictionary.

        Args:
            target: Target dictionary to update
            source: Source dictionary with new values
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _override_from_env(self, config: Dict, prefix: str = ENV_PREFIX) -> None:
        """
        Override configuration with environment variables.

        SIFT_STORE_PATH sets store.path and SIFT_STORE_MAX_TRIES sets
        store.max_tries: underscores separate levels unless the joined
        name is an existing key.

        Args:
            config: Configuration dictionary to update
            prefix: Prefix for environment variables
        """
        for key, value in os.environ.items():
            if not key.startswith(prefix) or key == f"{prefix}CONFIG_PATH":
                continue

            parts = key[len(prefix):].lower().split('_')
            current = config
            while len(parts) > 1:
                # Prefer the longest prefix that names an existing section
                for size in range(len(parts) - 1, 0, -1):
                    name = '_'.join(parts[:size])
                    if isinstance(current.get(name), dict):
                        break
                else:
                    size, name = 1, parts[0]
                    current[name] = {}
                current = current[name]
                parts = parts[size:]
                if '_'.join(parts) in current:
                    parts = ['_'.join(parts)]

            # Try to parse as JSON, otherwise keep the raw string
            try:
                current[parts[0]] = json.loads(value)
            except json.JSONDecodeError:
                current[parts[0]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Dot-separated key path (e.g., 'store.path')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        parts = key.split('.')
        current = self.config

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current


# Global configuration instance
config = Config(os.getenv('SIFT_CONFIG_PATH'))

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        key: Dot-separated key path (e.g., 'store.path')
        default: Default value if key not found

    Returns:
        Configuration value
    """
    return config.get(key, default)
