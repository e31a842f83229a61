"""
Configuration management for Keepy.
Loads settings from YAML files and applies environment overrides.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"


class Config:
    """Manages application configuration from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, uses the packaged
                default_config.yaml
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        # Apply environment variable overrides
        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        """Override config values from environment variables."""
        if 'KEEPY_DATA_DIR' in os.environ:
            self.set('storage.data_dir', os.environ['KEEPY_DATA_DIR'])

        if 'KEEPY_ACCESS_CODE' in os.environ:
            self.set('auth.access_code', os.environ['KEEPY_ACCESS_CODE'])

        if 'KEEPY_LOG_LEVEL' in os.environ:
            self.set('logging.level', os.environ['KEEPY_LOG_LEVEL'])

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'storage.data_dir')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config = Config()
            >>> config.get('views.profile_sort')
            'newest'
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'auth.access_code')
            value: Value to set
        """
        keys = key.split('.')
        config = self._config

        # Navigate to the parent key
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    @property
    def data_dir(self) -> Path:
        """Get the directory holding persisted collections."""
        return Path(self.get('storage.data_dir', '~/.keepy')).expanduser()

    @property
    def key_prefix(self) -> str:
        """Get the prefix used for storage keys."""
        return self.get('storage.key_prefix', 'keepy')

    @property
    def access_code(self) -> str:
        """Get the shared access code for the soft lock; '' when unset."""
        value = self.get('auth.access_code')
        return '' if value is None else str(value)

    @property
    def profile_sort(self) -> str:
        """Get the initial profile sort mode."""
        return self.get('views.profile_sort', 'newest')

    @property
    def category_sort(self) -> str:
        """Get the initial category sort mode."""
        return self.get('views.category_sort', 'a-z')

    @property
    def backup_version(self) -> int:
        """Get the version number written into backups."""
        return int(self.get('backup.version', 2))

    @property
    def backup_filename_prefix(self) -> str:
        """Get the prefix of date-stamped backup filenames."""
        return self.get('backup.filename_prefix', 'keepy-backup')

    @property
    def log_level(self) -> str:
        """Get the logging level name."""
        return str(self.get('logging.level', 'WARNING')).upper()

    @property
    def log_file(self) -> Optional[str]:
        """Get the optional log file path."""
        return self.get('logging.file')

    def __repr__(self) -> str:
        """String representation."""
        return f"Config(path={self.config_path})"


# Global config instance (can be imported by other modules)
_global_config: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Args:
        config_path: Path to config file (only used on first call)

    Returns:
        Config instance
    """
    global _global_config

    if _global_config is None:
        _global_config = Config(config_path)

    return _global_config
