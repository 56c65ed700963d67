"""Configuration module."""

from kindred.config.loader import get_default_config, load_config
from kindred.config.models import (
    ConfigError,
    DatabaseConfig,
    KindredConfig,
    ModelConfig,
    PeopleConfig,
    ProviderConfig,
    ResolutionConfig,
)
from kindred.config.paths import (
    get_config_path,
    get_database_path,
    get_kindred_home,
    get_logs_path,
)

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "KindredConfig",
    "ModelConfig",
    "PeopleConfig",
    "ProviderConfig",
    "ResolutionConfig",
    "get_config_path",
    "get_database_path",
    "get_default_config",
    "get_kindred_home",
    "get_logs_path",
    "load_config",
]
