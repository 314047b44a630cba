# Configuration module
from .env_config import (
    ENV_VARS,
    ConfigError,
    EnvVar,
    Settings,
    get_env_var_docs,
    load_environment_presets,
    load_settings,
    validate_config,
)

__all__ = [
    "Settings",
    "ConfigError",
    "EnvVar",
    "ENV_VARS",
    "load_settings",
    "load_environment_presets",
    "validate_config",
    "get_env_var_docs",
]
