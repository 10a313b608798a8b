"""Configuration models and loaders."""

from .settings import (
    DEFAULT_CONFIG_PATH,
    EntitySettings,
    EnvSettings,
    FileConfig,
    GlobalSettings,
    ObservabilitySettings,
    RuntimeConfig,
    load_config,
    load_default,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EntitySettings",
    "EnvSettings",
    "FileConfig",
    "GlobalSettings",
    "ObservabilitySettings",
    "RuntimeConfig",
    "load_config",
    "load_default",
]
