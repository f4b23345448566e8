"""Configuration: runtime settings, document models and config folder access."""

from .loader import ConfigRepository
from .schema import CollectionConfig, IndexSpec, VersionConfig
from .settings import RuntimeSettings, load_settings

__all__ = [
    "CollectionConfig",
    "ConfigRepository",
    "IndexSpec",
    "RuntimeSettings",
    "VersionConfig",
    "load_settings",
]
