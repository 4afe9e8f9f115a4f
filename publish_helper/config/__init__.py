"""Configuration management for the publish helper."""

from publish_helper.config.loader import load_file_config, resolve_publish_options
from publish_helper.config.models import (
    DEFAULT_REGISTRY,
    AuthMode,
    CIEnvironment,
    FileConfig,
    PublishOptions,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "AuthMode",
    "CIEnvironment",
    "FileConfig",
    "PublishOptions",
    "load_file_config",
    "resolve_publish_options",
]
