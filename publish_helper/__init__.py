"""Publish npm packages from CI pipelines."""

__version__ = "1.0.0"

from publish_helper.exceptions import (
    AuthenticationError,
    BuildError,
    ConfigurationError,
    GitError,
    NetworkError,
    PublishError,
    PublishHelperError,
    ValidationError,
)

__all__ = [
    "__version__",
    "PublishHelperError",
    "ConfigurationError",
    "ValidationError",
    "GitError",
    "PublishError",
    "AuthenticationError",
    "NetworkError",
    "BuildError",
]
