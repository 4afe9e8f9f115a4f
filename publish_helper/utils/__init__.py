"""Utility modules for the publish helper."""

from publish_helper.utils.shell import ExecResult, ShellError, run, strip_ansi, try_run
from publish_helper.utils.version import (
    SEMVER_PATTERN,
    VersionTuple,
    compare_versions,
    compute_next_version,
    format_git_tag,
    is_prerelease,
    is_valid_version,
    parse_version,
    prerelease_dist_tag,
    sanitize_tag,
    strip_prerelease,
)

__all__ = [
    # Shell utilities
    "run",
    "try_run",
    "strip_ansi",
    "ShellError",
    "ExecResult",
    # Version utilities
    "parse_version",
    "is_valid_version",
    "compare_versions",
    "compute_next_version",
    "strip_prerelease",
    "is_prerelease",
    "sanitize_tag",
    "prerelease_dist_tag",
    "format_git_tag",
    "VersionTuple",
    "SEMVER_PATTERN",
]
