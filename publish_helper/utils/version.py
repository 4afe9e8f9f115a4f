"""Version parsing and version policy utilities.

Handles the pre-release versions published from CI:
- Parsing and comparing semantic versions (e.g., the npm CLI version gate)
- Deriving the next version from the current version, dist-tag and commit hash
- Sanitizing dist-tags derived from git refs
- Choosing the automatic dist-tag for pre-release versions

Version strings follow semantic versioning: MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD].
"""

import re

from publish_helper.exceptions import ConfigurationError, ValidationError

VersionTuple = tuple[int, int, int]

# Semantic version with optional leading 'v', pre-release and build metadata
SEMVER_PATTERN = re.compile(
    r"^v?(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.-]+))?(?:\+([0-9A-Za-z.-]+))?$"
)

# Pre-release identifiers usable as a dist-tag name
DIST_TAG_WORD_PATTERN = re.compile(r"^[A-Za-z][A-Za-z-]*$")

# Identifiers that look like an abbreviated commit hash
COMMIT_HASH_PATTERN = re.compile(r"^[0-9a-f]{7,40}$")

LATEST_TAG = "latest"
DEFAULT_PRERELEASE_TAG = "next"


def parse_version(version_str: str) -> VersionTuple:
    """Parse a semantic version string into a tuple of integers.

    Pre-release and build metadata are accepted and ignored.

    Args:
        version_str: Version string to parse (e.g., '1.2.3', 'v11.5.1', '1.0.0-beta.1')

    Returns:
        Tuple of (major, minor, patch) as integers

    Raises:
        ValidationError: If version string is invalid

    Examples:
        >>> parse_version('11.6.0')
        (11, 6, 0)
        >>> parse_version('v1.2.3-next.abc1234')
        (1, 2, 3)
    """
    if not version_str or not version_str.strip():
        raise ValidationError(
            "Empty version string",
            details="Version string cannot be empty or whitespace",
            fix_hint="Provide a valid semantic version (e.g., '1.2.3')",
        )

    match = SEMVER_PATTERN.match(version_str.strip())
    if not match:
        raise ValidationError(
            f"Invalid version format: '{version_str}'",
            details="Version must follow semantic versioning: MAJOR.MINOR.PATCH",
            fix_hint="Use format like '1.2.3' or '1.2.3-beta.1'",
        )

    return (int(match.group(1)), int(match.group(2)), int(match.group(3)))


def is_valid_version(version_str: str) -> bool:
    """Check if a version string is a valid semantic version."""
    if not version_str or not version_str.strip():
        return False
    return SEMVER_PATTERN.match(version_str.strip()) is not None


def compare_versions(v1: str, v2: str) -> int:
    """Compare the numeric core of two semantic version strings.

    Returns:
        -1 if v1 < v2, 0 if equal, 1 if v1 > v2

    Raises:
        ValidationError: If either version string is invalid
    """
    version1 = parse_version(v1)
    version2 = parse_version(v2)

    if version1 < version2:
        return -1
    elif version1 > version2:
        return 1
    return 0


def strip_prerelease(version: str) -> str:
    """Remove everything after the first '-' of a version string.

    Examples:
        >>> strip_prerelease('1.2.0-beta.abc123')
        '1.2.0'
        >>> strip_prerelease('1.2.0')
        '1.2.0'
    """
    return version.strip().split("-", 1)[0]


def is_prerelease(version: str) -> bool:
    """Check whether a version carries a pre-release suffix."""
    return "-" in version.strip().split("+", 1)[0]


def sanitize_tag(tag: str | None) -> str | None:
    """Reduce a dist-tag to a valid name.

    Tags derived from git refs (e.g. 'refs/heads/feature/login') are reduced
    to their last non-empty path segment.

    Args:
        tag: Raw tag value, possibly None or empty

    Returns:
        Sanitized tag, or None when no tag was given

    Raises:
        ConfigurationError: If the tag consists only of '/' separators

    Examples:
        >>> sanitize_tag('refs/heads/beta')
        'beta'
        >>> sanitize_tag('next')
        'next'
    """
    if tag is None:
        return None
    tag = tag.strip()
    if not tag:
        return None
    if "/" not in tag:
        return tag

    segments = [segment.strip() for segment in tag.split("/") if segment.strip()]
    if not segments:
        raise ConfigurationError(
            f"Invalid tag: '{tag}'",
            details="The tag contains no non-empty path segment",
            fix_hint="Pass a tag name such as 'next' or 'beta'",
        )
    return segments[-1]


def compute_next_version(
    current: str,
    short_sha: str | None = None,
    tag: str | None = None,
    use_tag_in_version: bool = False,
    use_hash_in_version: bool = False,
) -> str:
    """Derive the version to publish.

    When neither flag is set the current version is returned unchanged.
    Otherwise the existing pre-release suffix is stripped and rebuilt from
    the tag and the commit hash, so repeated application with the same
    inputs yields the same version.

    Args:
        current: Current version from package.json
        short_sha: Abbreviated commit hash, if available
        tag: Sanitized dist-tag, if any
        use_tag_in_version: Append '-<tag>' (ignored for 'latest')
        use_hash_in_version: Append the commit hash

    Returns:
        The next version string

    Examples:
        >>> compute_next_version('1.2.0-beta.abc123', 'def456', 'next', True, True)
        '1.2.0-next.def456'
        >>> compute_next_version('1.2.0', 'def456', None, False, True)
        '1.2.0-def456'
    """
    if not (use_tag_in_version or use_hash_in_version):
        return current

    next_version = strip_prerelease(current)
    has_prerelease = False

    if use_tag_in_version and tag and tag != LATEST_TAG:
        next_version += f"-{tag}"
        has_prerelease = True

    if use_hash_in_version and short_sha:
        separator = "." if has_prerelease else "-"
        next_version += f"{separator}{short_sha}"

    return next_version


def prerelease_dist_tag(version: str) -> str:
    """Choose the dist-tag for a pre-release published without an explicit tag.

    Uses the first pre-release identifier when it is a word (e.g. 'beta' for
    '1.0.0-beta.3'), otherwise 'next'. Never returns 'latest'.

    Examples:
        >>> prerelease_dist_tag('1.0.0-beta.3')
        'beta'
        >>> prerelease_dist_tag('1.0.0-abc1234')
        'next'
    """
    core = version.strip().split("+", 1)[0]
    if "-" not in core:
        return DEFAULT_PRERELEASE_TAG

    identifier = core.split("-", 1)[1].split(".", 1)[0]
    if (
        DIST_TAG_WORD_PATTERN.match(identifier)
        and not COMMIT_HASH_PATTERN.match(identifier)
        and identifier.lower() != LATEST_TAG
    ):
        return identifier.lower()
    return DEFAULT_PRERELEASE_TAG


def format_git_tag(prefix: str | None, version: str) -> str:
    """Build a git tag name from an optional prefix and the version.

    Examples:
        >>> format_git_tag('release/', '1.2.0')
        'release/1.2.0'
        >>> format_git_tag(None, '1.2.0')
        '1.2.0'
    """
    return f"{prefix or ''}{version}"


__all__ = [
    "parse_version",
    "is_valid_version",
    "compare_versions",
    "strip_prerelease",
    "is_prerelease",
    "sanitize_tag",
    "compute_next_version",
    "prerelease_dist_tag",
    "format_git_tag",
    "VersionTuple",
    "SEMVER_PATTERN",
    "LATEST_TAG",
    "DEFAULT_PRERELEASE_TAG",
]
