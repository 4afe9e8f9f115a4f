"""Registry authentication for npm.

Two mutually exclusive modes:
- token: the access token is written into npm's config for the registry
- oidc: npm exchanges the CI identity token itself (trusted publishing,
  npm 11.5.1+); token variables are removed from npm's environment so a
  stale or empty token is not preferred over OIDC
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from publish_helper.config.models import AuthMode, CIEnvironment, PublishOptions
from publish_helper.exceptions import AuthenticationError, ValidationError
from publish_helper.utils.shell import ShellError, run
from publish_helper.utils.version import compare_versions

logger = logging.getLogger(__name__)

MIN_OIDC_NPM_VERSION = "11.5.1"

# Variables through which npm (or setup-node's .npmrc) picks up a token
TOKEN_ENV_VARS = (
    "NODE_AUTH_TOKEN",
    "NPM_TOKEN",
    "NPM_CONFIG_TOKEN",
    "NPM_CONFIG__AUTHTOKEN",
    "npm_config__authToken",
    "npm_config_token",
)


@dataclass
class AuthSetup:
    """Environment adjustments for npm subprocesses.

    Attributes:
        mode: Active authentication mode
        env: Variables added to npm's environment
        unset_env: Variables removed from npm's environment
        provenance: Request a provenance attestation on publish
        secrets: Values masked in logs and errors
    """

    mode: AuthMode
    env: dict[str, str] = field(default_factory=dict)
    unset_env: tuple[str, ...] = ()
    provenance: bool = False
    secrets: tuple[str, ...] = ()


def registry_auth_key(registry: str) -> str:
    """Build the npm config key holding the token for a registry.

    Examples:
        >>> registry_auth_key("https://registry.npmjs.org/")
        '//registry.npmjs.org/:_authToken'
        >>> registry_auth_key("https://npm.example.com/api/npm")
        '//npm.example.com/api/npm/:_authToken'
    """
    parsed = urlparse(registry)
    path = parsed.path or "/"
    if not path.endswith("/"):
        path += "/"
    return f"//{parsed.netloc}{path}:_authToken"


def get_npm_version(cwd: Path | None = None) -> str:
    """Return the installed npm CLI version.

    Raises:
        AuthenticationError: If npm cannot be executed
    """
    try:
        result = run(["npm", "--version"], cwd=cwd, check=True, timeout=60)
    except (ShellError, OSError) as e:
        raise AuthenticationError(
            "Failed to determine the npm version",
            details=str(e),
            fix_hint="Ensure Node.js and npm are installed and on PATH",
        ) from e
    return result.stdout.strip()


def setup_token_auth(options: PublishOptions) -> AuthSetup:
    """Write the access token for the target registry into npm's config.

    Raises:
        AuthenticationError: If npm config set fails
    """
    token = options.access_token or ""
    key = registry_auth_key(options.registry)
    try:
        run(
            ["npm", "config", "set", key, token],
            cwd=options.package_directory,
            check=True,
            timeout=60,
            secrets=(token,),
        )
    except (ShellError, OSError) as e:
        raise AuthenticationError(
            "Failed to configure the npm access token",
            details=str(e),
            fix_hint="Check that npm is installed and the user config is writable",
        ) from e

    logger.info("Configured token authentication for %s", key.split(":", 1)[0])
    return AuthSetup(
        mode=AuthMode.TOKEN,
        env={"NODE_AUTH_TOKEN": token},
        secrets=(token,),
    )


def setup_oidc_auth(options: PublishOptions, ci: CIEnvironment) -> AuthSetup:
    """Prepare OIDC trusted publishing.

    Raises:
        AuthenticationError: If the workflow cannot request an identity token
            or npm is older than MIN_OIDC_NPM_VERSION
    """
    if not ci.has_oidc_token_request:
        raise AuthenticationError(
            "OIDC publishing requires an identity token, but none can be requested",
            details="ACTIONS_ID_TOKEN_REQUEST_URL / ACTIONS_ID_TOKEN_REQUEST_TOKEN are not set",
            fix_hint="Add 'permissions: id-token: write' to the workflow job",
        )

    npm_version = get_npm_version(cwd=options.package_directory)
    try:
        too_old = compare_versions(npm_version, MIN_OIDC_NPM_VERSION) < 0
    except ValidationError as e:
        raise AuthenticationError(
            f"Unrecognized npm version: {npm_version!r}",
            details=str(e),
        ) from e
    if too_old:
        raise AuthenticationError(
            f"npm {npm_version} does not support OIDC trusted publishing",
            details=f"npm {MIN_OIDC_NPM_VERSION} or newer is required",
            fix_hint="Run 'npm install -g npm@latest' or use Node.js 24+",
        )

    provenance = ci.is_public_repository
    logger.info(
        "Using OIDC trusted publishing (npm %s, provenance: %s)",
        npm_version,
        "yes" if provenance else "no",
    )
    return AuthSetup(mode=AuthMode.OIDC, unset_env=TOKEN_ENV_VARS, provenance=provenance)


def setup_auth(options: PublishOptions, ci: CIEnvironment) -> AuthSetup:
    """Configure registry authentication for the selected mode."""
    mode = options.auth_mode
    if mode == AuthMode.TOKEN:
        return setup_token_auth(options)
    if mode == AuthMode.OIDC:
        return setup_oidc_auth(options, ci)
    logger.info("No access token or OIDC configured; using the existing npm configuration")
    return AuthSetup(mode=AuthMode.NONE)


@dataclass
class TroubleshootingReport:
    """Classification of a failed publish with remediation steps."""

    category: str
    summary: str
    remediation: list[str]

    def render(self) -> str:
        lines = [f"Troubleshooting ({self.category}): {self.summary}"]
        lines.extend(f"  - {step}" for step in self.remediation)
        return "\n".join(lines)


_REMEDIATION: dict[str, dict[AuthMode, tuple[str, list[str]]]] = {
    "ENEEDAUTH": {
        AuthMode.OIDC: (
            "npm did not authenticate via OIDC",
            [
                f"Use npm {MIN_OIDC_NPM_VERSION} or newer",
                "Ensure the job has 'permissions: id-token: write'",
                "Configure a trusted publisher for this package on npmjs.com",
            ],
        ),
        AuthMode.TOKEN: (
            "npm has no credentials for the registry",
            [
                "Check that the access token secret is set and not empty",
                "Check that --registry matches the registry the token belongs to",
            ],
        ),
    },
    "401": {
        AuthMode.OIDC: (
            "The registry rejected the OIDC identity",
            [
                "Verify the trusted publisher's repository, workflow file name and environment",
                "Workflows triggered from forks cannot use trusted publishing",
            ],
        ),
        AuthMode.TOKEN: (
            "The access token is invalid or expired",
            ["Create a new granular or automation token and update the secret"],
        ),
    },
    "403": {
        AuthMode.OIDC: (
            "The OIDC identity may not publish this package",
            [
                "Verify the trusted publisher configuration on npmjs.com",
                "Private repositories cannot publish provenance; publish without it",
            ],
        ),
        AuthMode.TOKEN: (
            "The token may not publish this package",
            [
                "Grant the token read/write access to the package or scope",
                "Use an automation token when the account requires 2FA for publishing",
            ],
        ),
    },
    "404": {
        AuthMode.OIDC: (
            "The package or its trusted publisher was not found",
            [
                "Trusted publishing cannot create new packages; publish the first version with a token",
                "Check that the package name matches the trusted publisher configuration",
            ],
        ),
        AuthMode.TOKEN: (
            "The package or scope was not found, or the token cannot see it",
            [
                "Check that the scope exists and the token's account is a member",
                "Pass --access public for the first publish of a scoped package",
            ],
        ),
    },
}

_CATEGORY_PATTERNS = (
    ("ENEEDAUTH", re.compile(r"ENEEDAUTH")),
    ("401", re.compile(r"\bE?401\b")),
    ("403", re.compile(r"\bE?403\b")),
    ("404", re.compile(r"\bE?404\b")),
)


def build_troubleshooting_report(error_text: str, mode: AuthMode) -> TroubleshootingReport | None:
    """Classify a publish failure by its npm error code.

    Args:
        error_text: npm output (and log) of the failed command
        mode: Authentication mode in use

    Returns:
        Report with mode-specific remediation, or None if unclassified
    """
    lookup_mode = AuthMode.OIDC if mode == AuthMode.OIDC else AuthMode.TOKEN
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(error_text):
            summary, remediation = _REMEDIATION[category][lookup_mode]
            return TroubleshootingReport(category=category, summary=summary, remediation=remediation)
    return None
