"""npm registry publisher.

Runs the publish state machine CHECK -> PUBLISH -> TAG:
- CHECK: query the registry for name@version (not found is not an error)
- PUBLISH: npm publish unless the exact version is already published
- TAG: point the requested dist-tag at an already published version

Pre-release versions published without an explicit dist-tag get an
automatic non-'latest' tag. npm responses that mean a concurrent run
already published the version are treated as success.
"""

import logging
from pathlib import Path
from urllib.parse import quote

from publish_helper.config.models import AuthMode
from publish_helper.exceptions import PublishError
from publish_helper.publishers.auth import AuthSetup, build_troubleshooting_report
from publish_helper.publishers.base import PublishResult, PublishStatus
from publish_helper.utils.shell import ExecResult, try_run
from publish_helper.utils.version import is_prerelease, prerelease_dist_tag

logger = logging.getLogger(__name__)

NPMJS_REGISTRY_HOST = "registry.npmjs.org"

# npm's own idempotence check raced with a concurrent publish of the same version
BENIGN_PUBLISH_ERRORS = (
    "cannot publish over previously published version",
    "cannot publish over the previously published version",
    "failed to save packument",
)


def is_benign_publish_error(result: ExecResult) -> bool:
    """Check whether a failed publish means the version is already published."""
    return result.contains(*BENIGN_PUBLISH_ERRORS)


class NPMPublisher:
    """Publisher for an npm registry.

    Attributes:
        directory: Package directory (cwd of every npm call)
        registry: Registry URL passed to every npm call
        auth: Environment adjustments from the authentication setup
        access: 'public'/'restricted', or None to use npm's default
        dry_run: Pass --dry-run to npm publish and skip dist-tag changes
    """

    def __init__(
        self,
        directory: Path,
        registry: str,
        auth: AuthSetup | None = None,
        access: str | None = None,
        dry_run: bool = False,
        timeout: int = 300,
    ) -> None:
        self.directory = directory
        self.registry = registry
        self.auth = auth or AuthSetup(mode=AuthMode.NONE)
        self.access = access
        self.dry_run = dry_run
        self.timeout = timeout

    def _npm(self, *args: str, timeout: int | None = None) -> ExecResult:
        return try_run(
            ["npm", *args, "--registry", self.registry],
            cwd=self.directory,
            timeout=timeout or self.timeout,
            env=self.auth.env,
            unset_env=self.auth.unset_env,
            secrets=self.auth.secrets,
        )

    def package_url(self, name: str, version: str | None = None) -> str | None:
        """Web URL of the package, for npmjs.com only."""
        if NPMJS_REGISTRY_HOST not in self.registry:
            return None
        url = f"https://www.npmjs.com/package/{quote(name, safe='@/')}"
        return f"{url}/v/{version}" if version else url

    def get_published_version(self, name: str, version: str) -> str | None:
        """CHECK: return the version if name@version is on the registry.

        A failed query (E404 for unknown packages, network errors) counts as
        "not yet published".
        """
        result = self._npm("view", f"{name}@{version}", "version", timeout=60)
        if not result.success:
            logger.info("%s@%s is not published yet (npm view failed)", name, version)
            logger.debug("npm view output: %s", result.output)
            return None

        published = result.stdout.strip().splitlines()
        if version in (line.strip().strip("'\"") for line in published):
            return version
        return None

    def set_version(self, version: str) -> None:
        """Write a new version via npm version (no git commit or tag).

        Raises:
            PublishError: If npm version fails
        """
        result = self._npm("version", version, "--no-git-tag-version", "--allow-same-version")
        if not result.success:
            raise PublishError(
                f"Failed to set package version to {version}",
                details=result.output,
                fix_hint="Check that the version is valid semver",
            )
        logger.info("Package version set to %s", version)

    def resolve_dist_tag(self, version: str, tag: str | None) -> str | None:
        """Choose the dist-tag used for publishing.

        An explicit tag wins. A pre-release without a tag gets an automatic
        non-'latest' tag so it never becomes the default install.
        """
        if tag:
            return tag
        if is_prerelease(version):
            return prerelease_dist_tag(version)
        return None

    def build_publish_command(self, dist_tag: str | None) -> list[str]:
        """Arguments for npm publish (without the trailing --registry)."""
        args = ["publish"]
        if dist_tag:
            args.extend(["--tag", dist_tag])
        if self.access:
            args.extend(["--access", self.access])
        if self.auth.provenance:
            args.append("--provenance")
        if self.dry_run:
            args.append("--dry-run")
        return args

    def publish(self, name: str, version: str, tag: str | None = None) -> PublishResult:
        """PUBLISH: run npm publish.

        Raises:
            PublishError: For failures other than the benign race conditions
        """
        dist_tag = self.resolve_dist_tag(version, tag)
        args = self.build_publish_command(dist_tag)
        logger.info(
            "Publishing %s@%s%s%s",
            name,
            version,
            f" with tag '{dist_tag}'" if dist_tag else "",
            " (dry run)" if self.dry_run else "",
        )

        result = self._npm(*args)
        if result.success:
            logger.debug("npm publish output:\n%s", result.output)
            message = (
                f"Dry run: would publish {name}@{version}"
                if self.dry_run
                else f"Published {name}@{version}"
            )
            return PublishResult.success(
                message=message,
                version=version,
                package_url=self.package_url(name, version),
                dist_tag=dist_tag,
                published=not self.dry_run,
            )

        if is_benign_publish_error(result):
            logger.info("%s@%s was published concurrently; treating as published", name, version)
            return PublishResult.skipped(
                message=f"{name}@{version} is already published",
                version=version,
                package_url=self.package_url(name, version),
                dist_tag=dist_tag,
            )

        details = result.output
        if result.log_contents:
            details += f"\n\nnpm log:\n{result.log_contents}"
        report = build_troubleshooting_report(details, self.auth.mode)
        raise PublishError(
            f"npm publish failed for {name}@{version}",
            details=details,
            fix_hint=report.render() if report else None,
        )

    def add_dist_tag(self, name: str, version: str, tag: str) -> None:
        """TAG: point a dist-tag at a published version.

        Raises:
            PublishError: If npm dist-tag add fails
        """
        result = self._npm("dist-tag", "add", f"{name}@{version}", tag, timeout=120)
        if not result.success:
            report = build_troubleshooting_report(result.output, self.auth.mode)
            raise PublishError(
                f"Failed to set dist-tag '{tag}' on {name}@{version}",
                details=result.output,
                fix_hint=report.render() if report else None,
            )
        logger.info("Dist-tag '%s' now points to %s@%s", tag, name, version)

    def release(self, name: str, version: str, tag: str | None = None) -> PublishResult:
        """Run CHECK -> PUBLISH -> TAG for name@version.

        Returns:
            SUCCESS when this run published, SKIPPED when the version was
            already on the registry

        Raises:
            PublishError: On non-benign npm failures
        """
        if self.get_published_version(name, version):
            logger.info("%s@%s is already published, skipping publish", name, version)
            if tag and not self.dry_run:
                self.add_dist_tag(name, version, tag)
            elif tag:
                logger.info("Dry run: would set dist-tag '%s' on %s@%s", tag, name, version)
            return PublishResult.skipped(
                message=f"{name}@{version} is already published",
                version=version,
                package_url=self.package_url(name, version),
                dist_tag=tag,
            )

        result = self.publish(name, version, tag)
        # Concurrent publish: the tag from our own publish call never applied
        if result.status == PublishStatus.SKIPPED and tag and not self.dry_run:
            self.add_dist_tag(name, version, tag)
        return result
