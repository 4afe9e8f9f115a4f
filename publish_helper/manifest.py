"""package.json access and temporary mutation.

The publish run rewrites package.json (name/version overrides, version
bump, local dependency resolution). manifest_guard() snapshots the files
before the run and restores them byte-for-byte on every exit path.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from publish_helper.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"

# npm version rewrites the lock file as well
GUARDED_FILES = (PACKAGE_JSON, "package-lock.json")

DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "peerDependencies", "optionalDependencies")

LOCAL_DEPENDENCY_PREFIX = "file:"


@dataclass
class PackageManifest:
    """The parts of package.json the publish run reads and mutates.

    Attributes:
        path: Location of package.json
        data: Full parsed content (written back as-is apart from edits)
    """

    path: Path
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.data.get("name") or "")

    @name.setter
    def name(self, value: str) -> None:
        self.data["name"] = value

    @property
    def version(self) -> str:
        return str(self.data.get("version") or "")

    @version.setter
    def version(self, value: str) -> None:
        self.data["version"] = value

    @property
    def dependencies(self) -> dict[str, str]:
        deps = self.data.get("dependencies")
        return deps if isinstance(deps, dict) else {}

    @property
    def description(self) -> str | None:
        return self.data.get("description")

    @property
    def main(self) -> str | None:
        return self.data.get("main")

    def save(self) -> None:
        """Write the manifest back with npm's 2-space formatting."""
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2, ensure_ascii=False)
            f.write("\n")


def load_manifest(directory: Path) -> PackageManifest:
    """Read package.json from a directory.

    Args:
        directory: Package directory

    Returns:
        Parsed PackageManifest

    Raises:
        ConfigurationError: If package.json is missing or invalid
    """
    path = directory / PACKAGE_JSON
    if not path.is_file():
        raise ConfigurationError(
            f"package.json not found at {path}",
            fix_hint="Pass the directory that contains package.json",
        )
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in {path}",
            details=str(e),
            fix_hint="Fix JSON syntax errors in package.json",
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}")
    return PackageManifest(path=path, data=data)


@contextmanager
def manifest_guard(directory: Path, files: tuple[str, ...] = GUARDED_FILES) -> Iterator[None]:
    """Restore package files to their original content when the block exits.

    Files that did not exist on entry are removed on exit. Restoration runs
    on success, on error and on KeyboardInterrupt.

    Args:
        directory: Package directory
        files: File names (relative to directory) to snapshot
    """
    snapshots: dict[Path, bytes | None] = {}
    for name in files:
        path = directory / name
        snapshots[path] = path.read_bytes() if path.is_file() else None

    try:
        yield
    finally:
        for path, original in snapshots.items():
            if original is None:
                if path.exists():
                    path.unlink()
                    logger.debug("Removed %s created during the run", path)
                continue
            if not path.is_file() or path.read_bytes() != original:
                path.write_bytes(original)
                logger.debug("Restored %s", path)


def apply_overrides(
    manifest: PackageManifest,
    name: str | None = None,
    version: str | None = None,
) -> bool:
    """Apply name/version overrides to the manifest.

    Returns:
        True if the manifest changed
    """
    changed = False
    if name and name != manifest.name:
        logger.info("Overriding package name: %s -> %s", manifest.name, name)
        manifest.name = name
        changed = True
    if version and version != manifest.version:
        logger.info("Overriding package version: %s -> %s", manifest.version, version)
        manifest.version = version
        changed = True
    return changed


def resolve_local_dependencies(manifest: PackageManifest) -> dict[str, str]:
    """Replace 'file:' dependency specs with the referenced package versions.

    A published package cannot depend on a path on the build machine, so
    'file:../core' becomes the version found in ../core/package.json.
    Unresolvable specs are left unchanged.

    Returns:
        Mapping of dependency name to the version it was resolved to
    """
    resolved: dict[str, str] = {}
    base_dir = manifest.path.parent

    for field_name in DEPENDENCY_FIELDS:
        deps = manifest.data.get(field_name)
        if not isinstance(deps, dict):
            continue
        for dep_name, spec in deps.items():
            if not isinstance(spec, str) or not spec.startswith(LOCAL_DEPENDENCY_PREFIX):
                continue
            target = (base_dir / spec[len(LOCAL_DEPENDENCY_PREFIX):]).resolve()
            try:
                dep_manifest = load_manifest(target)
            except ConfigurationError:
                logger.warning("Cannot resolve local dependency %s (%s)", dep_name, spec)
                continue
            if not dep_manifest.version:
                logger.warning("Local dependency %s has no version (%s)", dep_name, target)
                continue
            deps[dep_name] = dep_manifest.version
            resolved[dep_name] = dep_manifest.version
            logger.info("Resolved local dependency %s: %s -> %s", dep_name, spec, dep_manifest.version)

    return resolved
