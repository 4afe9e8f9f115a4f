"""Sync the companion Unity package with package.json.

The Unity package lives in <project>/unity: its package.json receives the
version (and description), every *.npmdef file receives packageName and
packageVersion.
"""

import json
import logging
from pathlib import Path
from typing import Any

from publish_helper.exceptions import ConfigurationError
from publish_helper.manifest import load_manifest

logger = logging.getLogger(__name__)

UNITY_DIRNAME = "unity"
NPMDEF_SUFFIX = ".npmdef"


def _read_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read {path}", details=str(e)) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}")
    return data


def _write_json(path: Path, data: dict[str, Any]) -> None:
    # Unity writes 4-space indented JSON
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=4, ensure_ascii=False)


def update_npmdef(project_root: Path | None = None) -> list[Path]:
    """Copy name/version from package.json into the Unity package files.

    Args:
        project_root: Directory containing package.json (defaults to cwd)

    Returns:
        Files that were updated (empty when there is no unity directory)

    Raises:
        ConfigurationError: If package.json or a Unity file cannot be read
    """
    if project_root is None:
        project_root = Path.cwd()

    manifest = load_manifest(project_root)
    unity_dir = project_root / UNITY_DIRNAME
    if not unity_dir.is_dir():
        logger.warning("No unity directory found at %s. Skipping npmdef update.", unity_dir)
        return []

    updated: list[Path] = []

    unity_package_json = unity_dir / "package.json"
    if unity_package_json.is_file():
        unity_data = _read_json(unity_package_json)
        unity_data["version"] = manifest.version
        if manifest.description:
            unity_data["description"] = manifest.description
        _write_json(unity_package_json, unity_data)
        updated.append(unity_package_json)
        logger.info("Updated unity package.json at %s", unity_package_json)

    for npmdef in sorted(unity_dir.glob(f"*{NPMDEF_SUFFIX}")):
        logger.info("Update npmdef: %s", npmdef)
        content = _read_json(npmdef)
        content["packageName"] = manifest.name
        content["packageVersion"] = manifest.version
        _write_json(npmdef, content)
        updated.append(npmdef)

    return updated
