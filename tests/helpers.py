"""Helpers shared by test modules and fixtures."""

import json
import subprocess
from pathlib import Path
from typing import Any


def git(cwd: Path, *args: str) -> str:
    """Run a git command in a test repository and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def write_package_json(directory: Path, data: dict[str, Any]) -> Path:
    """Write package.json the way npm formats it."""
    path = directory / "package.json"
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path
