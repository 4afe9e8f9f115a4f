"""Pytest fixtures for publish helper tests.

Provides common fixtures for:
- Temporary project directories
- Git repository setup
- npm package directories
- An isolated CI environment
"""

import os
import subprocess
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from publish_helper.config.models import CIEnvironment
from tests.helpers import git, write_package_json

CI_ENV_PREFIXES = ("GITHUB_", "ACTIONS_", "GIT_USER_", "NPM_", "NODE_AUTH_")
CI_ENV_NAMES = ("LLM_API_KEY",)


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Temporarily remove CI environment variables.

    Tests run the same locally and inside GitHub Actions.
    """
    old_env = {}
    for key in list(os.environ.keys()):
        if key.startswith(CI_ENV_PREFIXES) or key in CI_ENV_NAMES:
            old_env[key] = os.environ.pop(key)

    yield

    os.environ.update(old_env)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary directory for tests.

    Yields:
        Path to temporary directory
    """
    yield tmp_path


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """Create a temporary project directory.

    Returns:
        Path to project directory
    """
    project = temp_dir / "test-project"
    project.mkdir()
    return project


@pytest.fixture
def git_repo(project_dir: Path) -> Path:
    """Create a git repository in the project directory.

    Returns:
        Path to git repository
    """
    git(project_dir, "init", "-b", "main")
    git(project_dir, "config", "user.email", "test@test.com")
    git(project_dir, "config", "user.name", "Test User")
    git(project_dir, "config", "commit.gpgsign", "false")
    git(project_dir, "config", "tag.gpgsign", "false")
    return project_dir


@pytest.fixture
def package_data() -> dict[str, Any]:
    """Return the content of a typical package.json."""
    return {
        "name": "@scope/my-lib",
        "version": "1.0.0",
        "description": "A test npm package for publishing",
        "main": "index.ts",
        "scripts": {
            "build": "tsc",
        },
        "license": "MIT",
    }


@pytest.fixture
def npm_package(project_dir: Path, package_data: dict[str, Any]) -> Path:
    """Create a package directory with package.json (no git).

    Returns:
        Path to package directory
    """
    write_package_json(project_dir, package_data)
    return project_dir


@pytest.fixture
def nodejs_project(git_repo: Path, package_data: dict[str, Any]) -> Path:
    """Create a committed Node.js project with package.json.

    Returns:
        Path to project directory
    """
    write_package_json(git_repo, package_data)
    (git_repo / "index.ts").write_text("export const answer = 42;\n")

    git(git_repo, "add", ".")
    git(git_repo, "commit", "-m", "Initial commit")
    return git_repo


@pytest.fixture
def remote_repo(temp_dir: Path, nodejs_project: Path) -> Path:
    """Create a bare remote and push the project's main branch to it.

    Returns:
        Path to the bare remote repository
    """
    remote = temp_dir / "remote.git"
    subprocess.run(
        ["git", "init", "--bare", str(remote)],
        capture_output=True,
        check=True,
    )
    git(nodejs_project, "remote", "add", "origin", str(remote))
    git(nodejs_project, "push", "-u", "origin", "main")
    return remote


@pytest.fixture
def ci_env() -> CIEnvironment:
    """CI environment with nothing set (local run)."""
    return CIEnvironment()
