"""Library build steps: vite bundle and TypeScript compile."""

import logging
import subprocess
from importlib import resources
from pathlib import Path

from publish_helper.exceptions import BuildError, ConfigurationError
from publish_helper.manifest import load_manifest
from publish_helper.utils.shell import ShellError, run

logger = logging.getLogger(__name__)

VITE_CONFIG_FILENAME = "vite.config.js"
TEMPLATE_NAME = "vite.config.template.js"
GENERATED_CONFIG_DIR = Path("node_modules") / ".publish-helper"
DEFAULT_ENTRY = "index.ts"

# Builds can take a while on large projects
BUILD_TIMEOUT = 900


def library_name(package_name: str, override: str | None = None) -> str:
    """Library name: the override, or the last segment of the package name.

    Raises:
        ConfigurationError: If no name can be derived
    """
    name = override or (package_name or "").split("/")[-1]
    if not name:
        raise ConfigurationError(
            "Library name not found",
            fix_hint="Set 'name' in package.json or pass --library",
        )
    return name


def render_vite_config(entry: str, name: str) -> str:
    """Fill the bundled vite config template."""
    template = resources.files("publish_helper").joinpath("templates").joinpath(TEMPLATE_NAME)
    text = template.read_text(encoding="utf-8")
    return text.replace("<entry>", entry).replace("<name>", name)


def resolve_vite_config(directory: Path, name: str, entry: str | None) -> Path:
    """Return the project's vite config, generating a default one if missing."""
    project_config = directory / VITE_CONFIG_FILENAME
    if project_config.is_file():
        logger.debug("Using project vite config %s", project_config)
        return project_config

    output_dir = directory / GENERATED_CONFIG_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / VITE_CONFIG_FILENAME
    output_path.write_text(render_vite_config(entry or DEFAULT_ENTRY, name), encoding="utf-8")
    logger.debug("Generated vite config at %s", output_path)
    return output_path


def _run_build(cmd: list[str], directory: Path, what: str) -> None:
    try:
        run(cmd, cwd=directory, capture=False, check=True, timeout=BUILD_TIMEOUT)
    except (ShellError, OSError, subprocess.TimeoutExpired) as e:
        raise BuildError(
            f"{what} failed",
            details=str(e),
            fix_hint="Run the command locally to see the full build output",
        ) from e


def build_library(directory: Path, name: str | None = None) -> Path:
    """Bundle the package with vite into dist/.

    Args:
        directory: Package directory containing package.json
        name: Library name override

    Returns:
        The vite config that was used

    Raises:
        ConfigurationError: If package.json is missing or has no usable name
        BuildError: If vite fails
    """
    manifest = load_manifest(directory)
    lib_name = library_name(manifest.name, name)
    logger.info("Building %s", lib_name)

    config_path = resolve_vite_config(directory, lib_name, manifest.main)
    cmd = [
        "npx",
        "vite",
        "build",
        "--base=./",
        "--outDir=dist",
        f"--config={config_path}",
    ]
    logger.info(" ".join(cmd))
    _run_build(cmd, directory, "vite build")
    logger.info("Built %s", lib_name)
    return config_path


def compile_typescript(directory: Path) -> None:
    """Emit JavaScript and declarations into lib/ with tsc.

    Raises:
        BuildError: If tsc fails
    """
    cmd = [
        "npx",
        "tsc",
        "--rootDir",
        ".",
        "--outDir",
        "lib",
        "--noEmit",
        "false",
        "--incremental",
        "false",
        "--skipLibCheck",
    ]
    logger.info("Compiling TypeScript")
    _run_build(cmd, directory, "TypeScript compile")
    logger.info("Compiled TypeScript")
