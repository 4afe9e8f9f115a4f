"""Configuration file loading and option resolution.

Supports an optional config file in the package directory with:
- Automatic format detection (YAML or TOML)
- Error reporting with file location
- Merging with CLI flags and environment into PublishOptions
"""

import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from publish_helper.config.models import CIEnvironment, FileConfig, PublishOptions
from publish_helper.exceptions import ConfigurationError

# Import tomli for Python < 3.11, tomllib for 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

SEARCH_PATHS = [
    "publish_conf.yml",
    "publish_conf.yaml",
    "config/publish_conf.yml",
    "config/publish_conf.yaml",
    "publish.toml",
]


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as dictionary

    Raises:
        ConfigurationError: If file cannot be read or parsed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if data else {}
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            fix_hint="Create the file or omit --config",
        ) from None
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {path}",
            details=str(e),
            fix_hint="Check YAML syntax at the indicated line",
        ) from e


def load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML configuration file.

    Args:
        path: Path to the TOML file

    Returns:
        Parsed TOML as dictionary

    Raises:
        ConfigurationError: If file cannot be read or parsed
    """
    try:
        with open(path, "rb") as f:
            data: dict[str, Any] = tomllib.load(f)
            return data
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            fix_hint="Create the file or omit --config",
        ) from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in {path}",
            details=str(e),
            fix_hint="Check TOML syntax at the indicated line",
        ) from e


def find_config_file(project_root: Path) -> Path | None:
    """Return the first existing config file from SEARCH_PATHS."""
    for search_path in SEARCH_PATHS:
        candidate = project_root / search_path
        if candidate.is_file():
            return candidate
    return None


def load_file_config(
    path: Path | None = None,
    project_root: Path | None = None,
) -> FileConfig:
    """Load config file defaults.

    A missing config file is not an error unless an explicit path was given.

    Args:
        path: Explicit path to the config file
        project_root: Directory searched when no path is given (defaults to cwd)

    Returns:
        Validated FileConfig (empty when no file exists)

    Raises:
        ConfigurationError: If the file is invalid or an explicit path is missing
    """
    if project_root is None:
        project_root = Path.cwd()

    config_path: Path | None
    if path:
        config_path = Path(path)
        if not config_path.is_absolute():
            config_path = project_root / config_path
    else:
        config_path = find_config_file(project_root)
        if config_path is None:
            return FileConfig()

    if config_path.suffix in (".yml", ".yaml"):
        data = load_yaml(config_path)
    elif config_path.suffix == ".toml":
        data = load_toml(config_path)
    else:
        raise ConfigurationError(
            f"Unsupported config format: {config_path.suffix}",
            fix_hint="Use .yml, .yaml, or .toml extension",
        )

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid configuration in {config_path}",
            details="The top level must be a mapping of option names to values",
        )

    # publish.toml may nest the settings under [publish]
    if config_path.suffix == ".toml" and isinstance(data.get("publish"), dict):
        data = data["publish"]

    try:
        return FileConfig(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {config_path}",
            details=str(e),
            fix_hint="Check the configuration keys and value types",
        ) from e


def resolve_publish_options(
    package_directory: Path,
    cli_values: dict[str, Any],
    ci: CIEnvironment,
    config_path: Path | None = None,
) -> PublishOptions:
    """Merge CLI flags, config file, environment and defaults.

    Precedence: CLI flag > config file > environment > defaults. CLI values
    of None or False count as "not given", so a config file can enable a
    boolean option that the command line leaves unset.

    Args:
        package_directory: Directory containing package.json
        cli_values: Option values from the command line, keyed by field name
        ci: CI environment read at startup
        config_path: Explicit config file path (--config)

    Returns:
        Validated, immutable PublishOptions

    Raises:
        ConfigurationError: If the merged values are invalid
    """
    package_directory = package_directory.resolve()
    if not package_directory.is_dir():
        raise ConfigurationError(
            f"Package directory not found: {package_directory}",
            fix_hint="Pass the directory that contains package.json",
        )

    file_config = load_file_config(config_path, project_root=package_directory)

    values: dict[str, Any] = {}
    if ci.llm_api_key:
        values["llm_api_key"] = ci.llm_api_key
    values.update(file_config.as_option_values())
    values.update(
        {key: value for key, value in cli_values.items() if value is not None and value is not False}
    )
    values["package_directory"] = package_directory

    try:
        return PublishOptions(**values)
    except PydanticValidationError as e:
        raise ConfigurationError(
            "Invalid publish options",
            details=str(e),
            fix_hint="Check the command-line flags and the config file",
        ) from e
