"""Unit tests for publish_helper.config.models.

Tests cover:
- PublishOptions validation (tag sanitization, registry, auth exclusivity)
- FileConfig key mapping
- CIEnvironment loading from environment variables
"""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from publish_helper.config.models import (
    DEFAULT_REGISTRY,
    NULL_COMMIT_SHA,
    AuthMode,
    CIEnvironment,
    FileConfig,
    PublishOptions,
)
from publish_helper.exceptions import ConfigurationError


class TestPublishOptions:
    """Tests for PublishOptions model."""

    def test_defaults(self, temp_dir: Path) -> None:
        options = PublishOptions(package_directory=temp_dir)
        assert options.registry == DEFAULT_REGISTRY
        assert options.tag is None
        assert options.auth_mode == AuthMode.NONE
        assert not options.dry_run

    def test_options_are_frozen(self, temp_dir: Path) -> None:
        """Options cannot change once the run started."""
        options = PublishOptions(package_directory=temp_dir)
        with pytest.raises(PydanticValidationError):
            options.dry_run = True  # type: ignore[misc]

    def test_slash_tag_is_sanitized(self, temp_dir: Path) -> None:
        options = PublishOptions(package_directory=temp_dir, tag="refs/heads/beta")
        assert options.tag == "beta"

    def test_invalid_tag_raises_configuration_error(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError):
            PublishOptions(package_directory=temp_dir, tag="//")

    def test_registry_gets_trailing_slash(self, temp_dir: Path) -> None:
        options = PublishOptions(package_directory=temp_dir, registry="https://npm.example.com/api")
        assert options.registry == "https://npm.example.com/api/"

    def test_registry_must_be_http(self, temp_dir: Path) -> None:
        with pytest.raises(PydanticValidationError):
            PublishOptions(package_directory=temp_dir, registry="registry.npmjs.org")

    def test_token_and_oidc_are_exclusive(self, temp_dir: Path) -> None:
        """Setting both an access token and OIDC is rejected."""
        with pytest.raises(PydanticValidationError) as exc_info:
            PublishOptions(package_directory=temp_dir, access_token="npm_abc", use_oidc=True)
        assert "mutually exclusive" in str(exc_info.value)

    def test_auth_mode(self, temp_dir: Path) -> None:
        assert PublishOptions(package_directory=temp_dir, access_token="npm_abc").auth_mode == AuthMode.TOKEN
        assert PublishOptions(package_directory=temp_dir, use_oidc=True).auth_mode == AuthMode.OIDC

    def test_secrets_hidden_from_repr(self, temp_dir: Path) -> None:
        options = PublishOptions(package_directory=temp_dir, access_token="npm_secret_value")
        assert "npm_secret_value" not in repr(options)


class TestFileConfig:
    """Tests for FileConfig model."""

    def test_option_values_mapping(self) -> None:
        """Config file keys map onto PublishOptions field names."""
        config = FileConfig(webhook="https://hooks.slack.com/services/x", oidc=True, create_tag_prefix="release/")
        values = config.as_option_values()
        assert values["webhook_url"] == "https://hooks.slack.com/services/x"
        assert values["use_oidc"] is True
        assert values["git_tag_prefix"] == "release/"
        assert "registry" not in values

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            FileConfig(unknown_key="value")  # type: ignore[call-arg]


class TestCIEnvironment:
    """Tests for CIEnvironment settings."""

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
        monkeypatch.setenv("GITHUB_OUTPUT", str(temp_dir / "output"))
        monkeypatch.setenv("GITHUB_EVENT_NAME", "pull_request")
        monkeypatch.setenv("GITHUB_REPOSITORY_VISIBILITY", "public")
        monkeypatch.setenv("LLM_API_KEY", "sk-ant-test")

        ci = CIEnvironment()
        assert ci.github_output == temp_dir / "output"
        assert ci.is_pull_request
        assert ci.is_public_repository
        assert ci.llm_api_key == "sk-ant-test"

    def test_empty_environment(self, ci_env: CIEnvironment) -> None:
        assert ci_env.github_output is None
        assert not ci_env.has_oidc_token_request
        assert ci_env.push_range is None

    def test_oidc_request_needs_url_and_token(self) -> None:
        assert not CIEnvironment(actions_id_token_request_url="https://token").has_oidc_token_request
        assert CIEnvironment(
            actions_id_token_request_url="https://token",
            actions_id_token_request_token="abc",
        ).has_oidc_token_request

    def test_push_range(self) -> None:
        ci = CIEnvironment(github_event_before="aaa111", github_sha="bbb222")
        assert ci.push_range == ("aaa111", "bbb222")

    def test_push_range_ignores_first_push(self) -> None:
        """The all-zero 'before' SHA of a new branch has no history to diff."""
        ci = CIEnvironment(github_event_before=NULL_COMMIT_SHA, github_sha="bbb222")
        assert ci.push_range is None
