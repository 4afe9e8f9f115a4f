"""Unit tests for publish_helper.publishers.auth module.

Tests cover:
- Token mode: npm config key, NODE_AUTH_TOKEN export, redaction
- OIDC mode: identity token permission, npm version gate, provenance
- Troubleshooting report classification
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from publish_helper.config.models import AuthMode, CIEnvironment, PublishOptions
from publish_helper.exceptions import AuthenticationError
from publish_helper.publishers.auth import (
    TOKEN_ENV_VARS,
    build_troubleshooting_report,
    registry_auth_key,
    setup_auth,
)
from publish_helper.utils.shell import ShellError

OIDC_CI = CIEnvironment(
    actions_id_token_request_url="https://token.actions.githubusercontent.com",
    actions_id_token_request_token="request-token",
    github_repository_visibility="public",
)


def completed(stdout: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")


class TestRegistryAuthKey:
    @pytest.mark.parametrize(
        ("registry", "expected"),
        [
            ("https://registry.npmjs.org/", "//registry.npmjs.org/:_authToken"),
            ("https://npm.pkg.github.com", "//npm.pkg.github.com/:_authToken"),
            ("https://npm.example.com/api/npm", "//npm.example.com/api/npm/:_authToken"),
        ],
    )
    def test_key(self, registry: str, expected: str) -> None:
        assert registry_auth_key(registry) == expected


class TestTokenAuth:
    """Tests for token authentication."""

    @patch("publish_helper.publishers.auth.run")
    def test_token_setup(self, mock_run: MagicMock, project_dir: Path, ci_env: CIEnvironment) -> None:
        mock_run.return_value = completed()
        options = PublishOptions(package_directory=project_dir, access_token="npm_secret")

        auth = setup_auth(options, ci_env)

        assert auth.mode == AuthMode.TOKEN
        assert auth.env == {"NODE_AUTH_TOKEN": "npm_secret"}
        assert auth.secrets == ("npm_secret",)
        cmd = mock_run.call_args.args[0]
        assert cmd == ["npm", "config", "set", "//registry.npmjs.org/:_authToken", "npm_secret"]
        assert mock_run.call_args.kwargs["secrets"] == ("npm_secret",)

    @patch("publish_helper.publishers.auth.run")
    def test_token_setup_failure(self, mock_run: MagicMock, project_dir: Path, ci_env: CIEnvironment) -> None:
        mock_run.side_effect = ShellError("npm config set ***", 1, "", "EACCES")
        options = PublishOptions(package_directory=project_dir, access_token="npm_secret")

        with pytest.raises(AuthenticationError) as exc_info:
            setup_auth(options, ci_env)
        assert "npm_secret" not in str(exc_info.value)

    def test_no_auth(self, project_dir: Path, ci_env: CIEnvironment) -> None:
        """Without token or OIDC the ambient npm configuration is used."""
        auth = setup_auth(PublishOptions(package_directory=project_dir), ci_env)
        assert auth.mode == AuthMode.NONE
        assert auth.env == {}
        assert auth.unset_env == ()


class TestOidcAuth:
    """Tests for OIDC trusted publishing setup."""

    @patch("publish_helper.publishers.auth.run")
    def test_oidc_setup(self, mock_run: MagicMock, project_dir: Path) -> None:
        mock_run.return_value = completed("11.6.0\n")
        options = PublishOptions(package_directory=project_dir, use_oidc=True)

        auth = setup_auth(options, OIDC_CI)

        assert auth.mode == AuthMode.OIDC
        assert auth.provenance is True
        assert set(TOKEN_ENV_VARS) <= set(auth.unset_env)
        assert "NODE_AUTH_TOKEN" in auth.unset_env

    @patch("publish_helper.publishers.auth.run")
    def test_private_repository_has_no_provenance(self, mock_run: MagicMock, project_dir: Path) -> None:
        mock_run.return_value = completed("11.5.1")
        ci = OIDC_CI.model_copy(update={"github_repository_visibility": "private"})

        auth = setup_auth(PublishOptions(package_directory=project_dir, use_oidc=True), ci)

        assert auth.provenance is False

    @patch("publish_helper.publishers.auth.run")
    def test_old_npm_is_rejected(self, mock_run: MagicMock, project_dir: Path) -> None:
        """npm older than 11.5.1 cannot use trusted publishing."""
        mock_run.return_value = completed("10.9.2")

        with pytest.raises(AuthenticationError) as exc_info:
            setup_auth(PublishOptions(package_directory=project_dir, use_oidc=True), OIDC_CI)

        assert "10.9.2" in exc_info.value.message
        assert exc_info.value.fix_hint is not None
        assert exc_info.value.exit_code == 6

    def test_missing_id_token_permission(self, project_dir: Path, ci_env: CIEnvironment) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            setup_auth(PublishOptions(package_directory=project_dir, use_oidc=True), ci_env)
        assert "id-token: write" in (exc_info.value.fix_hint or "")

    @patch("publish_helper.publishers.auth.run")
    def test_npm_missing(self, mock_run: MagicMock, project_dir: Path) -> None:
        mock_run.side_effect = FileNotFoundError("npm")
        with pytest.raises(AuthenticationError):
            setup_auth(PublishOptions(package_directory=project_dir, use_oidc=True), OIDC_CI)


class TestTroubleshootingReport:
    """Tests for build_troubleshooting_report."""

    @pytest.mark.parametrize(
        ("error_text", "category"),
        [
            ("npm error code ENEEDAUTH", "ENEEDAUTH"),
            ("npm error code E401\nnpm error 401 Unauthorized", "401"),
            ("npm error 403 403 Forbidden - PUT https://registry.npmjs.org/my-lib", "403"),
            ("npm error code E404\nnpm error 404 Not Found - PUT", "404"),
        ],
    )
    def test_classification(self, error_text: str, category: str) -> None:
        report = build_troubleshooting_report(error_text, AuthMode.TOKEN)
        assert report is not None
        assert report.category == category

    def test_mode_specific_remediation(self) -> None:
        token_report = build_troubleshooting_report("E404", AuthMode.TOKEN)
        oidc_report = build_troubleshooting_report("E404", AuthMode.OIDC)
        assert token_report is not None and oidc_report is not None
        assert token_report.remediation != oidc_report.remediation
        assert "trusted publish" in oidc_report.render().lower()

    def test_unclassified(self) -> None:
        assert build_troubleshooting_report("npm error code EPUBLISHCONFLICT", AuthMode.TOKEN) is None
