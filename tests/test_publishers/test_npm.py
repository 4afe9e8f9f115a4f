"""Unit tests for publish_helper.publishers.npm module.

Tests for NPMPublisher:
- CHECK: registry lookup, not-found is not an error
- PUBLISH: command construction, automatic pre-release dist-tag
- Benign race-condition responses
- TAG: dist-tag update for already published versions, skipped in dry-run
"""

from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pytest

from publish_helper.config.models import AuthMode
from publish_helper.exceptions import PublishError
from publish_helper.publishers.auth import AuthSetup
from publish_helper.publishers.base import PublishStatus
from publish_helper.publishers.npm import NPMPublisher, is_benign_publish_error
from publish_helper.utils.shell import ExecResult

REGISTRY = "https://registry.npmjs.org/"


def ok(stdout: str = "") -> ExecResult:
    return ExecResult(success=True, cmd="npm", returncode=0, stdout=stdout)


def failed(stderr: str, log_contents: str | None = None) -> ExecResult:
    return ExecResult(success=False, cmd="npm", returncode=1, stderr=stderr, log_contents=log_contents)


NOT_FOUND = failed("npm error code E404\nnpm error 404 Not Found - GET https://registry.npmjs.org/my-lib")


@pytest.fixture
def publisher(project_dir: Path) -> NPMPublisher:
    return NPMPublisher(directory=project_dir, registry=REGISTRY)


def npm_calls(mock_run: MagicMock) -> list[list[str]]:
    """The npm argument lists passed to try_run, without the registry suffix."""
    return [c.args[0][1:-2] for c in mock_run.call_args_list]


class TestCheck:
    """Tests for get_published_version (CHECK)."""

    @patch("publish_helper.publishers.npm.try_run")
    def test_published(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.return_value = ok("1.2.0")
        assert publisher.get_published_version("my-lib", "1.2.0") == "1.2.0"
        assert mock_run.call_args.args[0] == [
            "npm", "view", "my-lib@1.2.0", "version", "--registry", REGISTRY,
        ]

    @patch("publish_helper.publishers.npm.try_run")
    def test_not_found_is_not_an_error(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        """E404 from npm view means "not yet published"."""
        mock_run.return_value = NOT_FOUND
        assert publisher.get_published_version("my-lib", "1.2.0") is None

    @patch("publish_helper.publishers.npm.try_run")
    def test_empty_output(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.return_value = ok("")
        assert publisher.get_published_version("my-lib", "1.2.0") is None


class TestPublishCommand:
    """Tests for dist-tag resolution and npm publish arguments."""

    def test_prerelease_without_tag_gets_non_latest_tag(self, publisher: NPMPublisher) -> None:
        dist_tag = publisher.resolve_dist_tag("1.2.0-beta.1", None)
        assert dist_tag == "beta"
        assert publisher.build_publish_command(dist_tag) == ["publish", "--tag", "beta"]

    def test_hash_prerelease_gets_next(self, publisher: NPMPublisher) -> None:
        assert publisher.resolve_dist_tag("1.2.0-abc1234", None) == "next"

    def test_explicit_tag_wins(self, publisher: NPMPublisher) -> None:
        assert publisher.resolve_dist_tag("1.2.0-beta.1", "canary") == "canary"

    def test_stable_without_tag(self, publisher: NPMPublisher) -> None:
        assert publisher.resolve_dist_tag("1.2.0", None) is None

    def test_all_flags(self, project_dir: Path) -> None:
        publisher = NPMPublisher(
            directory=project_dir,
            registry=REGISTRY,
            auth=AuthSetup(mode=AuthMode.OIDC, provenance=True),
            access="public",
            dry_run=True,
        )
        assert publisher.build_publish_command("next") == [
            "publish", "--tag", "next", "--access", "public", "--provenance", "--dry-run",
        ]


class TestPublish:
    """Tests for publish (PUBLISH)."""

    @patch("publish_helper.publishers.npm.try_run")
    def test_success(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.return_value = ok("+ my-lib@1.2.0")

        result = publisher.publish("my-lib", "1.2.0")

        assert result.status == PublishStatus.SUCCESS
        assert result.published
        assert result.package_url == "https://www.npmjs.com/package/my-lib/v/1.2.0"

    @patch("publish_helper.publishers.npm.try_run")
    def test_dry_run_is_not_published(self, mock_run: MagicMock, project_dir: Path) -> None:
        mock_run.return_value = ok()
        publisher = NPMPublisher(directory=project_dir, registry=REGISTRY, dry_run=True)

        result = publisher.publish("my-lib", "1.2.0")

        assert result.status == PublishStatus.SUCCESS
        assert not result.published
        assert "--dry-run" in mock_run.call_args.args[0]

    @pytest.mark.parametrize(
        "message",
        [
            "npm error 403 You cannot publish over the previously published versions: 1.2.0.",
            "npm ERR! cannot publish over previously published version 1.2.0",
            "npm error Failed to save packument. A common cause is if you try to publish a new package",
        ],
    )
    @patch("publish_helper.publishers.npm.try_run")
    def test_race_condition_is_benign(self, mock_run: MagicMock, message: str, publisher: NPMPublisher) -> None:
        """A concurrent publish of the same version counts as published."""
        mock_run.return_value = failed(message)

        result = publisher.publish("my-lib", "1.2.0")

        assert result.status == PublishStatus.SKIPPED
        assert not result.published

    @patch("publish_helper.publishers.npm.try_run")
    def test_failure_raises_with_troubleshooting(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.return_value = failed("npm error code ENEEDAUTH\nnpm error need auth")

        with pytest.raises(PublishError) as exc_info:
            publisher.publish("my-lib", "1.2.0")

        assert exc_info.value.exit_code == 5
        assert "ENEEDAUTH" in (exc_info.value.fix_hint or "")

    @patch("publish_helper.publishers.npm.try_run")
    def test_npm_log_is_included(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        """The recovered npm log is part of the error details and classification."""
        mock_run.return_value = failed("npm error publish failed", log_contents="verbose stack E403 Forbidden")

        with pytest.raises(PublishError) as exc_info:
            publisher.publish("my-lib", "1.2.0")

        assert "E403 Forbidden" in (exc_info.value.details or "")
        assert (exc_info.value.fix_hint or "").startswith("Troubleshooting (403)")

    def test_is_benign_publish_error(self) -> None:
        assert is_benign_publish_error(failed("Cannot publish over previously published version"))
        assert not is_benign_publish_error(failed("E403 Forbidden"))


class TestRelease:
    """Tests for the CHECK -> PUBLISH -> TAG sequence."""

    @patch("publish_helper.publishers.npm.try_run")
    def test_new_version_is_published(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.side_effect = [NOT_FOUND, ok()]

        result = publisher.release("my-lib", "1.2.0", "next")

        assert result.status == PublishStatus.SUCCESS
        assert npm_calls(mock_run) == [
            ["view", "my-lib@1.2.0", "version"],
            ["publish", "--tag", "next"],
        ]

    @patch("publish_helper.publishers.npm.try_run")
    def test_published_version_only_updates_tag(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        """An exact match skips publishing and moves the dist-tag."""
        mock_run.side_effect = [ok("1.2.0"), ok()]

        result = publisher.release("my-lib", "1.2.0", "next")

        assert result.status == PublishStatus.SKIPPED
        assert npm_calls(mock_run) == [
            ["view", "my-lib@1.2.0", "version"],
            ["dist-tag", "add", "my-lib@1.2.0", "next"],
        ]

    @patch("publish_helper.publishers.npm.try_run")
    def test_published_version_without_tag(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.return_value = ok("1.2.0")

        result = publisher.release("my-lib", "1.2.0")

        assert result.status == PublishStatus.SKIPPED
        assert mock_run.call_count == 1

    @patch("publish_helper.publishers.npm.try_run")
    def test_dry_run_skips_tag(self, mock_run: MagicMock, project_dir: Path) -> None:
        mock_run.return_value = ok("1.2.0")
        publisher = NPMPublisher(directory=project_dir, registry=REGISTRY, dry_run=True)

        publisher.release("my-lib", "1.2.0", "next")

        assert mock_run.call_count == 1

    @patch("publish_helper.publishers.npm.try_run")
    def test_race_then_tag(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        """After a benign race the requested dist-tag is still applied."""
        mock_run.side_effect = [
            NOT_FOUND,
            failed("cannot publish over previously published version"),
            ok(),
        ]

        result = publisher.release("my-lib", "1.2.0", "next")

        assert result.status == PublishStatus.SKIPPED
        assert npm_calls(mock_run)[-1] == ["dist-tag", "add", "my-lib@1.2.0", "next"]

    @patch("publish_helper.publishers.npm.try_run")
    def test_dist_tag_failure_raises(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.side_effect = [ok("1.2.0"), failed("npm error code E401")]

        with pytest.raises(PublishError):
            publisher.release("my-lib", "1.2.0", "next")


class TestSetVersion:
    @patch("publish_helper.publishers.npm.try_run")
    def test_set_version(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.return_value = ok("v1.2.0-next.abc1234")
        publisher.set_version("1.2.0-next.abc1234")
        assert mock_run.call_args == call(
            ["npm", "version", "1.2.0-next.abc1234", "--no-git-tag-version", "--allow-same-version",
             "--registry", REGISTRY],
            cwd=publisher.directory,
            timeout=300,
            env={},
            unset_env=(),
            secrets=(),
        )

    @patch("publish_helper.publishers.npm.try_run")
    def test_set_version_failure(self, mock_run: MagicMock, publisher: NPMPublisher) -> None:
        mock_run.return_value = failed("npm error Invalid version")
        with pytest.raises(PublishError):
            publisher.set_version("not-a-version")

    def test_package_url_only_for_npmjs(self, project_dir: Path) -> None:
        publisher = NPMPublisher(directory=project_dir, registry="https://npm.pkg.github.com/")
        assert publisher.package_url("@scope/my-lib") is None
        npmjs = NPMPublisher(directory=project_dir, registry=REGISTRY)
        assert npmjs.package_url("@scope/my-lib") == "https://www.npmjs.com/package/@scope/my-lib"
