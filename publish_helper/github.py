"""GitHub Actions integration.

- Step outputs appended to the GITHUB_OUTPUT file
- The event payload referenced by GITHUB_EVENT_PATH
- Triggering a workflow_dispatch run through the REST API
"""

import json
import logging
from pathlib import Path
from typing import Any

from publish_helper.config.models import CIEnvironment
from publish_helper.exceptions import ConfigurationError, NetworkError
from publish_helper.utils.http import post_json

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"


class OutputWriter:
    """Appends key=value lines to the CI output file.

    Without an output file (local runs) values are only logged.
    """

    def __init__(self, path: Path | None) -> None:
        self.path = path

    def set(self, key: str, value: object) -> None:
        if isinstance(value, bool):
            text = "true" if value else "false"
        else:
            text = str(value)
        if "\n" in text:
            raise ConfigurationError(
                f"Output '{key}' must be a single line",
                details=f"Value: {text!r}",
                fix_hint="Remove line breaks from the value (e.g. --override-name)",
            )

        logger.debug("Output %s=%s", key, text)
        if self.path is None:
            return
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(f"{key}={text}\n")


def load_event_data(ci: CIEnvironment) -> dict[str, Any] | None:
    """Load the webhook payload of the triggering event.

    Returns:
        Parsed event JSON, or None when unavailable or unreadable
    """
    if ci.github_event_path is None:
        logger.debug("GITHUB_EVENT_PATH is not set, skipping event data")
        return None
    try:
        with open(ci.github_event_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to load GitHub event data from %s: %s", ci.github_event_path, e)
        return None
    return data if isinstance(data, dict) else None


def get_head_commit_message(ci: CIEnvironment) -> str | None:
    """Return the head commit message of a push event, if present."""
    event = load_event_data(ci)
    if not event:
        return None
    head_commit = event.get("head_commit")
    if isinstance(head_commit, dict):
        message = head_commit.get("message")
        return str(message) if message else None
    return None


def dispatch_workflow(
    access_token: str,
    repository: str,
    workflow: str,
    ref: str = "main",
    inputs: dict[str, Any] | None = None,
    api_url: str = GITHUB_API_URL,
) -> None:
    """Trigger a workflow_dispatch event.

    Args:
        access_token: Token with actions:write on the repository
        repository: "owner/repo"
        workflow: Workflow file name (e.g. "release.yml") or numeric ID
        ref: Branch or tag to run the workflow on
        inputs: Workflow inputs
        api_url: GitHub API base URL

    Raises:
        ConfigurationError: If the repository is not in owner/repo form
        NetworkError: If the API does not accept the dispatch
    """
    if repository.count("/") != 1:
        raise ConfigurationError(
            f"Invalid repository: '{repository}'",
            fix_hint="Use the 'owner/repo' form",
        )

    url = f"{api_url.rstrip('/')}/repos/{repository}/actions/workflows/{workflow}/dispatches"
    payload: dict[str, Any] = {"ref": ref}
    if inputs:
        payload["inputs"] = inputs

    logger.info("Dispatching workflow %s on %s@%s", workflow, repository, ref)
    response = post_json(
        url,
        payload,
        headers={
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        },
    )

    if response.network_error:
        raise NetworkError(
            "Could not reach the GitHub API",
            details=response.body,
        )
    if not response.ok:
        raise NetworkError(
            f"Workflow dispatch failed with HTTP {response.status}",
            details=response.body,
            fix_hint="Check the token's actions:write permission and the workflow's workflow_dispatch trigger",
        )
