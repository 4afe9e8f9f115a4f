"""Git state modification operations.

Operations that modify repository state: identity configuration, history
fetching, and release tag creation. Commands are run through
publish_helper.utils.shell; failures raise GitError unless they mean the
desired state already holds.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from publish_helper.config.models import CIEnvironment
from publish_helper.exceptions import GitError
from publish_helper.git.queries import PROCESS_ERRORS, is_shallow
from publish_helper.utils.shell import ShellError, run, try_run

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "github-actions[bot]"
DEFAULT_USER_EMAIL = "41898282+github-actions[bot]@users.noreply.github.com"

# git tag: "fatal: tag 'x' already exists"
# git push: "! [rejected] x -> x (already exists)"
TAG_EXISTS_MARKERS = ("already exists",)


@dataclass
class TagResult:
    """Outcome of creating and pushing a tag.

    Attributes:
        name: Tag name
        created: True if the tag was created locally by this run
        pushed: True if the push updated the remote
        already_existed: True if the tag was already in place (local or remote)
    """

    name: str
    created: bool = False
    pushed: bool = False
    already_existed: bool = False


def configure_identity(ci: CIEnvironment, cwd: Path | None = None) -> tuple[str, str]:
    """Set the committer identity used for annotated tags.

    Uses GIT_USER_NAME/GIT_USER_EMAIL, then GITHUB_ACTOR, then the GitHub
    Actions bot identity.

    Returns:
        The (name, email) that was configured

    Raises:
        GitError: If git config fails
    """
    name = ci.git_user_name or ci.github_actor or DEFAULT_USER_NAME
    if ci.git_user_email:
        email = ci.git_user_email
    elif ci.github_actor and not ci.git_user_name:
        email = f"{ci.github_actor}@users.noreply.github.com"
    else:
        email = DEFAULT_USER_EMAIL

    try:
        run(["git", "config", "user.name", name], cwd=cwd, check=True)
        run(["git", "config", "user.email", email], cwd=cwd, check=True)
    except (ShellError, *PROCESS_ERRORS) as e:
        raise GitError(
            "Failed to configure git identity",
            details=str(e),
            fix_hint="Ensure the package directory is inside a git repository",
        ) from e

    logger.debug("Git identity: %s <%s>", name, email)
    return name, email


def fetch_history(remote: str = "origin", cwd: Path | None = None) -> None:
    """Fetch latest changes, unshallowing the clone first if needed.

    Failures are logged, not raised: the caller falls back to local history.
    """
    try:
        if is_shallow(cwd=cwd):
            logger.debug("Repository is shallow, fetching more history...")
            run(["git", "fetch", "--unshallow", "--no-tags", remote], cwd=cwd, check=True)
        else:
            logger.debug("Repository is complete, fetching latest changes...")
            run(["git", "fetch", "--no-tags", remote], cwd=cwd, check=True)
    except ShellError as e:
        logger.warning("Failed to fetch from %s: %s", remote, e.stderr or e)
    except (GitError, *PROCESS_ERRORS) as e:
        logger.warning("Failed to fetch from %s: %s", remote, e)


def create_tag(
    name: str,
    message: str | None = None,
    remote: str = "origin",
    cwd: Path | None = None,
) -> TagResult:
    """Create an annotated tag at HEAD and push it.

    An existing local tag or a rejected push of an existing remote tag is
    treated as already satisfied.

    Args:
        name: Tag name (e.g., "release/1.2.0")
        message: Tag annotation message (defaults to tag name)
        remote: Remote to push to
        cwd: Working directory

    Returns:
        TagResult describing what happened

    Raises:
        GitError: If tag creation or push fails for any other reason
    """
    result = TagResult(name=name)

    created = try_run(["git", "tag", "-a", name, "-m", message or name], cwd=cwd)
    if created.success:
        result.created = True
        logger.info("Created git tag %s", name)
    elif created.contains(*TAG_EXISTS_MARKERS):
        result.already_existed = True
        logger.info("Git tag %s already exists locally", name)
    else:
        raise GitError(
            f"Failed to create git tag '{name}'",
            details=created.output,
            fix_hint="Ensure the directory is a git repository with at least one commit",
        )

    pushed = try_run(["git", "push", remote, f"refs/tags/{name}"], cwd=cwd)
    if pushed.success:
        result.pushed = True
        logger.info("Pushed git tag %s to %s", name, remote)
    elif pushed.contains(*TAG_EXISTS_MARKERS):
        result.already_existed = True
        logger.info("Git tag %s already exists on %s", name, remote)
    else:
        raise GitError(
            f"Failed to push tag '{name}' to remote '{remote}'",
            details=pushed.output,
            fix_hint="Ensure the workflow has 'contents: write' permission and the remote exists",
        )

    return result
