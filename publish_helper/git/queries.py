"""Git state query operations.

Read-only git operations used by the publish run and the diff command.
All functions use publish_helper.utils.shell.run() for command execution.
"""

import logging
import subprocess
from pathlib import Path

from publish_helper.config.models import CIEnvironment
from publish_helper.exceptions import GitError
from publish_helper.utils.shell import ShellError, run

logger = logging.getLogger(__name__)

# Failures to start or finish a git process
PROCESS_ERRORS = (OSError, subprocess.TimeoutExpired)

# Hash of the empty tree, used to diff a root commit
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

PUSH_REFLOG_MARKER = "update by push"


def is_git_repository(cwd: Path | None = None) -> bool:
    """Check whether cwd is inside a git work tree."""
    try:
        result = run(["git", "rev-parse", "--is-inside-work-tree"], cwd=cwd, check=False)
    except PROCESS_ERRORS:
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def get_short_sha(cwd: Path | None = None) -> str | None:
    """Get the abbreviated hash of HEAD.

    Args:
        cwd: Working directory (defaults to current directory)

    Returns:
        Short commit hash, or None outside a repository or without commits
    """
    try:
        result = run(["git", "rev-parse", "--short", "HEAD"], cwd=cwd, check=False)
    except PROCESS_ERRORS:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def get_current_branch(cwd: Path | None = None) -> str:
    """Get the name of the current git branch.

    Args:
        cwd: Working directory (defaults to current directory)

    Returns:
        Current branch name (e.g., "main"), or "HEAD" when detached

    Raises:
        GitError: If unable to determine current branch
    """
    try:
        result = run(["git", "branch", "--show-current"], cwd=cwd, check=True)
        branch = result.stdout.strip()
        if not branch:
            # Fallback for detached HEAD state
            result = run(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd, check=True)
            branch = result.stdout.strip()
        return branch
    except (ShellError, *PROCESS_ERRORS) as e:
        raise GitError(
            "Failed to get current branch name",
            details=str(e),
            fix_hint="Ensure you are in a git repository with at least one commit",
        ) from e


def get_last_commit_message(cwd: Path | None = None) -> str | None:
    """Get the full message of HEAD, or None if unavailable."""
    try:
        result = run(["git", "log", "-1", "--pretty=%B"], cwd=cwd, check=False)
    except PROCESS_ERRORS:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def is_shallow(cwd: Path | None = None) -> bool:
    """Check if the repository is a shallow clone.

    Raises:
        GitError: If git cannot be run
    """
    try:
        result = run(["git", "rev-parse", "--is-shallow-repository"], cwd=cwd, check=False)
    except PROCESS_ERRORS as e:
        raise GitError("Failed to check for a shallow clone", details=str(e)) from e
    return result.stdout.strip() == "true"


def tag_exists(name: str, cwd: Path | None = None) -> bool:
    """Check if a tag exists locally."""
    try:
        result = run(["git", "tag", "--list", name], cwd=cwd, check=False)
    except PROCESS_ERRORS as e:
        raise GitError(f"Failed to list tags matching '{name}'", details=str(e)) from e
    return result.returncode == 0 and name in result.stdout.split()


def get_diff(start: str, end: str, cwd: Path | None = None) -> str | None:
    """Get the diff between two revisions.

    Args:
        start: Start revision (exclusive)
        end: End revision
        cwd: Working directory

    Returns:
        Diff text, or None if there are no changes

    Raises:
        GitError: If git diff fails
    """
    try:
        result = run(["git", "diff", f"{start}..{end}"], cwd=cwd, check=True)
    except (ShellError, *PROCESS_ERRORS) as e:
        raise GitError(
            f"Failed to diff {start}..{end}",
            details=str(e),
            fix_hint="Ensure both revisions exist locally (fetch more history if needed)",
        ) from e
    return result.stdout.strip() or None


def find_last_push(branch: str, cwd: Path | None = None) -> str | None:
    """Find the commit recorded by the last 'update by push' reflog entry.

    Args:
        branch: Remote-tracking branch (e.g. "origin/main")
        cwd: Working directory

    Returns:
        Abbreviated commit hash, or None if no push is recorded
    """
    try:
        result = run(
            ["git", "reflog", "show", branch, "--pretty=format:%h %gs"],
            cwd=cwd,
            check=False,
        )
    except PROCESS_ERRORS as e:
        raise GitError(f"Failed to read the reflog of {branch}", details=str(e)) from e
    if result.returncode != 0 or not result.stdout.strip():
        logger.debug("No reflog entries found for branch %s", branch)
        return None

    for line in result.stdout.splitlines():
        if PUSH_REFLOG_MARKER in line:
            return line.split(" ", 1)[0]

    logger.debug("No last push found for branch %s", branch)
    return None


def get_diff_since_last_push(
    ci: CIEnvironment,
    cwd: Path | None = None,
    remote: str = "origin",
) -> str | None:
    """Get the changes of the current CI event.

    Resolution order:
    1. Pull request: origin/<base ref>..<head ref>
    2. Push with a known 'before' commit: <before>..<sha>
    3. Last 'update by push' reflog entry of origin/<branch>..HEAD
    4. HEAD~1..HEAD

    Args:
        ci: CI environment
        cwd: Repository directory
        remote: Remote name

    Returns:
        Diff text, or None if there are no changes
    """
    from publish_helper.git.operations import fetch_history

    if ci.is_pull_request and ci.github_base_ref:
        head = ci.github_head_ref or "HEAD"
        logger.debug("Using base ref %s and head ref %s", ci.github_base_ref, head)
        return get_diff(f"{remote}/{ci.github_base_ref}", head, cwd=cwd)

    push_range = ci.push_range
    if push_range:
        logger.debug("Using before SHA %s and after SHA %s", *push_range)
        return get_diff(push_range[0], push_range[1], cwd=cwd)

    fetch_history(remote=remote, cwd=cwd)

    branch = get_current_branch(cwd=cwd)
    last_push = find_last_push(f"{remote}/{branch}", cwd=cwd)
    if last_push is None:
        logger.debug("Falling back to HEAD~1..HEAD")
        return get_diff("HEAD~1", "HEAD", cwd=cwd)

    return get_diff(last_push, "HEAD", cwd=cwd)


def get_commits_between(
    start_time: str | None,
    end_time: str | None,
    cwd: Path | None = None,
) -> list[str]:
    """List commits in a time window, oldest first.

    Args:
        start_time: Lower bound understood by git (e.g. "2024-05-01", "2 days ago")
        end_time: Upper bound understood by git
        cwd: Working directory

    Returns:
        Full commit hashes, oldest first

    Raises:
        GitError: If git rev-list fails
    """
    cmd = ["git", "rev-list", "--reverse"]
    if start_time:
        cmd.append(f"--since={start_time}")
    if end_time:
        cmd.append(f"--until={end_time}")
    cmd.append("HEAD")

    try:
        result = run(cmd, cwd=cwd, check=True)
    except (ShellError, *PROCESS_ERRORS) as e:
        raise GitError(
            "Failed to list commits in time range",
            details=str(e),
            fix_hint="Use dates git understands, e.g. '2024-05-01' or '3 days ago'",
        ) from e
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def get_diff_between_times(
    start_time: str | None,
    end_time: str | None,
    cwd: Path | None = None,
) -> str | None:
    """Get the combined diff of all commits in a time window.

    Returns:
        Diff text, or None if the window holds no commits or no changes
    """
    commits = get_commits_between(start_time, end_time, cwd=cwd)
    if not commits:
        logger.info("No commits between %s and %s", start_time or "-", end_time or "-")
        return None

    oldest, newest = commits[0], commits[-1]
    try:
        parent = run(["git", "rev-parse", "--verify", "--quiet", f"{oldest}^"], cwd=cwd, check=False)
    except PROCESS_ERRORS as e:
        raise GitError(f"Failed to resolve the parent of {oldest}", details=str(e)) from e
    start = parent.stdout.strip() if parent.returncode == 0 else EMPTY_TREE_SHA
    return get_diff(start, newest, cwd=cwd)
