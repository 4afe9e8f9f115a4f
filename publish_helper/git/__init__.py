"""Git operations and utilities.

All operations use publish_helper.utils.shell for safe command execution
and raise GitError on failures.
"""

from publish_helper.git.operations import (
    TagResult,
    configure_identity,
    create_tag,
    fetch_history,
)
from publish_helper.git.queries import (
    find_last_push,
    get_commits_between,
    get_current_branch,
    get_diff,
    get_diff_between_times,
    get_diff_since_last_push,
    get_last_commit_message,
    get_short_sha,
    is_git_repository,
    is_shallow,
    tag_exists,
)

__all__ = [
    # Query operations
    "is_git_repository",
    "get_short_sha",
    "get_current_branch",
    "get_last_commit_message",
    "is_shallow",
    "tag_exists",
    "get_diff",
    "find_last_push",
    "get_diff_since_last_push",
    "get_commits_between",
    "get_diff_between_times",
    # Modification operations
    "TagResult",
    "configure_identity",
    "create_tag",
    "fetch_history",
]
