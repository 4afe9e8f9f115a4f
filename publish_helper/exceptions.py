"""Custom exception hierarchy for the publish helper.

Exit codes follow Unix conventions:
- 1: General error
- 2: Configuration error
- 3: Validation error
- 4: Git error
- 5: Publish error
- 6: Authentication error
- 7: Network error
- 9: Build error
"""


class PublishHelperError(Exception):
    """Base exception for all publish helper errors.

    Each subclass defines an exit_code for CLI error reporting.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        details: str | None = None,
        fix_hint: str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Brief error message
            details: Detailed explanation of what went wrong
            fix_hint: Suggested command or action to fix the issue
        """
        super().__init__(message)
        self.message = message
        self.details = details
        self.fix_hint = fix_hint

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"\nDetails: {self.details}")
        if self.fix_hint:
            parts.append(f"\nFix: {self.fix_hint}")
        return "".join(parts)


class ConfigurationError(PublishHelperError):
    """Configuration errors.

    Raised when:
    - Config file has invalid syntax (YAML/TOML)
    - Option values fail validation
    - The package directory or package.json is missing
    - A dist-tag cannot be sanitized
    """

    exit_code = 2


class ValidationError(PublishHelperError):
    """Invalid input values, such as malformed version strings."""

    exit_code = 3


class GitError(PublishHelperError):
    """Git operation failures.

    Raised when:
    - Git commands fail
    - Tag creation fails
    - Push operations fail
    """

    exit_code = 4


class PublishError(PublishHelperError):
    """Publishing failures.

    Raised when:
    - npm publish fails with a non-benign error
    - npm version or dist-tag commands fail
    """

    exit_code = 5


class AuthenticationError(PublishHelperError):
    """Registry authentication setup failures.

    Raised when:
    - npm is too old for OIDC trusted publishing
    - The workflow lacks the id-token permission
    - The auth token cannot be written to the npm config
    """

    exit_code = 6


class NetworkError(PublishHelperError):
    """Network/API failures that must abort the command.

    Webhook and LLM failures are never raised; they are returned as
    results. This is used for calls whose success is the whole point
    of the command, such as triggering a workflow dispatch.
    """

    exit_code = 7


class BuildError(PublishHelperError):
    """Library build failures.

    Raised when:
    - vite or tsc exit with a non-zero code
    - A build exceeds its timeout
    """

    exit_code = 9
