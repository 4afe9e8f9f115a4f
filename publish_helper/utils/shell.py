"""Safe subprocess execution utilities.

Provides shell command execution with:
- ANSI escape code stripping (prevents contamination in version strings)
- Environment variable injection and removal
- Tagged results (ExecResult) for callers that classify failures
- Recovery of the npm debug log referenced in failed npm output
"""

import logging
import os
import re
import shlex
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class ShellError(Exception):
    """Exception raised when a shell command fails.

    Attributes:
        cmd: The command that failed
        returncode: Exit code of the failed command
        stdout: Standard output (ANSI stripped)
        stderr: Standard error (ANSI stripped)
    """

    def __init__(
        self,
        cmd: str,
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"Command failed with exit code {returncode}: {cmd}")

    def __str__(self) -> str:
        parts = [f"Command failed: {self.cmd}"]
        parts.append(f"Exit code: {self.returncode}")
        if self.stderr:
            parts.append(f"Stderr: {self.stderr}")
        if self.stdout:
            parts.append(f"Stdout: {self.stdout}")
        return "\n".join(parts)


@dataclass
class ExecResult:
    """Tagged result of a process invocation.

    Attributes:
        success: True when the process exited with code 0
        cmd: The command line that was executed
        returncode: Process exit code (-1 if it could not be started)
        stdout: Captured standard output (ANSI stripped)
        stderr: Captured standard error (ANSI stripped)
        log_contents: Tail of the npm debug log referenced in the output, if any
    """

    success: bool
    cmd: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    log_contents: str | None = None

    @property
    def output(self) -> str:
        """Combined stderr and stdout, stderr first."""
        return "\n".join(part for part in (self.stderr, self.stdout) if part)

    def contains(self, *needles: str) -> bool:
        """Check (case-insensitively) whether any needle appears in the output or log."""
        haystack = self.output.lower()
        if self.log_contents:
            haystack += "\n" + self.log_contents.lower()
        return any(needle.lower() in haystack for needle in needles)


# Regex pattern for ANSI escape sequences
# Matches: ESC[...m, ESC[...;...m, and other control sequences
ANSI_PATTERN = re.compile(
    r"\x1b\[[0-9;]*[a-zA-Z]|\x1b\][^\x07]*\x07|\x1b[PX^_][^\x1b]*\x1b\\"
)

# Additional pattern for control characters that might slip through
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

# npm prints this line on failure: "npm error A complete log of this run can be found in: /path"
NPM_LOG_PATTERN = re.compile(r"A complete log of this run can be found in:\s*(\S+)")

# Lines kept from the tail of a recovered npm log
NPM_LOG_TAIL_LINES = 60


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences and control characters from text.

    Args:
        text: Input text potentially containing ANSI codes

    Returns:
        Clean text with all ANSI sequences removed
    """
    if not text:
        return ""
    result = ANSI_PATTERN.sub("", text)
    result = CONTROL_CHARS_PATTERN.sub("", result)
    return result


def _build_env(
    env: Mapping[str, str] | None,
    unset_env: Iterable[str] | None,
) -> dict[str, str]:
    merged_env = {**os.environ}
    if env:
        merged_env.update(env)
    if unset_env:
        for key in unset_env:
            merged_env.pop(key, None)
    return merged_env


def redact(text: str, secrets: Iterable[str] | None) -> str:
    """Mask secret values (tokens) in text meant for logs and errors."""
    for secret in secrets or ():
        if secret:
            text = text.replace(secret, "***")
    return text


def run(
    cmd: str | list[str],
    cwd: Path | None = None,
    capture: bool = True,
    check: bool = True,
    timeout: int = 300,
    env: Mapping[str, str] | None = None,
    unset_env: Iterable[str] | None = None,
    strip_output: bool = True,
    secrets: Iterable[str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute a command safely.

    Key security features:
    - Always uses shell=False to prevent shell injection
    - Strips ANSI codes from output by default
    - Masks secrets in the logged command and in ShellError
    - Raises ShellError with context on failure

    Args:
        cmd: Command to execute (string or list of arguments)
        cwd: Working directory for the command
        capture: Whether to capture stdout/stderr
        check: Whether to raise ShellError on non-zero exit
        timeout: Maximum execution time in seconds
        env: Additional environment variables
        unset_env: Environment variables removed from the child environment
        strip_output: Whether to strip ANSI codes from output
        secrets: Values masked wherever the command line is reported

    Returns:
        CompletedProcess with stdout/stderr (ANSI stripped if requested)

    Raises:
        ShellError: If command fails and check=True
        subprocess.TimeoutExpired: If command exceeds timeout
    """
    cmd_list = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
    cmd_line = redact(" ".join(cmd_list), secrets)
    logger.debug("$ %s", cmd_line)

    result = subprocess.run(
        cmd_list,
        cwd=cwd,
        capture_output=capture,
        text=True,
        timeout=timeout,
        env=_build_env(env, unset_env),
    )

    if capture and strip_output:
        result.stdout = strip_ansi(result.stdout) if result.stdout else ""
        result.stderr = strip_ansi(result.stderr) if result.stderr else ""

    if check and result.returncode != 0:
        raise ShellError(
            cmd=cmd_line,
            returncode=result.returncode,
            stdout=redact(result.stdout or "", secrets),
            stderr=redact(result.stderr or "", secrets),
        )

    return result


def recover_npm_log(output: str) -> str | None:
    """Read the tail of the npm debug log referenced in command output.

    Args:
        output: Combined stdout/stderr of a failed npm command

    Returns:
        Last lines of the log file, or None if no readable log is referenced
    """
    match = NPM_LOG_PATTERN.search(output or "")
    if not match:
        return None
    log_path = Path(match.group(1))
    try:
        lines = log_path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        logger.debug("npm log %s could not be read", log_path)
        return None
    return "\n".join(lines[-NPM_LOG_TAIL_LINES:])


def try_run(
    cmd: list[str],
    cwd: Path | None = None,
    timeout: int = 300,
    env: Mapping[str, str] | None = None,
    unset_env: Iterable[str] | None = None,
    secrets: Iterable[str] | None = None,
) -> ExecResult:
    """Execute a command and return a tagged result instead of raising.

    Used where the caller decides whether a failure is benign, e.g. npm
    publish race conditions or an already existing git tag.

    Args:
        cmd: Command to execute as a list of arguments
        cwd: Working directory for the command
        timeout: Maximum execution time in seconds
        env: Additional environment variables
        unset_env: Environment variables removed from the child environment
        secrets: Values masked in the reported command and output

    Returns:
        ExecResult describing the outcome
    """
    secrets = tuple(secrets or ())
    cmd_line = redact(" ".join(cmd), secrets)
    try:
        result = run(
            cmd,
            cwd=cwd,
            check=False,
            timeout=timeout,
            env=env,
            unset_env=unset_env,
            secrets=secrets,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        return ExecResult(success=False, cmd=cmd_line, returncode=-1, stderr=str(e))

    stdout = redact(result.stdout.strip(), secrets)
    stderr = redact(result.stderr.strip(), secrets)

    if result.returncode == 0:
        return ExecResult(success=True, cmd=cmd_line, returncode=0, stdout=stdout, stderr=stderr)

    log_contents = recover_npm_log(f"{stderr}\n{stdout}")
    return ExecResult(
        success=False,
        cmd=cmd_line,
        returncode=result.returncode,
        stdout=stdout,
        stderr=stderr,
        log_contents=redact(log_contents, secrets) if log_contents else None,
    )
