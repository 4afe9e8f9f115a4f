"""Publish workflow orchestration.

Coordinates a single publish run:
1. Validate the package directory
2. Optionally prepare the package (npmdef sync, vite build, tsc)
3. Configure registry authentication
4. Apply overrides and the version policy to package.json
5. Publish (CHECK -> PUBLISH -> TAG)
6. Optionally create and push a git tag
7. Report outputs and notifications

package.json is restored on every exit path.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console

from publish_helper.build import build_library, compile_typescript
from publish_helper.config.models import CIEnvironment, PublishOptions
from publish_helper.exceptions import GitError, PublishHelperError
from publish_helper.git import operations as git_ops
from publish_helper.git import queries as git_queries
from publish_helper.github import OutputWriter, get_head_commit_message
from publish_helper.llm import Summarizer
from publish_helper.manifest import (
    apply_overrides,
    load_manifest,
    manifest_guard,
    resolve_local_dependencies,
)
from publish_helper.notify import Notifier
from publish_helper.npmdef import update_npmdef
from publish_helper.publishers import NPMPublisher, PublishResult, setup_auth
from publish_helper.utils.version import compute_next_version, format_git_tag

logger = logging.getLogger(__name__)


@dataclass
class WorkflowResult:
    """Outcome of a publish run."""

    package_name: str
    version: str
    publish: PublishResult
    git_tag: str | None = None
    summary: str | None = None

    @property
    def published(self) -> bool:
        return self.publish.published


class PublishWorkflow:
    """Runs the publish pipeline for one package directory."""

    def __init__(
        self,
        options: PublishOptions,
        ci: CIEnvironment,
        notifier: Notifier | None = None,
        summarizer: Summarizer | None = None,
        outputs: OutputWriter | None = None,
        console: Console | None = None,
    ) -> None:
        self.options = options
        self.ci = ci
        self.notifier = notifier or Notifier(options.webhook_url)
        self.summarizer = summarizer or Summarizer(options.llm_api_key)
        self.outputs = outputs or OutputWriter(ci.github_output)
        self.console = console or Console(stderr=True)

    @property
    def directory(self) -> Path:
        return self.options.package_directory

    def _step(self, name: str) -> None:
        self.console.print(f"[bold cyan]>[/bold cyan] {name}...")

    def run(self) -> WorkflowResult:
        """Execute the publish run.

        Raises:
            PublishHelperError: On any fatal failure (after notifying the webhook)
        """
        # Preconditions are checked before anything is written
        manifest = load_manifest(self.directory)
        display_name = self.options.override_name or manifest.name

        try:
            return self._run(display_name)
        except PublishHelperError as e:
            self.notifier.send_error(
                f"**Publish failed** for `{display_name}`: {e.message}",
                "\n\n".join(part for part in (e.details, e.fix_hint) if part),
            )
            raise

    def _run(self, display_name: str) -> WorkflowResult:
        options = self.options

        self.outputs.set("build-time", datetime.now(timezone.utc).isoformat())
        start = f"Publishing `{display_name}` to {options.registry}"
        if options.dry_run:
            start += " (dry run)"
        commit_message = get_head_commit_message(self.ci)
        if commit_message:
            start += f"\nCommit: {commit_message.splitlines()[0]}"
        self.notifier.send(start)

        if options.prepare_package:
            self._step("Preparing package")
            update_npmdef(self.directory)
            build_library(self.directory)
            compile_typescript(self.directory)

        self._step("Configuring authentication")
        auth = setup_auth(options, self.ci)
        publisher = NPMPublisher(
            directory=self.directory,
            registry=options.registry,
            auth=auth,
            access=options.access,
            dry_run=options.dry_run,
        )

        with manifest_guard(self.directory):
            self._step("Preparing package.json")
            manifest = load_manifest(self.directory)
            changed = apply_overrides(manifest, options.override_name, options.override_version)
            if resolve_local_dependencies(manifest):
                changed = True
            if changed:
                manifest.save()

            short_sha = (
                git_queries.get_short_sha(cwd=self.directory) if options.use_hash_in_version else None
            )
            if options.use_hash_in_version and not short_sha:
                logger.warning("No commit hash available, version will not include a hash")

            version = compute_next_version(
                manifest.version,
                short_sha=short_sha,
                tag=options.tag,
                use_tag_in_version=options.use_tag_in_version,
                use_hash_in_version=options.use_hash_in_version,
            )
            if version != manifest.version:
                logger.info("Version: %s -> %s", manifest.version, version)
                publisher.set_version(version)

            name = manifest.name
            self.outputs.set("package-name", name)
            self.outputs.set("package-version", version)

            self._step(f"Publishing {name}@{version}")
            result = publisher.release(name, version, options.tag)
            self.outputs.set("package-published", result.published)

        git_tag = None
        if options.create_git_tag:
            git_tag = self._create_git_tag(version)

        summary = self._summarize_changes() if result.published else None

        self.notifier.send(self._format_success(result, git_tag, summary))
        return WorkflowResult(
            package_name=name,
            version=version,
            publish=result,
            git_tag=git_tag,
            summary=summary,
        )

    def _create_git_tag(self, version: str) -> str | None:
        tag_name = format_git_tag(self.options.git_tag_prefix, version)
        if self.options.dry_run:
            logger.info("Dry run: would create git tag %s", tag_name)
            return None

        self._step(f"Creating git tag {tag_name}")
        git_ops.configure_identity(self.ci, cwd=self.directory)
        git_ops.create_tag(tag_name, message=f"Release {version}", cwd=self.directory)
        return tag_name

    def _summarize_changes(self) -> str | None:
        """Summarize the commits of this CI event; failures are logged only."""
        if not self.options.llm_api_key:
            return None
        try:
            diff = git_queries.get_diff_since_last_push(self.ci, cwd=self.directory)
        except GitError as e:
            logger.warning("Could not collect changes for the summary: %s", e.message)
            return None
        if not diff:
            return None

        summary = self.summarizer.summarize(diff, "commit")
        if not summary.success:
            logger.warning("Change summary failed (%s): %s", summary.status, summary.error)
            return None
        return summary.summary

    def _format_success(
        self,
        result: PublishResult,
        git_tag: str | None,
        summary: str | None,
    ) -> str:
        lines = [f"**{result.message}**"]
        if result.dist_tag:
            lines.append(f"Dist-tag: `{result.dist_tag}`")
        if result.package_url:
            lines.append(result.package_url)
        if git_tag:
            lines.append(f"Git tag: `{git_tag}`")
        if summary:
            lines.extend(["", summary])
        return "\n".join(lines)
