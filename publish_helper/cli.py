"""Command-line interface for the npm publish helper.

Provides commands for:
- publish: Publish a package directory to an npm registry
- compile-library: Bundle the library with vite
- prepare-publish: Sync npmdef files, bundle and compile
- update-npmdef: Sync the Unity package manifests
- send-webhook-message: Post a message to a webhook
- repository-dispatch: Trigger a GitHub workflow
- diff: Show (or summarize) the changes of the current CI event
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from publish_helper import __version__
from publish_helper.build import build_library, compile_typescript
from publish_helper.config import CIEnvironment, resolve_publish_options
from publish_helper.exceptions import ConfigurationError, PublishHelperError
from publish_helper.git import get_diff_between_times, get_diff_since_last_push
from publish_helper.github import dispatch_workflow
from publish_helper.llm import Summarizer
from publish_helper.notify import Notifier, send_webhook_message
from publish_helper.npmdef import update_npmdef
from publish_helper.utils.log import configure_logging
from publish_helper.workflow import PublishWorkflow, WorkflowResult

# Create Typer app
app = typer.Typer(
    name="npm-publish-helper",
    help="Publish npm packages from CI pipelines",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"npm-publish-helper version {__version__}")
        raise typer.Exit()


def fail(error: PublishHelperError) -> typer.Exit:
    """Print an error and build the matching exit."""
    console.print(f"[red]Error:[/red] {error.message}")
    if error.details:
        console.print(f"[dim]{error.details}[/dim]")
    if error.fix_hint:
        console.print(f"[yellow]Fix:[/yellow] {error.fix_hint}")
    return typer.Exit(code=error.exit_code)


def display_publish_result(result: WorkflowResult) -> None:
    """Display the outcome of a publish run in a table."""
    table = Table(title="Publish Result")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Package", result.package_name)
    table.add_row("Version", result.version)
    table.add_row("Status", result.publish.status.value)
    table.add_row("Published", "yes" if result.published else "no")
    if result.publish.dist_tag:
        table.add_row("Dist-tag", result.publish.dist_tag)
    if result.git_tag:
        table.add_row("Git tag", result.git_tag)
    if result.publish.package_url:
        table.add_row("URL", result.publish.package_url)

    console.print(table)
    if result.summary:
        console.print(Panel(result.summary, title="Changes"))


@app.callback()
def main(
    version: bool = typer.Option(  # noqa: B008
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(  # noqa: B008
        False,
        "--verbose",
        "-v",
        help="Show debug output, including every executed command",
    ),
) -> None:
    """Publish npm packages from CI pipelines.

    Handles versioning, registry authentication (token or OIDC), dist-tags,
    git tags and webhook notifications.
    """
    configure_logging(verbose=verbose)


@app.command()
def publish(
    directory: Path = typer.Argument(  # noqa: B008
        ...,
        help="Directory containing package.json",
    ),
    registry: str | None = typer.Option(  # noqa: B008
        None,
        "--registry",
        help="npm registry URL (default: https://registry.npmjs.org/)",
    ),
    tag: str | None = typer.Option(  # noqa: B008
        None,
        "--tag",
        help="Dist-tag to create/update (slash tags use their last segment)",
    ),
    access_token: str | None = typer.Option(  # noqa: B008
        None,
        "--access-token",
        help="npm access token",
    ),
    oidc: bool = typer.Option(  # noqa: B008
        False,
        "--oidc",
        help="Use OIDC trusted publishing (npm 11.5.1+)",
    ),
    access: str | None = typer.Option(  # noqa: B008
        None,
        "--access",
        help="Package access level: public or restricted",
    ),
    dry_run: bool = typer.Option(  # noqa: B008
        False,
        "--dry-run",
        "-n",
        help="Run npm publish --dry-run and skip dist-tag and git tag changes",
    ),
    create_tag: str | None = typer.Option(  # noqa: B008
        None,
        "--create-tag",
        "--create-tag-prefix",
        is_flag=False,
        flag_value="",
        help="Create and push a git tag for the published version, with an optional prefix, e.g. '--create-tag release/'",
    ),
    webhook: str | None = typer.Option(  # noqa: B008
        None,
        "--webhook",
        help="Discord, Slack or Teams webhook URL for notifications",
    ),
    override_name: str | None = typer.Option(  # noqa: B008
        None,
        "--override-name",
        help="Publish under this package name",
    ),
    override_version: str | None = typer.Option(  # noqa: B008
        None,
        "--override-version",
        help="Publish with this version",
    ),
    version_hash: bool = typer.Option(  # noqa: B008
        False,
        "--version+hash",
        help="Append the short commit hash to the version",
    ),
    version_tag: bool = typer.Option(  # noqa: B008
        False,
        "--version+tag",
        help="Append the dist-tag to the version",
    ),
    llm_api_key: str | None = typer.Option(  # noqa: B008
        None,
        "--llm-api-key",
        help="LLM API key for change summaries (default: $LLM_API_KEY)",
    ),
    prepare_package: bool = typer.Option(  # noqa: B008
        False,
        "--prepare-package",
        help="Run update-npmdef, vite build and tsc before publishing",
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Path to configuration file (default: search the package directory)",
    ),
) -> None:
    """Publish a package directory to an npm registry.

    Examples:
        publish ./dist --tag next --version+tag --version+hash
        publish . --oidc --access public --create-tag release/
    """
    ci = CIEnvironment()
    try:
        options = resolve_publish_options(
            directory,
            {
                "registry": registry,
                "tag": tag,
                "access_token": access_token,
                "use_oidc": oidc,
                "access": access,
                "dry_run": dry_run,
                "create_git_tag": create_tag is not None,
                "git_tag_prefix": create_tag or None,
                "webhook_url": webhook,
                "override_name": override_name,
                "override_version": override_version,
                "use_hash_in_version": version_hash,
                "use_tag_in_version": version_tag,
                "llm_api_key": llm_api_key,
                "prepare_package": prepare_package,
            },
            ci,
            config_path=config,
        )

        if options.dry_run:
            console.print(Panel("[yellow]DRY RUN MODE[/yellow] - Nothing will be published"))

        result = PublishWorkflow(options, ci).run()
        display_publish_result(result)

    except PublishHelperError as e:
        raise fail(e) from None


@app.command(name="compile-library")
def compile_library(
    library: str | None = typer.Option(  # noqa: B008
        None,
        "--library",
        help="Library name (default: last segment of the package name)",
    ),
) -> None:
    """Bundle the library in the current directory with vite."""
    try:
        build_library(Path.cwd(), name=library)
    except PublishHelperError as e:
        raise fail(e) from None


@app.command(name="prepare-publish")
def prepare_publish(
    library: str | None = typer.Option(  # noqa: B008
        None,
        "--library",
        help="Library name (default: last segment of the package name)",
    ),
) -> None:
    """Sync npmdef files, bundle with vite and compile with tsc."""
    project_root = Path.cwd()
    try:
        update_npmdef(project_root)
        build_library(project_root, name=library)
        compile_typescript(project_root)
    except PublishHelperError as e:
        raise fail(e) from None
    console.print("[green]Package prepared[/green]")


@app.command(name="update-npmdef")
def update_npmdef_command() -> None:
    """Copy name and version from package.json into unity/ manifests."""
    try:
        updated = update_npmdef(Path.cwd())
    except PublishHelperError as e:
        raise fail(e) from None
    for path in updated:
        console.print(f"[green]Updated[/green] {path}")


@app.command(name="send-webhook-message")
def send_webhook_message_command(
    url: str = typer.Argument(..., help="Webhook URL"),  # noqa: B008
    message: str = typer.Argument(..., help="Message to send"),  # noqa: B008
) -> None:
    """Post a message to a Discord, Slack or Teams webhook."""
    result = send_webhook_message(url, message)
    if not result.success:
        console.print(f"[red]Error:[/red] Webhook delivery failed: {result.error}")
        raise typer.Exit(code=1)
    console.print("[green]Message sent[/green]")


@app.command(name="repository-dispatch")
def repository_dispatch(
    access_token: str = typer.Option(  # noqa: B008
        ...,
        "--access-token",
        help="GitHub token with actions:write permission",
    ),
    repository: str = typer.Option(  # noqa: B008
        ...,
        "--repository",
        help="Target repository as owner/repo",
    ),
    workflow: str = typer.Option(  # noqa: B008
        ...,
        "--workflow",
        help="Workflow file name or ID",
    ),
    ref: str = typer.Option(  # noqa: B008
        "main",
        "--ref",
        help="Branch or tag to run the workflow on",
    ),
    inputs: str | None = typer.Option(  # noqa: B008
        None,
        "--inputs",
        help="Workflow inputs as a JSON object",
    ),
    webhook: str | None = typer.Option(  # noqa: B008
        None,
        "--webhook",
        help="Webhook URL for notifications",
    ),
) -> None:
    """Trigger a workflow_dispatch run of a GitHub workflow."""
    notifier = Notifier(webhook)
    try:
        workflow_inputs = None
        if inputs:
            try:
                workflow_inputs = json.loads(inputs)
            except json.JSONDecodeError as e:
                raise ConfigurationError("--inputs is not valid JSON", details=str(e)) from e
            if not isinstance(workflow_inputs, dict):
                raise ConfigurationError("--inputs must be a JSON object")

        dispatch_workflow(access_token, repository, workflow, ref=ref, inputs=workflow_inputs)
    except PublishHelperError as e:
        notifier.send_error(f"**Workflow dispatch failed** for `{repository}`: {e.message}", e.details)
        raise fail(e) from None

    notifier.send(f"Triggered workflow `{workflow}` on `{repository}@{ref}`")
    console.print(f"[green]Triggered[/green] {workflow} on {repository}@{ref}")


@app.command()
def diff(
    directory: Path = typer.Option(  # noqa: B008
        Path("."),
        "--directory",
        "-d",
        help="Repository directory",
    ),
    start_time: str | None = typer.Option(  # noqa: B008
        None,
        "--start-time",
        help="Only changes committed after this time (e.g. '2024-05-01')",
    ),
    end_time: str | None = typer.Option(  # noqa: B008
        None,
        "--end-time",
        help="Only changes committed before this time",
    ),
    llm_api_key: str | None = typer.Option(  # noqa: B008
        None,
        "--llm-api-key",
        help="Summarize the diff with this LLM API key (default: $LLM_API_KEY)",
    ),
    webhook: str | None = typer.Option(  # noqa: B008
        None,
        "--webhook",
        help="Send the result to this webhook",
    ),
) -> None:
    """Show the changes of the current CI event, or of a time range."""
    ci = CIEnvironment()
    notifier = Notifier(webhook)
    try:
        if start_time or end_time:
            changes = get_diff_between_times(start_time, end_time, cwd=directory)
        else:
            changes = get_diff_since_last_push(ci, cwd=directory)
    except PublishHelperError as e:
        raise fail(e) from None

    if not changes:
        console.print("[yellow]No changes found[/yellow]")
        return

    api_key = llm_api_key or ci.llm_api_key
    if not api_key:
        console.print(changes, markup=False, highlight=False)
        return

    summary = Summarizer(api_key).summarize(changes, "changelog")
    if not summary.success:
        console.print(f"[red]Error:[/red] Summary failed ({summary.status}): {summary.error}")
        raise typer.Exit(code=1)

    console.print(Panel(summary.summary, title="Changes"))
    notifier.send(summary.summary)


if __name__ == "__main__":
    app()
