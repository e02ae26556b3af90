"""Typer CLI entry point for ReleaseForge."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from releaseforge.core.config import settings
from releaseforge.errors import ReleaseForgeError
from releaseforge.models.reports import RemediationStatus
from releaseforge.pipeline.orchestrator import GenerationOptions
from releaseforge.service import EnrichmentService, build_service
from releaseforge.tools.registry import list_tools

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="releaseforge",
    help="Turn terse release notes into validated feature highlights and infographics.",
    no_args_is_help=True,
)


def _fail(exc: ReleaseForgeError) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {exc.message}")
    if exc.suggestion:
        err_console.print(f"[dim]{exc.suggestion}[/dim]")
    return typer.Exit(code=1)


def _service() -> EnrichmentService:
    try:
        return build_service(settings)
    except ReleaseForgeError as exc:
        raise _fail(exc) from exc


@app.command()
def generate(
    tool: Annotated[str, typer.Option("--tool", "-t", help="Tool id, e.g. claude-code.")],
    version: Annotated[
        Optional[str],
        typer.Option("--version", "-v", help="Release version (default: latest)."),
    ] = None,
    count: Annotated[int, typer.Option("--count", "-n", help="Maximum features to extract.")] = 6,
    force: Annotated[bool, typer.Option("--force", help="Regenerate even if an infographic exists.")] = False,
    all_formats: Annotated[bool, typer.Option("--all-formats", help="Also render 9:16.")] = False,
    prompt_only: Annotated[bool, typer.Option("--prompt-only", help="Write prompts, skip image generation.")] = False,
    no_update: Annotated[bool, typer.Option("--no-update", help="Do not touch the release store.")] = False,
    use_stored_source: Annotated[
        bool,
        typer.Option("--use-stored-source", help="Reuse sourceContent from a previous features file."),
    ] = False,
) -> None:
    """Generate the feature set and infographic for one release."""
    options = GenerationOptions(
        count=count,
        force=force,
        generate_image=not prompt_only,
        update_releases=not no_update,
        all_formats=all_formats,
        use_stored_source=use_stored_source,
    )
    service = _service()
    try:
        result = asyncio.run(service.generate(tool, version, options))
    except ReleaseForgeError as exc:
        raise _fail(exc) from exc

    if result.skipped:
        console.print(f"[yellow]Skipped[/yellow] {result.tool} {result.version}: infographic already exists")
        return
    if not result.success:
        err_console.print(f"[red]Failed[/red] {result.tool} {result.version}: {result.error}")
        if result.failure_report:
            err_console.print(f"[dim]Failure report: {result.failure_report}[/dim]")
        raise typer.Exit(code=1)

    console.print(f"[green]✅ {result.tool} {result.version}[/green] ({result.source_origin.value})")
    if result.feature_set:
        for feature in result.feature_set.features:
            console.print(f"  {feature.icon} [bold]{feature.name}[/bold] — {feature.description}")
    for ref in result.artifacts:
        console.print(f"  [cyan]{ref.format}[/cyan] {ref.path}")


@app.command(name="generate-missing")
def generate_missing(
    max_age_days: Annotated[int, typer.Option("--max-age-days", help="Only releases newer than this.")] = 7,
    count: Annotated[int, typer.Option("--count", "-n", help="Maximum features to extract.")] = 6,
    all_formats: Annotated[bool, typer.Option("--all-formats", help="Also render 9:16.")] = False,
) -> None:
    """Generate infographics for every recent release that lacks one."""
    service = _service()
    options = GenerationOptions(count=count, all_formats=all_formats)
    try:
        batch = asyncio.run(service.generate_all_missing(max_age_days, options))
    except ReleaseForgeError as exc:
        raise _fail(exc) from exc

    table = Table(title="Batch summary")
    table.add_column("Outcome", style="bold")
    table.add_column("Release")
    table.add_column("Error", style="dim")
    for entry in batch.success:
        table.add_row("[green]success[/green]", f"{entry.tool} {entry.version}", "")
    for entry in batch.skipped:
        table.add_row("[yellow]skipped[/yellow]", f"{entry.tool} {entry.version}", "")
    for entry in batch.failed:
        table.add_row("[red]failed[/red]", f"{entry.tool} {entry.version}", entry.error or "")
    console.print(table)
    raise typer.Exit(code=batch.exit_code)


@app.command()
def validate(
    tool: Annotated[Optional[str], typer.Option("--tool", "-t", help="Tool id to validate.")] = None,
    version: Annotated[
        Optional[str],
        typer.Option("--version", "-v", help="Specific version (default: latest)."),
    ] = None,
    all_releases: Annotated[bool, typer.Option("--all", help="Validate all releases with infographics.")] = False,
) -> None:
    """Audit persisted features against their source notes."""
    service = _service()
    try:
        summary = asyncio.run(service.validate(tool, version, all_releases))
    except ReleaseForgeError as exc:
        raise _fail(exc) from exc

    console.print(
        f"✅ Verified: {summary.verified}   🟡 Inferred: {summary.inferred}   "
        f"❌ Fabricated: {summary.fabricated}   📈 {summary.verified_pct}% verified"
    )
    raise typer.Exit(code=summary.exit_code)


@app.command()
def remediate(
    tool: Annotated[str, typer.Option("--tool", "-t", help="Tool id.")],
    version: Annotated[str, typer.Option("--version", "-v", help="Release version.")],
    issue: Annotated[Optional[str], typer.Option("--issue", help="Tracking issue number.")] = None,
    attempt: Annotated[int, typer.Option("--attempt", help="Remediation attempt counter.")] = 1,
    result_file: Annotated[
        Optional[Path],
        typer.Option("--result-file", help="Where to write the remediation result JSON."),
    ] = None,
) -> None:
    """Best-effort recovery for a release with an inaccurate infographic."""
    service = _service()
    try:
        result = asyncio.run(service.remediate(tool, version, issue, attempt, result_file))
    except ReleaseForgeError as exc:
        raise _fail(exc) from exc

    colour = {"fixed": "green", "failed": "yellow", "error": "red"}[result.status.value]
    console.print(f"[{colour}]{result.status.value}[/{colour}] {result.analysis}")
    console.print(result.actions)
    if result.status == RemediationStatus.ERROR:
        raise typer.Exit(code=1)


@app.command()
def tools() -> None:
    """List tracked tools."""
    table = Table(title="Tracked tools")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Repository", style="dim")
    for tool in list_tools():
        table.add_row(tool.id, tool.display_name, tool.repo or "")
    console.print(table)


if __name__ == "__main__":
    app()
