"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from resume_studio.config import AppConfig, load_config
from resume_studio.errors import ResumeStudioError
from resume_studio.logging.usage_store import UsageStore
from resume_studio.models.events import CompleteEvent, ErrorEvent, PhaseEvent, ThoughtEvent
from resume_studio.models.job import JobDescription, TailorRequest
from resume_studio.models.merge import MergeResponse, ParsedProject
from resume_studio.parsers.file_parser import read_job_description_file, read_resume_file
from resume_studio.services import Services, build_services
from resume_studio.store.profile_store import SQLiteProfileStore
from resume_studio.streaming.channel import EventChannel

app = typer.Typer(
    name="resume-studio",
    help="Agent-backed resume tailoring and project reconciliation",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    ctx.obj = load_config(config_path)


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj if isinstance(ctx.obj, AppConfig) else load_config()


def _services(ctx: typer.Context) -> Services:
    try:
        return build_services(_config(ctx))
    except ResumeStudioError as e:
        console.print(f"[red]{e.user_message}[/red]")
        console.print("[dim]Set AGENT_API_KEY or ANTHROPIC_API_KEY for the configured provider.[/dim]")
        raise typer.Exit(1) from e


def _run(services: Services, coro):
    """Run a pipeline coroutine and release the agent client afterwards."""

    async def runner():
        try:
            return await coro
        finally:
            await services.agent.aclose()

    try:
        return asyncio.run(runner())
    except ResumeStudioError as e:
        console.print(f"[red]{e.user_message}[/red]")
        raise typer.Exit(1) from e


def _write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    console.print(f"[green]Saved: {path}[/green]")


def _tailor_request(jd: Path, title: str, company: str) -> TailorRequest:
    text = read_job_description_file(jd)
    return TailorRequest(
        job_description=JobDescription(title=title, company=company, full_text=text)
    )


def _print_merge(response: MergeResponse, auto_apply: bool) -> None:
    table = Table(title=f"Merge decisions ({response.result.tier})")
    table.add_column("Action")
    table.add_column("Project")
    table.add_column("Reason")
    for decision in response.result.add:
        table.add_row("[green]add[/green]", decision.project.name, decision.reason)
    for decision in response.result.update:
        table.add_row("[yellow]update[/yellow]", decision.existing_id, decision.reason)
    for decision in response.result.skip:
        table.add_row("[dim]skip[/dim]", decision.project.name, decision.reason)
    console.print(table)
    prefix = "" if auto_apply else "[dim](dry run)[/dim] "
    console.print(f"{prefix}{response.message}")


@app.command()
def tailor(
    ctx: typer.Context,
    jd: Path = typer.Option(..., "--jd", help="Job description file (TXT/MD/PDF/DOCX)"),
    title: str = typer.Option(..., "--title", help="Job title"),
    company: str = typer.Option(..., "--company", help="Company name"),
    user: str = typer.Option(..., "--user", "-u", help="Profile user id"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the tailored resume JSON here"),
) -> None:
    """Tailor the stored profile of USER to a job description."""
    if not jd.exists():
        console.print(f"[red]Job description file not found: {jd}[/red]")
        raise typer.Exit(1)

    services = _services(ctx)
    request = _tailor_request(jd, title, company)
    channel = EventChannel()

    async def consume() -> tuple[CompleteEvent | None, ErrorEvent | None]:
        producer = asyncio.create_task(
            services.orchestrator.run(request, channel, user_id=user)
        )
        complete = error = None
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Starting...", total=100)
            async for event in channel:
                if isinstance(event, PhaseEvent):
                    progress.update(task, description=event.phase.value, completed=event.progress)
                elif isinstance(event, ThoughtEvent):
                    progress.update(task, description=event.text, completed=event.progress)
                elif isinstance(event, CompleteEvent):
                    complete = event
                elif isinstance(event, ErrorEvent):
                    error = event
        await producer
        return complete, error

    complete, error = _run(services, consume())
    if error is not None or complete is None:
        message = error.message if error is not None else "Stream ended without a result"
        console.print(f"[red]{message}[/red]")
        if error is not None and error.debug:
            console.print(f"[dim]{error.debug}[/dim]")
        raise typer.Exit(1)

    result = complete.result
    lines = [f"Match score: [bold]{result.match_score}[/bold]"]
    lines += [f"- {item}" for item in result.summary.key_improvements]
    if result.summary.keywords_added:
        lines.append(f"Keywords: {', '.join(result.summary.keywords_added)}")
    console.print(Panel("\n".join(lines), title=f"{title} at {company}"))
    for warning in result.summary.warnings:
        console.print(f"[yellow]  ! {warning}[/yellow]")

    if output is not None:
        _write_json(output, complete.to_wire())


@app.command()
def merge(
    ctx: typer.Context,
    projects_file: Path = typer.Argument(help="JSON file with a list of projects"),
    user: str = typer.Option(..., "--user", "-u", help="Profile user id"),
    apply: bool = typer.Option(False, "--apply", help="Write the decisions to the store"),
) -> None:
    """Reconcile newly parsed projects with the stored ones."""
    if not projects_file.exists():
        console.print(f"[red]File not found: {projects_file}[/red]")
        raise typer.Exit(1)
    raw = json.loads(projects_file.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("projects") or []
    projects = [ParsedProject.model_validate(p) for p in raw]

    services = _services(ctx)
    response = _run(services, services.merge_engine.merge_for_user(user, projects, apply))
    _print_merge(response, apply)


@app.command("fetch-job")
def fetch_job(
    ctx: typer.Context,
    url: str = typer.Argument(help="Job posting URL"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the posting JSON here"),
) -> None:
    """Extract a structured job posting from a URL."""
    services = _services(ctx)
    with console.status("Reading job posting..."):
        posting = _run(services, services.job_fetcher.fetch(url))
    console.print(Panel(posting.render_text(), title=f"{posting.title} at {posting.company}"))
    if output is not None:
        _write_json(output, {**posting.to_wire(), "text": posting.render_text(), "sourceUrl": url})


@app.command()
def parse(
    ctx: typer.Context,
    resume: Path = typer.Argument(help="Resume file (PDF/DOCX/TXT/MD)"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the parsed resume JSON here"),
) -> None:
    """Parse a resume file into structured sections."""
    if not resume.exists():
        console.print(f"[red]Resume file not found: {resume}[/red]")
        raise typer.Exit(1)
    text = read_resume_file(resume)
    services = _services(ctx)
    with console.status("Parsing resume..."):
        parsed = _run(services, services.resume_parser.parse(text))

    table = Table(title=parsed.contact.name or resume.name)
    table.add_column("Section")
    table.add_column("Entries", justify="right")
    table.add_row("Experience", str(len(parsed.experience)))
    table.add_row("Education", str(len(parsed.education)))
    table.add_row("Projects", str(len(parsed.projects)))
    table.add_row("Sections", str(len(parsed.sections)))
    console.print(table)
    if output is not None:
        _write_json(output, parsed.to_wire())


@app.command("import-projects")
def import_projects(
    ctx: typer.Context,
    resume: Path = typer.Argument(help="Resume file (PDF/DOCX/TXT/MD)"),
    user: str = typer.Option(..., "--user", "-u", help="Profile user id"),
    apply: bool = typer.Option(False, "--apply", help="Write the decisions to the store"),
) -> None:
    """Parse a resume file and reconcile its projects with the stored ones."""
    if not resume.exists():
        console.print(f"[red]Resume file not found: {resume}[/red]")
        raise typer.Exit(1)
    text = read_resume_file(resume)
    services = _services(ctx)

    async def pipeline() -> MergeResponse:
        parsed = await services.resume_parser.parse(text, user_id=user)
        projects = [
            ParsedProject.model_validate(p.model_dump())
            for p in parsed.projects
            if p.name.strip()
        ]
        console.print(f"[dim]Found {len(projects)} projects in {resume.name}[/dim]")
        return await services.merge_engine.merge_for_user(user, projects, apply)

    response = _run(services, pipeline())
    _print_merge(response, apply)


@app.command("load-profile")
def load_profile(
    ctx: typer.Context,
    profile_file: Path = typer.Argument(help="YAML or JSON profile document"),
    user: str = typer.Option(..., "--user", "-u", help="Profile user id"),
) -> None:
    """Seed the profile store from a YAML/JSON document."""
    if not profile_file.exists():
        console.print(f"[red]File not found: {profile_file}[/red]")
        raise typer.Exit(1)
    data = yaml.safe_load(profile_file.read_text(encoding="utf-8")) or {}
    store = SQLiteProfileStore(_config(ctx).store.resolved_db_path)
    try:
        counts = store.import_profile(user, data)
    except (ValueError, KeyError, TypeError) as e:
        console.print(f"[red]Invalid profile document: {e}[/red]")
        raise typer.Exit(1) from e
    summary = ", ".join(f"{n} {section}" for section, n in counts.items())
    console.print(f"[green]Loaded profile for {user}: {summary}[/green]")


@app.command("issue-token")
def issue_token(
    ctx: typer.Context,
    user_id: str = typer.Argument(help="User id the token authenticates as"),
) -> None:
    """Issue an API bearer token for a user."""
    store = SQLiteProfileStore(_config(ctx).store.resolved_db_path)
    token = store.issue_token(user_id)
    console.print(f"[green]Token for {user_id}:[/green] {token}")
    console.print("[dim]Store it now; only its hash is kept.[/dim]")


@app.command()
def usage(ctx: typer.Context) -> None:
    """Show this month's agent run usage."""
    config = _config(ctx)
    if not config.usage.enabled:
        console.print("[yellow]Usage logging is disabled[/yellow]")
        return
    stats = UsageStore(config.usage.resolved_db_path).get_monthly_stats()

    table = Table(title=f"Agent usage ({stats['month']})")
    table.add_column("Operation")
    table.add_column("Runs", justify="right")
    for operation, count in sorted(stats["by_operation"].items()):
        table.add_row(operation, str(count))
    console.print(table)

    avg = stats["avg_elapsed_seconds"]
    console.print(
        f"Total runs: {stats['total_runs']} | "
        f"success rate: {stats['success_rate']:.0f}% | "
        f"tokens: {stats['total_input_tokens']} in / {stats['total_output_tokens']} out | "
        f"avg: {f'{avg:.1f}s' if avg is not None else '-'}"
    )


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option(None, "--host", help="Bind address"),
    port: int = typer.Option(None, "--port", help="Bind port"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from resume_studio.api.server import create_app

    config = _config(ctx)
    logging.basicConfig(
        level=logging.DEBUG if config.server.dev_mode else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
    )


if __name__ == "__main__":
    app()
