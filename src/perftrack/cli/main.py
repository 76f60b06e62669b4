"""Command-line interface for perftrack.

Built with Click for commands and Rich for terminal output.

Usage:
    perftrack period monthly 2024-02
    perftrack report quarterly 2024-Q1 --tone "Concise" --export md
    perftrack import ~/Downloads/Tasks.json
    perftrack tasks add "Draft Q3 plan" --list Work
    perftrack goal milestones <goal-id> --by 2024-12-31 --save
    perftrack config set-key
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Coroutine, TypeVar

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from perftrack import __version__
from perftrack.ai.assistant import (
    classify_and_summarize_achievement,
    generate_milestones,
    generate_reflection,
    generate_smart_goal,
)
from perftrack.ai.client import AIClient, get_client
from perftrack.config import (
    APIKeyError,
    APIKeyManager,
    AppConfig,
    ConfigError,
    get_config,
    load_config,
)
from perftrack.core.models import Achievement, AchievementType, Goal, Milestone, Session
from perftrack.core.periods import ReportType, compute_period, default_anchor
from perftrack.core.store import DataStore, JsonFileStore
from perftrack.core.tasks import TaskService
from perftrack.exceptions import PerftrackError
from perftrack.importer.reconciler import ImportProgress, TaskImporter
from perftrack.reports.assembler import ReportService, filter_achievements
from perftrack.reports.export import ExportFormat, ReportExporter
from perftrack.utils.logging import resolve_log_file, setup_logging

logger = logging.getLogger(__name__)

console = Console()

T = TypeVar("T")

REPORT_TYPES = click.Choice([t.value for t in ReportType], case_sensitive=False)


# =============================================================================
# Helper Functions
# =============================================================================


def print_header(text: str) -> None:
    console.print()
    console.print(Panel(text, style="bold blue", expand=False))
    console.print()


def print_success(text: str) -> None:
    console.print(f"[green]✓[/green] {text}")


def print_warning(text: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {text}")


def print_error(text: str) -> None:
    # Escape Rich markup in messages that may echo user input
    escaped = text.replace("[", "\\[")
    console.print(f"[red]✗[/red] {escaped}")


def print_info(text: str) -> None:
    console.print(f"[blue]ℹ[/blue] {text}")


def _run(ctx: click.Context, coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning perftrack errors into a short message and exit 1."""
    try:
        return asyncio.run(coro)
    except PerftrackError as e:
        if ctx.obj.get("debug"):
            raise
        print_error(e.message)
        ctx.exit(1)


def _store(ctx: click.Context) -> DataStore:
    if "store" not in ctx.obj:
        ctx.obj["store"] = JsonFileStore(ctx.obj["config"].paths.data_dir)
    return ctx.obj["store"]


def _client(ctx: click.Context) -> AIClient:
    if "client" not in ctx.obj:
        ctx.obj["client"] = get_client(ctx.obj["config"])
    return ctx.obj["client"]


def _session(ctx: click.Context) -> Session:
    return ctx.obj["session"]


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="perftrack")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Debug logging and full tracebacks")
@click.option("--config", "-c", "config_path", type=click.Path(path_type=Path), help="Path to config file")
@click.option("--user", "-u", help="User id to act as (default: config default_user)")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write a debug log here (--debug alone logs under paths.log_dir)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    debug: bool,
    config_path: Path | None,
    user: str | None,
    log_file: Path | None,
) -> None:
    """perftrack - track goals, tasks and achievements; generate performance reports.

    Quick start:
        perftrack config set-key          # Store your Gemini API key
        perftrack import Tasks.json       # Bring in a task export
        perftrack report monthly          # This month's report
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug

    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = load_config(config_path) if config_path else get_config()
        except ConfigError as e:
            print_error(e.message)
            ctx.exit(1)

    app_config: AppConfig = ctx.obj["config"]
    setup_logging(
        "DEBUG" if debug else "INFO" if verbose else "WARNING",
        log_file=resolve_log_file(log_file, app_config.paths.log_dir, debug),
    )
    ctx.obj["session"] = Session(user_id=user or app_config.default_user)


# =============================================================================
# Period / Report
# =============================================================================


@cli.command()
@click.argument("report_type", type=REPORT_TYPES)
@click.argument("anchor", required=False)
@click.pass_context
def period(ctx: click.Context, report_type: str, anchor: str | None) -> None:
    """Show the date range a report covers.

    ANCHOR is YYYY-MM-DD (weekly), YYYY-MM (monthly) or YYYY-Qn (quarterly).
    Defaults to the current week, month or quarter.
    """
    try:
        result = compute_period(report_type, anchor or default_anchor(report_type))
    except PerftrackError as e:
        print_error(e.message)
        ctx.exit(1)
    console.print(f"{ReportType.parse(report_type).value}: [bold]{result}[/bold] ({result.days} days)")


@cli.command()
@click.argument("report_type", type=REPORT_TYPES)
@click.argument("anchor", required=False)
@click.option("--tone", "-t", help="Report tone (default from config)")
@click.option(
    "--export",
    "export_format",
    type=click.Choice([f.value for f in ExportFormat]),
    help="Also write the report to a file in this format",
)
@click.option("--output-dir", "-o", type=click.Path(path_type=Path), help="Export directory")
@click.pass_context
def report(
    ctx: click.Context,
    report_type: str,
    anchor: str | None,
    tone: str | None,
    export_format: str | None,
    output_dir: Path | None,
) -> None:
    """Generate a Weekly, Monthly or Quarterly performance report."""
    app_config: AppConfig = ctx.obj["config"]
    service = ReportService(_store(ctx), _client(ctx), default_tone=app_config.reports.default_tone)

    with console.status("[bold cyan]Generating report..."):
        generated = _run(ctx, service.generate(_session(ctx), report_type, anchor, tone))

    console.print(
        Panel(
            Markdown(generated.text),
            title=f"{generated.report_type} Report",
            subtitle=f"Period: {generated.period_label}",
            border_style="yellow" if generated.is_fallback else "blue",
        )
    )
    if generated.is_fallback:
        print_warning("The generator was unavailable; showing a fallback message.")
        return

    if export_format:
        path = ReportExporter().export(
            generated, output_dir or app_config.reports.output_dir, export_format
        )
        print_success(f"Report saved to [bold cyan]{path}[/bold cyan]")


# =============================================================================
# Import
# =============================================================================


@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_cmd(ctx: click.Context, file: Path) -> None:
    """Import task lists and tasks from a task-export JSON file."""
    app_config: AppConfig = ctx.obj["config"]

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        bar = progress.add_task("Starting import...", total=100)

        def on_progress(update: ImportProgress) -> None:
            progress.update(bar, completed=update.percentage(), description=update.message)

        importer = TaskImporter(
            _store(ctx),
            _session(ctx),
            fallback_title=app_config.importer.fallback_list_title,
            progress_callback=on_progress,
        )
        summary = _run(ctx, importer.import_file(file))

    print_success(f"Imported {summary.lists_imported} lists and {summary.tasks_imported} tasks")
    if summary.tasks_skipped:
        print_info(f"Skipped {summary.tasks_skipped} entries without a title")


# =============================================================================
# Tasks
# =============================================================================


@cli.group()
def tasks() -> None:
    """Manage task lists and tasks."""


@tasks.command("lists")
@click.pass_context
def tasks_lists(ctx: click.Context) -> None:
    """Show task lists."""
    service = TaskService(_store(ctx), _session(ctx))
    lists = _run(ctx, service.lists())
    if not lists:
        print_info("No task lists yet. Create one with: perftrack tasks new-list NAME")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Default")
    for task_list in lists:
        table.add_row(task_list.id[:8], task_list.title, "yes" if task_list.is_default else "")
    console.print(table)


@tasks.command("new-list")
@click.argument("title")
@click.option("--default", "is_default", is_flag=True, help="Mark as the default list")
@click.pass_context
def tasks_new_list(ctx: click.Context, title: str, is_default: bool) -> None:
    """Create a task list."""
    service = TaskService(_store(ctx), _session(ctx))
    try:
        task_list = _run(ctx, service.create_list(title, is_default=is_default))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="TITLE") from e
    print_success(f"Created list '{task_list.title}' ({task_list.id[:8]})")


@tasks.command("delete-list")
@click.argument("list_ref")
@click.pass_context
def tasks_delete_list(ctx: click.Context, list_ref: str) -> None:
    """Delete a task list and all its tasks."""
    service = TaskService(_store(ctx), _session(ctx))
    _run(ctx, service.delete_list(list_ref))
    print_success("List deleted")


@tasks.command("list")
@click.option("--list", "-l", "list_ref", help="Only this list (id, id prefix or title)")
@click.option("--pending", is_flag=True, help="Hide completed tasks")
@click.pass_context
def tasks_list(ctx: click.Context, list_ref: str | None, pending: bool) -> None:
    """Show tasks, newest first."""
    service = TaskService(_store(ctx), _session(ctx))

    async def load() -> tuple[dict[str, str], list[Any]]:
        lists = await service.lists()
        list_id = (await service.find_list(list_ref)).id if list_ref else None
        return {l.id: l.title for l in lists}, await service.tasks(list_id)

    titles, items = _run(ctx, load())
    if pending:
        items = [t for t in items if not t.is_completed]
    if not items:
        print_info("No tasks.")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("")
    table.add_column("Title")
    table.add_column("List", style="cyan")
    table.add_column("Due")
    for task in items:
        table.add_row(
            task.id[:8],
            "[green]✓[/green]" if task.is_completed else "○",
            task.title,
            titles.get(task.list_id, "?"),
            task.due_date or "",
        )
    console.print(table)


@tasks.command("add")
@click.argument("title")
@click.option("--list", "-l", "list_ref", help="Target list (default: the default or first list)")
@click.option("--due", type=click.DateTime(formats=["%Y-%m-%d"]), help="Due date (YYYY-MM-DD)")
@click.option("--notes", default="", help="Task details")
@click.option("--goal", "goal_id", help="Link to a goal id")
@click.pass_context
def tasks_add(
    ctx: click.Context,
    title: str,
    list_ref: str | None,
    due: Any,
    notes: str,
    goal_id: str | None,
) -> None:
    """Add a pending task."""
    service = TaskService(_store(ctx), _session(ctx))

    async def add() -> Any:
        if list_ref:
            target = await service.find_list(list_ref)
        else:
            lists = await service.lists()
            if not lists:
                raise PerftrackError("No task lists yet. Create one with: perftrack tasks new-list NAME")
            target = next((l for l in lists if l.is_default), lists[0])
        return await service.add_task(
            target.id,
            title,
            details=notes,
            due_date=due.date().isoformat() if due else None,
            linked_goal_id=goal_id,
        )

    try:
        task = _run(ctx, add())
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="TITLE") from e
    print_success(f"Added '{task.title}' ({task.id[:8]})")


@tasks.command("toggle")
@click.argument("task_id")
@click.pass_context
def tasks_toggle(ctx: click.Context, task_id: str) -> None:
    """Mark a task completed, or reopen a completed one."""
    service = TaskService(_store(ctx), _session(ctx))
    task = _run(ctx, service.toggle(task_id))
    state = f"completed at {task.completed_at}" if task.is_completed else "reopened"
    print_success(f"'{task.title}' {state}")


@tasks.command("delete")
@click.argument("task_id")
@click.pass_context
def tasks_delete(ctx: click.Context, task_id: str) -> None:
    """Delete a task."""
    service = TaskService(_store(ctx), _session(ctx))
    _run(ctx, service.delete(task_id))
    print_success("Task deleted")


# =============================================================================
# Goals
# =============================================================================


async def _find_goal(store: DataStore, session: Session, ref: str) -> Goal:
    goals = await store.get_goals(session)
    matches = [g for g in goals if g.id == ref] or [g for g in goals if g.id.startswith(ref)]
    if len(matches) != 1:
        raise PerftrackError(f"No unique goal matches '{ref}'")
    return matches[0]


@cli.group()
def goal() -> None:
    """Manage goals and get AI coaching."""


@goal.command("add")
@click.argument("title")
@click.option("--description", "-d", default="")
@click.option("--progress", "-p", type=click.IntRange(0, 100), default=0)
@click.option("--target", type=click.DateTime(formats=["%Y-%m-%d"]), help="Target date")
@click.pass_context
def goal_add(
    ctx: click.Context, title: str, description: str, progress: int, target: Any
) -> None:
    """Add a goal."""
    session = _session(ctx)
    new_goal = Goal(
        user_id=session.user_id,
        title=title,
        description=description,
        progress=progress,
        target_date=target.date() if target else None,
    )
    saved = _run(ctx, _store(ctx).save_goal(session, new_goal))
    print_success(f"Added goal '{saved.title}' ({saved.id[:8]})")


@goal.command("list")
@click.pass_context
def goal_list(ctx: click.Context) -> None:
    """Show goals with progress."""
    goals = _run(ctx, _store(ctx).get_goals(_session(ctx)))
    if not goals:
        print_info("No goals yet.")
        return
    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Progress", justify="right")
    table.add_column("Target")
    for g in goals:
        table.add_row(g.id[:8], g.title, f"{g.progress}%", str(g.target_date or ""))
    console.print(table)


@goal.command("smart")
@click.argument("text")
@click.pass_context
def goal_smart(ctx: click.Context, text: str) -> None:
    """Rewrite a goal as SMART (Specific, Measurable, Achievable, Relevant, Time-bound)."""
    with console.status("[bold cyan]Rewriting goal..."):
        rewritten = _run(ctx, generate_smart_goal(_client(ctx), text))
    if rewritten == text:
        print_warning("No rewrite available; showing your original goal.")
    console.print(Panel(rewritten, title="SMART Goal", border_style="blue"))


@goal.command("milestones")
@click.argument("goal_ref")
@click.option("--by", "timeframe", required=True, help="When the goal must be done (e.g. 2024-12-31)")
@click.option("--save", is_flag=True, help="Store the milestones on the goal")
@click.pass_context
def goal_milestones(ctx: click.Context, goal_ref: str, timeframe: str, save: bool) -> None:
    """Suggest 3-5 milestones for a goal."""
    store, session = _store(ctx), _session(ctx)

    async def suggest() -> list[dict[str, Any]]:
        target = await _find_goal(store, session, goal_ref)
        suggestions = await generate_milestones(_client(ctx), target.title, timeframe)
        if save:
            for item in suggestions:
                await store.save_milestone(session, Milestone(goal_id=target.id, **item))
        return suggestions

    with console.status("[bold cyan]Planning milestones..."):
        suggestions = _run(ctx, suggest())

    if not suggestions:
        print_warning("No milestones could be generated.")
        return

    table = Table(show_header=True)
    table.add_column("Due")
    table.add_column("Milestone")
    for item in suggestions:
        table.add_row(item["due_date"] or "", item["description"])
    console.print(table)
    if save:
        print_success(f"Saved {len(suggestions)} milestones")


@goal.command("reflect")
@click.option("--habit", "habits", multiple=True, help="Habit as NAME:STREAK (repeatable)")
@click.pass_context
def goal_reflect(ctx: click.Context, habits: tuple[str, ...]) -> None:
    """Short monthly reflection on habits and goal progress."""
    parsed = []
    for item in habits:
        name, _, streak = item.rpartition(":")
        if not name or not streak.isdigit():
            raise click.BadParameter(f"'{item}' is not NAME:STREAK", param_hint="--habit")
        parsed.append({"name": name, "streak_count": int(streak)})

    async def reflect() -> str:
        goals = await _store(ctx).get_goals(_session(ctx))
        return await generate_reflection(_client(ctx), parsed, goals)

    with console.status("[bold cyan]Reflecting..."):
        text = _run(ctx, reflect())
    console.print(Panel(Markdown(text), title="Monthly Reflection", border_style="green"))


# =============================================================================
# Achievements
# =============================================================================


@cli.group()
def achievement() -> None:
    """Log and list achievements."""


@achievement.command("add")
@click.argument("title")
@click.option("--description", "-d", default="", help="What happened")
@click.option("--date", "when", type=click.DateTime(formats=["%Y-%m-%d"]), help="Default: today")
@click.option(
    "--type",
    "classification",
    type=click.Choice([t.value for t in AchievementType], case_sensitive=False),
    help="Set the classification yourself and skip AI",
)
@click.pass_context
def achievement_add(
    ctx: click.Context, title: str, description: str, when: Any, classification: str | None
) -> None:
    """Log an achievement. AI classifies and summarizes it unless --type is given."""
    session = _session(ctx)

    async def add() -> Achievement:
        if classification:
            kind, summary = AchievementType.parse(classification), description
        else:
            kind, summary = await classify_and_summarize_achievement(_client(ctx), title, description)
        record = Achievement(
            user_id=session.user_id,
            title=title,
            description=description,
            classification=kind,
            summary=summary,
            date=when.date() if when else date.today(),
        )
        return await _store(ctx).save_achievement(session, record)

    with console.status("[bold cyan]Classifying achievement..."):
        saved = _run(ctx, add())
    print_success(f"Logged '{saved.title}' as {saved.classification.value}")
    if saved.summary:
        console.print(f"  {saved.summary}")


@achievement.command("list")
@click.argument("report_type", type=REPORT_TYPES, required=False)
@click.argument("anchor", required=False)
@click.pass_context
def achievement_list(ctx: click.Context, report_type: str | None, anchor: str | None) -> None:
    """Show achievements, optionally only those in a report period."""
    items = _run(ctx, _store(ctx).get_achievements(_session(ctx)))
    if report_type:
        try:
            window = compute_period(report_type, anchor or default_anchor(report_type))
        except PerftrackError as e:
            print_error(e.message)
            ctx.exit(1)
        items = filter_achievements(items, window)
    if not items:
        print_info("No achievements.")
        return

    table = Table(show_header=True)
    table.add_column("Date")
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    table.add_column("Summary")
    for a in sorted(items, key=lambda a: a.date, reverse=True):
        table.add_row(a.date, a.title, a.classification.value, a.summary)
    console.print(table)


# =============================================================================
# Config
# =============================================================================


@cli.group()
def config() -> None:
    """Show configuration and manage the API key."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration (the API key is never shown)."""
    app_config: AppConfig = ctx.obj["config"]

    table = Table(show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("AI Model", app_config.ai.model_name)
    table.add_row("Backend", f"proxy ({app_config.ai.proxy_url})" if app_config.uses_proxy() else "direct SDK")
    table.add_row("Request Timeout", str(app_config.ai.request_timeout_seconds or "none"))
    table.add_row("Default Tone", app_config.reports.default_tone)
    table.add_row("Report Directory", str(app_config.reports.output_dir))
    table.add_row("Import List Title", app_config.importer.fallback_list_title)
    table.add_row("Data Directory", str(app_config.paths.data_dir))
    table.add_row("User", _session(ctx).user_id)
    console.print(table)

    console.print()
    if app_config.uses_proxy():
        print_info("The API key is held by the proxy.")
        return
    manager = APIKeyManager()
    if manager.get_key() is not None:
        print_success(f"API key is configured ({manager.get_key_source().value})")
    else:
        print_warning("API key not configured")
        console.print("  Run: [bold]perftrack config set-key[/bold]")


@config.command("set-key")
@click.pass_context
def config_set_key(ctx: click.Context) -> None:
    """Store your Gemini API key in the system keyring."""
    api_key = Prompt.ask("Enter your Gemini API key", password=True, console=console)
    if not api_key:
        print_error("No API key provided.")
        ctx.exit(1)
    try:
        APIKeyManager().store_key(api_key)
    except APIKeyError as e:
        print_error(e.message)
        ctx.exit(1)
    print_success("API key stored in the system keyring.")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print()
        print_info("Interrupted.")
        sys.exit(130)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.debug("Unexpected error", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
