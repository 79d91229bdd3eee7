"""Command-line interface for taskvelocity."""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from taskvelocity.engine import VelocityEngine
from taskvelocity.extraction import scan_specs
from taskvelocity.log import configure_logging
from taskvelocity.models import ConsistencyRating, VelocityMetrics, VelocitySettings

app = typer.Typer(
    name="taskvelocity",
    help="Task velocity analytics for markdown task lists tracked in Git",
    add_completion=False,
)
console = Console()

RATING_STYLES = {
    ConsistencyRating.HIGH: "green",
    ConsistencyRating.MEDIUM: "yellow",
    ConsistencyRating.LOW: "red",
    ConsistencyRating.INSUFFICIENT_DATA: "dim",
}


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Log level (default from settings)"),
) -> None:
    """Task velocity analytics for markdown task lists tracked in Git."""
    configure_logging(log_level or VelocitySettings().log_level)


def _engine(repo_path: Path) -> VelocityEngine:
    return VelocityEngine.for_repository(repo_path, VelocitySettings())


def _trend_text(trend: float) -> str:
    if trend > 0:
        return f"[green]↑ {trend:.1f}%[/green]"
    if trend < 0:
        return f"[red]↓ {abs(trend):.1f}%[/red]"
    return "[dim]→ 0.0%[/dim]"


def _print_metrics(metrics: VelocityMetrics) -> None:
    console.print("\n[bold]Task Velocity[/bold]")
    console.print(f"[cyan]This week:[/cyan] {metrics.current_week_tasks} tasks ({_trend_text(metrics.velocity_trend)})")
    console.print(f"[cyan]Last week:[/cyan] {metrics.last_week_tasks} tasks")
    console.print(f"[cyan]Average:[/cyan] {metrics.average_velocity:.1f} tasks/week")
    style = RATING_STYLES[metrics.consistency_rating]
    console.print(
        f"[cyan]Consistency:[/cyan] {metrics.consistency_score:.0f}/100 "
        f"[{style}]({metrics.consistency_rating.value})[/{style}]"
    )
    console.print(
        f"[cyan]Specs:[/cyan] {metrics.current_week_specs} completed this week, "
        f"{metrics.average_specs:.1f}/week average"
    )

    if metrics.projected_completion_date is not None:
        console.print(
            f"[cyan]Projection:[/cyan] {metrics.remaining_tasks} tasks left, "
            f"done around {metrics.projected_completion_date:%Y-%m-%d} ({metrics.days_remaining} days)"
        )
    else:
        console.print(f"[cyan]Projection:[/cyan] [dim]n/a[/dim] ({metrics.remaining_tasks} tasks left)")

    table = Table(show_header=True, header_style="bold magenta", title="Tasks per week")
    table.add_column("Weeks ago", justify="right", style="cyan")
    table.add_column("Tasks", justify="right", style="yellow")
    table.add_column("Specs", justify="right", style="green")
    weeks = len(metrics.tasks_per_week)
    for i, (tasks, specs) in enumerate(zip(metrics.tasks_per_week, metrics.specs_per_week)):
        table.add_row(str(weeks - 1 - i), str(tasks), str(specs))
    console.print(table)

    if metrics.author_breakdown:
        authors = Table(show_header=True, header_style="bold cyan", title="Contributors")
        authors.add_column("Author", style="green")
        authors.add_column("Tasks", justify="right", style="yellow")
        authors.add_column("Share", justify="right")
        for stats in metrics.author_breakdown:
            authors.add_row(stats.author[:30], str(stats.completed), f"{stats.share_percent:.1f}%")
        console.print(authors)

    split = metrics.required_vs_optional
    distribution = metrics.time_distribution
    console.print(f"[cyan]Required/optional:[/cyan] {split.required}/{split.optional}")
    console.print(
        f"[cyan]Time to complete:[/cyan] {metrics.average_time_to_complete:.1f} days average "
        f"(fast {distribution.fast}, medium {distribution.medium}, slow {distribution.slow})"
    )


@app.command(name="import-history")
def import_history(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    documents: Optional[List[str]] = typer.Option(
        None, "--document", "-d", help="Tracked document (repeatable; defaults to the configured glob)"
    ),
) -> None:
    """Rebuild velocity history from the Git log of task documents."""
    try:
        engine = _engine(repo_path)

        console.print(f"[bold green]Importing task history from:[/bold green] {repo_path}")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Replaying document history...", total=None)
            summary = asyncio.run(engine.import_from_history(repo_path, documents or []))
            progress.update(task, completed=True)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not summary.available:
        console.print("[yellow]Version control unavailable; existing history kept.[/yellow]")
        raise typer.Exit(1)

    console.print(f"\n[bold green]✓[/bold green] Imported {summary.tasks_processed} task completions")
    console.print(f"[cyan]Uncompletions:[/cyan] {summary.uncompletions_processed}")
    console.print(
        f"[cyan]Edited/removed checked tasks:[/cyan] {summary.renames_processed}/{summary.removals_processed}"
    )
    console.print(f"[cyan]Commits analyzed:[/cyan] {summary.commits_analyzed}")
    console.print(f"[cyan]Specs:[/cyan] {len(summary.specs_seen)} ({len(summary.specs_completed)} completed)")
    console.print(f"[cyan]Authors:[/cyan] {', '.join(summary.authors) or '-'}")


@app.command()
def metrics(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    as_json: bool = typer.Option(False, "--json", help="Print the metrics as JSON"),
) -> None:
    """Show velocity metrics for a repository."""
    try:
        settings = VelocitySettings()
        engine = VelocityEngine.for_repository(repo_path, settings)
        snapshot = engine.get_metrics_snapshot(scan_specs(repo_path, settings.tracked_document_glob))
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(snapshot.model_dump_json(indent=2))
    else:
        _print_metrics(snapshot)


@app.command()
def complete(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    spec_id: str = typer.Argument(..., help="Spec the task belongs to"),
    task_text: str = typer.Argument(..., help="Task description"),
    optional: bool = typer.Option(False, "--optional", help="Task is optional"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author name"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Author email"),
    total: Optional[int] = typer.Option(None, "--total", "-t", help="Total tasks in the spec"),
) -> None:
    """Record a task completion."""
    try:
        engine = _engine(repo_path)
        event = engine.on_task_completed(
            spec_id, task_text, is_required=not optional, author=author, author_email=email, total_tasks=total
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if event is None:
        console.print("[yellow]Task was already completed.[/yellow]")
    else:
        console.print(f"[bold green]✓[/bold green] Completed [cyan]{spec_id}[/cyan]: {event.task_description}")


@app.command()
def uncomplete(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    spec_id: str = typer.Argument(..., help="Spec the task belongs to"),
    task_text: str = typer.Argument(..., help="Task description"),
) -> None:
    """Withdraw a task completion."""
    try:
        engine = _engine(repo_path)
        event = engine.on_task_uncompleted(spec_id, task_text)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if event is None:
        console.print("[yellow]No completion recorded for this task.[/yellow]")
    else:
        console.print(f"[bold green]✓[/bold green] Uncompleted [cyan]{spec_id}[/cyan]: {event.task_description}")


@app.command()
def status(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
) -> None:
    """Show recorded spec progress and the last import."""
    try:
        engine = _engine(repo_path)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    data = engine.data
    console.print("\n[bold]Velocity Status[/bold]")
    console.print(f"[cyan]State file:[/cyan] {engine.state_store.state_file}")
    console.print(f"[cyan]Standing completions:[/cyan] {len(data.completion_ledger)}")

    if data.last_import is None:
        console.print("\n[yellow]History has not been imported yet.[/yellow]")
        console.print("[dim]Run 'taskvelocity import-history <repo>' to import it.[/dim]")
    else:
        console.print(f"[cyan]Last import:[/cyan] {data.last_import.imported_at}")
        console.print(f"[cyan]Commits analyzed:[/cyan] {data.last_import.commits_analyzed}")

    if not data.spec_activity:
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Spec", style="cyan")
    table.add_column("Progress", justify="right", style="yellow")
    table.add_column("Started", style="blue")
    table.add_column("Completed", style="green")
    for record in sorted(data.spec_activity.values(), key=lambda r: r.spec_id):
        table.add_row(
            record.spec_id,
            f"{record.completed_tasks}/{record.total_tasks} ({record.progress_percent}%)",
            f"{record.first_task_date:%Y-%m-%d}" if record.first_task_date else "-",
            f"{record.completion_date:%Y-%m-%d}" if record.completion_date else "-",
        )
    console.print(table)


@app.command()
def reset(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Reset velocity history (delete all recorded data).

    Task documents and the Git repository are not affected.
    """
    if not confirm:
        response = typer.confirm("Are you sure you want to delete all recorded velocity history?")
        if not response:
            console.print("[yellow]Cancelled.[/yellow]")
            return

    try:
        _engine(repo_path).reset()
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print("[bold green]✓[/bold green] Velocity history reset successfully")


@app.command()
def version() -> None:
    """Show version information."""
    from taskvelocity import __version__

    console.print(f"[bold]taskvelocity[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
