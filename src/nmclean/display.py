"""Rich terminal display for nmclean."""

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from nmclean.config import EngineConfig
from nmclean.models import CleanOutcome, CleanReport, CleanStatus, ScanResult

console = Console()


def status_icon(status: CleanStatus) -> str:
    """Get icon for a clean outcome."""
    icons = {
        CleanStatus.DELETED: "[green]✓[/green]",
        CleanStatus.NOT_FOUND: "[yellow]-[/yellow]",
        CleanStatus.PERMISSION_DENIED: "[red]✗[/red]",
        CleanStatus.OTHER_FAILURE: "[red]✗[/red]",
    }
    return icons.get(status, "?")


def status_label(status: CleanStatus) -> str:
    """Get styled label for a clean outcome."""
    labels = {
        CleanStatus.DELETED: "[green]Deleted[/green]",
        CleanStatus.NOT_FOUND: "[yellow]Not found[/yellow]",
        CleanStatus.PERMISSION_DENIED: "[red]Permission denied[/red]",
        CleanStatus.OTHER_FAILURE: "[red]Failed[/red]",
    }
    return labels.get(status, "Unknown")


def show_scan_result(result: ScanResult) -> None:
    """Display the targets found by a scan."""
    if not result.targets:
        console.print(f"[yellow]No node_modules found under {result.root_path}[/yellow]")
    else:
        sized = result.total_size_bytes is not None
        table = Table(title=f"Found under {result.root_path}", show_header=True, header_style="bold")
        table.add_column("Project", style="cyan")
        if sized:
            table.add_column("Size", justify="right")
        table.add_column("Path")

        for target in result.targets:
            row = [target.display_name]
            if sized:
                size = target.size_human or ""
                row.append(f"{size} [yellow]*[/yellow]" if target.size_partial else size)
            row.append(target.path)
            table.add_row(*row)

        console.print(table)

        summary = f"[bold]{result.target_count}[/bold] director{'y' if result.target_count == 1 else 'ies'}"
        if sized:
            summary += f", [bold]{result.total_size_human}[/bold] total"
        console.print(summary)

    if result.unreadable:
        console.print(f"\n[yellow]! {len(result.unreadable)} director(ies) could not be read:[/yellow]")
        for item in result.unreadable[:10]:
            console.print(f"  [dim]{item.path}: {item.error}[/dim]")
        if len(result.unreadable) > 10:
            console.print(f"  [dim]... and {len(result.unreadable) - 10} more[/dim]")

    if result.cancelled:
        console.print("\n[yellow]Scan cancelled - results are incomplete[/yellow]")
    elif any(t.size_partial for t in result.targets):
        console.print("[dim]* size is a lower bound, some files could not be read[/dim]")


def show_clean_preview(paths: list[str], dry_run: bool = False) -> None:
    """Display the paths about to be deleted."""
    if dry_run:
        console.print("[yellow]DRY RUN - Nothing will be deleted[/yellow]\n")

    table = Table(title="Cleanup Preview", show_header=True, header_style="bold")
    table.add_column("#", justify="right", width=4)
    table.add_column("Path")
    for i, path in enumerate(paths, 1):
        table.add_row(str(i), path)
    console.print(table)


def show_clean_outcome(outcome: CleanOutcome) -> None:
    """Display the result of deleting one path."""
    line = f"  {status_icon(outcome.status)} {outcome.path}"
    if outcome.detail and not outcome.success:
        line += f" [dim]({outcome.detail})[/dim]"
    console.print(line)


def show_clean_summary(report: CleanReport) -> None:
    """Display a summary of a clean request."""
    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    counts: dict[CleanStatus, int] = {}
    for outcome in report.outcomes:
        counts[outcome.status] = counts.get(outcome.status, 0) + 1

    for status in CleanStatus:
        if counts.get(status):
            table.add_row(status_label(status), str(counts[status]))

    console.print()
    if report.cancelled:
        console.print("[bold yellow]Cleanup cancelled[/bold yellow]")
    elif report.failure_count:
        console.print("[bold yellow]Cleanup finished with failures[/bold yellow]")
    else:
        console.print("[bold green]Cleanup complete![/bold green]")
    console.print(table)


def show_config(config: EngineConfig, source: str) -> None:
    """Display the effective configuration."""
    table = Table(show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name, value in config.model_dump().items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        table.add_row(name, str(value))
    console.print(Panel(table, title=f"Configuration ({source})", border_style="blue"))


def show_scanning_progress() -> Progress:
    """Create a spinner for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("{task.completed} found"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
