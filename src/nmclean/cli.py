"""CLI interface for nmclean."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from nmclean import __version__
from nmclean.config import EngineConfig, default_config_file, load_config, save_config
from nmclean.display import (
    confirm_action,
    console,
    show_clean_outcome,
    show_clean_preview,
    show_clean_summary,
    show_config,
    show_scan_result,
    show_scanning_progress,
)
from nmclean.engine import clean_report, scan as scan_root
from nmclean.errors import NmcleanError
from nmclean.formatter import build_scan_response
from nmclean.models import CleanStatus

T = TypeVar("T")

# Create Typer app
app = typer.Typer(
    name="nmclean",
    help="Find node_modules directories and reclaim their disk space",
    add_completion=False,
)


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nmclean version {__version__}")
        raise typer.Exit()


def _run_cancellable(func: Callable[[threading.Event], T]) -> T:
    """
    Run func on a worker thread so Ctrl-C cancels it instead of killing it.

    The first Ctrl-C sets the cancel event and waits for func to return its
    partial result.
    """
    cancel_event = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(func, cancel_event)
        while True:
            try:
                return future.result(timeout=0.2)
            except FutureTimeout:
                continue
            except KeyboardInterrupt:
                console.print("\n[yellow]Cancelling...[/yellow]")
                cancel_event.set()


def _get_config(ctx: typer.Context) -> EngineConfig:
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    try:
        return load_config(config_path)
    except NmcleanError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Config file to use instead of ~/.nmclean/config.json."
    ),
) -> None:
    """nmclean - find and remove node_modules directories."""
    setup_logging(verbose)
    ctx.obj = {"config_path": config_path}


@app.command()
def scan(
    ctx: typer.Context,
    root: Path = typer.Argument(..., help="Directory to scan"),
    sizes: bool = typer.Option(
        False, "--sizes", "-s", help="Measure each directory (slower on large trees)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    sort_size: bool = typer.Option(False, "--sort-size", help="Largest first (implies --sizes)"),
    max_depth: Optional[int] = typer.Option(
        None, "--max-depth", min=1, help="Do not look deeper than this below the root"
    ),
) -> None:
    """Find node_modules directories under ROOT."""
    config = _get_config(ctx)
    updates = {}
    if sort_size:
        updates["sort_by_size"] = True
        sizes = True
    if max_depth is not None:
        updates["max_depth"] = max_depth
    if updates:
        config = config.model_copy(update=updates)

    try:
        if json_output:
            result = _run_cancellable(
                lambda cancel: scan_root(str(root), sizes, config=config, cancel_event=cancel)
            )
        else:
            with show_scanning_progress() as progress:
                task = progress.add_task(f"Scanning {root}...", total=None)

                def on_found(path: Path) -> None:
                    progress.advance(task)

                result = _run_cancellable(
                    lambda cancel: scan_root(
                        str(root),
                        sizes,
                        config=config,
                        cancel_event=cancel,
                        progress_callback=on_found,
                    )
                )
    except NmcleanError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if json_output:
        typer.echo(build_scan_response(result).model_dump_json(indent=2))
    else:
        show_scan_result(result)
        if result.targets:
            console.print("\n[dim]Run [bold]nmclean clean <path>...[/bold] to delete[/dim]")


@app.command()
def clean(
    ctx: typer.Context,
    paths: list[str] = typer.Argument(..., help="node_modules directories to delete"),
    roots: Optional[list[Path]] = typer.Option(
        None, "--root", "-r", help="Only delete paths inside this directory (repeatable)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate without deleting"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Print outcomes as JSON"),
) -> None:
    """Delete the given node_modules directories."""
    config = _get_config(ctx)

    if not json_output:
        show_clean_preview(paths, dry_run=dry_run)

    if not yes and not dry_run:
        if not confirm_action(f"Delete {len(paths)} director{'y' if len(paths) == 1 else 'ies'}?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    on_outcome = None if json_output else show_clean_outcome
    report = _run_cancellable(
        lambda cancel: clean_report(
            paths,
            config=config,
            allowed_roots=[str(r) for r in roots] if roots else None,
            cancel_event=cancel,
            dry_run=dry_run,
            progress_callback=on_outcome,
        )
    )

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        show_clean_summary(report)

    hard_failures = [
        o
        for o in report.outcomes
        if o.status in (CleanStatus.PERMISSION_DENIED, CleanStatus.OTHER_FAILURE)
    ]
    if hard_failures:
        raise typer.Exit(1)


@app.command()
def config(
    ctx: typer.Context,
    init: bool = typer.Option(False, "--init", help="Write a config file with default settings"),
) -> None:
    """Show the effective configuration."""
    config_path = (ctx.obj or {}).get("config_path") or default_config_file()

    if init:
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            raise typer.Exit(1)
        try:
            written = save_config(EngineConfig(), config_path)
        except NmcleanError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]Wrote {written}[/green]")
        return

    settings = _get_config(ctx)
    source = str(config_path) if config_path.exists() else "defaults"
    show_config(settings, source)


if __name__ == "__main__":
    app()
