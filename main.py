"""
Unsafe Counter - Main CLI
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from core.aggregator import build_report
from core.config import configure_logging, get_settings
from core.counters import CATEGORIES, Report
from core.errors import CloneError, ScanError, TraversalError
from utils.git_clone import cloned_repository

app = typer.Typer(help="Count Rust code inside unsafe regions, per syntactic category")
console = Console()


def render_report(report: Report, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Category", style="cyan")
    table.add_column("Safe", justify="right", style="green")
    table.add_column("Unsafe", justify="right", style="red")

    for name in CATEGORIES:
        count = getattr(report, name)
        table.add_row(name, str(count.safe), str(count.unsafe))
    table.add_section()
    table.add_row("[bold]total[/bold]", str(report.total.safe), str(report.total.unsafe))
    return table


def _write_output(report: Report, output: Optional[Path]):
    if output is None:
        return
    with open(output, 'w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, indent=2)
    console.print(f"✓ Report written to {output}")


def _run_scan(folder: Path, include_tests: bool, workers: int) -> Report:
    try:
        return build_report(folder, include_tests=include_tests, max_workers=workers)
    except TraversalError as e:
        console.print(f"[red]Error: failed to traverse {e.path}: {e.message}[/red]")
        raise typer.Exit(1)
    except ScanError as e:
        console.print(f"[red]Error: failed to scan file {e.path}: {e.message}[/red]")
        raise typer.Exit(1)


@app.command()
def scan(
    folder: Path = typer.Argument(..., help="Folder to scan"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON report here"),
    include_tests: bool = typer.Option(False, "--include-tests", help="Also count #[test] and #[cfg(test)] items"),
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Files scanned concurrently"),
):
    """
    Scan a local directory.
    """
    if not folder.exists():
        console.print(f"[red]Error: Folder {folder} does not exist[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold blue]🔍 Scanning:[/bold blue] {folder}\n")
    report = _run_scan(folder, include_tests, workers)
    console.print(render_report(report, str(folder)))
    _write_output(report, output)


@app.command()
def remote(
    user: str = typer.Argument(..., help="Repository owner"),
    repo: str = typer.Argument(..., help="Repository name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the JSON report here"),
    include_tests: bool = typer.Option(False, "--include-tests", help="Also count #[test] and #[cfg(test)] items"),
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Files scanned concurrently"),
):
    """
    Clone a remote repository and scan it.
    """
    settings = get_settings()
    console.print(f"[cyan]→ Cloning {user}/{repo} from {settings.GIT_HOST}[/cyan]")
    try:
        with cloned_repository(user, repo, settings) as checkout:
            report = _run_scan(checkout, include_tests, workers)
    except CloneError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(render_report(report, f"{user}/{repo}"))
    _write_output(report, output)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: $HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: $PORT)"),
):
    """
    Run the HTTP service.
    """
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "server:create_app",
        factory=True,
        host=host or settings.HOST,
        port=port or settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    app()
