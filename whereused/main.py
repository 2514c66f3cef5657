"""whereused CLI - find where Apex classes are used across a Salesforce project."""
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import click
import typer
from rich.markup import escape
from rich.table import Table

from whereused.analyzer.core import analyze
from whereused.analyzer.errors import WhereUsedError
from whereused.analyzer.graph import CATEGORY_DEFINITIONS, get_usage_stats
from whereused.analyzer.models import UsageEntry
from whereused.config import __version__, get_config
from whereused.utils.logger import ConsoleTrace
from whereused.utils.safe_console import SafeConsole
from whereused.worker import analyze_in_worker

app = typer.Typer(
    name="whereused",
    help="Find where Apex classes are used by other classes, triggers, Flows, components and metadata",
    add_completion=False
)
console = SafeConsole()
# Progress and warnings go to stderr so --format json stays machine-readable
err_console = SafeConsole(stderr=True)

REPORT_PREFIX = "where-is-used"


def _fail(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    raise typer.Exit(1)


def resolve_repo_dir(repo: Optional[str]) -> Path:
    """Pick the repository: --repo, then WHEREUSED_REPO_DIR, then the cwd."""
    if repo:
        return Path(repo).expanduser().resolve()

    configured = get_config().repo_dir
    if configured:
        return Path(configured).expanduser().resolve()

    err_console.print("[yellow]⚠ WHEREUSED_REPO_DIR is not set. Using the current directory.[/yellow]")
    return Path.cwd()


def save_report(entries: List[UsageEntry], output_dir: Path, now: Optional[datetime] = None) -> Optional[Path]:
    """Write the results as JSON next to earlier reports.

    Saving is best effort: a failure is reported and None returned.
    """
    now = now or datetime.now()
    report_path = output_dir / f"{REPORT_PREFIX}_{now.strftime('%Y%m%d_%H%M%S')}.json"
    payload = {
        'generatedAt': now.isoformat(timespec='seconds'),
        'results': [entry.to_dict() for entry in entries],
    }
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        report_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding='utf-8')
    except OSError as e:
        err_console.print(f"[yellow]⚠ Could not save report to disk: {escape(str(e))}[/yellow]")
        return None
    return report_path


def _run(targets: List[str], repo: Optional[str], workers: Optional[int], isolated: bool,
         timeout: Optional[float], verbose: bool) -> List[UsageEntry]:
    """Shared analysis path for scan and stats."""
    try:
        config = get_config()
        max_workers = workers or config.max_workers
        timeout = timeout or config.worker_timeout
        ignore_dirs = config.ignore_dirs
    except ValueError as e:
        _fail(str(e))

    repo_dir = resolve_repo_dir(repo)
    trace = ConsoleTrace(err_console, verbose=verbose)

    try:
        with err_console.status(f"Scanning {repo_dir} for class usage..."):
            if isolated:
                return analyze_in_worker(repo_dir, targets, timeout=timeout, trace=trace, verbose=verbose)
            return analyze(repo_dir, targets, trace, max_workers=max_workers, ignored_dirs=ignore_dirs)
    except WhereUsedError as e:
        _fail(str(e))


def render_results(entries: List[UsageEntry]) -> None:
    """One table per class, one row per artifact kind."""
    for entry in entries:
        table = Table(title=f"{escape(entry.class_name)} ({entry.total} references)")
        table.add_column("Type", style="cyan")
        table.add_column("Count", justify="right", style="yellow")
        table.add_column("Used by", style="magenta", no_wrap=False)

        for category in CATEGORY_DEFINITIONS:
            items = entry.used_by[category['key']]
            table.add_row(
                console.sanitize(f"{category['icon']} {category['label']}"),
                str(len(items)),
                escape(", ".join(items)) if items else "[dim]-[/dim]",
            )

        console.print(table)
        console.print()


def render_summary(entries: List[UsageEntry]) -> None:
    stats = get_usage_stats(entries)

    console.print("[bold yellow]Summary:[/bold yellow]")
    console.print(f"  Classes analyzed: {stats['total_classes']}")
    console.print(f"  Total references: {stats['total_references']}")
    for category in CATEGORY_DEFINITIONS:
        console.print(f"  {category['icon']} {category['label']}: {stats['category_totals'][category['key']]}")

    if stats['unreferenced']:
        console.print(f"\n[bold yellow]Unreferenced classes ({len(stats['unreferenced'])}):[/bold yellow]")
        for class_name in stats['unreferenced']:
            console.print(f"  • {escape(class_name)}")
    else:
        console.print("\n[bold green]✓ Every class is referenced somewhere.[/bold green]")


@app.command()
def scan(
    targets: List[str] = typer.Argument(..., help="Apex class files (.cls) or class names"),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository root (default: WHEREUSED_REPO_DIR or the current directory)"),
    output_format: str = typer.Option(
        "table", "--format", "-f",
        click_type=click.Choice(["table", "json"], case_sensitive=False),
        help="Output format"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Threads used for matching (in-process runs only)"),
    isolated: bool = typer.Option(False, "--isolated", help="Run the analysis in a separate worker process"),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=1, help="Worker timeout in seconds (with --isolated)"),
    save: bool = typer.Option(False, "--save", help="Also save the results as a JSON report"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Directory for --save (default: WHEREUSED_OUTPUT_DIR or the current directory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show scan progress messages"),
):
    """Report which Apex classes, triggers, Flows, components and metadata use the given classes."""
    entries = _run(targets, repo, workers, isolated, timeout, verbose)

    if output_format.lower() == "json":
        typer.echo(json.dumps([entry.to_dict() for entry in entries], indent=2, ensure_ascii=False))
    else:
        render_results(entries)
        render_summary(entries)

    if save:
        directory = Path(output_dir or get_config().output_dir or Path.cwd()).expanduser().resolve()
        saved_path = save_report(entries, directory)
        if saved_path:
            err_console.print(f"[green]✓ Report saved to {escape(str(saved_path))}[/green]")


@app.command()
def stats(
    targets: List[str] = typer.Argument(..., help="Apex class files (.cls) or class names"),
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository root (default: WHEREUSED_REPO_DIR or the current directory)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Threads used for matching"),
):
    """Show reference counts per artifact kind and per class."""
    entries = _run(targets, repo, workers, isolated=False, timeout=None, verbose=False)
    usage = get_usage_stats(entries)

    table = Table(title="Usage Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")

    table.add_row("Classes Analyzed", str(usage['total_classes']))
    table.add_row("Total References", str(usage['total_references']))
    for category in CATEGORY_DEFINITIONS:
        table.add_row(console.sanitize(f"{category['icon']} {category['label']}"),
                      str(usage['category_totals'][category['key']]))
    table.add_row("Unreferenced Classes", str(len(usage['unreferenced'])))
    console.print(table)

    per_class = Table(title="References per Class", show_header=True, header_style="bold cyan")
    per_class.add_column("Class", style="cyan")
    per_class.add_column("References", justify="right", style="green")
    for class_name, total in usage['class_totals'].items():
        per_class.add_row(escape(class_name), str(total))
    console.print(per_class)


@app.command()
def version():
    """Print the whereused version."""
    typer.echo(f"whereused {__version__}")


@app.callback()
def main():
    """whereused - reverse-usage index for Apex classes."""
    pass


if __name__ == "__main__":
    app()
