"""Command line interface for cgg."""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cgg.archive.transport import open_transport
from cgg.charts.render import render_batch
from cgg.config import (
    DEFAULT_HEIGHT,
    DEFAULT_OUTPUT,
    DEFAULT_WIDTH,
    AppConfig,
    parse_plugins,
    parse_source,
)
from cgg.errors import CggError
from cgg.models import Plugin
from cgg.pipeline import extract
from cgg.utils.text import split_list

EXAMPLES = """Examples:

  cgg graph -i /var/lib/collectd/myhost/ -t "last 4 hours"

  cgg graph -i user@192.168.0.163:/var/lib/collectd/myhost/ -t "last 1 hour" --processes "firefox,spotify"
"""

console = Console()
app = typer.Typer(help="cgg - charts from collectd process and memory data", epilog=EXAMPLES)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _fail(error: CggError) -> None:
    console.print(f"[red]Error:[/red] {error.message}")
    raise typer.Exit(code=1)


@app.command()
def graph(
    input_path: str = typer.Option(
        ..., "--input", "-i", help="collectd host directory, local path or user@host:path"
    ),
    out: str = typer.Option(DEFAULT_OUTPUT, "--out", "-o", help="Output filename"),
    width: int = typer.Option(DEFAULT_WIDTH, "--width", "-w", help="Width of the output image"),
    height: int = typer.Option(DEFAULT_HEIGHT, "--height", "-h", help="Height of the output image"),
    timespan: Optional[str] = typer.Option(
        None, "--timespan", "-t", help="Descriptive timespan, e.g. 'last 2 hours', 'last 10 days'"
    ),
    start: Optional[int] = typer.Option(None, "--start", help="Start timestamp"),
    end: Optional[int] = typer.Option(None, "--end", help="End timestamp"),
    plugins: str = typer.Option(
        "processes", "--plugins", "-p", help="Comma separated plugins: processes, memory"
    ),
    processes: Optional[str] = typer.Option(
        None, "--processes", help="Comma separated processes to draw, all by default"
    ),
    max_processes: Optional[int] = typer.Option(
        None,
        "--max-processes",
        "-m",
        help="Maximum number of processes on one chart (up to 20); extra charts get _1, _2 suffixes",
    ),
    memory: str = typer.Option(
        "free",
        "--memory",
        help="Comma separated memory types: buffered, cached, free, slab_recl, slab_unrecl, used",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Generate charts from collectd data."""
    _setup_logging(verbose)
    try:
        config = AppConfig(
            input=input_path,
            output=out,
            width=width,
            height=height,
            timespan=timespan,
            start=start,
            end=end,
            plugins=parse_plugins(plugins),
            processes=split_list(processes),
            max_processes=max_processes,
            memory=split_list(memory),
        )
        result = extract(config)
        for batch in result.batches:
            path = render_batch(batch, result.window, config.width, config.height)
            console.print(f"Saved [bold]{path}[/bold] ({len(batch.series)} series)")
    except CggError as exc:
        _fail(exc)
        return

    if not result.batches:
        console.print("[yellow]No series to draw.[/yellow]")
    if result.partial:
        console.print(
            f"[yellow]Warning: {len(result.failures)} series skipped because their "
            f"archives could not be decoded:[/yellow]"
        )
        for message in result.failures.values():
            console.print(f"  {message}")


@app.command()
def series(
    input_path: str = typer.Option(
        ..., "--input", "-i", help="collectd host directory, local path or user@host:path"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """List the process and memory series available in a collectd directory."""
    _setup_logging(verbose)
    try:
        with open_transport(parse_source(input_path)) as transport:
            keys = sorted(key for plugin in Plugin for key in transport.list(plugin))
    except CggError as exc:
        _fail(exc)
        return

    if not keys:
        console.print("[yellow]No series found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Plugin")
    table.add_column("Instance")
    table.add_column("Metric")
    for key in keys:
        table.add_row(key.plugin.value, key.instance, key.metric)
    console.print(table)
