"""Command-line interface for consoletail."""

import logging
import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from . import __version__
from .classifier import classify
from .config_keep import (
    parse_keep_file,
    generate_sample_keep_file,
    KeepParseError,
)
from .config_noise import (
    parse_noise_file,
    generate_sample_noise_file,
    NoiseParseError,
)
from .exporter import ExportFormat, ExportTarget, RecordExporter
from .models import ClassifiedRecord, FilterLevel, KeepConfig, NoiseConfig, Severity
from .noise_filter import FilterStats, NoiseFilter, create_default_filter
from .reader import INITIAL_LOAD_LINES, ReadFailure
from .scheduler import DEFAULT_POLL_INTERVAL
from .service import DEFAULT_SNAPSHOT_LINES, LogTailService
from .stream import LogStream

app = typer.Typer(
    name="consoletail",
    help="Tail, classify and filter a game server's console log.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

# Default file names
DEFAULT_NOISE_FILE = ".consolenoise"
DEFAULT_KEEP_FILE = ".consolekeep"

SOURCE_ID = "console"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"consoletail {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging on stderr.",
        ),
    ] = False,
) -> None:
    """consoletail - Tail and classify a game server console log."""
    configure_logging(verbose)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing config files.",
        ),
    ] = False,
) -> None:
    """Create sample .consolenoise and .consolekeep files in the current directory."""
    cwd = Path.cwd()
    created_files = []
    skipped_files = []

    for name, generate in (
        (DEFAULT_NOISE_FILE, generate_sample_noise_file),
        (DEFAULT_KEEP_FILE, generate_sample_keep_file),
    ):
        path = cwd / name
        if force and path.exists():
            path.unlink()
        if generate(path):
            created_files.append(name)
        else:
            skipped_files.append(name)

    if created_files:
        console.print(f"[green]Created:[/green] {', '.join(created_files)}")

    if skipped_files:
        console.print(
            f"[yellow]Skipped (already exist):[/yellow] {', '.join(skipped_files)}"
        )
        console.print("[dim]Use --force to overwrite existing files.[/dim]")


@app.command()
def clear(
    path: Annotated[Path, typer.Argument(help="Console log file to truncate.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation."),
    ] = False,
) -> None:
    """Truncate the console log file."""
    if not yes:
        typer.confirm(f"Truncate {path}?", abort=True)

    service = LogTailService({SOURCE_ID: path})
    try:
        cleared = service.clear(SOURCE_ID)
    except ReadFailure as e:
        err_console.print(f"[red]Failed to clear log:[/red] {e}")
        raise typer.Exit(1)

    if cleared:
        console.print("[green]Console log cleared.[/green]")
    else:
        console.print(f"[yellow]{path} does not exist, nothing to clear.[/yellow]")


@app.command("classify")
def classify_file(
    input_file: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Path to a file containing console log output.",
            exists=True,
            readable=True,
        ),
    ],
    noise_file: Annotated[
        Path,
        typer.Option("--noise-file", help="Path to .consolenoise file."),
    ] = Path(DEFAULT_NOISE_FILE),
    keep_file: Annotated[
        Optional[Path],
        typer.Option("--keep-file", help="Path to .consolekeep file."),
    ] = None,
    level: Annotated[
        FilterLevel,
        typer.Option("--level", "-l", help="Filter level.", case_sensitive=False),
    ] = FilterLevel.FILTERED,
    stats: Annotated[
        bool,
        typer.Option("--stats", "-s", help="Show filtering statistics at the end."),
    ] = False,
    color: Annotated[
        bool,
        typer.Option("--color/--no-color", help="Enable/disable colored output."),
    ] = True,
    output: Annotated[
        Optional[str],
        typer.Option(
            "--output",
            "-o",
            help="Write visible records to this file (or stdout/stderr) instead of printing.",
        ),
    ] = None,
    fmt: Annotated[
        ExportFormat,
        typer.Option("--format", help="Output format for --output.", case_sensitive=False),
    ] = ExportFormat.TXT,
) -> None:
    """Classify every line of a file, apply noise rules, and print the visible lines."""
    noise_filter = _load_filter(noise_file, keep_file)
    filter_stats = FilterStats() if stats else None

    try:
        content = input_file.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        err_console.print(f"[red]Error reading input file:[/red] {e}")
        raise typer.Exit(1)

    visible = []
    for line in content.splitlines():
        result = noise_filter.evaluate(classify(line), level)
        if filter_stats:
            filter_stats.record(result)
        if result.visible:
            visible.append(result.record)

    if output:
        with RecordExporter(ExportTarget(output), fmt) as exporter:
            exporter.write_all(visible)
    else:
        for record in visible:
            _print_record(record, color=color)

    if filter_stats:
        err_console.print()
        err_console.print("[bold]Filter Statistics:[/bold]")
        err_console.print(filter_stats.summary(), markup=False, highlight=False)


@app.command()
def snapshot(
    path: Annotated[Path, typer.Argument(help="Console log file.")],
    lines: Annotated[
        int,
        typer.Option("--lines", "-n", help="Number of lines to load (max 2000)."),
    ] = DEFAULT_SNAPSHOT_LINES,
    noise_file: Annotated[
        Path,
        typer.Option("--noise-file", help="Path to .consolenoise file."),
    ] = Path(DEFAULT_NOISE_FILE),
    keep_file: Annotated[
        Optional[Path],
        typer.Option("--keep-file", help="Path to .consolekeep file."),
    ] = None,
    level: Annotated[
        FilterLevel,
        typer.Option("--level", "-l", help="Filter level.", case_sensitive=False),
    ] = FilterLevel.FILTERED,
    color: Annotated[
        bool,
        typer.Option("--color/--no-color", help="Enable/disable colored output."),
    ] = True,
) -> None:
    """Print the last lines of the console log."""
    noise_filter = _load_filter(noise_file, keep_file)
    service = LogTailService({SOURCE_ID: path})

    try:
        snap = service.snapshot(SOURCE_ID, max_lines=lines)
    except ReadFailure as e:
        err_console.print(f"[red]Failed to read log:[/red] {e}")
        raise typer.Exit(1)

    if not snap.exists:
        err_console.print(f"[yellow]Console log not found:[/yellow] {snap.path}")
        raise typer.Exit(1)

    records = [classify(line) for line in snap.lines]
    visible = noise_filter.view(records, level)
    for record in visible:
        _print_record(record, color=color)

    hidden = len(records) - len(visible)
    err_console.print(
        f"[dim]{len(visible)} lines shown ({hidden} filtered), size {snap.size} bytes[/dim]"
    )


@app.command()
def follow(
    path: Annotated[Path, typer.Argument(help="Console log file to follow.")],
    interval: Annotated[
        float,
        typer.Option("--interval", help="Seconds between polls."),
    ] = DEFAULT_POLL_INTERVAL,
    lines: Annotated[
        int,
        typer.Option("--lines", "-n", help="Lines to show from the initial load."),
    ] = INITIAL_LOAD_LINES,
    noise_file: Annotated[
        Path,
        typer.Option("--noise-file", help="Path to .consolenoise file."),
    ] = Path(DEFAULT_NOISE_FILE),
    keep_file: Annotated[
        Optional[Path],
        typer.Option("--keep-file", help="Path to .consolekeep file."),
    ] = None,
    level: Annotated[
        FilterLevel,
        typer.Option("--level", "-l", help="Filter level.", case_sensitive=False),
    ] = FilterLevel.FILTERED,
    raw: Annotated[
        bool,
        typer.Option("--raw", help="Show every line (disable the noise filter)."),
    ] = False,
    color: Annotated[
        bool,
        typer.Option("--color/--no-color", help="Enable/disable colored output."),
    ] = True,
) -> None:
    """Follow the console log, printing new lines as they are written.

    Examples:
        consoletail follow ~/Zomboid/server-console.txt
        consoletail follow server-console.txt --level important
        consoletail follow server-console.txt --raw --interval 0.5
    """
    noise_filter = _load_filter(noise_file, keep_file)
    service = LogTailService({SOURCE_ID: path})
    first_update = True

    def on_update(records: list[ClassifiedRecord], replaced: bool) -> None:
        nonlocal first_update
        if replaced and not first_update:
            console.rule("[yellow]log rotated[/yellow]")
        if stream.exists:
            first_update = False
        for record in records:
            if noise_filter.evaluate(record, stream.effective_level).visible:
                _print_record(record, color=color)

    stream = LogStream(
        service,
        SOURCE_ID,
        noise_filter=noise_filter,
        level=level,
        initial_lines=lines,
        interval=interval,
        on_update=on_update,
    )
    stream.set_filtered(not raw)

    was_stale = False
    try:
        with stream:
            if not stream.exists:
                err_console.print(
                    f"[yellow]Waiting for {path} to be created...[/yellow]"
                )
            while True:
                time.sleep(0.25)
                if stream.stale and not was_stale:
                    err_console.print(
                        f"[red]Read failing, showing stale data:[/red] "
                        f"{stream.scheduler.last_error}"
                    )
                was_stale = stream.stale
    except KeyboardInterrupt:
        err_console.print("\n[dim]Interrupted.[/dim]")


def _load_filter(noise_path: Path, keep_path: Path | None) -> NoiseFilter:
    """Build the noise filter from config files plus the built-in rules."""
    return create_default_filter(
        noise_config=_load_noise_config(noise_path),
        keep_config=_load_keep_config(keep_path),
    )


def _load_noise_config(path: Path) -> NoiseConfig:
    """Load noise rules from file, with fallback to no extra rules."""
    if not path.exists():
        err_console.print(
            f"[yellow]Warning:[/yellow] {path} not found. "
            "Run 'consoletail init' to create one."
        )
        return NoiseConfig()

    try:
        return parse_noise_file(path)
    except NoiseParseError as e:
        err_console.print(f"[red]Error parsing {path}:[/red] {e}")
        raise typer.Exit(1)


def _load_keep_config(path: Path | None) -> KeepConfig | None:
    """Load keep patterns from file; None selects the built-in patterns."""
    if path is None:
        path = Path(DEFAULT_KEEP_FILE)

    if not path.exists():
        # Keep file is optional, don't warn
        return None

    try:
        return parse_keep_file(path)
    except KeepParseError as e:
        err_console.print(f"[red]Error parsing {path}:[/red] {e}")
        raise typer.Exit(1)


# Severity to color mapping for rich output
SEVERITY_COLORS = {
    Severity.LOG: "green",
    Severity.INFO: "cyan",
    Severity.DEBUG: "blue",
    Severity.WARN: "yellow",
    Severity.ERROR: "red bold",
    Severity.UNKNOWN: "default",
}


def _print_record(record: ClassifiedRecord, color: bool = True) -> None:
    """Print a record with optional severity badge and coloring."""
    if not color:
        console.print(record.raw, highlight=False, markup=False)
        return

    text = Text()
    if record.severity != Severity.UNKNOWN:
        text.append(f"{record.severity.value:<5} ", style=f"{SEVERITY_COLORS[record.severity]} reverse")
        text.append(" ")
    if record.category:
        text.append(f"[{record.category}] ", style="magenta")
    text.append(record.message or record.raw, style=SEVERITY_COLORS[record.severity])
    console.print(text, highlight=False)


if __name__ == "__main__":
    app()
