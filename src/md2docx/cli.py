"""Click CLI for md2docx — convert markdown documents to DOCX."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from md2docx.config.hierarchy import load_config_hierarchy
from md2docx.errors.exceptions import Md2DocxError

console = Console()
error_console = Console(stderr=True)


def _log_level(base: str | int, verbosity: int) -> int:
    """Each ``-v`` lowers the configured base level one step, down to DEBUG."""
    level = base if isinstance(base, int) else logging.getLevelName(str(base).upper())
    if not isinstance(level, int):
        level = logging.WARNING
    return max(logging.DEBUG, level - 10 * verbosity)


def _setup_logging(verbosity: int, base_level: str | int = logging.WARNING) -> None:
    """Configure logging from the configured level and the verbosity count."""
    level = _log_level(base_level, verbosity)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


@click.group()
@click.version_option(package_name="md2docx")
def cli() -> None:
    """md2docx — Markdown to Word document converter."""


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output .docx path.")
@click.option(
    "--styles", "styles_path", type=click.Path(exists=True, dir_okay=False),
    help="YAML file overriding the default style table.",
)
@click.option("--toc", is_flag=True, default=False, help="Insert a table of contents.")
@click.option("--max-width", type=int, default=None, help="Resize images wider than this (px).")
@click.option("--quality", type=click.IntRange(1, 100), default=None, help="Image re-encode quality.")
@click.option("--no-cache", is_flag=True, default=False, help="Disable the image cache.")
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None, help="Image cache directory.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def convert(
    input_path: str,
    output: str | None,
    styles_path: str | None,
    toc: bool,
    max_width: int | None,
    quality: int | None,
    no_cache: bool,
    cache_dir: str | None,
    verbose: int,
) -> None:
    """Convert a markdown file to DOCX."""
    _setup_logging(verbose, load_config_hierarchy()["log_level"])
    from md2docx.core import Md2Docx

    try:
        converter = Md2Docx.from_config(
            styles_path=styles_path,
            toc=toc or None,
            image_max_width=max_width,
            image_quality=quality,
            cache_disabled=no_cache or None,
            cache_dir=cache_dir,
        )
        output_path = Path(output) if output else Path(input_path).with_suffix(".docx")
        result = converter.convert(input_path, output_path)
    except (Md2DocxError, ValueError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(f"[green]Written to {result.output_path}[/green]")

    if verbose >= 1:
        _print_summary(result)


def _print_summary(result: object) -> None:
    """Print a conversion summary."""
    from md2docx.types import ConversionResult

    if not isinstance(result, ConversionResult):
        return

    error_console.print()
    table = Table(title="Conversion Summary", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Output", str(result.output_path))
    table.add_row("Blocks", str(result.block_count))
    table.add_row("Images", f"{result.images.succeeded} ok, {result.images.failed} failed")
    table.add_row("Size", f"{len(result.data):,} bytes")
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")

    error_console.print(table)

    if result.images.failed_sources:
        failed = Table(title="Failed Images", show_header=True)
        failed.add_column("Source", style="red")
        for source in result.images.failed_sources:
            failed.add_row(source if len(source) <= 80 else source[:77] + "...")
        error_console.print(failed)


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output .html path.")
def preview(input_path: str, output: str | None) -> None:
    """Write an HTML preview of a markdown file."""
    from md2docx.document.preview import write_preview

    source = Path(input_path)
    target = Path(output) if output else source.with_suffix(".html")
    written = write_preview(source.read_text(encoding="utf-8"), target, title=source.stem)
    console.print(f"[green]Preview written to {written}[/green]")


@cli.group()
def cache() -> None:
    """Image cache management commands."""


def _open_store(cache_dir: str | None):
    from md2docx.cache.store import CacheStore

    config = load_config_hierarchy(cache_dir=cache_dir)
    return CacheStore(
        config["cache_dir"],
        max_age=config["cache_max_age"],
        max_size=config["cache_max_size"],
    )


@cache.command("stats")
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None, help="Image cache directory.")
def cache_stats(cache_dir: str | None) -> None:
    """Show cache statistics."""
    store = _open_store(cache_dir)
    stats = store.stats()

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Directory", stats.cache_dir)
    table.add_row("Entries", str(stats.item_count))
    table.add_row("Size (MB)", f"{stats.size_mb:.1f}")
    table.add_row("Max size (MB)", f"{stats.max_size / (1024 * 1024):.1f}")
    table.add_row("Max age (days)", f"{stats.max_age / 86400:.1f}")

    console.print(table)


@cache.command("clear")
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None, help="Image cache directory.")
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
def cache_clear(cache_dir: str | None) -> None:
    """Clear all cached images."""
    store = _open_store(cache_dir)
    count = len(store)
    store.clear()
    console.print(f"[green]Cache cleared ({count} entries).[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
