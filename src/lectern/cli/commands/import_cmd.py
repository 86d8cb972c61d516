# ABOUTME: The `lectern import` command for enriching book files.
# ABOUTME: Imports files into an in-memory library, waits for enrichment, and prints the results.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from lectern.cli import options
from lectern.cli.options import api_key_option, load_config, timeout_option
from lectern.config import EnrichmentConfig
from lectern.core.enrichment import build_enricher
from lectern.core.library import Library, LibraryItem, UnsupportedFormatError
from lectern.metadata.types import BookFormat

console = Console()

_SUPPORTED_SUFFIXES = {ext for fmt in BookFormat for ext in fmt.extensions}


def _collect_paths(paths: tuple[Path, ...]) -> list[Path]:
    """Expand directories into the supported book files they contain."""
    found: list[Path] = []
    for path in paths:
        if path.is_dir():
            found.extend(
                sorted(p for p in path.rglob("*") if p.suffix.lower() in _SUPPORTED_SUFFIXES)
            )
        else:
            found.append(path)
    return found


async def _import_all(
    paths: list[Path], config: EnrichmentConfig, with_covers: bool
) -> tuple[list[LibraryItem], list[tuple[Path, str]]]:
    async with options.create_http_client(config) as http_client:
        library = Library(build_enricher(config, http_client), with_covers=with_covers)
        rejected: list[tuple[Path, str]] = []
        for path in paths:
            try:
                library.import_file(path)
            except UnsupportedFormatError as exc:
                rejected.append((path, str(exc)))
        await library.wait()
        return list(library), rejected


def _item_table(item: LibraryItem) -> Table:
    table = Table(title=item.file_path.name, show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Title", item.title)
    table.add_row("Author", item.author or "[dim]unknown[/dim]")
    table.add_row("Publisher", item.publisher or "[dim]unknown[/dim]")
    table.add_row("Published", item.published_date or "[dim]unknown[/dim]")
    if item.page_count is not None:
        table.add_row("Pages", str(item.page_count))
    table.add_row("ISBN", item.isbn or "[dim]none[/dim]")
    if item.categories:
        table.add_row("Categories", ", ".join(item.categories))
    table.add_row("Language", item.language or "[dim]unknown[/dim]")
    if item.average_rating is not None:
        count = f" ({item.ratings_count} ratings)" if item.ratings_count else ""
        table.add_row("Rating", f"{item.average_rating:.1f}{count}")
    description = item.description or "[dim]none[/dim]"
    if len(description) > 300:
        description = description[:297] + "..."
    table.add_row("Description", description)
    table.add_row("Cover", f"{len(item.cover_image)} bytes" if item.cover_image else "no")
    return table


def _cover_options_table(item: LibraryItem) -> Table:
    table = Table(title=f"Cover options for {item.title}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Source")
    table.add_column("Label")
    table.add_column("Thumbnail", justify="right")
    for index, candidate in enumerate(item.cover_options, start=1):
        size = f"{len(candidate.thumbnail)} B" if candidate.thumbnail else "-"
        table.add_row(str(index), candidate.source.display_name, candidate.label, size)
    return table


@click.command("import")
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--covers/--no-covers",
    "with_covers",
    default=True,
    help="Gather alternative cover options while enriching (default: on).",
)
@api_key_option
@timeout_option
def import_command(
    paths: tuple[Path, ...],
    with_covers: bool,
    api_key: str | None,
    timeout: float | None,
) -> None:
    """Import book files (or directories of them) and enrich their metadata."""
    config = load_config(api_key, timeout)
    files = _collect_paths(paths)
    if not files:
        console.print("[yellow]No book files found.[/yellow]")
        return

    console.print(f"Found [bold]{len(files)}[/bold] file(s)\n")
    with console.status("Fetching metadata..."):
        items, rejected = asyncio.run(_import_all(files, config, with_covers))

    for item in items:
        console.print(_item_table(item))
        if item.cover_options:
            console.print(_cover_options_table(item))
        console.print()

    parts = [f"[green]{len(items)} imported[/green]"]
    if rejected:
        parts.append(f"[yellow]{len(rejected)} skipped[/yellow]")
    console.print(", ".join(parts))
    for path, msg in rejected:
        console.print(f"  [dim]{path.name}:[/dim] {msg}")
