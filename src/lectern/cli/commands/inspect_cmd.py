# ABOUTME: The `lectern inspect` command for viewing embedded book metadata.
# ABOUTME: Shows what the file itself says, without any network lookup.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from lectern.formats.epub import EpubReadError, read_epub_metadata
from lectern.formats.pdf import PdfReadError, read_pdf_metadata
from lectern.metadata.types import BookFormat, MetadataRecord

console = Console()


def _read(path: Path, fmt: BookFormat) -> MetadataRecord:
    if fmt is BookFormat.EPUB:
        return read_epub_metadata(path)
    if fmt is BookFormat.PDF:
        return read_pdf_metadata(path)
    return MetadataRecord()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(path: Path) -> None:
    """Show metadata embedded in an EPUB or PDF file."""
    fmt = BookFormat.from_path(path)
    if fmt is None:
        console.print(f"[red]Error:[/red] Unsupported file format: {path.name}")
        raise SystemExit(1)

    try:
        meta = _read(path, fmt)
    except (EpubReadError, PdfReadError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    if fmt is BookFormat.MOBI:
        console.print("[dim]MOBI files carry no readable metadata; use `lectern import`.[/dim]")

    table = Table(title=str(path.name), show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Format", fmt.value.upper())
    table.add_row("Title", meta.title or "[dim]unknown[/dim]")
    table.add_row("Author", meta.author or "[dim]unknown[/dim]")
    table.add_row("Language", meta.language or "[dim]unknown[/dim]")
    table.add_row("Publisher", meta.publisher or "[dim]unknown[/dim]")
    table.add_row("Published", meta.published_date or "[dim]unknown[/dim]")
    if meta.page_count is not None:
        table.add_row("Pages", str(meta.page_count))
    table.add_row("ISBN-13", meta.isbn_13 or "[dim]none[/dim]")
    table.add_row("ISBN-10", meta.isbn_10 or "[dim]none[/dim]")
    if meta.categories:
        table.add_row("Categories", ", ".join(meta.categories))
    table.add_row("Description", meta.description or "[dim]none[/dim]")
    table.add_row("Cover", "yes" if meta.has_cover else "no")

    console.print(table)
