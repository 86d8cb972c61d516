# ABOUTME: The `lectern covers` command for browsing cover image options.
# ABOUTME: Lists candidates from every catalog grouped by source, and can save one full-size cover.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from lectern.cli import options
from lectern.cli.options import api_key_option, load_config, timeout_option
from lectern.config import EnrichmentConfig
from lectern.core.enrichment import build_enricher
from lectern.metadata.types import CoverCandidate, CoverSource

console = Console()


async def _fetch_covers(
    config: EnrichmentConfig,
    title: str | None,
    author: str | None,
    isbn: str | None,
    pick: int | None,
) -> tuple[list[CoverCandidate], bytes | None]:
    async with options.create_http_client(config) as http_client:
        enricher = build_enricher(config, http_client)
        candidates = await enricher.fetch_cover_options(title, author, isbn)
        image = None
        if pick is not None and 1 <= pick <= len(candidates):
            image = await enricher.download_full_cover(candidates[pick - 1])
        return candidates, image


def _render(candidates: list[CoverCandidate]) -> None:
    groups: dict[CoverSource, list[tuple[int, CoverCandidate]]] = {}
    for index, candidate in enumerate(candidates, start=1):
        groups.setdefault(candidate.source, []).append((index, candidate))

    for source, group in groups.items():
        table = Table(title=source.display_name)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Label")
        table.add_column("Thumbnail", justify="right")
        table.add_column("Full size URL", overflow="fold")
        for index, candidate in group:
            size = f"{len(candidate.thumbnail)} B" if candidate.thumbnail else "-"
            table.add_row(str(index), candidate.label, size, candidate.full_url)
        console.print(table)


@click.command()
@click.option("--title", default=None, help="Book title to search for.")
@click.option("--author", default=None, help="Author name to search for.")
@click.option("--isbn", default=None, help="ISBN-10 or ISBN-13; used alone when given.")
@click.option(
    "--save",
    "save_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the full-size cover of the picked candidate to this file.",
)
@click.option(
    "--pick",
    type=click.IntRange(min=1),
    default=None,
    help="Candidate number to save (requires --save).",
)
@api_key_option
@timeout_option
def covers(
    title: str | None,
    author: str | None,
    isbn: str | None,
    save_path: Path | None,
    pick: int | None,
    api_key: str | None,
    timeout: float | None,
) -> None:
    """List cover image options from Google Books and Open Library."""
    if not (title or author or isbn):
        raise click.UsageError("Give at least one of --title, --author, or --isbn.")
    if (save_path is None) != (pick is None):
        raise click.UsageError("--save and --pick must be used together.")

    config = load_config(api_key, timeout)
    with console.status("Searching for covers..."):
        candidates, image = asyncio.run(_fetch_covers(config, title, author, isbn, pick))

    if not candidates:
        console.print("[yellow]No cover images found.[/yellow]")
        if pick is not None:
            raise SystemExit(1)
        return

    _render(candidates)

    if pick is None or save_path is None:
        return
    if pick > len(candidates):
        console.print(f"[red]Error:[/red] No candidate #{pick} (found {len(candidates)}).")
        raise SystemExit(1)
    if image is None:
        console.print(f"[red]Error:[/red] Could not download cover #{pick}.")
        raise SystemExit(1)

    save_path.write_bytes(image)
    console.print(f"[green]Saved:[/green] {save_path} ({len(image)} bytes)")
