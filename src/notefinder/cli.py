"""Command line interface for NoteFinder."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from notefinder import messages
from notefinder.app import NoteFinder
from notefinder.config import AppConfig
from notefinder.errors import NoteFinderError
from notefinder.index.search import SearchResult

console = Console()
app = typer.Typer(help="NoteFinder - search Markdown notes by meaning")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_config(
    notes_dir: Path, data_dir: Optional[Path], model: Optional[str], verbose: bool
) -> AppConfig:
    if not notes_dir.is_dir():
        raise typer.BadParameter(f"Notes folder not found: {notes_dir}")
    config = AppConfig(notes_dir=notes_dir, data_dir=data_dir, log_level="DEBUG" if verbose else "INFO")
    if model:
        config.model_name = model
    return config


def _print_results(results: List[SearchResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Note")
    table.add_column("Section")
    table.add_column("Preview")

    for result in results:
        section = " > ".join(h.lstrip("# ") for h in result.chunk.headings) or result.chunk_id
        table.add_row(f"{result.similarity:.4f}", result.path, section, result.chunk.preview)

    console.print(table)


NotesOption = typer.Option(..., "--notes", "-n", help="Notes folder", resolve_path=True)
DataDirOption = typer.Option(None, "--data-dir", help="Directory holding the embedding caches")
ModelOption = typer.Option(None, "--model", help="Sentence-transformer model name")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def index(
    notes_dir: Path = typer.Argument(..., help="Folder with Markdown notes.", resolve_path=True),
    data_dir: Optional[Path] = DataDirOption,
    model: Optional[str] = ModelOption,
    verbose: bool = VerboseOption,
) -> None:
    """Embed every note in a folder."""
    _setup_logging(verbose)
    config = _build_config(notes_dir, data_dir, model, verbose)

    async def run() -> None:
        async with NoteFinder(config, base_dir=Path.cwd(), notify=console.print) as finder:
            finder.processor.prune_missing()
            summary = await finder.processor.process_vault()
            if summary is not None:
                console.print(
                    f"New: {summary.new}, cached: {summary.cached}, "
                    f"skipped: {summary.skipped}, failed: {summary.failed}"
                )

    try:
        asyncio.run(run())
    except NoteFinderError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    notes_dir: Path = NotesOption,
    data_dir: Optional[Path] = DataDirOption,
    model: Optional[str] = ModelOption,
    top_k: Optional[int] = typer.Option(None, help="Number of results to display"),
    threshold: Optional[float] = typer.Option(None, help="Minimum similarity"),
    folder: Optional[str] = typer.Option(None, help="Only notes under this folder"),
    tag: Optional[List[str]] = typer.Option(
        None, "--tag", help="Only notes with one of these tags (leading # optional)"
    ),
    verbose: bool = VerboseOption,
) -> None:
    """Execute a semantic search."""
    _setup_logging(verbose)
    config = _build_config(notes_dir, data_dir, model, verbose)

    async def run() -> List[SearchResult]:
        async with NoteFinder(config, base_dir=Path.cwd()) as finder:
            return await finder.search.search(
                query,
                limit=top_k or config.search.limit,
                threshold=config.search.threshold if threshold is None else threshold,
                folder=folder,
                tags=tag,
            )

    try:
        results = asyncio.run(run())
    except NoteFinderError as exc:
        console.print(f"[red]Search failed: {exc}[/red]")
        raise typer.Exit(code=1)

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return
    _print_results(results)


@app.command()
def similar(
    note: Path = typer.Argument(..., help="Note to compare against", resolve_path=True),
    notes_dir: Path = NotesOption,
    data_dir: Optional[Path] = DataDirOption,
    model: Optional[str] = ModelOption,
    top_k: Optional[int] = typer.Option(None, help="Number of results to display"),
    threshold: Optional[float] = typer.Option(None, help="Minimum similarity"),
    verbose: bool = VerboseOption,
) -> None:
    """List notes similar to NOTE."""
    _setup_logging(verbose)
    config = _build_config(notes_dir, data_dir, model, verbose)

    async def run() -> List[SearchResult]:
        async with NoteFinder(config, base_dir=Path.cwd()) as finder:
            handle = finder.source.handle_for(note)
            return await finder.search.find_similar(
                handle,
                limit=top_k or config.search.limit,
                threshold=config.search.similar_threshold if threshold is None else threshold,
            )

    try:
        results = asyncio.run(run())
    except NoteFinderError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not results:
        console.print(f"[yellow]{messages.NO_SIMILAR_NOTES}[/yellow]")
        return
    _print_results(results)


@app.command()
def stats(
    notes_dir: Path = NotesOption,
    data_dir: Optional[Path] = DataDirOption,
    model: Optional[str] = ModelOption,
) -> None:
    """Show how much of the notes folder is indexed."""
    config = _build_config(notes_dir, data_dir, model, False)
    finder = NoteFinder(config, base_dir=Path.cwd())
    finder.cache.initialize()
    index_stats = finder.search.get_index_stats()
    console.print(
        f"Cached: {index_stats.cached_notes}/{index_stats.total_notes} notes "
        f"({index_stats.coverage:.1f}%) - {index_stats.total_chunks} chunks - "
        f"Size: {index_stats.cache_size / 1024:.2f} KB"
    )


@app.command()
def clear(
    notes_dir: Path = NotesOption,
    data_dir: Optional[Path] = DataDirOption,
    model: Optional[str] = ModelOption,
) -> None:
    """Remove all cached embeddings for the model."""
    config = _build_config(notes_dir, data_dir, model, False)
    finder = NoteFinder(config, base_dir=Path.cwd())
    finder.cache.initialize()
    finder.cache.clear()
    finder.cache.save()
    console.print(messages.CACHE_CLEARED)


@app.command()
def watch(
    notes_dir: Path = typer.Argument(..., help="Folder with Markdown notes.", resolve_path=True),
    data_dir: Optional[Path] = DataDirOption,
    model: Optional[str] = ModelOption,
    interval: Optional[float] = typer.Option(
        None, help="Seconds between modification checks (default: 5 minutes)"
    ),
    verbose: bool = VerboseOption,
) -> None:
    """Index the folder, then re-embed modified notes until interrupted."""
    _setup_logging(verbose)
    config = _build_config(notes_dir, data_dir, model, verbose)

    async def run() -> None:
        async with NoteFinder(config, base_dir=Path.cwd(), notify=console.print) as finder:
            await finder.processor.process_vault()
            await finder.run_periodic_check(interval)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("Stopped.")
