"""CLI entry point — Typer app for docembed commands.

Usage:
    docembed build --output local_data/docs.snapshot
    docembed estimate
    docembed query "How do I configure a static site?" -k 5
    docembed info
    docembed status
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from docembed import __version__
from docembed.config import Settings, load_settings
from docembed.embeddings.base import EmbeddingProvider

app = typer.Typer(
    name="docembed",
    help="Documentation embeddings — build, query, inspect snapshots.",
    no_args_is_help=True,
)

console = Console()

_CONFIG = typer.Option(None, "--config", "-c", help="Path to settings.yaml")
_VERBOSE = typer.Option(False, "--verbose", "-v", help="Debug logging")
_QUESTION = typer.Argument(..., help="Free-text query")


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


def _provider(settings: Settings, name: str | None, model: str | None) -> EmbeddingProvider:
    from docembed.embeddings.factory import provider_from_settings

    return provider_from_settings(settings.embedding, provider=name, model=model)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = _CONFIG,
    verbose: bool = _VERBOSE,
) -> None:
    """Configure logging and load settings for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    ctx.obj = {"settings": load_settings(config)}


@app.command()
def build(
    ctx: typer.Context,
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Snapshot path (default from settings)",
    ),
    embedding_provider: str | None = typer.Option(
        None, "--embedding", "-e", help="Embedding provider",
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="Embedding model"),
    chunk_size: int | None = typer.Option(
        None, "--chunk-size", help="Maximum characters per chunk",
    ),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Concurrent embed calls"),
    strict: bool = typer.Option(
        False, "--strict", help="Exit 1 and write no snapshot if any chunk failed to embed",
    ),
) -> None:
    """Walk the content roots, embed every chunk and write a snapshot."""
    from docembed.chunking.paragraph_chunker import ParagraphChunker
    from docembed.corpus.walker import CorpusWalker
    from docembed.errors import ContractViolation, ReadFailure
    from docembed.pipeline.build import CollectionBuilder, IndexPipeline

    settings = _settings(ctx)
    try:
        emb = _provider(settings, embedding_provider, model)
    except (ValueError, ImportError) as exc:
        console.print(f"[bold red]Embedding provider error:[/] {exc}")
        raise typer.Exit(code=1) from exc

    walker = CorpusWalker(
        ParagraphChunker(max_size=chunk_size or settings.chunking.max_size),
        extensions=settings.corpus.extensions,
    )
    builder = CollectionBuilder(
        emb,
        collection_name=settings.snapshot.collection,
        pause_every=settings.build.pause_every,
        pause_seconds=settings.build.pause_seconds,
        max_retries=settings.build.max_retries,
        initial_retry_delay=settings.build.initial_retry_delay,
        max_retry_delay=settings.build.max_retry_delay,
        workers=workers or settings.build.workers,
    )
    out = output or Path(settings.snapshot.path)

    try:
        report = IndexPipeline(walker, builder).run(
            settings.corpus.roots, output_path=out, require_complete=strict,
        )
    except ReadFailure as exc:
        console.print(f"[bold red]Read failure:[/] {exc}")
        console.print("[red]No snapshot written.[/]")
        raise typer.Exit(code=1) from exc
    except ContractViolation as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        console.print("[red]No snapshot written.[/]")
        raise typer.Exit(code=1) from exc

    by_category: dict[str, int] = {}
    for entry in report.collection:
        cat = entry.metadata.get("type", "")
        by_category[cat] = by_category.get(cat, 0) + 1

    table = Table(title=f"Collection {report.collection.name}")
    table.add_column("Category", style="cyan")
    table.add_column("Embedded", justify="right")
    for cat, n in by_category.items():
        table.add_row(cat, str(n))
    console.print(table)

    console.print(f"\n[bold green]Embedded:[/] {report.embedded}/{report.total_chunks}")
    if report.snapshot_path is not None:
        console.print(f"  Snapshot: {report.snapshot_path} ({report.snapshot_bytes} bytes)")
    else:
        console.print("  [red]No snapshot written.[/]")

    if report.failures:
        console.print(f"  [yellow]Failed ({report.failed}):[/]")
        for f in report.failures:
            console.print(f"    {f.chunk_id}: {f.error}")
        if strict:
            raise typer.Exit(code=1)


@app.command()
def estimate(
    ctx: typer.Context,
    model: str | None = typer.Option(None, "--model", "-m", help="Embedding model to price"),
    chunk_size: int | None = typer.Option(
        None, "--chunk-size", help="Maximum characters per chunk",
    ),
) -> None:
    """Dry run: walk and chunk the corpus, estimate tokens and cost."""
    from docembed.chunking.paragraph_chunker import ParagraphChunker
    from docembed.corpus.walker import CorpusWalker
    from docembed.errors import ContractViolation, ReadFailure
    from docembed.pipeline.estimate import estimate as estimate_cost

    settings = _settings(ctx)
    walker = CorpusWalker(
        ParagraphChunker(max_size=chunk_size or settings.chunking.max_size),
        extensions=settings.corpus.extensions,
    )
    try:
        chunks = walker.walk_roots(settings.corpus.roots)
    except ReadFailure as exc:
        console.print(f"[bold red]Read failure:[/] {exc}")
        raise typer.Exit(code=1) from exc
    except ContractViolation as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(code=1) from exc

    result = estimate_cost(chunks, model or settings.embedding.model)

    table = Table(title="Dry run")
    table.add_column("Category", style="cyan")
    table.add_column("Chunks", justify="right")
    for cat, n in result.by_category.items():
        table.add_row(cat, str(n))
    console.print(table)
    console.print(
        f"\n{result.chunks} chunks, {result.characters} chars, ~{result.tokens} tokens"
    )
    console.print(f"Estimated cost with {result.model}: [bold]${result.cost_usd:.4f}[/]")


@app.command()
def query(
    ctx: typer.Context,
    question: Annotated[str, _QUESTION],
    top_k: int = typer.Option(5, "--top-k", "-k", help="Number of results"),
    snapshot: Path | None = typer.Option(None, "--snapshot", "-s", help="Snapshot path"),
    embedding_provider: str | None = typer.Option(
        None, "--embedding", "-e", help="Embedding provider (must match the build)",
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="Embedding model"),
) -> None:
    """Search a snapshot for the chunks most similar to a question."""
    from docembed.pipeline.query import load_collection, search

    settings = _settings(ctx)
    path = snapshot or Path(settings.snapshot.path)
    if not path.exists():
        console.print(f"[bold red]Snapshot not found:[/] {path}")
        raise typer.Exit(code=1)

    try:
        collection = load_collection(path=path)
        emb = _provider(settings, embedding_provider, model)
        results = search(collection, question, top_k, emb)
    except (ValueError, ImportError) as exc:
        # DecodeFailure and ContractViolation are ValueErrors
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title=f"Results for: {question}")
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Chunk", style="cyan")
    table.add_column("Text")
    for i, r in enumerate(results, 1):
        preview = r.text.replace("\n", " ")
        table.add_row(str(i), f"{r.score:.3f}", r.id, preview[:80])
    console.print(table)


@app.command()
def info(
    ctx: typer.Context,
    snapshot: Path | None = typer.Option(None, "--snapshot", "-s", help="Snapshot path"),
) -> None:
    """Show name, entry count and size of a snapshot."""
    from docembed.errors import DecodeFailure
    from docembed.pipeline.query import info as collection_info
    from docembed.pipeline.query import load_collection

    settings = _settings(ctx)
    path = snapshot or Path(settings.snapshot.path)
    if not path.exists():
        console.print(f"[bold red]Snapshot not found:[/] {path}")
        raise typer.Exit(code=1)

    try:
        collection = load_collection(path=path)
    except DecodeFailure as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise typer.Exit(code=1) from exc

    details = collection_info(collection)
    table = Table(title="Collection")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", details.name)
    table.add_row("Entries", str(details.entry_count))
    table.add_row("Size (bytes)", str(details.size_bytes))
    for key, value in collection.metadata.items():
        table.add_row(key, value)
    console.print(table)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show available providers and effective settings."""
    from docembed.embeddings.factory import available_providers

    settings = _settings(ctx)
    console.print(f"\n[bold green]docembed[/] v{__version__}\n")

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Embedding Providers", ", ".join(available_providers()))
    table.add_row("Provider", f"{settings.embedding.provider} ({settings.embedding.model})")
    table.add_row(
        "Content Roots",
        ", ".join(f"{r.category}={r.path}" for r in settings.corpus.roots),
    )
    table.add_row("Extensions", ", ".join(settings.corpus.extensions))
    table.add_row("Chunk Size", str(settings.chunking.max_size))
    table.add_row("Snapshot", settings.snapshot.path)

    console.print(table)


if __name__ == "__main__":
    app()
