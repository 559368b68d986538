"""Command line interface for blogsync."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from blogsync.config import AppConfig
from blogsync.errors import ConfigError
from blogsync.index.query import IndexQuery
from blogsync.sync import BlogIndex, start_index


console = Console()
app = typer.Typer(help="blogsync - live index of markdown blog posts kept in git")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(
    config_file: Path | None,
    source: str | None,
    provider: str | None,
) -> AppConfig:
    try:
        config = AppConfig.from_yaml(config_file) if config_file is not None else AppConfig()
        overrides = {"source_location": source, "repository_provider": provider}
        config = replace(config, **{key: value for key, value in overrides.items() if value is not None})
    except (ConfigError, OSError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    return config


def _open_index(config: AppConfig, *, polling: bool) -> BlogIndex:
    index = start_index(config, base_dir=Path.cwd(), start_polling=polling)
    if not index.synchronizer.ready:
        console.print("[red]Initial build failed, the index is empty.[/red]")
        index.close()
        raise typer.Exit(code=1)
    return index


def _documents_table(query: IndexQuery, language: str, published_only: bool) -> Table:
    table = Table(title=f"Language: {language}", show_header=True, header_style="bold magenta")
    table.add_column("Identity")
    table.add_column("Title")
    table.add_column("Created")
    table.add_column("Category")
    table.add_column("Published")

    for document in query.list(language, published_only=published_only):
        meta = document.meta
        table.add_row(
            document.identity,
            meta.title,
            meta.created_at.strftime("%Y-%m-%d %H:%M"),
            meta.category or "",
            "yes" if meta.published else "no",
        )
    return table


ConfigOption = typer.Option(None, "--config", "-c", help="YAML configuration file", exists=True)
SourceOption = typer.Option(None, "--source", help="Repository URL or path")
ProviderOption = typer.Option(None, "--provider", help="Repository provider: git or memory")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def build(
    config_file: Optional[Path] = ConfigOption,
    source: Optional[str] = SourceOption,
    provider: Optional[str] = ProviderOption,
    all_posts: bool = typer.Option(False, "--all", help="Include unpublished posts"),
    verbose: bool = VerboseOption,
) -> None:
    """Build the index once and list the posts of every language."""
    _setup_logging(verbose)
    config = _load_config(config_file, source, provider)
    index = _open_index(config, polling=False)

    for language in config.languages:
        console.print(_documents_table(index.query, language, published_only=not all_posts))

    stats = index.synchronizer.last_stats
    if stats is not None:
        failed = sum(language.failed for language in stats.languages.values())
        if failed:
            console.print(f"[yellow]{failed} post(s) could not be parsed.[/yellow]")
    index.close()


@app.command()
def show(
    identity: str = typer.Argument(..., help="Post identity (file name without extension)"),
    language: Optional[str] = typer.Option(None, "--lang", "-l", help="Language tag"),
    config_file: Optional[Path] = ConfigOption,
    source: Optional[str] = SourceOption,
    provider: Optional[str] = ProviderOption,
    verbose: bool = VerboseOption,
) -> None:
    """Print metadata and rendered HTML of one post."""
    _setup_logging(verbose)
    config = _load_config(config_file, source, provider)
    index = _open_index(config, polling=False)
    language = language or config.default_language

    document = index.query.get(language, identity)
    index.close()
    if document is None:
        console.print(f"[red]No post {identity!r} in language {language!r}.[/red]")
        raise typer.Exit(code=1)

    meta = document.meta
    console.print(f"[bold]{meta.title}[/bold]")
    console.print(f"Author: {meta.author or '-'}")
    console.print(f"Created: {meta.created_at.isoformat()}  Updated: {meta.updated_at.isoformat()}")
    console.print(f"Category: {meta.category or '-'}  Tags: {', '.join(sorted(meta.tags)) or '-'}")
    console.print(f"Published: {'yes' if meta.published else 'no'}")
    console.print()
    console.print(document.rendered, markup=False, highlight=False)


@app.command()
def watch(
    config_file: Optional[Path] = ConfigOption,
    source: Optional[str] = SourceOption,
    provider: Optional[str] = ProviderOption,
    verbose: bool = VerboseOption,
) -> None:
    """Build the index and keep it synchronized until interrupted."""
    _setup_logging(verbose)
    config = _load_config(config_file, source, provider)
    index = _open_index(config, polling=config.polling_enabled)

    if index.poller is None:
        console.print("[yellow]Polling is disabled, nothing to watch.[/yellow]")
        index.close()
        return

    console.print(
        f"Watching [bold]{config.source_location}[/bold] every {config.poll_interval:g}s "
        "(Ctrl+C to stop)..."
    )
    try:
        while index.poller.is_alive():
            index.poller.join(1.0)
    except KeyboardInterrupt:
        console.print("Stopping...")
    finally:
        index.close()
