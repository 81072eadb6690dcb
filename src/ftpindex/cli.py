"""Command line interface for ftpindex."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ftpindex.config import AppConfig, default_config_path, load_config
from ftpindex.errors import ConfigError, PersistenceError
from ftpindex.index.crawler import Crawler, collect_garbage
from ftpindex.index.search import Searcher
from ftpindex.index.storage import SQLiteSnapshotStore
from ftpindex.web.app import DB_ENV, app as web_app


console = Console()
app = typer.Typer(help="ftpindex - directory catalog for remote FTP servers")


def _config_option():
    return typer.Option(
        None, "--config", "-f", help="Config file (default: ~/.ftpindexrc)", metavar="FILE"
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _read_config(config_path: Optional[Path]) -> tuple[AppConfig, Path]:
    path = (config_path or default_config_path()).expanduser()
    try:
        config = load_config(path)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    return config, config.resolve_db_path(path.parent)


def _open_store(db_path: Path) -> SQLiteSnapshotStore:
    _ensure_db_parent(db_path)
    try:
        return SQLiteSnapshotStore(db_path)
    except PersistenceError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def update(
    site: Optional[str] = typer.Option(None, "--site", "-s", help="Update a single site", metavar="NAME"),
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Sites crawled in parallel"),
    config_path: Optional[Path] = _config_option(),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Crawl sites and update the database."""
    _setup_logging(verbose)
    config, db_path = _read_config(config_path)

    sites = config.sites
    if site is not None:
        selected = config.get_site(site)
        if selected is None:
            raise typer.BadParameter(f"Unknown site: {site}", param_hint="--site")
        sites = [selected]
    if not sites:
        console.print("[yellow]No sites configured.[/yellow]")
        return

    store = _open_store(db_path)
    try:
        stats = Crawler(store, workers=workers).update(sites)
    except PersistenceError as exc:
        console.print(f"[red]Database error: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        store.close()

    console.print(
        f"Sites updated: {stats.succeeded}, failed: {stats.failed}, "
        f"directories: {stats.directories}"
    )
    if stats.failed_sites:
        console.print(f"[yellow]Failed: {', '.join(stats.failed_sites)}[/yellow]")


@app.command()
def gc(
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Only show what would be deleted"),
    config_path: Optional[Path] = _config_option(),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Remove entries for sites that do not exist in config."""
    _setup_logging(verbose)
    config, db_path = _read_config(config_path)

    if not db_path.exists():
        console.print("[yellow]Database not found, nothing to clean.[/yellow]")
        return

    store = _open_store(db_path)
    try:
        removed = collect_garbage(store, config.site_names(), dry_run=dry_run)
    except PersistenceError as exc:
        console.print(f"[red]Database error: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        store.close()

    if dry_run:
        for removed_site in removed:
            console.print(f"Deleting {removed_site.name}")
        return
    console.print(f"Removed {len(removed)} sites.")


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to look for in directory names"),
    site: Optional[str] = typer.Option(None, "--site", "-s", help="Only search this site", metavar="NAME"),
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum number of results"),
    config_path: Optional[Path] = _config_option(),
) -> None:
    """Search stored directory names."""
    _, db_path = _read_config(config_path)
    if not db_path.exists():
        raise typer.BadParameter(f"Database not found: {db_path}")

    store = _open_store(db_path)
    try:
        results = Searcher(store).search(query, site=site, limit=limit)
    finally:
        store.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Site")
    table.add_column("Path")
    table.add_column("Modified")
    for result in results:
        modified = result.modified.strftime("%Y-%m-%d %H:%M") if result.modified else ""
        table.add_row(result.site, result.path, modified)
    console.print(table)


@app.command()
def sites(config_path: Optional[Path] = _config_option()) -> None:
    """List stored sites and their directory counts."""
    config, db_path = _read_config(config_path)
    if not db_path.exists():
        console.print("[yellow]Database not found.[/yellow]")
        return

    store = _open_store(db_path)
    try:
        stats = store.get_stats()
    finally:
        store.close()

    configured = set(config.site_names())
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Site")
    table.add_column("Directories", justify="right")
    table.add_column("Configured")
    for row in stats:
        table.add_row(row["name"], str(row["directories"]), "yes" if row["name"] in configured else "no")
    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    config_path: Optional[Path] = _config_option(),
) -> None:
    """Serve the read-only catalog API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    _, db_path = _read_config(config_path)
    if not db_path.exists():
        console.print("[yellow]Warning: database not found, requests will fail.[/yellow]")
    os.environ[DB_ENV] = str(db_path)

    console.print(f"Starting catalog API on http://{host}:{port} (database: {db_path})")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")
