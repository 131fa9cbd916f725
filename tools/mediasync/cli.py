"""CLI entry-point for mediasync."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .browser import open_browser
from .config import (
    BrowserConfig,
    Credentials,
    DatabaseConfig,
    FetchConfig,
    SiteConfig,
    SyncConfig,
    load_authors,
)
from .db import Database
from .errors import LoginTimeout, StoreError
from .harvester import Harvester
from .models import Author
from .session import login

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg").setLevel(logging.WARNING)


def _print_stats(stats: dict) -> None:
    table = Table(title="Sync Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    for key, val in stats.items():
        table.add_row(key.capitalize(), str(val))
    console.print(table)


@click.group()
@click.option("--db-host", envvar="DB_HOST", default="localhost", help="PostgreSQL host")
@click.option("--db-port", envvar="DB_PORT", default=5432, type=int, help="PostgreSQL port")
@click.option("--db-name", envvar="DB_NAME", default="mediasync", help="PostgreSQL database name")
@click.option("--db-user", envvar="DB_USER", default="mediasync", help="PostgreSQL user")
@click.option("--db-password", envvar="DB_PASSWORD", default="mediasync", help="PostgreSQL password")
@click.option("--authors-file", envvar="AUTHORS_FILE", default="authors.json",
              type=click.Path(path_type=Path), help="JSON list of tracked authors")
@click.option("--download-dir", envvar="DOWNLOAD_DIR", default="downloads",
              type=click.Path(path_type=Path), help="Where media files are written")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, **kwargs: object) -> None:
    """mediasync – Mirror the media of tracked authors to local disk.

    Walks each author's media feed, classifies every new post and downloads
    whatever it is still missing.  Safe to re-run at any time.
    """
    _setup_logging(bool(kwargs.pop("verbose")))
    ctx.ensure_object(dict)
    ctx.obj["db_cfg"] = DatabaseConfig(
        host=kwargs["db_host"],  # type: ignore[arg-type]
        port=kwargs["db_port"],  # type: ignore[arg-type]
        dbname=kwargs["db_name"],  # type: ignore[arg-type]
        user=kwargs["db_user"],  # type: ignore[arg-type]
        password=kwargs["db_password"],  # type: ignore[arg-type]
    )
    ctx.obj["authors_file"] = kwargs["authors_file"]
    ctx.obj["download_dir"] = kwargs["download_dir"]


def _make_config(ctx: click.Context, *, headless: bool = False) -> SyncConfig:
    fetch = FetchConfig.from_env()
    return SyncConfig(
        db=ctx.obj["db_cfg"],
        site=SiteConfig.from_env(),
        browser=BrowserConfig(headless=headless),
        fetch=FetchConfig(
            download_dir=ctx.obj["download_dir"],
            request_delay=fetch.request_delay,
        ),
        credentials=Credentials.from_env(),
        authors_file=ctx.obj["authors_file"],
    )


def _bootstrap(db: Database, cfg: SyncConfig) -> list[Author]:
    """Create tables and register the tracked authors.  Exits on bad input."""
    try:
        authors = load_authors(cfg.authors_file, cfg.site)
    except (OSError, ValueError, KeyError) as exc:
        console.print(f"[red]✗[/red] Could not read authors from {cfg.authors_file}: {exc}")
        sys.exit(1)
    try:
        db.ensure_schema()
        for author in authors:
            db.upsert_author(author)
    except StoreError as exc:
        console.print(f"[red]✗[/red] Database not usable: {exc}")
        sys.exit(1)
    return authors


# ─── Commands ────────────────────────────────────────────────────


@cli.command(name="init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create tables and register tracked authors.

    Example: mediasync init-db
    """
    cfg = _make_config(ctx)
    with Database(cfg.db) as db:
        authors = _bootstrap(db, cfg)
    console.print(f"[green]✓[/green] Database ready, {len(authors)} author(s) tracked")


@cli.command()
@click.option("--headless/--headed", envvar="BROWSER_HEADLESS", default=False,
              help="Run the browser without a window (CAPTCHA needs --headed)")
@click.pass_context
def run(ctx: click.Context, headless: bool) -> None:
    """Log in and download everything new for every tracked author.

    Example: mediasync run
    """
    cfg = _make_config(ctx, headless=headless)
    with Database(cfg.db) as db:
        authors = _bootstrap(db, cfg)
        with open_browser(cfg.browser) as page:
            try:
                login(page, cfg.credentials, cfg.site, cfg.browser)
            except LoginTimeout as exc:
                console.print(f"[yellow]![/yellow] Login not confirmed: {exc}")
                sys.exit(0)

            with Harvester(page, cfg, store=db) as h:
                console.print(f"[bold]Syncing {len(authors)} author(s)...[/bold]")
                results = h.harvest_authors(authors)
                for author_id, count in results.items():
                    console.print(f"  {author_id}: {count} file(s)")
                _print_stats(h.stats)


@cli.command()
@click.pass_context
def authors(ctx: click.Context) -> None:
    """List tracked authors with their post and media counts."""
    cfg = _make_config(ctx)
    with Database(cfg.db) as db:
        try:
            rows = [(a, db.count_posts(a.id), db.count_author_media(a.id)) for a in db.list_authors()]
        except StoreError as exc:
            console.print(f"[red]✗[/red] {exc}")
            sys.exit(1)

    table = Table(title="Tracked Authors", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Posts", justify="right")
    table.add_column("Media", justify="right")
    for author, n_posts, n_media in rows:
        table.add_row(author.id, author.name, str(n_posts), str(n_media))
    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
