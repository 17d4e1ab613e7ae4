"""CLI entry-point for the board."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .api import MediaFetcher
from .board import Board
from .config import BoardConfig, MediaConfig, StoreConfig
from .errors import InternalError, RequestRejected
from .models import Thread, Upload
from .storage import MEDIA_FIELD

console = Console()
logger = logging.getLogger("chanboard.cli")


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
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _ts_to_str(ts: int) -> str:
    return f"{datetime.fromtimestamp(ts, tz=timezone.utc):%Y-%m-%d %H:%M:%S}"


def _read_chunks(path: Path, size: int) -> Iterator[bytes]:
    with path.open("rb") as fh:
        yield from iter(lambda: fh.read(size), b"")


@contextmanager
def _reported() -> Iterator[None]:
    """Turn board errors into a message and exit status 1."""
    try:
        yield
    except RequestRejected as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        sys.exit(1)
    except InternalError:
        logger.exception("Internal failure")
        console.print("[red]✗[/red] Internal error, please try again")
        sys.exit(1)


@click.group()
@click.option("--db-path", envvar="BOARD_DB_PATH", default="board.db", help="Path of the board database file")
@click.option("--media-root", envvar="BOARD_MEDIA_ROOT", default=".", help="Directory holding uploads/ and thumbs/")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, db_path: str, media_root: str, verbose: bool) -> None:
    """chanboard – a minimal anonymous imageboard.

    Posts threads and replies, stores their media and shows the
    recency-sorted front page.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["cfg"] = BoardConfig(
        store=replace(StoreConfig.from_env(), path=db_path),
        media=replace(MediaConfig.from_env(), root=media_root),
    )


def _open_board(ctx: click.Context) -> Board:
    cfg: BoardConfig = ctx.obj["cfg"]
    with _reported():
        return Board(cfg)


def _print_thread(thread: Thread) -> None:
    console.print(f"[bold cyan]#{thread.id}[/bold cyan] [bold]{escape(thread.title)}[/bold]")
    if thread.media_url:
        kind = thread.media_kind.value if thread.media_kind else "Media"
        console.print(f"  {kind}: {thread.media_url}")
    console.print(f"  Bumped {_ts_to_str(thread.last_updated)}")
    console.print(escape(thread.message))


# ─── Commands ────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create the database and the upload directories."""
    with _open_board(ctx) as board:
        console.print(f"[green]✓[/green] Board ready at {board.cfg.store.path}")


@cli.command()
@click.argument("title")
@click.argument("message")
@click.option("--file", "file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Attach a local file")
@click.option("--url", help="Attach a file downloaded from this URL")
@click.pass_context
def post(ctx: click.Context, title: str, message: str, file_path: Path | None, url: str | None) -> None:
    """Create a new thread.

    Example: chanboard post "Hello" "First post" --file cat.png
    """
    if file_path and url:
        raise click.UsageError("--file and --url are mutually exclusive")

    with _open_board(ctx) as board, _reported():
        if url:
            cfg: BoardConfig = ctx.obj["cfg"]
            try:
                with MediaFetcher(cfg.fetch) as fetcher, fetcher.open_upload(url) as upload:
                    if upload is None:
                        console.print(f"[red]✗[/red] Nothing found at {url}")
                        sys.exit(1)
                    thread = board.create_thread(title, message, upload)
            except (httpx.HTTPStatusError, httpx.TransportError) as exc:
                console.print(f"[red]✗[/red] Could not fetch {url}: {escape(str(exc))}")
                sys.exit(1)
        else:
            upload = None
            if file_path:
                upload = Upload(
                    field_name=MEDIA_FIELD,
                    filename=file_path.name,
                    chunks=_read_chunks(file_path, board.cfg.media.chunk_size),
                )
            thread = board.create_thread(title, message, upload)
        console.print(f"[green]✓[/green] Created thread #{thread.id}")
        if thread.media_url:
            console.print(f"  Media: {thread.media_url}")


@cli.command()
@click.argument("thread_id", type=int)
@click.argument("message")
@click.pass_context
def reply(ctx: click.Context, thread_id: int, message: str) -> None:
    """Reply to a thread.

    Example: chanboard reply 3 "Agreed"
    """
    with _open_board(ctx) as board, _reported():
        r = board.reply(thread_id, message)
        console.print(f"[green]✓[/green] Posted reply {r.id} to thread #{thread_id}")


@cli.command(name="list")
@click.option("--page", default=1, type=int, help="Page number (1-indexed)")
@click.pass_context
def list_threads(ctx: click.Context, page: int) -> None:
    """Show the front page, most recently bumped first."""
    with _open_board(ctx) as board, _reported():
        result = board.front_page(page)

    if result.is_empty:
        console.print("No threads found. Be the first to create one!")
        return

    table = Table(title="Threads", show_header=True, header_style="bold cyan")
    table.add_column("No", style="bold", justify="right")
    table.add_column("Title", max_width=40)
    table.add_column("Bumped")
    table.add_column("Media", justify="center")
    for t in result.items:
        media = t.media_kind.value if t.media_kind else ""
        table.add_row(str(t.id), escape(t.title), _ts_to_str(t.last_updated), media)
    console.print(table)
    console.print(f"Page {result.number} of {result.total_pages} ({result.total} threads)")


@cli.command()
@click.argument("thread_id", type=int)
@click.pass_context
def show(ctx: click.Context, thread_id: int) -> None:
    """Show a thread and its replies."""
    with _open_board(ctx) as board, _reported():
        thread, replies = board.thread_view(thread_id)

    _print_thread(thread)
    if not replies:
        console.print("No replies yet. Be the first to reply!")
        return
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Reply", style="bold", justify="right")
    table.add_column("Message")
    for r in replies:
        table.add_row(str(r.id), escape(r.message))
    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
