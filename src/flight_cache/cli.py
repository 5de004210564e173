"""CLI for flight-cache."""

from pathlib import Path
from typing import List, NoReturn, Optional
import logging
import os
import sys

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .client import CacheClient
from .config import CacheConfig, load_config
from .constants import CLI_VERSION, DEFAULT_SCOPE, FALSY_ENV_VALUES, STDIO
from .edit import MetadataChanges, edit as edit_blob
from .errors import ContentEditError, FlightCacheError, MissingFilenameError
from .models import Blob, Container, Tag
from .query import build_list_query
from .transfer import download as download_blob, upload as upload_blob
from .utils import display, humanize_size


app = typer.Typer(help="Manages the flight file cache", no_args_is_help=True)

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    """Route flight_cache logs to stderr through rich."""
    logger = logging.getLogger("flight_cache")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"flight-cache {CLI_VERSION}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Manages the flight file cache."""
    _configure_logging(verbose or os.environ.get("DEBUG", "").lower() not in FALSY_ENV_VALUES)


def _fail(error) -> NoReturn:
    """Report an error on stderr and exit nonzero."""
    err_console.print(f"[red]✗[/red] {escape(str(error))}")
    raise typer.Exit(1)


def _get_config() -> CacheConfig:
    try:
        return load_config()
    except FlightCacheError as e:
        _fail(e)


def _get_client(config: CacheConfig) -> CacheClient:
    """Create the client for this invocation."""
    return CacheClient.from_config(config)


# ============= Rendering =============

def _blob_table(blobs: List[Blob], title: Optional[str] = None) -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Filename")
    table.add_column("Tag")
    table.add_column("Scope")
    table.add_column("Label")
    table.add_column("Title")
    table.add_column("Size", justify="right")
    table.add_column("Protected")
    for blob in blobs:
        table.add_row(
            blob.id,
            escape(display(blob.filename)),
            escape(display(blob.tag_name)),
            blob.scope,
            escape(display(blob.label)),
            escape(display(blob.title)),
            humanize_size(blob.size),
            "yes" if blob.protected else "",
        )
    return table


def _tag_table(tags: List[Tag]) -> Table:
    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("Max Size", justify="right")
    table.add_column("Restricted")
    for tag in tags:
        table.add_row(escape(tag.name), humanize_size(tag.max_size), "yes" if tag.restricted else "")
    return table


def _print_blob(blob: Blob, out: Console = console) -> None:
    for key, value in blob.to_dict().items():
        if key == "size":
            value = f"{humanize_size(blob.size)} ({blob.size} bytes)"
        text = "-" if value is None else str(value)
        out.print(f"[bold]{key}:[/bold] {escape(text)}")


def _print_container(container: Container) -> None:
    console.print(f"[bold]Container[/bold] [cyan]{escape(container.id)}[/cyan]")
    console.print(f"[bold]tag:[/bold] {escape(display(container.tag))}")
    if container.blobs:
        console.print(_blob_table(list(container.blobs)))
    else:
        console.print("[dim]No blobs in container[/dim]")


# ============= Commands =============

@app.command("list")
def list_blobs(
    tag: Optional[str] = typer.Argument(None, help="Only list blobs in this tag"),
    scope: Optional[str] = typer.Option(None, "--scope", "-s", help="Limit to one scope: user, group or public"),
    label: Optional[str] = typer.Option(None, "--label", "-l", help="Only list blobs with this label"),
    wild: bool = typer.Option(False, "--wild", help="Also match labels nested under --label"),
    admin: bool = typer.Option(False, "--admin", help="Make an admin request"),
):
    """Retrieve and filter the blobs.

    By default this lists every blob you have access to, across the user,
    group and public scopes of any tag.

    Examples:
        flight-cache list
        flight-cache list builds --scope group
        flight-cache list --label ci --wild
    """
    try:
        query = build_list_query(tag=tag, scope=scope, label=label, wildcard=wild, admin=admin)
        client = _get_client(_get_config())
        blobs = client.list_blobs(query)
    except FlightCacheError as e:
        _fail(e)

    if not blobs:
        console.print("[dim]No blobs found[/dim]")
        return
    console.print(_blob_table(blobs))


@app.command("list-tags")
def list_tags():
    """Retrieve all the tags."""
    try:
        tags = _get_client(_get_config()).list_tags()
    except FlightCacheError as e:
        _fail(e)

    if not tags:
        console.print("[dim]No tags found[/dim]")
        return
    console.print(_tag_table(tags))


@app.command()
def get(blob_id: str = typer.Argument(..., metavar="ID", help="Blob id")):
    """Get the metadata about a particular blob."""
    try:
        blob = _get_client(_get_config()).get_blob(blob_id)
    except FlightCacheError as e:
        _fail(e)
    _print_blob(blob)


@app.command("get-container")
def get_container(container_id: str = typer.Argument(..., metavar="ID", help="Container id")):
    """Show a container and the blobs it holds."""
    try:
        container = _get_client(_get_config()).get_container(container_id)
    except FlightCacheError as e:
        _fail(e)
    _print_container(container)


@app.command()
def download(
    blob_id: str = typer.Argument(..., metavar="ID", help="Blob id"),
    path: Optional[str] = typer.Argument(
        None, help="Destination file or directory, '-' for stdout (default: the blob's filename)"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Download the blob by id.

    Examples:
        flight-cache download 12              # Saved under its own filename
        flight-cache download 12 out.txt
        flight-cache download 12 - | less     # Raw bytes to stdout
    """
    config = _get_config()
    try:
        result = download_blob(
            _get_client(config),
            blob_id,
            destination=path,
            policy=config.collision_policy,
            force=force,
        )
    except FlightCacheError as e:
        _fail(e)

    if result.to_stdout:
        return
    if result.overwritten:
        err_console.print(f"[yellow]⚠[/yellow] Overwrote {escape(str(result.path))}")
    console.print(f"[green]✓[/green] Downloaded {escape(str(result.path))} ({humanize_size(result.size)})")


@app.command()
def upload(
    tag: str = typer.Argument(..., help="Tag to upload into"),
    filepath: str = typer.Argument(..., help="File to upload, '-' for stdin"),
    filename: Optional[str] = typer.Argument(None, help="Name to store the blob as (required for stdin)"),
    scope: str = typer.Option(DEFAULT_SCOPE, "--scope", "-s", help="Ownership scope: user, group or public"),
    admin: bool = typer.Option(False, "--admin", help="Make an admin request"),
    title: Optional[str] = typer.Option(None, "--title", help="Title for the blob"),
    label: Optional[str] = typer.Option(None, "--label", "-l", help="Label for the blob"),
    container: Optional[str] = typer.Option(None, "--container", help="Upload into this container"),
):
    """Upload the file to the TAG.

    Examples:
        flight-cache upload builds ./report.txt
        flight-cache upload builds ./report.txt latest.txt --scope group
        make-report | flight-cache upload builds - report.txt
    """
    name = filename if filename is not None else (filepath if filepath == STDIO else Path(filepath).name)
    if not name or name == STDIO:
        # Usage errors are reported before any config is read
        _fail(MissingFilenameError())
    try:
        if filepath == STDIO:
            blob = upload_blob(
                _get_client(_get_config()), name, sys.stdin.buffer, tag,
                scope=scope, admin=admin, label=label, title=title, container=container,
            )
        else:
            with open(filepath, "rb") as source:
                blob = upload_blob(
                    _get_client(_get_config()), name, source, tag,
                    scope=scope, admin=admin, label=label, title=title, container=container,
                )
    except FlightCacheError as e:
        _fail(e)
    except OSError as e:
        _fail(f"Cannot read {filepath}: {e.strerror or e}")

    console.print(f"[green]✓[/green] Uploaded {escape(display(blob.filename))} as blob [cyan]{blob.id}[/cyan]")
    _print_blob(blob)


@app.command()
def delete(blob_id: str = typer.Argument(..., metavar="ID", help="Blob id")):
    """Delete the blob by id."""
    try:
        _get_client(_get_config()).delete_blob(blob_id)
    except FlightCacheError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted blob [cyan]{escape(blob_id)}[/cyan]")


@app.command()
def edit(
    blob_id: str = typer.Argument(..., metavar="ID", help="Blob id"),
    filename: Optional[str] = typer.Option(None, "--filename", help="New filename"),
    label: Optional[str] = typer.Option(None, "--label", "-l", help="New label ('' to clear)"),
    title: Optional[str] = typer.Option(None, "--title", help="New title ('' to clear)"),
):
    """Update a blob's metadata and edit its content in $EDITOR.

    Only the options given are changed. Once the editor exits, the file is
    uploaded as the blob's new content.
    """
    supplied = {
        key: value
        for key, value in (("filename", filename), ("label", label), ("title", title))
        if value is not None
    }
    changes = MetadataChanges(**supplied)
    try:
        blob = edit_blob(_get_client(_get_config()), blob_id, changes)
    except ContentEditError as e:
        if e.metadata_committed:
            err_console.print(f"[green]✓[/green] Metadata updated for blob [cyan]{escape(e.blob.id)}[/cyan]")
            _print_blob(e.blob, err_console)
        err_console.print(f"[red]✗[/red] Content edit failed: {escape(str(e.cause))}")
        err_console.print("[dim]Re-run without metadata options to retry the content edit[/dim]")
        raise typer.Exit(1)
    except FlightCacheError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Updated blob [cyan]{blob.id}[/cyan]")
    _print_blob(blob)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
