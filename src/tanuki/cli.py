"""Typer-based CLI entry point."""

from __future__ import annotations

import functools
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from tanuki.application.services.asset_service import AssetService
from tanuki.application.services.pagination import ResultPage
from tanuki.di import Container, bootstrap, shutdown
from tanuki.domain.models import (
    AssetInput,
    AttributeCount,
    LocationInput,
    PendingParams,
    SearchParams,
    SortField,
    SortOrder,
)
from tanuki.errors import AssetNotFoundError, ImportFailedError, SettingsError, TanukiError
from tanuki.settings import load_settings
from tanuki.utils.logging import set_level
from tanuki.utils.timeutils import parse_datetime

app = typer.Typer(help="Index, search and curate a collection of photo and video assets")
console = Console()


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (AssetNotFoundError, ImportFailedError, SettingsError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except TanukiError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _date_option(value: Optional[str]):
    if value is None:
        return None
    try:
        return parse_datetime(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _service(ctx: typer.Context) -> AssetService:
    container: Container = ctx.obj
    return container.resolve(AssetService)


def _print_page(page: ResultPage) -> None:
    table = Table(title=f"{page.count} assets (last page {page.last_page})")
    table.add_column("Identifier", overflow="fold")
    table.add_column("Filename")
    table.add_column("Media type")
    table.add_column("Location")
    table.add_column("Date")
    for result in page.results:
        table.add_row(
            result.asset_id,
            result.filename,
            result.media_type,
            str(result.location or ""),
            result.datetime.isoformat(),
        )
    console.print(table)


def _print_counts(title: str, counts: List[AttributeCount]) -> None:
    table = Table(title=title)
    table.add_column("Value")
    table.add_column("Count", justify="right")
    for entry in counts:
        table.add_row(entry.label, str(entry.count))
    console.print(table)


@app.callback()
def main(
    ctx: typer.Context,
    settings_file: Optional[Path] = typer.Option(
        None, "--settings", help="JSON settings file (defaults to $TANUKI_SETTINGS)."
    ),
) -> None:
    """Load settings and wire up the services shared by every command."""

    try:
        settings = load_settings(settings_file)
    except SettingsError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    set_level(settings.log_level)
    container = Container()
    bootstrap(container, settings)
    ctx.obj = container
    ctx.call_on_close(lambda: shutdown(container))


@app.command()
@_handle_errors
def count(ctx: typer.Context) -> None:
    """Print the number of assets."""

    print(_service(ctx).count_assets())


@app.command()
@_handle_errors
def show(ctx: typer.Context, key: str) -> None:
    """Show every field of one asset."""

    asset = _service(ctx).get_asset(key)
    if asset is None:
        raise AssetNotFoundError(f"Asset not found: {key}")
    table = Table(show_header=False)
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("key", asset.key)
    table.add_row("path", asset.filepath)
    table.add_row("checksum", asset.checksum)
    table.add_row("filename", asset.filename)
    table.add_row("size", str(asset.byte_length))
    table.add_row("media type", asset.media_type)
    table.add_row("tags", ", ".join(asset.tags))
    table.add_row("caption", asset.caption or "")
    table.add_row("location", str(asset.location or ""))
    table.add_row("imported", asset.import_date.isoformat())
    table.add_row("original date", asset.original_date.isoformat() if asset.original_date else "")
    table.add_row("user date", asset.user_date.isoformat() if asset.user_date else "")
    console.print(table)


@app.command()
@_handle_errors
def search(
    ctx: typer.Context,
    tag: List[str] = typer.Option([], "--tag", "-t", help="Required tag; repeat for more."),
    location: List[str] = typer.Option([], "--location", "-l", help="Required location part; repeat for more."),
    media_type: Optional[str] = typer.Option(None, "--media-type", "-m"),
    filename: Optional[str] = typer.Option(None, "--filename", "-f", help="Exact filename, any case."),
    after: Optional[str] = typer.Option(None, help="Earliest date, inclusive."),
    before: Optional[str] = typer.Option(None, help="Latest date, exclusive."),
    sort: Optional[SortField] = typer.Option(None, "--sort"),
    order: Optional[SortOrder] = typer.Option(None, "--order"),
    offset: Optional[int] = typer.Option(None, "--offset"),
    limit: Optional[int] = typer.Option(None, "--limit"),
) -> None:
    """Find assets matching every given criterion."""

    params = SearchParams(
        tags=set(tag),
        locations=set(location),
        media_type=media_type,
        filename=filename,
        after=_date_option(after),
        before=_date_option(before),
        sort_field=sort,
        sort_order=order,
    )
    _print_page(_service(ctx).search(params, offset, limit))


@app.command()
@_handle_errors
def pending(
    ctx: typer.Context,
    after: Optional[str] = typer.Option(None, help="Only assets imported on or after this date."),
    sort: Optional[SortField] = typer.Option(None, "--sort"),
    order: Optional[SortOrder] = typer.Option(None, "--order"),
    offset: Optional[int] = typer.Option(None, "--offset"),
    limit: Optional[int] = typer.Option(None, "--limit"),
) -> None:
    """List assets without tags, caption or location label."""

    params = PendingParams(after=_date_option(after), sort_field=sort, sort_order=order)
    _print_page(_service(ctx).find_pending(params, offset, limit))


@app.command()
@_handle_errors
def tags(ctx: typer.Context) -> None:
    """List tags with their asset counts."""

    _print_counts("Tags", _service(ctx).all_tags())


@app.command()
@_handle_errors
def locations(
    ctx: typer.Context,
    raw: bool = typer.Option(False, "--raw", help="List whole location records instead of parts."),
) -> None:
    """List location parts with their asset counts."""

    service = _service(ctx)
    if raw:
        for entry in service.raw_locations():
            print(str(entry))
        return
    _print_counts("Locations", service.all_locations())


@app.command()
@_handle_errors
def years(ctx: typer.Context) -> None:
    """List years with their asset counts."""

    _print_counts("Years", _service(ctx).all_years())


@app.command("media-types")
@_handle_errors
def media_types(ctx: typer.Context) -> None:
    """List media types with their asset counts."""

    _print_counts("Media types", _service(ctx).all_media_types())


@app.command("import")
@_handle_errors
def import_files(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    keep: bool = typer.Option(False, "--keep", help="Copy files instead of moving them."),
) -> None:
    """Move files into the asset store and record them."""

    service = _service(ctx)
    for path in files:
        response = service.import_asset(path, keep_source=keep)
        if response.duplicate:
            print(f"[yellow]{path} duplicates {response.asset_id}")
        else:
            print(f"[green]Imported {path} as {response.asset_id}")


@app.command()
@_handle_errors
def update(
    ctx: typer.Context,
    key: str,
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Replace the tags; repeat for more."),
    caption: Optional[str] = typer.Option(None, "--caption"),
    label: Optional[str] = typer.Option(None, "--label", help="Location label; empty clears it."),
    city: Optional[str] = typer.Option(None, "--city", help="Location city; empty clears it."),
    region: Optional[str] = typer.Option(None, "--region", help="Location region; empty clears it."),
    date: Optional[str] = typer.Option(None, "--date", help="Set the user date."),
    media_type: Optional[str] = typer.Option(None, "--media-type"),
    filename: Optional[str] = typer.Option(None, "--filename"),
) -> None:
    """Change the details of one asset."""

    location = None
    if label is not None or city is not None or region is not None:
        location = LocationInput(label=label, city=city, region=region)
    changes = AssetInput(
        key=key,
        tags=list(tag) if tag else None,
        caption=caption,
        location=location,
        datetime=_date_option(date),
        media_type=media_type,
        filename=filename,
    )
    asset = _service(ctx).update_asset(changes)
    print(f"[green]Updated {asset.key}")


@app.command()
@_handle_errors
def dump(ctx: typer.Context, path: Path) -> None:
    """Write every asset record to a JSON-lines file."""

    count = _service(ctx).dump_assets(path)
    print(f"[green]Wrote {count} records to {path}")


@app.command()
@_handle_errors
def load(ctx: typer.Context, path: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Restore asset records from a JSON-lines file."""

    count = _service(ctx).load_assets(path)
    print(f"[green]Loaded {count} records from {path}")


if __name__ == "__main__":
    app()
