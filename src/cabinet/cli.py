"""cabinet CLI — file documents under category/record folders.

Commands:
    cabinet init                          create cabinet.toml + .data/
    cabinet sync                          full-sync every dirty category
    cabinet status                        show manifest flags
    cabinet ls [CATEGORY [RECORD]]        list categories, records or files
    cabinet upload FILE CATEGORY RECORD   file a document
    cabinet mkcat / mkrec                 create a category / record
    cabinet rename-* / move-* / rm-*      reorganize the tree
    cabinet mark CATEGORY [--clean]       flip a category's dirty flag
"""

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from cabinet.config import init_config, load_config
from cabinet.errors import CabinetError
from cabinet.store import Cabinet

if TYPE_CHECKING:
    from collections.abc import Callable

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _open(ctx: click.Context) -> Cabinet:
    try:
        cab = Cabinet(load_config(ctx.obj.get("home")))
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.call_on_close(cab.close)
    return cab


def _with_cabinet(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Pass an open Cabinet as the first argument; map store errors to exits."""

    @click.pass_context
    @wraps(fn)
    def wrapper(ctx: click.Context, *args: Any, **kwargs: Any) -> Any:
        cab = _open(ctx)
        try:
            return fn(cab, *args, **kwargs)
        except (CabinetError, OSError) as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.option("--home", type=click.Path(file_okay=False), envvar="CABINET_HOME", help="Store root")
@click.option("-v", "--verbose", count=True, help="More logging (-v info, -vv debug)")
@click.version_option(package_name="cabinet")
@click.pass_context
def cli(ctx: click.Context, home: str | None, verbose: int) -> None:
    """cabinet — local document filing with a self-healing index."""
    level = logging.WARNING if verbose == 0 else logging.INFO if verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["home"] = home


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create cabinet.toml and the data directory."""
    root = Path(ctx.obj.get("home") or ".").expanduser().resolve()
    try:
        config_path = init_config(root)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("cabinet.toml already exists — skipping init")
    cfg = load_config(root)
    cfg.ensure_dirs()
    click.echo(f"Data dir : {cfg.data_dir}")
    click.echo(f"Manifest : {cfg.manifest_path}")


# ---------------------------------------------------------------------------
# Sync / status
# ---------------------------------------------------------------------------


@cli.command()
@_with_cabinet
def sync(cab: Cabinet) -> None:
    """Full-sync every category flagged dirty, then mark it clean."""
    stats = cab.reconciler.ensure_consistent()
    if not stats["categories"]:
        click.echo("Everything in sync")
        return
    click.echo(
        f"Synced {stats['categories']} categories: "
        f"{stats['records']} records, {stats['rewritten']} indexes rewritten"
    )


@cli.command()
@click.option("--check", is_flag=True, help="Reconcile the manifest with disk before printing")
@_with_cabinet
def status(cab: Cabinet, check: bool) -> None:
    """Show each category's dirty flag."""
    if check:
        cab.registry.reconcile()
    flags = cab.registry.snapshot()
    if not flags:
        click.echo("No categories in manifest")
        return
    width = max(len(c) for c in flags)
    for category in sorted(flags):
        click.echo(f"{category:<{width}}  {'dirty' if flags[category] else 'clean'}")


@cli.command()
@click.argument("category")
@click.option("--clean", is_flag=True, help="Mark clean instead of dirty")
@_with_cabinet
def mark(cab: Cabinet, category: str, clean: bool) -> None:
    """Flag CATEGORY as needing a sync (or as clean with --clean)."""
    if clean:
        cab.registry.mark_scanned(category)
    else:
        cab.registry.mark_changed(category)
    click.echo(f"{category}: {'clean' if clean else 'dirty'}")


@cli.command("ls")
@click.argument("category", required=False)
@click.argument("record", required=False)
@_with_cabinet
def ls_cmd(cab: Cabinet, category: str | None, record: str | None) -> None:
    """List categories, the records of CATEGORY, or the files of RECORD."""
    if category is None:
        for name in cab.categories():
            click.echo(name)
    elif record is None:
        for name in cab.records(category):
            click.echo(name)
    else:
        for entry in cab.entries(category, record):
            click.echo(f"{entry.index:>4}  {entry.timestamp:<20}  {entry.file_name}")


# ---------------------------------------------------------------------------
# Create / upload
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("category")
@_with_cabinet
def mkcat(cab: Cabinet, category: str) -> None:
    """Create a category."""
    cab.create_category(category)
    click.echo(f"Created category {category}")


@cli.command()
@click.argument("category")
@click.argument("record")
@_with_cabinet
def mkrec(cab: Cabinet, category: str, record: str) -> None:
    """Create a record inside CATEGORY."""
    cab.create_record(category, record)
    click.echo(f"Created record {category}/{record}")


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("category")
@click.argument("record")
@click.option("--name", help="Stored name (extension is kept)")
@click.option("--keep", is_flag=True, help="Copy instead of move")
@_with_cabinet
def upload(cab: Cabinet, source: str, category: str, record: str, name: str | None, keep: bool) -> None:
    """File SOURCE under CATEGORY/RECORD."""
    dest = cab.upload(source, category, record, name, keep_source=keep)
    click.echo(f"Filed {dest.name} in {category}/{record}")


# ---------------------------------------------------------------------------
# Rename / move / delete
# ---------------------------------------------------------------------------


@cli.command("rename-category")
@click.argument("old")
@click.argument("new")
@_with_cabinet
def rename_category(cab: Cabinet, old: str, new: str) -> None:
    """Rename a category."""
    cab.rename_category(old, new)
    click.echo(f"Renamed {old} -> {new}")


@cli.command("rename-record")
@click.argument("category")
@click.argument("old")
@click.argument("new")
@_with_cabinet
def rename_record(cab: Cabinet, category: str, old: str, new: str) -> None:
    """Rename a record inside CATEGORY."""
    cab.rename_record(category, old, new)
    click.echo(f"Renamed {category}/{old} -> {category}/{new}")


@cli.command("rename-file")
@click.argument("category")
@click.argument("record")
@click.argument("old")
@click.argument("new")
@_with_cabinet
def rename_file(cab: Cabinet, category: str, record: str, old: str, new: str) -> None:
    """Rename a file inside CATEGORY/RECORD."""
    cab.rename_file(category, record, old, new)
    click.echo(f"Renamed {old} -> {new}")


@cli.command("move-record")
@click.argument("category")
@click.argument("record")
@click.argument("dest_category")
@_with_cabinet
def move_record(cab: Cabinet, category: str, record: str, dest_category: str) -> None:
    """Move RECORD from CATEGORY to DEST_CATEGORY."""
    cab.move_record(category, record, dest_category)
    click.echo(f"Moved {category}/{record} -> {dest_category}/{record}")


@cli.command("move-file")
@click.argument("category")
@click.argument("record")
@click.argument("file_name")
@click.argument("dest_category")
@click.argument("dest_record")
@_with_cabinet
def move_file(cab: Cabinet, category: str, record: str, file_name: str, dest_category: str, dest_record: str) -> None:
    """Move FILE_NAME to DEST_CATEGORY/DEST_RECORD."""
    cab.move_file(category, record, file_name, dest_category, dest_record)
    click.echo(f"Moved {file_name} -> {dest_category}/{dest_record}")


@cli.command("rm-category")
@click.argument("category")
@click.confirmation_option(prompt="Permanently delete this category and everything in it?")
@_with_cabinet
def rm_category(cab: Cabinet, category: str) -> None:
    """Delete CATEGORY and all of its records."""
    cab.delete_category(category)
    click.echo(f"Deleted category {category}")


@cli.command("rm-record")
@click.argument("category")
@click.argument("record")
@click.confirmation_option(prompt="Permanently delete this record and its files?")
@_with_cabinet
def rm_record(cab: Cabinet, category: str, record: str) -> None:
    """Delete a record and its files."""
    cab.delete_record(category, record)
    click.echo(f"Deleted record {category}/{record}")


@cli.command("rm-file")
@click.argument("category")
@click.argument("record")
@click.argument("file_name")
@_with_cabinet
def rm_file(cab: Cabinet, category: str, record: str, file_name: str) -> None:
    """Delete one file from CATEGORY/RECORD."""
    cab.delete_file(category, record, file_name)
    click.echo(f"Deleted {category}/{record}/{file_name}")


if __name__ == "__main__":
    cli()
