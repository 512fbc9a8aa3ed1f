"""
SBVC CLI Entry Point

Command-line interface using Click.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

# Load .env file from the current directory
_env_path = Path.cwd() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

from sbvc import (
    SbvcError,
    UncommittedChangesError,
    VersionHistory,
    __version__,
    store_path_for,
)
from sbvc_cli.config import ENV_STORE, Config, get_config
from sbvc_cli.formatting import build_rich_tree, version_details, version_label

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def setup_logging(level: str) -> None:
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@contextmanager
def open_history(ctx: click.Context) -> Iterator[VersionHistory]:
    """Open the selected store, turning engine errors into CLI errors."""
    store = ctx.obj.get("store")
    if store is None:
        raise click.UsageError(f"No store selected. Pass --store or set {ENV_STORE}.")

    try:
        history = VersionHistory.open(store)
    except SbvcError as e:
        _fail(f"Cannot open {store}: {e}")

    try:
        yield history
    except SbvcError as e:
        _fail(str(e))
    finally:
        history.close()


@click.group()
@click.option(
    "--store", "-s",
    type=click.Path(path_type=Path),
    envvar=ENV_STORE,
    help="Store file (.sbvc) to operate on",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level",
)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Configuration directory (defaults to ~/.sbvc)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    store: Optional[Path],
    log_level: Optional[str],
    config_dir: Optional[Path],
) -> None:
    """
    SBVC - Single-file version history

    Commit, browse, check out, rename, roll back and delete snapshots
    of one tracked file.
    """
    ctx.ensure_object(dict)

    try:
        config = get_config(global_dir=config_dir)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}")
    if log_level:
        config.log_level = log_level.upper()
    setup_logging(config.log_level)

    ctx.obj["config"] = config
    ctx.obj["store"] = store


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def init(ctx: click.Context, file: Path) -> None:
    """
    Put FILE under version control.

    The store defaults to FILE with the .sbvc extension.
    """
    config: Config = ctx.obj["config"]
    store = ctx.obj.get("store") or store_path_for(file, config.history.store_extension)

    try:
        history = VersionHistory.create(store, file, config=config.history)
    except SbvcError as e:
        _fail(str(e))

    with history:
        click.echo(f"Tracking {history.tracked_file}")
        click.echo(f"Store: {history.store_path}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """
    Show the tracked file and whether it has uncommitted changes.
    """
    with open_history(ctx) as history:
        current = history.current()
        click.echo(f"Store:        {history.store_path}")
        click.echo(f"Tracked file: {history.tracked_file}")
        click.echo(f"Current:      {version_label(current)}")
        click.echo(f"State:        {'modified' if history.is_dirty() else 'clean'}")


@cli.command()
@click.pass_context
def log(ctx: click.Context) -> None:
    """
    Show the version tree.
    """
    config: Config = ctx.obj["config"]
    with open_history(ctx) as history:
        Console().print(build_rich_tree(history.snapshot(), show_dates=config.show_dates))


@cli.command()
@click.argument("version_id", type=int, required=False)
@click.option("--content", is_flag=True, help="Print the version's reconstructed content")
@click.pass_context
def show(ctx: click.Context, version_id: Optional[int], content: bool) -> None:
    """
    Show details of a version (the current one by default).
    """
    with open_history(ctx) as history:
        version = history.current() if version_id is None else history.get(version_id)

        if content:
            click.echo(history.content(version.id), nl=False)
            return

        table = Table(show_header=False, box=None)
        table.add_column(style="bold")
        table.add_column()
        for field_name, value in version_details(version):
            table.add_row(f"{field_name}:", value)
        Console().print(table)


@cli.command()
@click.pass_context
def commit(ctx: click.Context) -> None:
    """
    Commit the tracked file's content as a new version.
    """
    with open_history(ctx) as history:
        before = history.current()
        version = history.commit()
        if version.id == before.id:
            click.echo(f"Nothing to commit (current version is {version_label(version)})")
        else:
            click.echo(f"Committed {version_label(version)} on version {version.base}")


@cli.command()
@click.argument("version_id", type=int)
@click.option("--discard", is_flag=True, help="Discard uncommitted changes without asking")
@click.pass_context
def checkout(ctx: click.Context, version_id: int, discard: bool) -> None:
    """
    Check out VERSION_ID into the tracked file.
    """
    with open_history(ctx) as history:
        try:
            version = history.checkout(version_id, discard=discard)
        except UncommittedChangesError:
            if not click.confirm(
                "You have uncommitted changes in your file. Do you wish to discard them?",
                default=False,
            ):
                click.echo("Checkout cancelled.")
                return
            version = history.checkout(version_id, discard=True)

        click.echo(f"Checked out {version_label(version)}")


@cli.command()
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, name: str) -> None:
    """
    Rename the current version.
    """
    with open_history(ctx) as history:
        version = history.rename(name)
        click.echo(f"Renamed version {version.id} to {version.name!r}")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, yes: bool) -> None:
    """
    Delete the current version.

    The tracked file is reset to the deleted version's base.
    """
    config: Config = ctx.obj["config"]
    with open_history(ctx) as history:
        current = history.current()
        if config.confirm_delete and not yes:
            click.confirm(
                f"Delete {version_label(current)}? Your file content will be set "
                "to the one of the base of the deleted version",
                abort=True,
            )
        removed = history.delete()
        click.echo(f"Deleted {version_label(removed)}; current version is {removed.base}")


@cli.command()
@click.pass_context
def rollback(ctx: click.Context) -> None:
    """
    Discard uncommitted changes in the tracked file.
    """
    with open_history(ctx) as history:
        version = history.rollback()
        click.echo(f"Restored {history.tracked_file} to {version_label(version)}")


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def track(ctx: click.Context, path: Path) -> None:
    """
    Change which file the store tracks.
    """
    with open_history(ctx) as history:
        tracked = history.set_tracked_file(path)
        click.echo(f"Tracked file: {tracked}")


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """
    Show current configuration.
    """
    cfg: Config = ctx.obj["config"]

    click.echo("SBVC Configuration")
    click.echo("=" * 40)
    click.echo(f"Config dir:     {cfg.global_dir}")
    click.echo(f"Granularity:    {cfg.history.granularity}")
    click.echo(f"Poll interval:  {cfg.history.poll_interval}s")
    click.echo(f"Store suffix:   {cfg.history.store_extension}")
    click.echo(f"Log level:      {cfg.log_level}")
    click.echo(f"Show dates:     {cfg.show_dates}")
    click.echo(f"Confirm delete: {cfg.confirm_delete}")


@cli.command()
@click.pass_context
def ui(ctx: click.Context) -> None:
    """
    Browse the version tree in an interactive terminal UI.
    """
    store = ctx.obj.get("store")
    if store is None:
        raise click.UsageError(f"No store selected. Pass --store or set {ENV_STORE}.")

    try:
        history = VersionHistory.open(store)
    except SbvcError as e:
        _fail(f"Cannot open {store}: {e}")

    from sbvc_cli.app import run_app
    run_app(history, config=ctx.obj["config"])


@cli.command()
def version() -> None:
    """
    Show version information.
    """
    click.echo(f"SBVC v{__version__}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
