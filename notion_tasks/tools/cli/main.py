"""
Entry point of `notion-tasks` CLI.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any

import dotenv
from pydantic import ValidationError
from typer import Argument, BadParameter, Context, Exit, Option

from ...core import ReconciliationEngine, SyncError, Vault
from ..config import Config
from ..watcher import Watcher
from ._utils import MainTyper, get_note, get_root_context, logger, lookup_param

# pick up credentials from .env in working folder
dotenv.load_dotenv(Path(".env").resolve())

DEFAULT_CONFIG_FILE = Path("notion-tasks.yaml")

app = MainTyper(
    "notion-tasks",
    help="Synchronize task notes in a markdown vault with a Notion database",
)


@app.callback()
def main(
    ctx: Context,
    api_key: str
    | None = Option(
        None,
        help="Notion integration secret",
        envvar="NOTION_API_KEY",
    ),
    database_id: str
    | None = Option(
        None,
        help="Id of Notion database holding tasks",
        envvar="NOTION_DATABASE_ID",
    ),
    vault_dir: Path
    | None = Option(
        None,
        "--vault",
        help="Root folder of markdown vault",
        envvar="NOTION_TASKS_VAULT",
        file_okay=False,
    ),
    config_file: Path
    | None = Option(
        None,
        help=f".yaml file containing configuration, default '{DEFAULT_CONFIG_FILE}'"
        " if present; options and environment variables take precedence",
        envvar="NOTION_TASKS_CONFIG_FILE",
        dir_okay=False,
    ),
    verbose: bool = Option(
        False,
        "-v",
        "--verbose",
        help="Enable debug logging",
    ),
):
    if verbose:
        logger.setLevel(logging.DEBUG)

    ctx.obj = RootContext(
        ctx=ctx,
        config_file=config_file,
        overrides={
            "api_key": api_key,
            "database_id": database_id,
            "vault_dir": vault_dir,
        },
    )


@app.command()
def check(ctx: Context):
    """
    Check Notion credential
    """
    root_context = get_root_context(ctx)
    client = root_context.config.create_client(logger=logger)

    try:
        user = client.check()
    except SyncError as e:
        logger.error(f"Failed to connect to Notion: {e}")
        raise Exit(code=1)

    logger.info(f"Connected to Notion as '{user.get('name')}'")


@app.command()
def sync(
    ctx: Context,
    note_path: Path = Argument(
        help="Note to sync, absolute or relative to vault",
        dir_okay=False,
    ),
):
    """
    Sync a single note
    """
    root_context = get_root_context(ctx)
    note = get_note(ctx, root_context.vault, note_path, param_name="note_path")

    try:
        outcome = root_context.engine.reconcile_one(note)
    except SyncError as e:
        logger.error(f"Failed to sync {note}: {e}")
        raise Exit(code=1)

    logger.info(f"Synced {note}: {outcome.value}")


@app.command("sync-all")
def sync_all(
    ctx: Context,
    exclude: Path
    | None = Option(
        None,
        help="Note to leave alone, e.g. one currently being edited",
        dir_okay=False,
    ),
):
    """
    Sync all task notes in the vault
    """
    root_context = get_root_context(ctx)
    excluding = (
        get_note(
            ctx,
            root_context.vault,
            exclude,
            param_name="exclude",
            must_exist=False,
        )
        if exclude
        else None
    )

    report = root_context.engine.reconcile_all(excluding=excluding)
    logger.info(f"Sync finished: {report.summary}")

    if report.errors:
        raise Exit(code=1)


@app.command()
def watch(
    ctx: Context,
    interval: float
    | None = Option(
        None,
        help="Seconds between syncs; defaults to configured interval",
        min=0.1,
    ),
    active: Path
    | None = Option(
        None,
        help="Note currently being edited, left alone by periodic syncs",
        dir_okay=False,
    ),
):
    """
    Periodically sync all task notes and delete records of deleted notes
    """
    root_context = get_root_context(ctx)
    vault = root_context.vault
    active_note = (
        get_note(ctx, vault, active, param_name="active", must_exist=False)
        if active
        else None
    )

    watcher = Watcher(
        root_context.engine,
        vault,
        interval=interval or root_context.config.interval,
        active=active_note,
        logger=logger,
    )

    logger.info(
        f"Watching '{vault.root}', syncing every {watcher.interval} seconds"
    )

    try:
        watcher.run()
    except KeyboardInterrupt:
        watcher.stop()
        logger.info("Stopped watching")


@app.command()
def cleanup(
    ctx: Context,
    note_path: Path = Argument(
        help="Note whose record to delete, absolute or relative to vault",
        dir_okay=False,
    ),
):
    """
    Delete the Notion record linked from a note, e.g. before deleting the
    note while not watching
    """
    root_context = get_root_context(ctx)
    vault = root_context.vault
    note = get_note(ctx, vault, note_path, param_name="note_path")

    try:
        outcome = root_context.engine.on_note_deleted(
            vault.get_front_matter(note)
        )
    except SyncError as e:
        logger.error(f"Failed to delete record of {note}: {e}")
        raise Exit(code=1)

    logger.info(f"Cleaned up {note}: {outcome.value}")


def run():
    app()


@dataclass(kw_only=True)
class RootContext:
    ctx: Context
    config_file: Path | None
    overrides: dict[str, Any] = field(default_factory=dict)

    @cached_property
    def config(self) -> Config:
        """
        Config from file, if any, with options taking precedence.
        """
        file = self.config_file

        if file is not None:
            # explicitly passed config file must exist
            if not file.is_file():
                raise BadParameter(
                    f"file does not exist: {file}",
                    ctx=self.ctx,
                    param=lookup_param(self.ctx, "config_file"),
                )
        elif DEFAULT_CONFIG_FILE.is_file():
            file = DEFAULT_CONFIG_FILE

        try:
            return Config.load_yaml(file, **self.overrides)
        except (ValueError, ValidationError) as e:
            source = f"'{file}' and options" if file else "options"
            raise BadParameter(
                f"invalid configuration from {source}: {e}",
                ctx=self.ctx,
                param=lookup_param(self.ctx, "config_file"),
            )

    @cached_property
    def vault(self) -> Vault:
        return self.config.create_vault(logger=logger)

    @cached_property
    def engine(self) -> ReconciliationEngine:
        return self.config.create_engine(self.vault, logger=logger)


if __name__ == "__main__":
    app()
