"""
Utilities specific to CLI functionality.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from typer import BadParameter, Context, Typer

from ...core import Note, Vault

if TYPE_CHECKING:
    from .main import RootContext


console = Console()

rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    show_level=True,
    show_time=True,
    show_path=False,
)
rich_handler.setFormatter(logging.Formatter("%(message)s"))

logger = logging.getLogger("notion-tasks")
logger.setLevel(logging.INFO)
logger.addHandler(rich_handler)
logger.propagate = False


class MainTyper(Typer):
    """
    Typer app with preconfigured settings.
    """

    def __init__(self, name: str, *, help: str):
        return super().__init__(
            name=name,
            help=help,
            rich_markup_mode="markdown",
            no_args_is_help=True,
            add_completion=False,
        )


def get_root_context(ctx: Context) -> RootContext:
    from .main import RootContext

    root_context = ctx.find_root().obj
    assert isinstance(root_context, RootContext)
    return root_context


def get_note(
    ctx: Context,
    vault: Vault,
    path: Path,
    *,
    param_name: str,
    must_exist: bool = True,
) -> Note:
    """
    Get note from a path given on the command line, either absolute or
    relative to the vault.
    """
    note = vault.note_for(path)

    if note is None:
        raise BadParameter(
            f"'{path}' is not a markdown note in vault '{vault.root}'",
            ctx=ctx,
            param=lookup_param(ctx, param_name),
        )

    if must_exist and vault.get(note.path) is None:
        raise BadParameter(
            f"note does not exist: '{path}'",
            ctx=ctx,
            param=lookup_param(ctx, param_name),
        )

    return note


def lookup_param(ctx: Context, name: str):
    """
    Lookup param by name.
    """
    param = next((p for p in ctx.command.params if p.name == name), None)
    assert param, f"Could not find param with name: {name}"
    return param
