"""Command: data root initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from clashctl.commands._base import ClashCommand

if TYPE_CHECKING:
    from clashctl.commands._context import AppContext


@click.command(
    "init",
    cls=ClashCommand,
    examples="""\
  clashctl init
  clashctl init ~/clash-rules""",
)
@click.argument("path", required=False, default=".")
@click.pass_obj
def init_cmd(app: AppContext, path: str) -> None:
    """Create the rules database and a clashctl.toml in PATH."""
    from clashctl.services.init import InitService

    app.emit(InitService.init_store(Path(path).resolve(), store=app.settings.store))
