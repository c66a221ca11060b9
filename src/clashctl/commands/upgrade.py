"""Command: bring the rule store's schema up to date."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from clashctl.commands._base import ClashCommand

if TYPE_CHECKING:
    from clashctl.commands._context import AppContext


@click.command(
    cls=ClashCommand,
    examples="""\
  clashctl upgrade --check
  clashctl upgrade
  clashctl upgrade --no-backup""",
)
@click.option(
    "--check", "check_only", is_flag=True, help="List pending migrations without applying them."
)
@click.option(
    "--backup/--no-backup",
    default=True,
    show_default=True,
    help="Copy the database into the store's backups/ directory before migrating.",
)
@click.pass_obj
def upgrade(app: AppContext, check_only: bool, backup: bool) -> None:
    """Migrate the rule store to the current schema."""
    from clashctl.services.upgrade import UpgradeService

    svc = UpgradeService(app.store)
    if check_only:
        app.emit(svc.check_pending())
    else:
        app.emit(svc.apply(backup=backup))
