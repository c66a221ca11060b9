"""Command: list the policies a rule item can route to."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from clashctl.commands._base import ClashCommand

if TYPE_CHECKING:
    from clashctl.commands._context import AppContext


@click.command(
    cls=ClashCommand,
    examples="""\
  clashctl groups --url https://example.com/sub/clash.yaml
  clashctl groups --rule 3
  clashctl -q groups --rule 3""",
)
@click.option("--url", default=None, help="Remote config URL to read proxy groups from.")
@click.option("--rule", "rule_id", type=int, default=None, help="Use the URL stored on a rule.")
@click.pass_obj
def groups(app: AppContext, url: str | None, rule_id: int | None) -> None:
    """List remote proxy-group names followed by DIRECT and REJECT."""
    if (url is None) == (rule_id is None):
        click.echo("Specify exactly one of --url or --rule.", err=True)
        raise SystemExit(1)

    from clashctl.services.compile import CompileService

    svc = CompileService(app.store)
    if rule_id is not None:
        app.emit(svc.list_groups_for_rule(rule_id))
    else:
        app.emit(svc.list_groups(url or ""))
