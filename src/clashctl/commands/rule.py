"""Command group: rule authoring (create, save, show, list, delete, types)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from clashctl.commands._base import ClashGroup, item_options

if TYPE_CHECKING:
    from clashctl.commands._context import AppContext


@click.group(
    cls=ClashGroup,
    examples="""\
  clashctl rule create --url https://example.com/sub.yaml --item "DOMAIN-SUFFIX,example.com,DIRECT"
  clashctl rule save 1 --items items.yaml
  clashctl rule show 1
  clashctl rule list
  clashctl rule delete 1""",
)
def rule() -> None:
    """Author rules: a remote base URL plus an ordered list of items."""


@rule.command(
    examples="""\
  clashctl rule create
  clashctl rule create --url https://example.com/sub.yaml
  clashctl rule create --url https://example.com/sub.yaml \\
      --item "DOMAIN-SUFFIX,example.com,DIRECT" --item "MATCH,Proxy"
  clashctl rule create --items items.yaml""",
)
@click.option("--url", default=None, help="Remote base config URL.")
@item_options("create_rule")
@click.pass_obj
def create(app: AppContext, url: str | None, items: list[dict[str, Any]] | None) -> None:
    """Create a new rule."""
    from clashctl.services.rules import RuleService

    app.emit(RuleService(app.store).create_rule(url=url, items=items or []))


@rule.command(
    examples="""\
  clashctl rule save 1 --url https://example.com/other.yaml
  clashctl rule save 1 --items items.yaml
  clashctl --json rule show 1 > rule.json && clashctl rule save 1 --items rule.json
  clashctl rule save 1 --item "GEOIP,CN,DIRECT" --item "MATCH,Proxy"
  clashctl rule save 1 --clear""",
)
@click.argument("rule_id", type=int)
@click.option("--url", default=None, help="New remote base config URL.")
@item_options("reconcile")
@click.option("--clear", is_flag=True, help="Submit an empty item list (removes every item).")
@click.pass_obj
def save(
    app: AppContext,
    rule_id: int,
    url: str | None,
    items: list[dict[str, Any]] | None,
    clear: bool,
) -> None:
    """Replace a rule's items with the submitted list.

    The submitted list is the complete desired state: items whose id is
    absent are deleted, items carrying an owned id are updated, all
    others are inserted. Without any item option only the URL changes.
    """
    from clashctl.services.rules import RuleService

    if clear and items is not None:
        click.echo("--clear cannot be combined with --item or --items.", err=True)
        raise SystemExit(1)
    if clear:
        items = []
    elif items is None and url is None:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)

    app.emit(RuleService(app.store).reconcile(rule_id, url=url, items=items))


@rule.command()
@click.argument("rule_id", type=int)
@click.pass_obj
def show(app: AppContext, rule_id: int) -> None:
    """Show a rule and its items in evaluation order."""
    from clashctl.services.rules import RuleService

    app.emit(RuleService(app.store).get_rule(rule_id))


@rule.command("list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List all rules, newest first."""
    from clashctl.services.rules import RuleService

    app.emit(RuleService(app.store).list_rules())


@rule.command(
    examples="""\
  clashctl rule delete 1
  clashctl -q rule delete 1""",
)
@click.argument("rule_id", type=int)
@click.pass_obj
def delete(app: AppContext, rule_id: int) -> None:
    """Delete a rule and all of its items."""
    from clashctl.services.rules import RuleService

    app.emit(RuleService(app.store).delete_rule(rule_id))


@rule.command()
@click.pass_obj
def types(app: AppContext) -> None:
    """List common matcher types with a sample value."""
    from clashctl.domain.rules import KNOWN_RULE_TYPES
    from clashctl.services.result import ServiceResult

    entries = [{"type": name, "example": example} for name, example in KNOWN_RULE_TYPES.items()]
    app.emit(ServiceResult(ok=True, op="rule_types", data={"count": len(entries), "types": entries}))
