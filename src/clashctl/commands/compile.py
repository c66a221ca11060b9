"""Command: compile a rule into a composite Clash config."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from clashctl.commands._base import ClashCommand

if TYPE_CHECKING:
    from clashctl.commands._context import AppContext


@click.command(
    "compile",
    cls=ClashCommand,
    examples="""\
  clashctl compile 3 > config.yaml
  clashctl compile 3 --output ~/.config/clash/config.yaml
  clashctl compile 3 --output ./exports/""",
)
@click.argument("rule_id", type=int)
@click.option(
    "--output",
    "output_path",
    type=click.Path(),
    default=None,
    help="Output file, or a directory to write the default filename into "
    "(omit to print to stdout).",
)
@click.pass_obj
def compile_cmd(app: AppContext, rule_id: int, output_path: str | None) -> None:
    """Merge a rule's items in front of its remote config's rules."""
    from clashctl.services.compile import CompileService
    from clashctl.services.result import ServiceResult

    result = CompileService(app.store).compile(rule_id)

    if not result.ok:
        app.emit(result)
        return

    if output_path is None:
        # Pipe-friendly: raw document to stdout
        click.echo(result.data["content"], nl=False)
        return

    target = Path(output_path)
    if target.is_dir():
        target = target / result.data["filename"]
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(result.data["content"].encode("utf-8"))

    summary = {k: v for k, v in result.data.items() if k != "content"}
    app.emit(
        ServiceResult(
            ok=True,
            op="compile",
            data={**summary, "output_file": str(target)},
            meta=result.meta,
        )
    )
