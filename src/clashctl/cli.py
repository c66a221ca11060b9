"""Entry point: global flags, settings, and the command tree."""

from __future__ import annotations

import click

from clashctl import __version__
from clashctl.commands import register_commands
from clashctl.commands._context import AppContext
from clashctl.config.settings import ClashSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="clashctl")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print only ids, group names or errors.")
@click.option("-v", "--verbose", is_flag=True, help="Show timestamps, item ids and stage timings.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option(
    "-c", "--config", "config_path", default=None, help="Use this clashctl.toml instead of searching."
)
@click.option(
    "--timeout",
    "fetch_timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for a remote base config (overrides [fetch] timeout).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    fetch_timeout: float | None,
) -> None:
    """clashctl: compose Clash configs from a remote base and your own rules."""
    settings = ClashSettings.from_cli(
        config_path=config_path,
        fetch_timeout=fetch_timeout,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
