"""Subcommand modules for clashctl.

Provides register_commands() which uses deferred imports to keep
``clashctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``rule`` group and standalone commands on the root CLI group."""
    from clashctl.commands.rule import rule

    cli.add_command(rule)

    from clashctl.commands.compile import compile_cmd
    from clashctl.commands.groups import groups
    from clashctl.commands.init_cmd import init_cmd
    from clashctl.commands.upgrade import upgrade

    cli.add_command(init_cmd)
    cli.add_command(compile_cmd)
    cli.add_command(groups)
    cli.add_command(upgrade)
