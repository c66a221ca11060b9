"""Shared pieces of the command layer.

- :class:`ClashCommand` / :class:`ClashGroup` take an ``examples`` text and
  grow an eager ``--examples`` flag that prints it, so ``--help`` stays short.
- :func:`item_options` gives a command the ``--item`` / ``--items`` pair
  used to submit rule items, and hands the callback one ``items`` list.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import IO, Any, TypeVar

import click

_F = TypeVar("_F", bound=Callable[..., Any])


class _ExamplesMixin:
    """Adds ``--examples`` when the command is declared with ``examples=``."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(  # type: ignore[attr-defined]
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)


class ClashCommand(_ExamplesMixin, click.Command):
    """Command with optional ``--examples``."""


class ClashGroup(_ExamplesMixin, click.Group):
    """Group with optional ``--examples``; subcommands are :class:`ClashCommand`."""

    command_class = ClashCommand


# ── Item submission ───────────────────────────────────────────────────


class ItemSourceError(ValueError):
    """Raised when --item / --items input cannot be turned into item mappings."""


def collect_items(item_lines: tuple[str, ...], items_file: IO[str] | None) -> list[dict[str, Any]]:
    """Build the submitted item sequence from ``--items`` then ``--item`` values.

    Items read from the file keep their ids; inline ``--item`` values are
    always new.
    """
    from clashctl.domain.rules import parse_rule_line

    collected: list[dict[str, Any]] = []
    if items_file is not None:
        collected.extend(_read_items_file(items_file))
    for line in item_lines:
        try:
            collected.append(parse_rule_line(line))
        except ValueError as exc:
            raise ItemSourceError(str(exc)) from exc
    return collected


def _read_items_file(stream: IO[str]) -> list[dict[str, Any]]:
    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    name = getattr(stream, "name", "<items>")
    try:
        loaded = YAML(typ="safe").load(stream.read())
    except YAMLError as exc:
        raise ItemSourceError(f"Cannot parse {name}: {exc}") from exc

    # Accept the ``data`` payload of ``clashctl --json rule show`` as well.
    if isinstance(loaded, dict) and isinstance(loaded.get("data"), dict):
        loaded = loaded["data"]
    if isinstance(loaded, dict):
        loaded = loaded.get("items")
    if loaded is None:
        return []
    if not isinstance(loaded, list):
        raise ItemSourceError(f"{name} must contain a list of items")
    return [dict(entry) if isinstance(entry, dict) else entry for entry in loaded]


def item_options(op: str) -> Callable[[_F], _F]:
    """Attach ``--item`` and ``--items`` and pass the result as ``items``.

    ``items`` is None when neither option was given. Input that cannot be
    read is emitted as an INVALID_INPUT result for *op* and the callback
    is not run.
    """

    def decorator(func: _F) -> _F:
        @functools.wraps(func)
        def wrapper(
            *args: Any, item_lines: tuple[str, ...], items_file: IO[str] | None, **kwargs: Any
        ) -> Any:
            items: list[dict[str, Any]] | None = None
            if item_lines or items_file is not None:
                try:
                    items = collect_items(item_lines, items_file)
                except ItemSourceError as exc:
                    from clashctl.services._helpers import error_result
                    from clashctl.services.result import ErrorCode

                    click.get_current_context().obj.emit(
                        error_result(op, ErrorCode.INVALID_INPUT, str(exc))
                    )
                    return None
            return func(*args, items=items, **kwargs)

        wrapper = click.option(
            "--items",
            "items_file",
            type=click.File("r", encoding="utf-8"),
            default=None,
            help="YAML or JSON list of items with type/value/policy and optional id ('-' for stdin).",
        )(wrapper)
        wrapper = click.option(
            "--item",
            "item_lines",
            multiple=True,
            help="Item as TYPE,VALUE,POLICY or TYPE,POLICY (repeatable, in order).",
        )(wrapper)
        return wrapper  # type: ignore[return-value]

    return decorator
