"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from clashctl.output.console import create_console, get_output, style_for_policy

if TYPE_CHECKING:
    from rich.console import Console

    from clashctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    if result.op == "list_groups":
        return "\n".join(result.data.get("groups", []))

    if result.op == "list_rules":
        return "\n".join(str(rule["id"]) for rule in result.data.get("items", []))

    if "id" in result.data:
        return str(result.data["id"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    console.print(Text.assemble(("OK", "clash.ok"), (f"  {result.op}", "clash.op")))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="clash.id")
    elif key == "url":
        v = Text(str(value) if value else "(unset)", style="clash.url" if value else "dim")
    else:
        v = Text(str(value))
    console.print(Text.assemble((f"  {key}: ", "clash.key"), v))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, stage timings included (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "timings":
            _render_timings(console, v)
        else:
            console.print(Text(f"    {k}: {v}"))


def _ms(duration: float) -> Text:
    """Duration column; slow fetches stand out."""
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"
    return Text(f"{duration:>8.2f}ms", style=style)


def _render_timings(console: Console, timings: dict[str, Any]) -> None:
    """One line for the call, then one per stage with its facts."""
    console.print(
        Text.assemble("    ", _ms(timings.get("total_ms", 0.0)), f"  {timings.get('operation', '?')}")
    )
    for entry in timings.get("stages", []):
        line = Text.assemble("      ", _ms(entry.get("ms", 0.0)), f"  {entry.get('stage', '?')}")
        facts = {k: v for k, v in entry.items() if k not in ("stage", "ms")}
        if facts:
            line.append("  (" + ", ".join(f"{k}={v}" for k, v in facts.items()) + ")", style="dim")
        console.print(line)


def _items_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    """Build a Rich Table of rule items, in evaluation order."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    if verbose:
        table.add_column("ID", style="clash.id", no_wrap=True)
    table.add_column("Type", style="clash.type")
    table.add_column("Value")
    table.add_column("Policy")

    for idx, item in enumerate(items, 1):
        policy = str(item.get("policy", ""))
        row: list[Any] = [str(idx)]
        if verbose:
            row.append(str(item.get("id", "")))
        row.extend(
            [
                str(item.get("type", "")),
                str(item.get("value", "")),
                Text(policy, style=style_for_policy(policy)),
            ]
        )
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text.assemble(
            ("ERROR", "clash.error"),
            (f"  {result.op}", "clash.op"),
            (f" [{err.code}]" if err else "", "dim"),
            f" — {msg}",
        )
    )

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Rule renderers ────────────────────────────────────────────────────


def _render_rule(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create_rule/get_rule/reconcile as a panel with its items."""
    _status_line(console, result)
    d = result.data
    for key in ("id", "url", "item_count"):
        if key in d:
            _field(console, key, d[key])
    if verbose:
        for key in ("created_at", "updated_at"):
            if key in d:
                _field(console, key, d[key])

    changes = d.get("changes")
    if changes:
        summary = ", ".join(
            f"{k}={v}" for k, v in changes.items() if k != "url_changed" and v
        )
        _field(console, "changes", summary or "none")
        if changes.get("url_changed"):
            _field(console, "url_changed", True)

    items = d.get("items", [])
    if items:
        console.print()
        console.print(
            Panel(
                _items_table(items, verbose=verbose),
                title=f"rule {d.get('id', '?')}",
                border_style="dim",
                expand=False,
            )
        )
    if verbose:
        _render_meta(console, result)


def _render_rule_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render list_rules as a table."""
    rules = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="clash.id", no_wrap=True)
    table.add_column("URL", style="clash.url")
    table.add_column("Items", justify="right")
    table.add_column("Updated", style="dim")
    if verbose:
        table.add_column("Created", style="dim")

    for rule in rules:
        row = [
            str(rule.get("id", "")),
            str(rule.get("url") or "-"),
            str(rule.get("item_count", 0)),
            str(rule.get("updated_at", "")),
        ]
        if verbose:
            row.append(str(rule.get("created_at", "")))
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(rules))} rules")


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render delete/init style results as key-value fields."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


def _render_rule_types(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Type", style="clash.type")
    table.add_column("Example value")
    for entry in result.data.get("types", []):
        table.add_row(entry["type"], entry["example"] or Text("(empty)", style="dim"))
    console.print(table)


# ── Compile renderers ─────────────────────────────────────────────────


def _render_compile(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render compile summary (the document itself goes to the output file)."""
    _status_line(console, result)
    d = result.data
    for key in ("rule_id", "url", "output_file", "rule_count", "base_rule_count"):
        if key in d:
            _field(console, key, d[key])
    if verbose:
        _render_meta(console, result)


def _render_groups(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render list_groups as a numbered list."""
    _status_line(console, result)
    _field(console, "url", result.data.get("url"))
    for idx, name in enumerate(result.data.get("groups", []), 1):
        console.print(f"  {idx:>3}. ", Text(name, style=style_for_policy(name)), sep="")
    if verbose:
        _render_meta(console, result)


# ── Upgrade renderers ────────────────────────────────────────────────


def _render_upgrade(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render upgrade/migration results."""
    _status_line(console, result)
    d = result.data
    for key in ("applied_count", "pending_count", "current", "head", "backup_path", "message"):
        if key in d:
            _field(console, key, d[key])
    if verbose and d.get("pending"):
        console.print()
        for p in d["pending"]:
            console.print(f"  {p['revision']}: {p['description']}")


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "create_rule": _render_rule,
    "get_rule": _render_rule,
    "reconcile": _render_rule,
    "list_rules": _render_rule_table,
    "delete_rule": _render_mutation,
    "rule_types": _render_rule_types,
    "compile": _render_compile,
    "list_groups": _render_groups,
    "init": _render_mutation,
    "upgrade": _render_upgrade,
}
