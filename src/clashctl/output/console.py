"""Rich Console factory and theme for clashctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

CLASH_THEME = Theme(
    {
        "clash.ok": "bold green",
        "clash.error": "bold red",
        "clash.warning": "bold yellow",
        "clash.op": "bold cyan",
        "clash.key": "dim",
        "clash.id": "bold blue",
        "clash.url": "underline",
        "clash.type": "magenta",
        "clash.policy": "green",
        "clash.policy.builtin": "yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=CLASH_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_policy(policy: str) -> str:
    """Built-in actions and named proxy groups render differently."""
    if policy.upper() in {"DIRECT", "REJECT"}:
        return "clash.policy.builtin"
    return "clash.policy"
