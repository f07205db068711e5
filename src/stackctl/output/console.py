"""Rich console setup: the stackctl theme and change-kind markers.

Output is drawn onto an in-memory console and returned as a string, so
``format_result`` stays a pure function. Colour is dropped automatically
when stdout is not a terminal.
"""

from __future__ import annotations

from collections.abc import Callable
from io import StringIO

from rich.console import Console
from rich.theme import Theme

# kind -> (marker, style)
CHANGE_KINDS: dict[str, tuple[str, str]] = {
    "create": ("+", "green"),
    "update": ("~", "yellow"),
    "replace": ("-/+", "bold magenta"),
    "delete": ("-", "red"),
}

STACK_THEME = Theme(
    {
        "stack.ok": "bold green",
        "stack.error": "bold red",
        "stack.warning": "bold yellow",
        "stack.op": "bold cyan",
        "stack.key": "dim",
        "stack.id": "bold blue",
        "stack.type": "magenta",
        "stack.path": "dim",
        **{f"stack.kind.{kind}": style for kind, (_, style) in CHANGE_KINDS.items()},
    }
)

DEFAULT_WIDTH = 120


def render_text(draw: Callable[[Console], None], *, width: int = DEFAULT_WIDTH) -> str:
    """Run *draw* against a buffered console and return what it printed."""
    buffer = StringIO()
    console = Console(file=buffer, theme=STACK_THEME, highlight=False, width=width)
    draw(console)
    return buffer.getvalue().rstrip("\n")


def style_for_kind(kind: str) -> str:
    return f"stack.kind.{kind}" if kind in CHANGE_KINDS else ""


def symbol_for_kind(kind: str) -> str:
    marker, _ = CHANGE_KINDS.get(kind, ("?", ""))
    return marker
