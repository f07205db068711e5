"""Human-readable rendering of service results.

``render_result`` picks a renderer by ``result.op``; ops without one get
a key/value dump of ``data``. Renderers draw onto a buffered Rich console
(see :func:`stackctl.output.console.render_text`).
"""

from __future__ import annotations

import json as _json
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from stackctl.output.console import render_text, style_for_kind, symbol_for_kind

if TYPE_CHECKING:
    from rich.console import Console

    from stackctl.services.result import ServiceResult


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render *result* for a person; plain text when stdout is not a terminal."""

    def draw(console: Console) -> None:
        if not result.ok:
            _render_error(result, console, verbose=verbose)
            return
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)

    return render_text(draw)


def render_quiet(result: ServiceResult) -> str:
    """One ``<kind> <resource>`` line per planned change, ids for listings."""
    if not result.ok:
        message = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {message}"

    changes = result.data.get("changes")
    if isinstance(changes, list):
        return "\n".join(f"{c['kind']} {c['resource_id']}" for c in changes)

    ids = [_item_id(item) for item in result.data.get("items") or []]
    if any(ids):
        return "\n".join(i for i in ids if i)
    return f"OK: {result.op}"


def _item_id(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    value = item.get("id", item.get("resource_id"))
    return "" if value is None else str(value)


def _compact(value: Any) -> str:
    if isinstance(value, str):
        return value
    return _json.dumps(value, separators=(",", ":"), sort_keys=True)


def _heading(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "stack.ok"), (f"  {result.op}", "stack.op")))


def _value_style(key: str) -> str:
    if key == "id" or key.endswith("_id"):
        return "stack.id"
    if key == "path":
        return "stack.path"
    return ""


def _field(console: Console, key: str, value: Any) -> None:
    text = _compact(value) if isinstance(value, (dict, list)) else str(value)
    console.print(Text.assemble((f"  {key}: ", "stack.key"), (text, _value_style(key))))


def _timing_style(duration_ms: float) -> str:
    if duration_ms > 1000:
        return "bold red"
    return "yellow" if duration_ms > 100 else "dim"


def _span_lines(span: dict[str, Any], depth: int = 1) -> Iterator[str]:
    duration = span.get("duration_ms", 0.0)
    style = _timing_style(duration)
    line = f"{'    ' * depth}[{style}]{duration:>8.2f}ms[/{style}]  {span.get('name', '?')}"
    notes = span.get("annotations") or {}
    if notes:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in notes.items()) + ")"
    yield line
    for child in span.get("children", []):
        yield from _span_lines(child, depth + 1)


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Verbose-only meta block; the span tree is drawn with per-span timings."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            for line in _span_lines(value):
                console.print(line)
        else:
            console.print(f"    {key}: {value}")


def _outputs_block(console: Console, outputs: dict[str, Any]) -> None:
    if not outputs:
        return
    console.print()
    console.print(Text("  outputs:", style="stack.key"))
    for name in sorted(outputs):
        console.print(f"    {name} = {_compact(outputs[name])}")


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    console.print(
        Text.assemble(("ERROR", "stack.error"), (f"  {result.op}", "stack.op"), ": "),
        err.message if err else "Unknown error",
    )

    if err is not None and err.code == "PARTIAL_APPLY":
        data = result.data
        _field(console, "failed", data.get("failed", ""))
        for key in ("applied", "pending"):
            _field(console, key, ", ".join(data.get(key, [])) or "(none)")
        if data.get("serial") is not None:
            _field(console, "serial", data["serial"])
        console.print("  Partial state was saved. Fix the cause and re-run apply.")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(f"    {key}: {value}")


def _change_table(changes: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Action")
    table.add_column("Resource", style="stack.id", no_wrap=True)
    table.add_column("Type", style="stack.type")
    table.add_column("Changed")
    if verbose:
        table.add_column("Rank", justify="right", style="dim")
        table.add_column("After")

    for position, change in enumerate(changes, start=1):
        kind = change["kind"]
        action = Text(f"{symbol_for_kind(kind)} {kind}", style=style_for_kind(kind))
        changed = change.get("changed_attributes", [])
        row: list[Any] = [
            str(position),
            action,
            change["resource_id"],
            change["resource_type"],
            ", ".join(changed) if kind in ("update", "replace") else "",
        ]
        if verbose:
            after = change.get("after", {})
            row.append(str(change.get("rank", 0)))
            row.append(
                "\n".join(f"{k} = {_compact(after[k])}" for k in changed if k in after)
            )
        table.add_row(*row)
    return table


def _summary_line(summary: dict[str, int], *, verb: str) -> str:
    return (
        f"{verb}: {summary.get('create', 0)} to create, "
        f"{summary.get('update', 0)} to update, "
        f"{summary.get('replace', 0)} to replace, "
        f"{summary.get('delete', 0)} to delete."
    )


def _render_plan(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _heading(console, result)
    _field(console, "deployment_id", d.get("deployment_id", ""))
    _field(console, "serial", d.get("serial", 0))
    if d.get("destroy"):
        _field(console, "mode", "destroy")

    changes = d.get("changes", [])
    if not changes:
        console.print("  No changes. Infrastructure matches the description.")
    else:
        console.print()
        console.print(_change_table(changes, verbose=verbose))
        console.print()
        console.print(_summary_line(d.get("summary", {}), verb="Plan"))

    _outputs_block(console, d.get("outputs", {}))
    if d.get("path"):
        console.print()
        _field(console, "path", d["path"])
    if verbose:
        _render_meta(console, result)


def _render_apply(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _heading(console, result)
    _field(console, "deployment_id", d.get("deployment_id", ""))
    _field(console, "serial", d.get("serial", 0))

    changes = d.get("changes", [])
    if not changes:
        console.print("  No changes. Nothing to apply.")
    else:
        console.print()
        console.print(_change_table(changes, verbose=verbose))
        console.print()
        console.print(_summary_line(d.get("summary", {}), verb="Applied"))

    _outputs_block(console, d.get("outputs", {}))
    if verbose:
        _field(console, "run_id", d.get("run_id", ""))
        _render_meta(console, result)


def _render_state_show(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _heading(console, result)

    if "items" not in d:
        for key in ("deployment_id", "id", "type", "provider_id", "declared_index"):
            if key in d:
                _field(console, key, d[key])
        _field(console, "dependencies", ", ".join(d.get("dependencies", [])) or "(none)")
        for section in ("attributes", "outputs"):
            values = d.get(section) or {}
            console.print(Text(f"  {section}:", style="stack.key"))
            for k in sorted(values):
                console.print(f"    {k} = {_compact(values[k])}")
        if verbose:
            _render_meta(console, result)
        return

    _field(console, "deployment_id", d.get("deployment_id", ""))
    _field(console, "serial", d.get("serial", 0))
    if d.get("partial"):
        _field(console, "partial", True)
    if d.get("updated_at"):
        _field(console, "updated_at", d["updated_at"])

    items = d.get("items", [])
    if items:
        console.print()
        table = Table(show_header=True, pad_edge=False, expand=False)
        table.add_column("Resource", style="stack.id", no_wrap=True)
        table.add_column("Type", style="stack.type")
        table.add_column("Provider ID")
        if verbose:
            table.add_column("Depends On", style="dim")
        for item in items:
            row = [item["id"], item["type"], item["provider_id"]]
            if verbose:
                row.append(", ".join(item.get("dependencies", [])))
            table.add_row(*row)
        console.print(table)
    else:
        console.print("  No resources recorded.")

    _outputs_block(console, d.get("outputs", {}))
    if verbose:
        _render_meta(console, result)


def _render_state_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _heading(console, result)
    items = result.data.get("items", [])
    if not items:
        console.print("  No deployments recorded.")
        return
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Deployment", style="stack.id")
    table.add_column("Serial", justify="right")
    table.add_column("Resources", justify="right")
    table.add_column("Partial")
    table.add_column("Updated", style="dim")
    for item in items:
        table.add_row(
            item["id"],
            str(item["serial"]),
            str(item["resources"]),
            "yes" if item["partial"] else "",
            str(item.get("updated_at") or ""),
        )
    console.print(table)


def _render_state_history(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    _heading(console, result)
    _field(console, "deployment_id", result.data.get("deployment_id", ""))
    items = result.data.get("items", [])
    if not items:
        console.print("  No applies recorded.")
        return
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Serial", justify="right")
    table.add_column("Resource", style="stack.id")
    table.add_column("Action")
    table.add_column("Status")
    table.add_column("Error")
    if verbose:
        table.add_column("Time", style="dim")
    for item in items:
        status_style = "stack.ok" if item["status"] == "applied" else "stack.error"
        row: list[Any] = [
            str(item["serial"]),
            item["resource_id"],
            Text(item["kind"], style=style_for_kind(item["kind"])),
            Text(item["status"], style=status_style),
            item.get("error") or "",
        ]
        if verbose:
            row.append(item.get("timestamp", ""))
        table.add_row(*row)
    console.print(table)


def _render_graph_show(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _heading(console, result)
    _field(console, "name", d.get("name", ""))
    _field(console, "resources", d.get("count", 0))

    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Depth", justify="right", style="dim")
    table.add_column("Resource", style="stack.id", no_wrap=True)
    table.add_column("Type", style="stack.type")
    table.add_column("Depends On")
    if verbose:
        table.add_column("Attributes")
    for item in d.get("items", []):
        row = [
            str(item["depth"]),
            item["id"],
            item["type"],
            ", ".join(item.get("depends_on", [])),
        ]
        if verbose:
            attrs = item.get("attributes", {})
            row.append("\n".join(f"{k} = {_compact(attrs[k])}" for k in sorted(attrs)))
        table.add_row(*row)
    console.print()
    console.print(table)
    _outputs_block(console, d.get("outputs", {}))
    if verbose:
        _field(console, "digest", d.get("digest", ""))
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _heading(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


_OP_RENDERERS: dict[str, Any] = {
    "plan": _render_plan,
    "apply": _render_apply,
    "state_show": _render_state_show,
    "state_list": _render_state_list,
    "state_history": _render_state_history,
    "graph_show": _render_graph_show,
}
