"""Attribute references between resources.

An attribute value is either a plain literal (str, number, bool, None, or a
list/dict of those) or a :class:`Reference` to a field of another resource.
References may appear at any depth inside lists and dicts. They stay
symbolic while the description is built and are resolved in a single pass
once every declaration is known.

:data:`UNKNOWN` stands in for a value that only exists after apply (an
output of a resource that is created or replaced in the same plan).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Reference:
    """Symbolic link to ``field`` of resource ``node_id``."""

    node_id: str
    field: str = "id"

    def __str__(self) -> str:
        return f"${{{self.node_id}.{self.field}}}"


class _Unknown:
    """Singleton marker for values computed during apply."""

    _instance: _Unknown | None = None

    def __new__(cls) -> _Unknown:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(known after apply)"

    def __reduce__(self) -> str:
        return "UNKNOWN"


UNKNOWN = _Unknown()


def ref(node_id: str, field: str = "id") -> Reference:
    """Shorthand for ``Reference(node_id, field)``."""
    return Reference(node_id, field)


def iter_references(value: Any) -> Iterator[Reference]:
    """Yield every reference contained in *value* (depth-first)."""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def resolve_value(value: Any, lookup: Callable[[Reference], Any]) -> Any:
    """Return a copy of *value* with every reference replaced by ``lookup(ref)``.

    Tuples become lists so resolved values compare equal to their
    JSON round-tripped form.
    """
    if isinstance(value, Reference):
        return lookup(value)
    if isinstance(value, dict):
        return {k: resolve_value(v, lookup) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_value(v, lookup) for v in value]
    return value


def contains_unknown(value: Any) -> bool:
    """Whether *value* holds :data:`UNKNOWN` anywhere."""
    if value is UNKNOWN:
        return True
    if isinstance(value, dict):
        return any(contains_unknown(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_unknown(v) for v in value)
    return False


def to_display(value: Any) -> Any:
    """Render references and unknowns as strings for output."""
    if isinstance(value, Reference):
        return str(value)
    if value is UNKNOWN:
        return repr(UNKNOWN)
    if isinstance(value, dict):
        return {k: to_display(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_display(v) for v in value]
    return value
