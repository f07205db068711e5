"""Timing spans for service calls, shown with ``-v``.

``@traced`` opens a root span around a service method; ``trace_span``
opens child spans inside it (load graph, diff, execute, one per resource
change). When the method returns a :class:`ServiceResult` the span tree is
attached as ``meta["telemetry"]``.

Disabled, each call costs one ContextVar lookup. Apply workers run under
a copy of the submitting context, so their spans land under the apply
span; appends to a shared parent are serialized.
"""

from __future__ import annotations

import functools
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from stackctl.services.result import ServiceResult

log = structlog.get_logger("stackctl.telemetry")

_enabled: ContextVar[bool] = ContextVar("stackctl_telemetry", default=False)
_active: ContextVar[Span | None] = ContextVar("stackctl_span", default=None)

_append_lock = threading.Lock()

_P = ParamSpec("_P")
_R = TypeVar("_R")


@dataclass
class Span:
    """One timed region; children are nested regions."""

    name: str
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def child(self, name: str) -> Span:
        span = Span(name=name)
        with _append_lock:
            self.children.append(span)
        return span

    def end(self) -> None:
        self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@contextmanager
def _activate(span: Span) -> Iterator[Span]:
    token = _active.set(span)
    try:
        yield span
    finally:
        span.end()
        _active.reset(token)


@contextmanager
def trace_span(name: str) -> Iterator[Span | None]:
    """Nest a span under the active one; yields None outside a traced call."""
    parent = _active.get() if _enabled.get() else None
    if parent is None:
        yield None
        return
    with _activate(parent.child(name)) as span:
        yield span


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method and attach its span tree to the result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        ok = False
        with _activate(Span(name=func.__qualname__)) as root:
            try:
                result = func(*args, **kwargs)
                ok = not isinstance(result, ServiceResult) or result.ok
            finally:
                root.end()
                log.debug(
                    "span.complete",
                    span_name=root.name,
                    duration_ms=round(root.duration_ms, 2),
                    ok=ok,
                    children=len(root.children),
                )

        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": root.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def enable_telemetry() -> None:
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def get_current_span() -> Span | None:
    """The active span, for annotating from deep inside a call."""
    return _active.get() if _enabled.get() else None
