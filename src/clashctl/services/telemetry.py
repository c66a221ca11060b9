"""Stage timings for ``--verbose`` output.

A service method wrapped in :func:`timed` gets one :class:`Timings`
record. Each :func:`stage` block inside it (fetch, decode, merge,
apply_items) adds a flat entry with its duration and any facts the stage
reports. The record is returned in ``ServiceResult.meta["timings"]``.

A timed method called from another timed method reports into the outer
record. When timings are off the cost is one ContextVar lookup per call.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from clashctl.services.result import ServiceResult

log = structlog.get_logger("clashctl.telemetry")

_enabled: ContextVar[bool] = ContextVar("_timings_enabled", default=False)
_active: ContextVar[Timings | None] = ContextVar("_active_timings", default=None)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


@dataclass
class Timings:
    """Timing record of one top-level service call."""

    operation: str
    started: float = field(default_factory=time.perf_counter)
    total_ms: float | None = None
    stages: list[dict[str, Any]] = field(default_factory=list)

    def finish(self) -> None:
        self.total_ms = _elapsed_ms(self.started)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "total_ms": self.total_ms if self.total_ms is not None else 0.0,
            "stages": list(self.stages),
        }


@contextmanager
def stage(name: str) -> Generator[dict[str, Any] | None]:
    """Time one pipeline stage of the active call.

    Yields a dict the stage may fill with facts (``facts["bytes"] = n``),
    or None when timings are off or no timed call is running.
    """
    timings = _active.get() if _enabled.get() else None
    if timings is None:
        yield None
        return

    facts: dict[str, Any] = {}
    started = time.perf_counter()
    try:
        yield facts
    finally:
        timings.stages.append({"stage": name, "ms": _elapsed_ms(started), **facts})


_P = ParamSpec("_P")
_R = TypeVar("_R")


def timed(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Record a :class:`Timings` for *func* and attach it to its ServiceResult."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get() or _active.get() is not None:
            return func(*args, **kwargs)

        timings = Timings(operation=func.__qualname__)
        token = _active.set(timings)
        try:
            result = func(*args, **kwargs)
        finally:
            timings.finish()
            _active.reset(token)

        log.debug(
            "service.timed",
            operation=timings.operation,
            total_ms=timings.total_ms,
            stages=[entry["stage"] for entry in timings.stages],
        )
        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "timings": timings.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def enable_telemetry() -> None:
    """Turn stage timings on for this context (``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)
