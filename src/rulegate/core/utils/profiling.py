"""Phase timing for engine construction, evaluation and CLI commands.

Library code marks phases with :func:`span`. Nothing is recorded unless the
caller installed a :class:`Profiler` with :func:`enable_profiler` (the CLI does
so for ``--profile``).
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, Iterator, List, Optional

_profiler: ContextVar[Optional["Profiler"]] = ContextVar("rulegate_profiler", default=None)


@dataclass(frozen=True)
class PhaseTiming:
    """One finished phase. ``depth`` is 0 for a phase opened at top level."""

    phase: str
    duration_ms: float
    depth: int = 0
    meta: Dict[str, Any] = field(default_factory=dict)


class Profiler:
    """Accumulates :class:`PhaseTiming` entries in completion order."""

    def __init__(self) -> None:
        self.timings: List[PhaseTiming] = []
        self._open: List[str] = []

    @contextmanager
    def phase(self, phase: str, **meta: Any) -> Iterator[None]:
        depth = len(self._open)
        self._open.append(phase)
        started = perf_counter()
        try:
            yield
        finally:
            elapsed = (perf_counter() - started) * 1000.0
            self._open.pop()
            self.timings.append(PhaseTiming(phase, elapsed, depth, dict(meta)))

    def totals_ms(self) -> Dict[str, float]:
        """Total time per phase name; repeated phases are summed."""
        totals: Dict[str, float] = {}
        for timing in self.timings:
            totals[timing.phase] = totals.get(timing.phase, 0.0) + timing.duration_ms
        return totals

    def render(self) -> str:
        """One line per phase, slowest first."""
        rows = sorted(self.totals_ms().items(), key=lambda kv: kv[1], reverse=True)
        return "\n".join(f"{phase:<32} {ms:10.3f} ms" for phase, ms in rows)


@contextmanager
def enable_profiler(profiler: Profiler) -> Iterator[Profiler]:
    token = _profiler.set(profiler)
    try:
        yield profiler
    finally:
        _profiler.reset(token)


@contextmanager
def span(phase: str, **meta: Any) -> Iterator[None]:
    """Time ``phase`` on the active profiler; a no-op when none is active."""
    profiler = _profiler.get()
    if profiler is None:
        yield
        return
    with profiler.phase(phase, **meta):
        yield


__all__ = ["PhaseTiming", "Profiler", "enable_profiler", "span"]
