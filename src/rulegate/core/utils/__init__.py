"""Shared utilities."""
from __future__ import annotations

from .profiling import PhaseTiming, Profiler, enable_profiler, span

__all__ = ["PhaseTiming", "Profiler", "enable_profiler", "span"]
