"""Dispatch engine and its running counters."""

from .engine import CycleSummary, DispatchEngine, EngineOptions, EngineState, ItemOutcome
from .stats import DispatchStats, StatsSnapshot

__all__ = [
    "CycleSummary",
    "DispatchEngine",
    "EngineOptions",
    "EngineState",
    "ItemOutcome",
    "DispatchStats",
    "StatsSnapshot",
]
