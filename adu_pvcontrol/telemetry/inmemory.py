"""Telemetry backend that keeps handler metrics in process memory."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TypeAlias

Labels: TypeAlias = tuple[tuple[str, str], ...]


@dataclass
class InMemoryTelemetry:
    """Collects lifecycle counters and durations keyed by metric and labels.

    Useful when a host wants to read the handler's results without a metrics
    exporter, e.g. ``get_counter("pvcontrol_handler_results_total",
    (("operation", "install"), ("result", "failure")))``.
    """

    counters: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    timings: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    def incr(self, name: str, value: int = 1, labels: Labels = ()) -> None:
        self.counters[series_key(name, labels)] += value

    def timing(self, name: str, value: float, labels: Labels = ()) -> None:
        self.timings[series_key(name, labels)].append(value)

    def get_counter(self, name: str, labels: Labels = ()) -> int:
        return self.counters.get(series_key(name, labels), 0)

    def get_timing_values(self, name: str, labels: Labels = ()) -> list[float]:
        return list(self.timings.get(series_key(name, labels), ()))

    def reset(self) -> None:
        self.counters.clear()
        self.timings.clear()


def series_key(name: str, labels: Labels) -> str:
    """``name{k=v,...}``, the label order as given."""
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in labels) + "}"
