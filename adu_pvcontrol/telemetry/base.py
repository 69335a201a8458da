"""Base telemetry port protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TelemetryPort(Protocol):
    """Protocol for telemetry backends.

    - Counters: Monotonically increasing values (lifecycle results, failures)
    - Timing: Duration measurements (lifecycle calls, child processes)
    """

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        """Increase a named counter by ``value`` with optional labels.

        Args:
            name: Metric name (e.g., "pvcontrol_handler_results_total")
            value: Amount to increment (default 1)
            labels: Optional label tuples (e.g., (("operation", "install"),))
        """

    def timing(
        self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()
    ) -> None:
        """Record timing of an operation in seconds.

        Args:
            name: Metric name (e.g., "pvcontrol_handler_duration_seconds")
            value: Duration in seconds
            labels: Optional label tuples
        """


class NoopTelemetry:
    """Telemetry sink that drops everything."""

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        return None

    def timing(
        self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()
    ) -> None:
        return None
