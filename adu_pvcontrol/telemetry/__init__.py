"""Telemetry backends for handler observability.

Provides an in-memory backend (for testing) and a no-op default.
"""

from adu_pvcontrol.telemetry.base import NoopTelemetry, TelemetryPort
from adu_pvcontrol.telemetry.inmemory import InMemoryTelemetry

__all__ = [
    "TelemetryPort",
    "NoopTelemetry",
    "InMemoryTelemetry",
]
