"""Per-component loguru sinks, set up on load and removed on teardown."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from adu_pvcontrol.core.models import LogSeverity

LOG_FORMAT = "{{time:YYYY-MM-DD HH:mm:ss.SSS}} [{{level}}] {category}: {{message}}"

_LEVELS = {
    LogSeverity.DEBUG: "DEBUG",
    LogSeverity.INFO: "INFO",
    LogSeverity.WARN: "WARNING",
    LogSeverity.ERROR: "ERROR",
}


def loguru_level(severity: LogSeverity | int) -> str:
    """Map an agent log severity to a loguru level name."""
    try:
        return _LEVELS[LogSeverity(severity)]
    except ValueError:
        return "INFO"


def init_logging(
    severity: LogSeverity | int,
    category: str,
    *,
    log_folder: str | Path | None = None,
    console: bool = False,
    rotation: str = "10 MB",
    retention: int = 3,
) -> list[int]:
    """Add sinks for one component and return their ids.

    A file sink ``<log_folder>/<category>.log`` is added when ``log_folder`` is
    given and writable; ``console`` adds a stderr sink. Pass the returned ids
    to ``uninit_logging`` on teardown.
    """
    level = loguru_level(severity)
    fmt = LOG_FORMAT.format(category=category)
    sink_ids: list[int] = []

    if console:
        sink_ids.append(logger.add(sys.stderr, level=level, format=fmt))

    if log_folder is not None:
        log_path = Path(log_folder) / f"{category}.log"
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            sink_ids.append(
                logger.add(
                    log_path,
                    level=level,
                    format=fmt,
                    rotation=rotation,
                    retention=retention,
                    encoding="utf-8",
                )
            )
        except OSError as e:
            logger.warning("File logging disabled for {}: {}", category, e)

    logger.info("Logging initialized for {} at level {}", category, level)
    return sink_ids


def uninit_logging(sink_ids: list[int]) -> None:
    """Remove sinks previously added by ``init_logging``."""
    for sink_id in sink_ids:
        try:
            logger.remove(sink_id)
        except ValueError:
            continue
    sink_ids.clear()
