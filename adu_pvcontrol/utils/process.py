"""Blocking child-process launch used by both the handler and adu-shell."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence

from loguru import logger

from adu_pvcontrol.core.models import TaskResult

# Shell conventions, distinct from anything a program exits with on its own.
EXIT_TIMEOUT = 124
EXIT_CANNOT_EXECUTE = 126
EXIT_COMMAND_NOT_FOUND = 127


def launch_child_process(
    command: str,
    args: Sequence[str],
    *,
    timeout: float | None = None,
) -> TaskResult:
    """Run ``command`` with ``args`` and wait for it to exit.

    stdout and stderr are merged into ``TaskResult.output``. A program that
    cannot be started reports 127 (not found) or 126 (not executable), and a
    run that exceeds ``timeout`` is killed and reports 124.
    """
    argv = [command, *args]
    logger.debug("Launching child process: {}", " ".join(argv))
    try:
        completed = subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            close_fds=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        logger.error("Cannot execute {}: file not found", command)
        return TaskResult(exit_status=EXIT_COMMAND_NOT_FOUND, output="")
    except subprocess.TimeoutExpired as e:
        logger.error("{} timed out after {} seconds", command, timeout)
        return TaskResult(exit_status=EXIT_TIMEOUT, output=_as_text(e.output))
    except OSError as e:
        logger.error("Cannot execute {}: {}", command, e)
        return TaskResult(exit_status=EXIT_CANNOT_EXECUTE, output="")

    output = completed.stdout or ""
    if completed.returncode < 0:
        # Killed by a signal; report it the way a shell would.
        exit_status = 128 - completed.returncode
    else:
        exit_status = completed.returncode
    logger.debug("{} exited with {}", command, exit_status)
    return TaskResult(exit_status=exit_status, output=output)


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
