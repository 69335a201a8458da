"""adu-shell tasks for microsoft/pantacor-pvcontrol actions."""

from __future__ import annotations

from typing import assert_never

from loguru import logger

from adu_pvcontrol.config.defaults import (
    PVCONTROL_COMMAND,
    PVCONTROL_SOCKET,
    PVINSTALLED_FILE_PATH,
    PVPROGRESS_FILE_PATH,
)
from adu_pvcontrol.core.actions import (
    ActionRequest,
    ApplyAction,
    CancelAction,
    GetStatusAction,
    InstallAction,
    RebootAction,
    RollbackAction,
    action_name,
)
from adu_pvcontrol.core.models import TaskResult
from adu_pvcontrol.core.ports import ChildProcessLauncher
from adu_pvcontrol.shell.tasks import common
from adu_pvcontrol.utils.process import launch_child_process

EXIT_FAILURE = 1


def pvcontrol_args(request: InstallAction | ApplyAction | GetStatusAction) -> list[str]:
    """pvcontrol arguments for ``request``; depends on nothing but the request."""
    socket_args = ["-s", PVCONTROL_SOCKET]
    target = request.target_data or ""
    match request:
        case InstallAction():
            return [*socket_args, "-f", PVINSTALLED_FILE_PATH, "steps", "install", target]
        case ApplyAction():
            return [*socket_args, "commands", "run", target]
        case GetStatusAction():
            return [*socket_args, "-f", PVPROGRESS_FILE_PATH, "steps", "show-progress", target]
        case _:
            assert_never(request)


def install(request: InstallAction, launcher: ChildProcessLauncher) -> TaskResult:
    """Install the image file into a new pvcontrol revision."""
    logger.info("Installing image. Path: {}", request.target_data)
    return _run_pvcontrol(request, launcher)


def apply(request: ApplyAction, launcher: ChildProcessLauncher) -> TaskResult:
    """Run an installed revision."""
    logger.info("Applying image. Revision: {}", request.target_data)
    return _run_pvcontrol(request, launcher)


def get_status(request: GetStatusAction, launcher: ChildProcessLauncher) -> TaskResult:
    """Write the progress of a revision to the progress file."""
    logger.info("Getting status. Revision: {}", request.target_data)
    return _run_pvcontrol(request, launcher)


def cancel(request: CancelAction) -> TaskResult:
    logger.warning("Cancel is not supported by pvcontrol")
    return TaskResult(exit_status=EXIT_FAILURE)


def rollback(request: RollbackAction) -> TaskResult:
    logger.warning("Rollback is not supported by pvcontrol")
    return TaskResult(exit_status=EXIT_FAILURE)


def do_pvcontrol_task(
    request: ActionRequest,
    launcher: ChildProcessLauncher = launch_child_process,
) -> TaskResult:
    """Run the task for ``request`` and return the child's result.

    Any exception raised by a task is logged and reported as exit status 1.
    """
    try:
        match request:
            case InstallAction():
                return install(request, launcher)
            case ApplyAction():
                return apply(request, launcher)
            case GetStatusAction():
                return get_status(request, launcher)
            case CancelAction():
                return cancel(request)
            case RollbackAction():
                return rollback(request)
            case RebootAction():
                return common.reboot(request, launcher)
            case _:
                assert_never(request)
    except Exception as e:
        logger.error("Exception occurred while running task '{}': {}", action_name(request), e)
        return TaskResult(exit_status=EXIT_FAILURE)


def _run_pvcontrol(
    request: InstallAction | ApplyAction | GetStatusAction,
    launcher: ChildProcessLauncher,
) -> TaskResult:
    if not request.target_data:
        logger.error("Action '{}' requires --target-data", action_name(request))
        return TaskResult(exit_status=EXIT_FAILURE)
    return launcher(PVCONTROL_COMMAND, pvcontrol_args(request))
