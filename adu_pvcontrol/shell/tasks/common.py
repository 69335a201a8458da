"""adu-shell tasks shared by all update types."""

from __future__ import annotations

from loguru import logger

from adu_pvcontrol.config.defaults import REBOOT_COMMAND
from adu_pvcontrol.core.actions import ActionRequest, RebootAction, action_name
from adu_pvcontrol.core.models import TaskResult
from adu_pvcontrol.core.ports import ChildProcessLauncher
from adu_pvcontrol.shell.const import ADUSHELL_EXIT_UNSUPPORTED
from adu_pvcontrol.utils.process import launch_child_process


def reboot(request: RebootAction, launcher: ChildProcessLauncher) -> TaskResult:
    """Reboot the device."""
    logger.info("Rebooting the device")
    return launcher(REBOOT_COMMAND, [])


def do_common_task(
    request: ActionRequest,
    launcher: ChildProcessLauncher = launch_child_process,
) -> TaskResult:
    """Run a task of the ``common`` update type; only reboot exists."""
    if isinstance(request, RebootAction):
        return reboot(request, launcher)
    logger.error("Unsupported action for common tasks: '{}'", action_name(request))
    return TaskResult(exit_status=ADUSHELL_EXIT_UNSUPPORTED)
