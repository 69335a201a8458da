"""Route an adu-shell request to the task module of its update type."""

from __future__ import annotations

from loguru import logger

from adu_pvcontrol.core.actions import ActionRequest
from adu_pvcontrol.core.models import TaskResult
from adu_pvcontrol.core.ports import ChildProcessLauncher
from adu_pvcontrol.shell import const
from adu_pvcontrol.shell.tasks import common, pvcontrol
from adu_pvcontrol.utils.process import launch_child_process


def dispatch(
    request: ActionRequest,
    launcher: ChildProcessLauncher = launch_child_process,
) -> TaskResult:
    """Run ``request`` and return its task result.

    Unknown update types report ``ADUSHELL_EXIT_UNSUPPORTED`` without
    launching anything.
    """
    update_type = request.update_type.strip().lower()
    if update_type == const.update_type_pantacor_pvcontrol:
        return pvcontrol.do_pvcontrol_task(request, launcher)
    if update_type == const.update_type_common:
        try:
            return common.do_common_task(request, launcher)
        except Exception as e:
            logger.error("Exception occurred while running common task: {}", e)
            return TaskResult(exit_status=pvcontrol.EXIT_FAILURE)

    logger.error("Unsupported update type: '{}'", request.update_type)
    return TaskResult(exit_status=const.ADUSHELL_EXIT_UNSUPPORTED)
