"""Content handler for the 'microsoft/pvcontrol:1' update type.

Each lifecycle call is translated into one adu-shell invocation; adu-shell
runs pvcontrol with the privileges needed to reach the pv-ctrl socket.

microsoft/pvcontrol
v1:
  Initial revision.

  Expected files:
  .swu - contains the pvcontrol image.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from functools import partial, wraps
from typing import Any

from loguru import logger

from adu_pvcontrol.config.defaults import (
    HANDLER_LOG_CATEGORY,
    PVINSTALLED_FILE_PATH,
    PVPROGRESS_FILE_PATH,
)
from adu_pvcontrol.config.schema import Config
from adu_pvcontrol.core.actions import ActionRequest, ApplyAction, GetStatusAction, InstallAction, shell_args
from adu_pvcontrol.core.models import LogSeverity, Result, ResultCode
from adu_pvcontrol.core.ports import ChildProcessLauncher, DownloaderPort, WorkflowPort
from adu_pvcontrol.core.result_codes import ExtendedResultCode, describe
from adu_pvcontrol.handlers.base import ContentHandler
from adu_pvcontrol.telemetry import NoopTelemetry, TelemetryPort
from adu_pvcontrol.utils.helpers import parse_update_type, read_json_object, read_string_field
from adu_pvcontrol.utils.log import init_logging, uninit_logging
from adu_pvcontrol.utils.process import launch_child_process

SUPPORTED_UPDATE_TYPE_VERSION = 1

INSTALLED_STATUSES = frozenset({"DONE", "UPDATED"})
FAILED_STATUSES = frozenset({"ERROR", "WONTGO"})


def _lifecycle(operation: str, fallback: ResultCode) -> Callable:
    """Report each call to telemetry and turn unexpected exceptions into ``fallback``."""

    def decorator(method: Callable[..., Result]) -> Callable[..., Result]:
        @wraps(method)
        def wrapper(self: "PVControlHandler", workflow: WorkflowPort) -> Result:
            started = time.monotonic()
            try:
                result = method(self, workflow)
            except Exception as e:
                logger.exception("Unhandled exception in {}: {}", operation, e)
                result = Result(fallback, ExtendedResultCode.UNEXPECTED_EXCEPTION)
            if not result.succeeded:
                logger.debug(
                    "{} returned {} ({})",
                    operation,
                    result.result_code.name,
                    describe(result.extended_result_code),
                )
            labels = (("operation", operation), ("result", result.result_code.name.lower()))
            try:
                self.telemetry.incr("pvcontrol_handler_results_total", 1, labels)
                self.telemetry.timing(
                    "pvcontrol_handler_duration_seconds",
                    time.monotonic() - started,
                    (("operation", operation),),
                )
            except Exception as e:
                logger.warning("Telemetry failed for {}: {}", operation, e)
            return result

        return wrapper

    return decorator


class PVControlHandler(ContentHandler):
    """pvcontrol implementation of the content handler contract."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        downloader: DownloaderPort | None = None,
        launcher: ChildProcessLauncher | None = None,
        telemetry: TelemetryPort | None = None,
        installed_file: str = PVINSTALLED_FILE_PATH,
        progress_file: str = PVPROGRESS_FILE_PATH,
    ) -> None:
        self.config = config or Config()
        self.telemetry = telemetry or NoopTelemetry()
        self.installed_file = installed_file
        self.progress_file = progress_file
        self._downloader = downloader
        self._launcher = launcher or partial(
            launch_child_process, timeout=self.config.shell.timeout_seconds
        )
        self._log_sinks: list[int] = []

    @classmethod
    def create(cls, log_severity: LogSeverity | int, config: Config | None = None, **kwargs: Any) -> "PVControlHandler":
        """Set up handler logging and build a handler."""
        handler = cls(config, **kwargs)
        logging_cfg = handler.config.logging
        handler._log_sinks = init_logging(
            log_severity,
            HANDLER_LOG_CATEGORY,
            log_folder=logging_cfg.folder_path if logging_cfg.file_enabled else None,
            console=logging_cfg.console,
            rotation=logging_cfg.rotation,
            retention=logging_cfg.retention,
        )
        return handler

    def close(self) -> None:
        uninit_logging(self._log_sinks)

    def __copy__(self) -> "PVControlHandler":
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo: dict[int, Any]) -> "PVControlHandler":
        raise TypeError(f"{type(self).__name__} cannot be copied")

    @property
    def downloader(self) -> DownloaderPort:
        if self._downloader is None:
            from adu_pvcontrol.adapters.download_httpx import HttpxDownloader

            self._downloader = HttpxDownloader(self.config.download)
        return self._downloader

    @_lifecycle("download", ResultCode.FAILURE)
    def download(self, workflow: WorkflowPort) -> Result:
        update_type = workflow.update_type
        parsed = parse_update_type(update_type)
        if parsed is None:
            logger.error("pvcontrol download failed. Unknown handler version (update type: {})", update_type)
            return Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_FAILURE_UNKNOWN_UPDATE_VERSION)

        _, version = parsed
        if version != SUPPORTED_UPDATE_TYPE_VERSION:
            logger.error("pvcontrol download failed. Wrong handler version {}", version)
            return Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_FAILURE_WRONG_UPDATE_VERSION)

        # microsoft/pvcontrol:1 carries exactly one payload file.
        file_count = workflow.update_files_count
        if file_count != 1:
            logger.error("pvcontrol expects one file ({} found)", file_count)
            return Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_FAILURE_WRONG_FILECOUNT)

        entity = workflow.update_file(0)
        if entity is None:
            return Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_BAD_FILE_ENTITY)

        return self.downloader.download(
            entity,
            workflow.id,
            workflow.work_folder,
            self.config.download.retry_timeout_seconds,
        )

    @_lifecycle("install", ResultCode.FAILURE)
    def install(self, workflow: WorkflowPort) -> Result:
        work_folder = workflow.work_folder
        logger.info("Installing from {}", work_folder)

        try:
            fd = os.open(work_folder, os.O_RDONLY | os.O_DIRECTORY)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Cannot open work folder {}: {}", work_folder, e)
            return Result(ResultCode.FAILURE, ExtendedResultCode.INSTALL_FAILURE_CANNOT_OPEN_WORKFOLDER)

        try:
            entity = workflow.update_file(0)
            if entity is None or not entity.target_filename:
                return Result(ResultCode.FAILURE, ExtendedResultCode.INSTALL_FAILURE_BAD_FILE_ENTITY)

            request = InstallAction(
                target_data=f"{work_folder}/{entity.target_filename}",
                target_log_folder=self.config.log_folder,
            )
            exit_code = self._run_shell(request)
        finally:
            os.close(fd)

        if exit_code != 0:
            logger.error("Install failed, extendedResultCode = {}", exit_code)
            return Result(ResultCode.FAILURE, exit_code)

        logger.info("Install succeeded")
        return Result(ResultCode.INSTALL_SUCCESS)

    @_lifecycle("apply", ResultCode.FAILURE)
    def apply(self, workflow: WorkflowPort) -> Result:
        logger.info("Applying data from {}", self.installed_file)

        revision = read_string_field(self.installed_file, "revision")
        if revision is None:
            logger.error("Could not read a revision from {}", self.installed_file)
            return Result(ResultCode.FAILURE, ExtendedResultCode.APPLY_FAILURE_CANNOT_READ_REVISION)

        logger.info("Applying revision {}", revision)
        exit_code = self._run_shell(
            ApplyAction(target_data=revision, target_log_folder=self.config.log_folder)
        )
        if exit_code != 0:
            logger.error("Apply failed, extendedResultCode = {}", exit_code)
            return Result(ResultCode.FAILURE, exit_code)

        logger.info("Apply succeeded")
        return Result(ResultCode.APPLY_SUCCESS)

    @_lifecycle("cancel", ResultCode.FAILURE)
    def cancel(self, workflow: WorkflowPort) -> Result:
        # pvcontrol cannot interrupt an install, and rolling back an applied
        # revision is not offered by this handler version.
        logger.info("Cancel is a no-op for pvcontrol updates")
        return Result(ResultCode.CANCEL_SUCCESS)

    @_lifecycle("is_installed", ResultCode.IS_INSTALLED_NOT_INSTALLED)
    def is_installed(self, workflow: WorkflowPort) -> Result:
        revision = workflow.installed_criteria
        if not revision:
            logger.error("Installed criteria is missing")
            return Result(
                ResultCode.IS_INSTALLED_NOT_INSTALLED,
                ExtendedResultCode.IS_INSTALLED_FAILURE_MISSING_INSTALLED_CRITERIA,
            )

        logger.info("Getting status from revision {}", revision)
        exit_code = self._run_shell(GetStatusAction(target_data=revision))
        if exit_code != 0:
            logger.warning("Get status failed, extendedResultCode = {}", exit_code)

        logger.info("Checking revision {} status from {}", revision, self.progress_file)
        progress = read_json_object(self.progress_file)
        if progress is None:
            logger.error("Could not load {}", self.progress_file)
            return Result(ResultCode.IS_INSTALLED_NOT_INSTALLED)

        status = progress.get("status")
        if status in INSTALLED_STATUSES:
            logger.info("Update succeeded with status {}", status)
            return Result(ResultCode.IS_INSTALLED_INSTALLED)
        if status in FAILED_STATUSES:
            logger.error("Update failed with status {}", status)
        else:
            logger.info("Update still in progress (status {})", status)
        return Result(ResultCode.IS_INSTALLED_NOT_INSTALLED)

    def _run_shell(self, request: ActionRequest) -> int:
        result = self._launcher(self.config.shell.path, shell_args(request))
        if result.output:
            logger.debug("adu-shell output:\n{}", result.output.rstrip())
        return result.exit_status


def create_update_content_handler_extension(
    log_severity: LogSeverity | int,
    config: Config | None = None,
) -> ContentHandler | None:
    """Plugin entry point: build a handler for 'microsoft/pvcontrol:1'.

    Returns None when the handler cannot be constructed.
    """
    try:
        if config is None:
            from adu_pvcontrol.config.loader import load_config

            config = load_config()
        handler = PVControlHandler.create(log_severity, config)
    except Exception as e:
        logger.error("Unhandled exception while creating pvcontrol handler: {}", e)
        return None
    logger.info("Instantiated an update content handler for 'microsoft/pvcontrol:1'")
    return handler
