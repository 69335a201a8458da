"""Domain models for handler lifecycle results and shell task results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


class ResultCode(IntEnum):
    """Coarse lifecycle result reported to the host agent."""

    FAILURE_CANCELLED = -1
    FAILURE = 0
    SUCCESS = 1

    DOWNLOAD_SUCCESS = 500
    DOWNLOAD_IN_PROGRESS = 501
    DOWNLOAD_SKIPPED_FILE_EXISTS = 502
    DOWNLOAD_SKIPPED_UPDATE_NOT_APPLICABLE = 503
    DOWNLOAD_SKIPPED_NO_MATCHING_COMPONENTS = 504

    INSTALL_SUCCESS = 600
    INSTALL_IN_PROGRESS = 601
    INSTALL_SKIPPED_UPDATE_ALREADY_INSTALLED = 603
    INSTALL_SKIPPED_NO_MATCHING_COMPONENTS = 604
    INSTALL_REQUIRED_IMMEDIATE_REBOOT = 605
    INSTALL_REQUIRED_REBOOT = 606

    APPLY_SUCCESS = 700
    APPLY_IN_PROGRESS = 701
    APPLY_REQUIRED_IMMEDIATE_REBOOT = 705
    APPLY_REQUIRED_REBOOT = 706

    CANCEL_SUCCESS = 800
    CANCEL_UNABLE_TO_CANCEL = 801

    IS_INSTALLED_INSTALLED = 900
    IS_INSTALLED_NOT_INSTALLED = 901


class LogSeverity(IntEnum):
    """Log severity handed to the plugin factory by the host."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


@dataclass(frozen=True, slots=True)
class Result:
    """Lifecycle result: coarse code plus a domain-specific reason."""

    result_code: ResultCode
    extended_result_code: int = 0

    @property
    def succeeded(self) -> bool:
        return self.result_code > ResultCode.FAILURE


@dataclass(frozen=True, slots=True, kw_only=True)
class FileEntity:
    """One payload file of an update, as described by the update manifest."""

    target_filename: str
    file_id: str = ""
    download_uri: str = ""
    hashes: dict[str, str] = field(default_factory=dict)
    size_in_bytes: int | None = None


@dataclass(slots=True)
class TaskResult:
    """Exit status and merged stdout/stderr of one shell task."""

    exit_status: int = 0
    output: str = ""
