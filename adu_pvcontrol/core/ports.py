"""Port interfaces between the content handler and its collaborators."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, TypeAlias

from adu_pvcontrol.core.models import FileEntity, Result, TaskResult


class WorkflowPort(Protocol):
    """Read-only view of the host agent's workflow for one update."""

    @property
    def id(self) -> str:
        """Workflow id."""

    @property
    def work_folder(self) -> str:
        """Folder where payload files are downloaded."""

    @property
    def update_type(self) -> str:
        """Declared update type, e.g. ``microsoft/pvcontrol:1``."""

    @property
    def update_files_count(self) -> int:
        """Number of payload files."""

    def update_file(self, index: int) -> FileEntity | None:
        """Payload file at ``index``, or None when it cannot be read."""

    @property
    def installed_criteria(self) -> str | None:
        """Expected revision once the update is installed."""


class DownloaderPort(Protocol):
    """Payload download collaborator."""

    def download(
        self,
        entity: FileEntity,
        workflow_id: str,
        work_folder: str,
        retry_timeout: int,
    ) -> Result:
        """Fetch ``entity`` into ``work_folder``."""


ChildProcessLauncher: TypeAlias = Callable[[str, Sequence[str]], TaskResult]
