"""Content handler contract driven by the host update agent."""

from __future__ import annotations

from abc import ABC, abstractmethod

from adu_pvcontrol.core.models import Result
from adu_pvcontrol.core.ports import WorkflowPort


class ContentHandler(ABC):
    """Lifecycle of one update type.

    The host calls Download, Install, Apply in order, and IsInstalled or
    Cancel when it needs to. Every method returns a ``Result`` and must not
    raise.
    """

    @abstractmethod
    def download(self, workflow: WorkflowPort) -> Result:
        """Fetch the payload into the workflow's work folder."""

    @abstractmethod
    def install(self, workflow: WorkflowPort) -> Result:
        """Install the downloaded payload."""

    @abstractmethod
    def apply(self, workflow: WorkflowPort) -> Result:
        """Make the installed update effective."""

    @abstractmethod
    def cancel(self, workflow: WorkflowPort) -> Result:
        """Cancel the current update."""

    @abstractmethod
    def is_installed(self, workflow: WorkflowPort) -> Result:
        """Check whether the update described by the workflow is installed."""

    def close(self) -> None:
        """Release resources held since creation."""

    def __enter__(self) -> "ContentHandler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
