from collections.abc import Callable, Sequence

import pytest

from adu_pvcontrol.core.models import TaskResult


class RecordingLauncher:
    """Child-process launcher stand-in that records every call."""

    def __init__(
        self,
        exit_status: int = 0,
        output: str = "",
        on_call: Callable[[str, list[str]], None] | None = None,
    ) -> None:
        self.exit_status = exit_status
        self.output = output
        self.on_call = on_call
        self.calls: list[tuple[str, list[str]]] = []

    def __call__(self, command: str, args: Sequence[str]) -> TaskResult:
        self.calls.append((command, list(args)))
        if self.on_call is not None:
            self.on_call(command, list(args))
        return TaskResult(exit_status=self.exit_status, output=self.output)


@pytest.fixture
def launcher() -> RecordingLauncher:
    return RecordingLauncher()
