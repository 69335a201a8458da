import copy
import json
from pathlib import Path

import pytest
from conftest import RecordingLauncher

from adu_pvcontrol.config.schema import Config, LoggingConfig
from adu_pvcontrol.core.models import FileEntity, LogSeverity, Result, ResultCode, TaskResult
from adu_pvcontrol.core.result_codes import ExtendedResultCode
from adu_pvcontrol.handlers import pvcontrol as pvcontrol_handler
from adu_pvcontrol.handlers.pvcontrol import PVControlHandler, create_update_content_handler_extension
from adu_pvcontrol.handlers.workflow import WorkflowData, single_file_workflow
from adu_pvcontrol.telemetry import InMemoryTelemetry

ADU_SHELL = "/usr/lib/adu/adu-shell"
LOG_FOLDER = "/var/log/adu"


class FakeDownloader:
    def __init__(self, result: Result | None = None) -> None:
        self.result = result or Result(ResultCode.DOWNLOAD_SUCCESS)
        self.calls: list[tuple] = []

    def download(self, entity, workflow_id, work_folder, retry_timeout) -> Result:
        self.calls.append((entity, workflow_id, work_folder, retry_timeout))
        return self.result


class BrokenFileWorkflow:
    """Workflow whose single file descriptor cannot be read."""

    id = "wf-broken"
    update_type = "microsoft/pvcontrol:1"
    update_files_count = 1
    installed_criteria = "r42"

    def __init__(self, work_folder: str) -> None:
        self.work_folder = work_folder

    def update_file(self, index: int) -> FileEntity | None:
        return None


def _config() -> Config:
    return Config(logging=LoggingConfig(file_enabled=False))


def _handler(tmp_path: Path, launcher=None, **kwargs) -> PVControlHandler:
    return PVControlHandler(
        _config(),
        launcher=launcher or RecordingLauncher(),
        installed_file=str(tmp_path / "pvinstalled.json"),
        progress_file=str(tmp_path / "pvprogress.json"),
        **kwargs,
    )


def _work_folder(tmp_path: Path) -> Path:
    work_folder = tmp_path / "wf1"
    work_folder.mkdir()
    (work_folder / "img.swu").write_bytes(b"image")
    return work_folder


# ── Download ─────────────────────────────────────────────────────────────


def test_download_delegates_single_file(tmp_path: Path) -> None:
    downloader = FakeDownloader()
    handler = _handler(tmp_path, downloader=downloader)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", download_uri="http://x/img.swu")

    result = handler.download(workflow)

    assert result.result_code == ResultCode.DOWNLOAD_SUCCESS
    entity, workflow_id, work_folder, retry_timeout = downloader.calls[0]
    assert entity.target_filename == "img.swu"
    assert workflow_id == "wf1"
    assert work_folder == str(tmp_path)
    assert retry_timeout == 60 * 60 * 24


def test_download_returns_downloader_failure(tmp_path: Path) -> None:
    failure = Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_FAILURE_HASH_MISMATCH)
    handler = _handler(tmp_path, downloader=FakeDownloader(failure))
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu")

    assert handler.download(workflow) == failure


@pytest.mark.parametrize("update_type", ["microsoft/pvcontrol:2", "microsoft/pvcontrol:0"])
def test_download_rejects_wrong_version_without_downloading(tmp_path: Path, update_type: str) -> None:
    downloader = FakeDownloader()
    handler = _handler(tmp_path, downloader=downloader)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", update_type=update_type)

    result = handler.download(workflow)

    assert result == Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_FAILURE_WRONG_UPDATE_VERSION)
    assert downloader.calls == []


@pytest.mark.parametrize("update_type", ["microsoft/pvcontrol", "microsoft/pvcontrol:x", "", ":1"])
def test_download_rejects_unparseable_update_type(tmp_path: Path, update_type: str) -> None:
    downloader = FakeDownloader()
    handler = _handler(tmp_path, downloader=downloader)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", update_type=update_type)

    result = handler.download(workflow)

    assert result.extended_result_code == ExtendedResultCode.DOWNLOAD_FAILURE_UNKNOWN_UPDATE_VERSION
    assert downloader.calls == []


def test_download_rejects_zero_files(tmp_path: Path) -> None:
    downloader = FakeDownloader()
    handler = _handler(tmp_path, downloader=downloader)
    workflow = WorkflowData(id="wf1", work_folder=str(tmp_path), update_type="microsoft/pvcontrol:1")

    result = handler.download(workflow)

    assert result == Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_FAILURE_WRONG_FILECOUNT)
    assert downloader.calls == []


def test_download_rejects_two_files(tmp_path: Path) -> None:
    handler = _handler(tmp_path, downloader=FakeDownloader())
    workflow = WorkflowData(
        id="wf1",
        work_folder=str(tmp_path),
        update_type="microsoft/pvcontrol:1",
        files=(FileEntity(target_filename="a.swu"), FileEntity(target_filename="b.swu")),
    )

    result = handler.download(workflow)

    assert result.extended_result_code == ExtendedResultCode.DOWNLOAD_FAILURE_WRONG_FILECOUNT


def test_download_reports_bad_file_entity(tmp_path: Path) -> None:
    handler = _handler(tmp_path, downloader=FakeDownloader())

    result = handler.download(BrokenFileWorkflow(str(tmp_path)))

    assert result == Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_BAD_FILE_ENTITY)


# ── Install ──────────────────────────────────────────────────────────────


def test_install_invokes_adu_shell(tmp_path: Path) -> None:
    work_folder = _work_folder(tmp_path)
    launcher = RecordingLauncher(exit_status=0)
    handler = _handler(tmp_path, launcher)

    result = handler.install(single_file_workflow("wf1", str(work_folder), "img.swu"))

    assert result.result_code == ResultCode.INSTALL_SUCCESS
    assert launcher.calls == [
        (
            ADU_SHELL,
            [
                "--update-type",
                "microsoft/pantacor-pvcontrol",
                "--update-action",
                "install",
                "--target-data",
                f"{work_folder}/img.swu",
                "--target-log-folder",
                LOG_FOLDER,
            ],
        )
    ]


def test_install_propagates_exit_code(tmp_path: Path) -> None:
    work_folder = _work_folder(tmp_path)
    handler = _handler(tmp_path, RecordingLauncher(exit_status=17))

    result = handler.install(single_file_workflow("wf1", str(work_folder), "img.swu"))

    assert result == Result(ResultCode.FAILURE, 17)


def test_install_fails_when_work_folder_missing(tmp_path: Path) -> None:
    launcher = RecordingLauncher()
    handler = _handler(tmp_path, launcher)

    result = handler.install(single_file_workflow("wf1", str(tmp_path / "missing"), "img.swu"))

    assert result == Result(ResultCode.FAILURE, ExtendedResultCode.INSTALL_FAILURE_CANNOT_OPEN_WORKFOLDER)
    assert launcher.calls == []


def test_install_fails_when_work_folder_is_a_file(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "file"
    not_a_dir.write_text("x")
    handler = _handler(tmp_path)

    result = handler.install(single_file_workflow("wf1", str(not_a_dir), "img.swu"))

    assert result.extended_result_code == ExtendedResultCode.INSTALL_FAILURE_CANNOT_OPEN_WORKFOLDER


def test_install_reports_bad_file_entity(tmp_path: Path) -> None:
    launcher = RecordingLauncher()
    handler = _handler(tmp_path, launcher)

    result = handler.install(BrokenFileWorkflow(str(tmp_path)))

    assert result == Result(ResultCode.FAILURE, ExtendedResultCode.INSTALL_FAILURE_BAD_FILE_ENTITY)
    assert launcher.calls == []


def test_install_releases_directory_handle_on_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    work_folder = _work_folder(tmp_path)
    closed: list[int] = []
    real_close = pvcontrol_handler.os.close

    def tracking_close(fd: int) -> None:
        closed.append(fd)
        real_close(fd)

    monkeypatch.setattr(pvcontrol_handler.os, "close", tracking_close)
    handler = _handler(tmp_path, RecordingLauncher(exit_status=2))

    handler.install(single_file_workflow("wf1", str(work_folder), "img.swu"))
    handler.install(BrokenFileWorkflow(str(work_folder)))

    assert len(closed) == 2


# ── Apply ────────────────────────────────────────────────────────────────


def test_apply_runs_installed_revision(tmp_path: Path) -> None:
    (tmp_path / "pvinstalled.json").write_text(json.dumps({"revision": "r42"}))
    launcher = RecordingLauncher(exit_status=0)
    handler = _handler(tmp_path, launcher)

    result = handler.apply(single_file_workflow("wf1", str(tmp_path), "img.swu"))

    assert result.result_code == ResultCode.APPLY_SUCCESS
    command, args = launcher.calls[0]
    assert command == ADU_SHELL
    assert args == [
        "--update-type",
        "microsoft/pantacor-pvcontrol",
        "--update-action",
        "apply",
        "--target-data",
        "r42",
        "--target-log-folder",
        LOG_FOLDER,
    ]


def test_apply_fails_without_installed_file(tmp_path: Path) -> None:
    launcher = RecordingLauncher()
    handler = _handler(tmp_path, launcher)

    result = handler.apply(single_file_workflow("wf1", str(tmp_path), "img.swu"))

    assert result.result_code == ResultCode.FAILURE
    assert launcher.calls == []


@pytest.mark.parametrize(
    "content",
    ["not json", json.dumps(["r42"]), json.dumps({"revision": ""}), json.dumps({"revision": 42}), "{}"],
)
def test_apply_fails_on_unusable_installed_file(tmp_path: Path, content: str) -> None:
    (tmp_path / "pvinstalled.json").write_text(content)
    launcher = RecordingLauncher()
    handler = _handler(tmp_path, launcher)

    result = handler.apply(single_file_workflow("wf1", str(tmp_path), "img.swu"))

    assert result == Result(ResultCode.FAILURE, ExtendedResultCode.APPLY_FAILURE_CANNOT_READ_REVISION)
    assert launcher.calls == []


def test_apply_propagates_exit_code(tmp_path: Path) -> None:
    (tmp_path / "pvinstalled.json").write_text(json.dumps({"revision": "r42"}))
    handler = _handler(tmp_path, RecordingLauncher(exit_status=9))

    result = handler.apply(single_file_workflow("wf1", str(tmp_path), "img.swu"))

    assert result == Result(ResultCode.FAILURE, 9)


# ── Cancel ───────────────────────────────────────────────────────────────


def test_cancel_always_succeeds(tmp_path: Path) -> None:
    launcher = RecordingLauncher(exit_status=1)
    handler = _handler(tmp_path, launcher)

    assert handler.cancel(single_file_workflow("wf1", str(tmp_path), "img.swu")).result_code == ResultCode.CANCEL_SUCCESS
    assert handler.cancel(BrokenFileWorkflow(str(tmp_path))).result_code == ResultCode.CANCEL_SUCCESS
    assert launcher.calls == []


# ── IsInstalled ──────────────────────────────────────────────────────────


def _progress_writer(path: Path, status: str):
    def write(command: str, args: list[str]) -> None:
        path.write_text(json.dumps({"status": status, "revision": "r42"}))

    return write


@pytest.mark.parametrize("status", ["DONE", "UPDATED"])
def test_is_installed_when_revision_done(tmp_path: Path, status: str) -> None:
    launcher = RecordingLauncher(on_call=_progress_writer(tmp_path / "pvprogress.json", status))
    handler = _handler(tmp_path, launcher)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria="r42")

    result = handler.is_installed(workflow)

    assert result.result_code == ResultCode.IS_INSTALLED_INSTALLED
    assert launcher.calls == [
        (
            ADU_SHELL,
            [
                "--update-type",
                "microsoft/pantacor-pvcontrol",
                "--update-action",
                "get-status",
                "--target-data",
                "r42",
            ],
        )
    ]


@pytest.mark.parametrize("status", ["RUNNING", "ERROR", "WONTGO", "INPROGRESS"])
def test_is_installed_not_installed_for_other_statuses(tmp_path: Path, status: str) -> None:
    (tmp_path / "pvprogress.json").write_text(json.dumps({"status": status}))
    handler = _handler(tmp_path)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria="r42")

    assert handler.is_installed(workflow).result_code == ResultCode.IS_INSTALLED_NOT_INSTALLED


def test_is_installed_not_installed_without_progress_file(tmp_path: Path) -> None:
    handler = _handler(tmp_path)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria="r42")

    assert handler.is_installed(workflow).result_code == ResultCode.IS_INSTALLED_NOT_INSTALLED


def test_is_installed_not_installed_on_malformed_progress_file(tmp_path: Path) -> None:
    (tmp_path / "pvprogress.json").write_text("{status: DONE")
    handler = _handler(tmp_path)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria="r42")

    assert handler.is_installed(workflow).result_code == ResultCode.IS_INSTALLED_NOT_INSTALLED


def test_is_installed_reads_progress_even_when_get_status_fails(tmp_path: Path) -> None:
    (tmp_path / "pvprogress.json").write_text(json.dumps({"status": "UPDATED"}))
    handler = _handler(tmp_path, RecordingLauncher(exit_status=5))
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria="r42")

    assert handler.is_installed(workflow).result_code == ResultCode.IS_INSTALLED_INSTALLED


@pytest.mark.parametrize("criteria", [None, ""])
def test_is_installed_not_installed_without_installed_criteria(tmp_path: Path, criteria: str | None) -> None:
    (tmp_path / "pvprogress.json").write_text(json.dumps({"status": "RUNNING"}))
    launcher = RecordingLauncher()
    handler = _handler(tmp_path, launcher)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria=criteria)

    result = handler.is_installed(workflow)

    assert result == Result(
        ResultCode.IS_INSTALLED_NOT_INSTALLED,
        ExtendedResultCode.IS_INSTALLED_FAILURE_MISSING_INSTALLED_CRITERIA,
    )
    assert launcher.calls == []


# ── Host boundary ────────────────────────────────────────────────────────


def test_lifecycle_exceptions_do_not_reach_host(tmp_path: Path) -> None:
    def exploding(command, args) -> TaskResult:
        raise RuntimeError("boom")

    (tmp_path / "pvinstalled.json").write_text(json.dumps({"revision": "r42"}))
    handler = _handler(tmp_path, exploding)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria="r42")

    assert handler.apply(workflow) == Result(ResultCode.FAILURE, ExtendedResultCode.UNEXPECTED_EXCEPTION)
    assert handler.is_installed(workflow).result_code == ResultCode.IS_INSTALLED_NOT_INSTALLED


def test_lifecycle_results_are_counted(tmp_path: Path) -> None:
    telemetry = InMemoryTelemetry()
    handler = _handler(tmp_path, telemetry=telemetry)
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu")

    handler.cancel(workflow)
    handler.apply(workflow)

    labels = (("operation", "cancel"), ("result", "cancel_success"))
    assert telemetry.get_counter("pvcontrol_handler_results_total", labels) == 1
    labels = (("operation", "apply"), ("result", "failure"))
    assert telemetry.get_counter("pvcontrol_handler_results_total", labels) == 1
    assert len(telemetry.get_timing_values("pvcontrol_handler_duration_seconds", (("operation", "apply"),))) == 1

    telemetry.reset()
    assert telemetry.get_counter("pvcontrol_handler_results_total", labels) == 0
    assert telemetry.get_timing_values("pvcontrol_handler_duration_seconds") == []


class BrokenTelemetry:
    def incr(self, name, value=1, labels=()) -> None:
        raise RuntimeError("metrics backend down")

    def timing(self, name, value, labels=()) -> None:
        raise RuntimeError("metrics backend down")


def test_telemetry_failures_do_not_reach_host(tmp_path: Path) -> None:
    (tmp_path / "pvprogress.json").write_text(json.dumps({"status": "DONE"}))
    handler = _handler(tmp_path, telemetry=BrokenTelemetry())
    workflow = single_file_workflow("wf1", str(tmp_path), "img.swu", installed_criteria="r42")

    assert handler.cancel(workflow) == Result(ResultCode.CANCEL_SUCCESS)
    assert handler.is_installed(workflow) == Result(ResultCode.IS_INSTALLED_INSTALLED)


# ── Factory and lifetime ─────────────────────────────────────────────────


def test_factory_creates_handler_with_file_logging(tmp_path: Path) -> None:
    config = Config(logging=LoggingConfig(folder=str(tmp_path / "logs")))

    handler = create_update_content_handler_extension(LogSeverity.INFO, config)

    assert isinstance(handler, PVControlHandler)
    handler.close()
    assert (tmp_path / "logs" / "pvcontrol-handler.log").exists()
    assert "Instantiated" in (tmp_path / "logs" / "pvcontrol-handler.log").read_text()


def test_factory_returns_none_when_construction_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("no handler today")

    monkeypatch.setattr(PVControlHandler, "create", boom)

    assert create_update_content_handler_extension(LogSeverity.DEBUG, _config()) is None


def test_handler_cannot_be_copied(tmp_path: Path) -> None:
    handler = _handler(tmp_path)

    with pytest.raises(TypeError):
        copy.copy(handler)
    with pytest.raises(TypeError):
        copy.deepcopy(handler)


def test_handler_context_manager_closes_logging(tmp_path: Path) -> None:
    config = Config(logging=LoggingConfig(folder=str(tmp_path)))

    with PVControlHandler.create(LogSeverity.INFO, config) as handler:
        assert handler._log_sinks

    assert handler._log_sinks == []
