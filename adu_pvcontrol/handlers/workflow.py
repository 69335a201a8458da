"""In-memory workflow handle for hosts that drive the handler from Python."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from adu_pvcontrol.core.models import FileEntity


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkflowData:
    """Static snapshot of one update workflow."""

    id: str
    work_folder: str
    update_type: str
    files: tuple[FileEntity, ...] = ()
    installed_criteria: str | None = None

    @property
    def update_files_count(self) -> int:
        return len(self.files)

    def update_file(self, index: int) -> FileEntity | None:
        if 0 <= index < len(self.files):
            return self.files[index]
        return None

    @classmethod
    def from_update_manifest(
        cls,
        *,
        workflow_id: str,
        work_folder: str,
        manifest: dict[str, Any],
        file_urls: dict[str, str] | None = None,
        step_index: int = 0,
    ) -> "WorkflowData":
        """Build a workflow from one inline step of an update manifest.

        The step's ``handler`` becomes the update type, its ``files`` are
        resolved against the manifest's ``files`` table, and
        ``handlerProperties.installedCriteria`` becomes the installed criteria.

        Raises:
            ValueError: if the manifest has no such step.
        """
        steps = manifest.get("instructions", {}).get("steps", [])
        if not isinstance(steps, list) or not 0 <= step_index < len(steps):
            raise ValueError(f"Update manifest has no step {step_index}")
        step = steps[step_index]
        if not isinstance(step, dict) or not step.get("handler"):
            raise ValueError(f"Step {step_index} is not an inline handler step")

        file_table = manifest.get("files", {}) if isinstance(manifest.get("files"), dict) else {}
        urls = file_urls or {}
        files: list[FileEntity] = []
        for file_id in step.get("files", []):
            entry = file_table.get(file_id)
            if not isinstance(entry, dict):
                raise ValueError(f"Step {step_index} references unknown file {file_id!r}")
            files.append(
                FileEntity(
                    file_id=file_id,
                    target_filename=str(entry.get("fileName", "")),
                    download_uri=urls.get(file_id, ""),
                    hashes=dict(entry.get("hashes", {})),
                    size_in_bytes=entry.get("sizeInBytes"),
                )
            )

        properties = step.get("handlerProperties", {})
        criteria = properties.get("installedCriteria") if isinstance(properties, dict) else None
        return cls(
            id=workflow_id,
            work_folder=work_folder,
            update_type=str(step["handler"]),
            files=tuple(files),
            installed_criteria=criteria,
        )


def single_file_workflow(
    workflow_id: str,
    work_folder: str,
    target_filename: str,
    *,
    update_type: str = "microsoft/pvcontrol:1",
    installed_criteria: str | None = None,
    **file_fields: Any,
) -> WorkflowData:
    """Shortcut for the common one-payload workflow."""
    return WorkflowData(
        id=workflow_id,
        work_folder=work_folder,
        update_type=update_type,
        files=(FileEntity(target_filename=target_filename, **file_fields),),
        installed_criteria=installed_criteria,
    )
