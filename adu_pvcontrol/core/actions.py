"""Action requests sent from the content handler to adu-shell."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from adu_pvcontrol.shell import const


class UnsupportedActionError(ValueError):
    """Raised when an update-action string names no known action."""


@dataclass(frozen=True, slots=True, kw_only=True)
class InstallAction:
    """Install the image file at ``target_data``."""

    update_type: str = const.update_type_pantacor_pvcontrol
    target_data: str | None = None
    target_log_folder: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ApplyAction:
    """Run the revision named by ``target_data``."""

    update_type: str = const.update_type_pantacor_pvcontrol
    target_data: str | None = None
    target_log_folder: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class GetStatusAction:
    """Write the progress of revision ``target_data`` to the progress file."""

    update_type: str = const.update_type_pantacor_pvcontrol
    target_data: str | None = None
    target_log_folder: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CancelAction:
    update_type: str = const.update_type_pantacor_pvcontrol
    target_data: str | None = None
    target_log_folder: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RollbackAction:
    update_type: str = const.update_type_pantacor_pvcontrol
    target_data: str | None = None
    target_log_folder: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RebootAction:
    update_type: str = const.update_type_pantacor_pvcontrol
    target_data: str | None = None
    target_log_folder: str | None = None


ActionRequest: TypeAlias = (
    InstallAction
    | ApplyAction
    | GetStatusAction
    | CancelAction
    | RollbackAction
    | RebootAction
)

_ACTION_NAMES: dict[type, str] = {
    InstallAction: const.update_action_install,
    ApplyAction: const.update_action_apply,
    GetStatusAction: const.update_action_get_status,
    CancelAction: const.update_action_cancel,
    RollbackAction: const.update_action_rollback,
    RebootAction: const.update_action_reboot,
}
_ACTIONS_BY_NAME: dict[str, type] = {name: cls for cls, name in _ACTION_NAMES.items()}


def action_name(request: ActionRequest) -> str:
    """Wire name of the action, e.g. ``get-status``."""
    return _ACTION_NAMES[type(request)]


def parse_action_request(
    update_type: str,
    update_action: str,
    target_data: str | None = None,
    target_log_folder: str | None = None,
) -> ActionRequest:
    """Build an action request from adu-shell option values.

    Raises:
        UnsupportedActionError: if ``update_action`` is not a known action name.
    """
    cls = _ACTIONS_BY_NAME.get(update_action.strip().lower())
    if cls is None:
        raise UnsupportedActionError(f"Unsupported update action: {update_action!r}")
    return cls(
        update_type=update_type,
        target_data=target_data,
        target_log_folder=target_log_folder,
    )


def shell_args(request: ActionRequest) -> list[str]:
    """Render a request as adu-shell options, in the order adu-shell documents them."""
    args = [
        const.update_type_opt,
        request.update_type,
        const.update_action_opt,
        action_name(request),
    ]
    if request.target_data is not None:
        args.extend([const.target_data_opt, request.target_data])
    if request.target_log_folder is not None:
        args.extend([const.target_log_folder_opt, request.target_log_folder])
    return args
