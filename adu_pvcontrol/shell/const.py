"""Command-line contract between the content handler and adu-shell."""

from __future__ import annotations

update_type_opt = "--update-type"
update_action_opt = "--update-action"
target_data_opt = "--target-data"
target_log_folder_opt = "--target-log-folder"
log_level_opt = "--log-level"

update_type_pantacor_pvcontrol = "microsoft/pantacor-pvcontrol"
update_type_common = "common"

update_action_install = "install"
update_action_apply = "apply"
update_action_cancel = "cancel"
update_action_rollback = "rollback"
update_action_get_status = "get-status"
update_action_reboot = "reboot"

# adu-shell exit status for actions or update types it does not know.
ADUSHELL_EXIT_UNSUPPORTED = 3
