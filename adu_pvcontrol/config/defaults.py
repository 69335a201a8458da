"""Well-known paths and default settings shared by the handler and adu-shell."""

from __future__ import annotations

# pvcontrol writes these; the handler only reads them.
PVINSTALLED_FILE_PATH = "/var/lib/adu/pvinstalled.json"
PVPROGRESS_FILE_PATH = "/var/lib/adu/pvprogress.json"

PVCONTROL_COMMAND = "/usr/lib/adu/pvcontrol"
PVCONTROL_SOCKET = "/var/run/pv-ctrl"
REBOOT_COMMAND = "/sbin/reboot"

ADU_SHELL_PATH = "/usr/lib/adu/adu-shell"
ADU_LOG_FOLDER = "/var/log/adu"
ADU_CONFIG_FOLDER = "/etc/adu"

# Users allowed to ask adu-shell for privileged work.
ADU_SHELL_TRUSTED_USERS = ("root", "adu")

# Default retry window for payload downloads, in seconds (one day).
DOWNLOAD_RETRY_TIMEOUT_DEFAULT = 60 * 60 * 24

HANDLER_LOG_CATEGORY = "pvcontrol-handler"
SHELL_LOG_CATEGORY = "adu-shell"
