"""Extended result codes reported by the pvcontrol content handler.

Codes share the agent's layout: 4 bits of facility, 8 bits of component and
20 bits of value. Exit codes of the shell helper are reported verbatim and
never go through this table.
"""

from __future__ import annotations

from enum import IntEnum

FACILITY_CONTENT_HANDLER = 0x3
COMPONENT_PVCONTROL_HANDLER = 0x07


def make_extended_result_code(facility: int, component: int, value: int) -> int:
    """Pack a facility/component/value triple into one extended result code."""
    return ((facility & 0xF) << 28) | ((component & 0xFF) << 20) | (value & 0xFFFFF)


def _handler_erc(value: int) -> int:
    return make_extended_result_code(FACILITY_CONTENT_HANDLER, COMPONENT_PVCONTROL_HANDLER, value)


class ExtendedResultCode(IntEnum):
    """Domain-specific failure reasons of the pvcontrol handler."""

    DOWNLOAD_FAILURE_UNKNOWN_UPDATE_VERSION = _handler_erc(1)
    DOWNLOAD_FAILURE_WRONG_UPDATE_VERSION = _handler_erc(2)
    DOWNLOAD_FAILURE_WRONG_FILECOUNT = _handler_erc(3)
    DOWNLOAD_BAD_FILE_ENTITY = _handler_erc(4)
    DOWNLOAD_FAILURE_HASH_MISMATCH = _handler_erc(5)
    DOWNLOAD_FAILURE_SIZE_MISMATCH = _handler_erc(6)
    DOWNLOAD_FAILURE_TRANSPORT = _handler_erc(7)
    DOWNLOAD_FAILURE_TIMEOUT = _handler_erc(8)

    INSTALL_FAILURE_CANNOT_OPEN_WORKFOLDER = _handler_erc(0x101)
    INSTALL_FAILURE_BAD_FILE_ENTITY = _handler_erc(0x102)

    APPLY_FAILURE_CANNOT_READ_REVISION = _handler_erc(0x201)

    IS_INSTALLED_FAILURE_MISSING_INSTALLED_CRITERIA = _handler_erc(0x301)

    UNEXPECTED_EXCEPTION = _handler_erc(0xFFF)


def describe(code: int) -> str:
    """Readable name of an extended result code, or its hex form."""
    try:
        return ExtendedResultCode(code).name
    except ValueError:
        return f"0x{code:08x}"
