"""adu-shell: run privileged update tasks on behalf of the content handler."""

from __future__ import annotations

import errno
import os
import pwd

import typer
from loguru import logger
from rich.console import Console

from adu_pvcontrol import __logo__, __version__
from adu_pvcontrol.config.defaults import ADU_SHELL_TRUSTED_USERS, SHELL_LOG_CATEGORY
from adu_pvcontrol.core.actions import UnsupportedActionError, parse_action_request
from adu_pvcontrol.core.models import LogSeverity
from adu_pvcontrol.shell import const
from adu_pvcontrol.shell.dispatcher import dispatch
from adu_pvcontrol.utils.log import init_logging, uninit_logging

app = typer.Typer(
    name="adu-shell",
    help=f"{__logo__} adu-shell - privileged update tasks for the device update agent",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} adu-shell v{__version__}")
        raise typer.Exit()


def permission_check() -> bool:
    """True when the real (invoking) user may use adu-shell."""
    try:
        user = pwd.getpwuid(os.getuid()).pw_name
    except KeyError:
        return False
    return user in ADU_SHELL_TRUSTED_USERS


@app.command()
def main(
    update_type: str = typer.Option(..., const.update_type_opt, "-t", help="Update type, e.g. microsoft/pantacor-pvcontrol"),
    update_action: str = typer.Option(..., const.update_action_opt, "-a", help="install, apply, cancel, rollback, get-status or reboot"),
    target_data: str | None = typer.Option(None, const.target_data_opt, "-d", help="Image path or revision"),
    target_log_folder: str | None = typer.Option(None, const.target_log_folder_opt, "-f", help="Folder for adu-shell logs"),
    log_level: int = typer.Option(int(LogSeverity.INFO), const.log_level_opt, "-l", min=0, max=3, help="0=debug 1=info 2=warn 3=error"),
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
    """Run one update action and exit with its status."""
    if not permission_check():
        console.print("[red]adu-shell: permission denied[/red]")
        raise typer.Exit(errno.EPERM)

    sink_ids = init_logging(log_level, SHELL_LOG_CATEGORY, log_folder=target_log_folder)
    try:
        try:
            request = parse_action_request(update_type, update_action, target_data, target_log_folder)
        except UnsupportedActionError as e:
            logger.error("{}", e)
            raise typer.Exit(const.ADUSHELL_EXIT_UNSUPPORTED)

        logger.info("adu-shell {} {} (target: {})", update_type, update_action, target_data)
        result = dispatch(request)
        if result.output:
            console.print(result.output, markup=False, highlight=False, soft_wrap=True, end="")
        if result.exit_status != 0:
            logger.error("Action '{}' failed with exit status {}", update_action, result.exit_status)
        raise typer.Exit(result.exit_status)
    finally:
        uninit_logging(sink_ids)
