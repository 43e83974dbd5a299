# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing shell commands and logging their output.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional, Union

from provision.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)


def get_symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    """Return the log symbols from the settings, or the defaults."""
    if app_settings is not None and getattr(app_settings, "symbols", None):
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def log_message(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a provisioning message at the given level.

    Args:
        message (str): The log message to be recorded.
        level (str): "debug", "info", "success", "warning", "error" or
            "critical". "success" is logged at INFO level.
        current_logger (Optional[logging.Logger]): A logger instance to use for logging. If not provided,
            a module-level logger will be used.
        app_settings (Optional[AppSettings]): Optional application settings that can influence logging behavior.
        exc_info (bool): Indicator to include exception details in the log. By default, this is set to False.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


def _get_elevated_command_prefix() -> List[str]:
    """
    Returns ["sudo"] unless the process already runs as root.
    """
    return [] if os.geteuid() == 0 else ["sudo"]


def _decode(stream: Union[str, bytes, None]) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


def describe_failure(result: subprocess.CompletedProcess) -> str:
    """
    Builds a one-line diagnostic from a finished process: its return code and
    the last line of stderr (or stdout when stderr is empty).
    """
    detail = _decode(result.stderr).strip() or _decode(result.stdout).strip()
    last_line = detail.splitlines()[-1] if detail else "no output"
    return f"exit status {result.returncode}: {last_line}"


def run_command(
    command: Union[List[str], str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    shell: bool = False,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[Union[str, bytes]] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and logs the process details and results.

    The returned CompletedProcess is the structured result of the call: its
    return code and, when capture_output is set, the captured stdout/stderr.
    Callers that need to classify failures themselves pass check=False and
    inspect returncode.

    Args:
        command (Union[List[str], str]): The system command to execute. If
            shell mode is enabled and the input is a list, elements will be
            joined into a single string.
        app_settings (Optional[AppSettings]): Application settings, used for logging symbols.
        check (bool): Whether to raise a CalledProcessError when a non-zero exit code is returned.
        shell (bool): If True, the system command will be executed in a shell.
        capture_output (bool): Whether to capture standard output and standard error.
        text (bool): Indicates if the output streams should be interpreted as text.
        cmd_input (Optional[Union[str, bytes]]): Input passed to the command's standard input.
        current_logger (Optional[logging.Logger]): A logger to use for logging details.
        cwd (Optional[str]): The working directory for the command.
        env (Optional[Dict[str, str]]): Environment for the command. Inherited when None.

    Returns:
        subprocess.CompletedProcess: The completed process instance.

    Raises:
        subprocess.CalledProcessError: Non-zero exit code while check is True.
        FileNotFoundError: The executable is not installed.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    command_to_log_str: str
    command_to_run: Union[List[str], str]

    if shell:
        if isinstance(command, list):
            command_to_run = " ".join(command)
        else:
            command_to_run = command
        command_to_log_str = str(command_to_run)
    else:
        if isinstance(command, str):
            log_message(
                f"{symbols.get('warning', '!')} Running string command '{command}' without shell=True. Consider list format.",
                "warning",
                effective_logger,
                app_settings,
            )
            command_to_run = command.split()
            command_to_log_str = command
        else:
            command_to_run = command
            command_to_log_str = subprocess.list2cmdline(command)

    log_message(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str} {f'(in {cwd})' if cwd else ''}".rstrip(),
        "info",
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            command_to_run,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=cwd,
            env=env,
        )
        if capture_output and text:
            if result.stdout and result.stdout.strip():
                log_message(
                    f"   stdout: {result.stdout.strip()}",
                    "debug",
                    effective_logger,
                    app_settings,
                )
            if result.stderr and result.stderr.strip():
                log_message(
                    f"   stderr: {result.stderr.strip()}",
                    "debug" if result.returncode == 0 else "warning",
                    effective_logger,
                    app_settings,
                )
        return result
    except subprocess.CalledProcessError as e:
        cmd_executed_str = (
            subprocess.list2cmdline(e.cmd)
            if isinstance(e.cmd, list)
            else str(e.cmd)
        )
        log_message(
            f"{symbols.get('error', '❌')} Command `{cmd_executed_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        stdout_info = _decode(e.stdout).strip()
        stderr_info = _decode(e.stderr).strip()
        if stdout_info:
            log_message(f"   stdout: {stdout_info}", "error", effective_logger, app_settings)
        if stderr_info:
            log_message(f"   stderr: {stderr_info}", "error", effective_logger, app_settings)
        raise
    except FileNotFoundError as e:
        log_message(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[Union[str, bytes]] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a command with elevated privileges ("sudo" unless already root).

    No credentials are prompted for here: the caller is expected to hold an
    authenticated sudo session or to run as root.
    """
    prefix = _get_elevated_command_prefix()
    elevated_command_list = prefix + list(command)
    return run_command(
        elevated_command_list,
        app_settings,
        check=check,
        shell=False,
        capture_output=capture_output,
        text=text,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
        env=env,
    )


def command_exists(command_name: str) -> bool:
    """
    Check if a command exists in the system's PATH.
    """
    return shutil.which(command_name) is not None
