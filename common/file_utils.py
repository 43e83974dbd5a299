# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: backups, atomic writes of system files, and
marker-delimited managed blocks in user configuration files.
"""

import datetime
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from provision.config_models import AppSettings

from .command_utils import get_symbols, log_message, run_elevated_command

module_logger = logging.getLogger(__name__)


def _replace_file_contents(path: Path, data: bytes, mode: int) -> None:
    """Writes data next to path and renames it into place."""
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            tmp_file.write(data)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _directory_is_writable(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        return False
    return os.access(directory, os.W_OK)


def read_bytes_if_exists(path: Path) -> Optional[bytes]:
    """Returns the file content, or None when it is missing or unreadable."""
    try:
        return path.read_bytes()
    except (FileNotFoundError, PermissionError, IsADirectoryError):
        return None


def write_file_atomic(
    content: bytes,
    destination: Path,
    mode: int,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Writes content to destination, replacing any previous file.

    The file is written to a temporary name and renamed into place, so a
    reader never sees a partial file. When the target directory is not
    writable by this process the file is staged in the temp directory and put
    in place with an elevated ``install -m MODE``.

    Args:
        content: Exact bytes to write.
        destination: Target path.
        mode: Permission bits of the final file, e.g. 0o644.
        app_settings: Application settings (logging symbols).
        current_logger: Optional logger.

    Returns:
        True if the file was written, False if it already had this content.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    destination = Path(destination)

    if read_bytes_if_exists(destination) == content:
        log_message(
            f"{symbols.get('info', 'ℹ️')} {destination} is already up to date.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    if _directory_is_writable(destination.parent):
        _replace_file_contents(destination, content, mode)
    else:
        fd, staged = tempfile.mkstemp(prefix=f"{destination.name}.")
        try:
            with os.fdopen(fd, "wb") as staged_file:
                staged_file.write(content)
            run_elevated_command(
                ["install", "-d", "-m", "0755", str(destination.parent)],
                app_settings,
                current_logger=logger_to_use,
            )
            run_elevated_command(
                ["install", "-m", f"{mode:04o}", staged, str(destination)],
                app_settings,
                current_logger=logger_to_use,
            )
        finally:
            if os.path.exists(staged):
                os.unlink(staged)

    log_message(
        f"{symbols.get('success', '✅')} Wrote {destination} (mode {mode:04o}).",
        "success",
        logger_to_use,
        app_settings,
    )
    return True


def remove_file(
    path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Removes path if it exists. Returns True if a file was removed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    path = Path(path)
    if not path.exists():
        return False
    if os.access(path.parent, os.W_OK):
        path.unlink()
    else:
        run_elevated_command(
            ["rm", "-f", str(path)], app_settings, current_logger=logger_to_use
        )
    log_message(
        f"{get_symbols(app_settings).get('info', 'ℹ️')} Removed {path}.",
        "info",
        logger_to_use,
        app_settings,
    )
    return True


def backup_file(
    file_path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[Path]:
    """
    Backup a file to a timestamped sibling (``<name>.bak.<YYYYmmdd-HHMMSS>``).

    Returns:
        The backup path, or None when there was nothing to back up.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    file_path = Path(file_path)

    if not file_path.is_file():
        log_message(
            f"{symbols.get('info', 'ℹ️')} File {file_path} does not exist or is not a regular file. No backup needed.",
            "info",
            logger_to_use,
            app_settings,
        )
        return None

    timestamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_path = file_path.with_name(f"{file_path.name}.bak.{timestamp}")
    shutil.copy2(file_path, backup_path)
    log_message(
        f"{symbols.get('success', '✅')} Backed up {file_path} to {backup_path}",
        "success",
        logger_to_use,
        app_settings,
    )
    return backup_path


def render_managed_block(body: str, begin_marker: str, end_marker: str) -> str:
    return f"{begin_marker}\n{body.strip()}\n{end_marker}\n"


def upsert_managed_block(
    file_path: Path,
    body: str,
    begin_marker: str,
    end_marker: str,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Inserts or replaces the block delimited by begin_marker/end_marker.

    Text outside the markers is left untouched. The previous file is backed
    up before it is changed; a run that would not change anything writes
    nothing and makes no backup.

    Returns:
        True if the file changed.

    Raises:
        ValueError: The file has a begin marker without a matching end marker.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    file_path = Path(file_path)

    existing = file_path.read_text(encoding="utf-8") if file_path.exists() else ""
    block = render_managed_block(body, begin_marker, end_marker)

    pattern = re.compile(
        re.escape(begin_marker) + r".*?" + re.escape(end_marker) + r"\n?",
        re.DOTALL,
    )
    if pattern.search(existing):
        updated = pattern.sub(lambda _match: block, existing, count=1)
    elif begin_marker in existing:
        raise ValueError(
            f"{file_path} contains '{begin_marker}' without '{end_marker}'. "
            "Fix or remove the partial block and re-run."
        )
    else:
        separator = ""
        if existing:
            separator = "\n" if existing.endswith("\n") else "\n\n"
        updated = existing + separator + block

    if updated == existing:
        log_message(
            f"{symbols.get('info', 'ℹ️')} Managed block in {file_path} is already up to date.",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    mode = 0o644
    if file_path.exists():
        mode = file_path.stat().st_mode & 0o777
        backup_file(file_path, app_settings, current_logger=logger_to_use)
    else:
        file_path.parent.mkdir(parents=True, exist_ok=True)

    _replace_file_contents(file_path, updated.encode("utf-8"), mode)
    log_message(
        f"{symbols.get('success', '✅')} Updated managed block in {file_path}.",
        "success",
        logger_to_use,
        app_settings,
    )
    return True
