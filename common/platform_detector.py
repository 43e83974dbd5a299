# common/platform_detector.py
# -*- coding: utf-8 -*-
"""
Host platform detection.

Identifies the OS family, the release codename and the CPU architecture from
/etc/os-release, falling back to lsb_release. Detection is read-only.
"""

import logging
import platform
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Optional, Tuple

from common.command_utils import (
    command_exists,
    get_symbols,
    log_message,
    run_command,
)
from common.platform_info import Architecture, OsFamily, PlatformInfo
from provision.config_models import AppSettings
from provision.exceptions import DetectionError

module_logger = logging.getLogger(__name__)

ARCHITECTURE_MAP: Dict[str, Architecture] = {
    "x86_64": Architecture.AMD64,
    "amd64": Architecture.AMD64,
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,
    "armv7l": Architecture.ARMV7,
    "armv7": Architecture.ARMV7,
    "armhf": Architecture.ARMV7,
}

DEBIAN_FAMILY_IDS = {"debian", "ubuntu"}
RHEL_FAMILY_IDS = {"rhel", "centos", "fedora"}


def parse_os_release(content: str) -> Dict[str, str]:
    """
    Parses os-release content (KEY=value lines, values optionally quoted).
    """
    values: Dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        try:
            parts = shlex.split(raw_value)
        except ValueError:
            parts = [raw_value.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def map_architecture(machine: str) -> Architecture:
    """Maps a raw machine string (uname -m) to an Architecture."""
    return ARCHITECTURE_MAP.get(machine.strip().lower(), Architecture.UNKNOWN)


def classify_os_family(distribution: str, id_like: str = "") -> OsFamily:
    """Classifies an os-release ID / ID_LIKE pair into an OsFamily."""
    candidates = {distribution.lower()} | set(id_like.lower().split())
    if candidates & DEBIAN_FAMILY_IDS:
        return OsFamily.DEBIAN_LIKE
    if candidates & RHEL_FAMILY_IDS:
        return OsFamily.RHEL_LIKE
    return OsFamily.UNKNOWN


class PlatformDetector:
    """
    Detects the platform of the host this process runs on.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.os_release_path = Path(app_settings.os_release_path)

    def detect(self) -> PlatformInfo:
        """
        Returns the detected PlatformInfo.

        Raises:
            DetectionError: Neither an os-release file nor lsb_release is
                available.
        """
        symbols = get_symbols(self.app_settings)
        os_release = self._read_os_release()
        has_lsb_release = command_exists("lsb_release")

        if os_release is None and not has_lsb_release:
            raise DetectionError(
                f"Cannot identify the operating system: {self.os_release_path} "
                "is missing and the lsb_release command is not installed."
            )

        id_like: Tuple[str, ...] = ()
        if os_release is not None:
            distribution = os_release.get("ID", "").lower()
            id_like = tuple(os_release.get("ID_LIKE", "").lower().split())
            os_family = classify_os_family(distribution, " ".join(id_like))
            codename = (
                os_release.get("VERSION_CODENAME")
                or os_release.get("UBUNTU_CODENAME")
                or ""
            )
            if not codename and os_family == OsFamily.RHEL_LIKE:
                codename = os_release.get("VERSION_ID", "").split(".")[0]
        else:
            distribution = (self._lsb_release("-is") or "").lower()
            os_family = classify_os_family(distribution)
            codename = ""

        if not codename and has_lsb_release:
            codename = self._lsb_release("-cs") or ""

        raw_machine = platform.machine()
        architecture = map_architecture(raw_machine)
        if architecture == Architecture.UNKNOWN:
            log_message(
                f"{symbols.get('warning', '⚠️')} Unrecognised machine type '{raw_machine}'; architecture reported as unknown.",
                "warning",
                self.logger,
                self.app_settings,
            )

        platform_info = PlatformInfo(
            os_family=os_family,
            codename=codename.strip().lower(),
            architecture=architecture,
            distribution=distribution,
            raw_machine=raw_machine,
            id_like=id_like,
        )
        log_message(
            f"{symbols.get('info', 'ℹ️')} Detected platform: {platform_info.describe()}",
            "info",
            self.logger,
            self.app_settings,
        )
        return platform_info

    def _read_os_release(self) -> Optional[Dict[str, str]]:
        try:
            content = self.os_release_path.read_text(encoding="utf-8")
        except (FileNotFoundError, PermissionError, IsADirectoryError):
            return None
        return parse_os_release(content)

    def _lsb_release(self, flag: str) -> Optional[str]:
        try:
            result = run_command(
                ["lsb_release", flag],
                self.app_settings,
                capture_output=True,
                check=True,
                current_logger=self.logger,
            )
        except (FileNotFoundError, subprocess.CalledProcessError):
            return None
        return result.stdout.strip() if result.stdout else None
