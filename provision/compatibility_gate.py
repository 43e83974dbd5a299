# provision/compatibility_gate.py
# -*- coding: utf-8 -*-
"""
Checks the detected platform against the support matrix.

Matching is exact: repository URLs are keyed by codename, so a codename that
is not listed is rejected even when it looks like a newer release of a
supported distribution.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Tuple

from common.command_utils import get_symbols, log_message
from common.platform_info import OsFamily, PlatformInfo
from provision.config_models import AppSettings, SupportedPlatform
from provision.exceptions import UnsupportedPlatformError

module_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupportMatrix:
    """Read-only set of accepted (os_family, codename) pairs."""

    entries: FrozenSet[Tuple[OsFamily, str]]

    @classmethod
    def from_entries(cls, entries: Iterable[SupportedPlatform]) -> "SupportMatrix":
        return cls(
            frozenset(
                (OsFamily(entry.os_family), entry.codename.strip().lower())
                for entry in entries
            )
        )

    @classmethod
    def from_settings(cls, app_settings: AppSettings) -> "SupportMatrix":
        return cls.from_entries(app_settings.supported_platforms)

    def accepts(self, os_family: OsFamily, codename: str) -> bool:
        return (os_family, codename) in self.entries

    def describe(self) -> List[str]:
        return [
            f"{family.value}/{codename}"
            for family, codename in sorted(
                self.entries, key=lambda e: (e[0].value, e[1])
            )
        ]


def check(
    platform_info: PlatformInfo,
    matrix: SupportMatrix,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Accepts or rejects the platform.

    Raises:
        UnsupportedPlatformError: The OS family is unknown or the exact
            (family, codename) pair is not in the matrix. The message names
            the rejected value and lists every supported pair.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    supported = matrix.describe()

    if platform_info.os_family == OsFamily.UNKNOWN:
        reason = (
            f"Unsupported operating system '{platform_info.distribution or 'unknown'}'"
            f" (codename '{platform_info.codename}'): OS family could not be determined."
        )
    elif not platform_info.codename:
        reason = (
            f"Unsupported {platform_info.os_family.value} release: "
            "no codename could be determined."
        )
    elif not matrix.accepts(platform_info.os_family, platform_info.codename):
        reason = (
            f"Unsupported {platform_info.os_family.value} release "
            f"'{platform_info.codename}'."
        )
    else:
        log_message(
            f"{symbols.get('success', '✅')} Platform {platform_info.describe()} is supported.",
            "success",
            logger_to_use,
            app_settings,
        )
        return

    message = f"{reason} Supported platforms: {', '.join(supported) or 'none configured'}"
    log_message(
        f"{symbols.get('error', '❌')} {message}",
        "error",
        logger_to_use,
        app_settings,
    )
    raise UnsupportedPlatformError(
        message,
        os_family=platform_info.os_family.value,
        codename=platform_info.codename,
        supported=supported,
    )
