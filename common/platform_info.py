# common/platform_info.py
# -*- coding: utf-8 -*-
"""
Value types describing the host platform.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class OsFamily(str, Enum):
    DEBIAN_LIKE = "debian_like"
    RHEL_LIKE = "rhel_like"
    UNKNOWN = "unknown"


class Architecture(str, Enum):
    AMD64 = "amd64"
    ARM64 = "arm64"
    ARMV7 = "armv7"
    UNKNOWN = "unknown"


# Debian names the 32-bit ARM hard-float port "armhf".
DEBIAN_ARCHITECTURE_NAMES = {
    Architecture.AMD64: "amd64",
    Architecture.ARM64: "arm64",
    Architecture.ARMV7: "armhf",
}


@dataclass(frozen=True)
class PlatformInfo:
    """Detected host platform. Created once per run and never mutated."""

    os_family: OsFamily
    codename: str
    architecture: Architecture
    distribution: str = ""
    raw_machine: str = ""
    # os-release ID_LIKE entries, closest ancestor first.
    id_like: Tuple[str, ...] = ()

    def describe(self) -> str:
        distribution = self.distribution or self.os_family.value
        return (
            f"{distribution} '{self.codename}' "
            f"({self.os_family.value}, {self.architecture.value})"
        )
