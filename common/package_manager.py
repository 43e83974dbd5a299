# common/package_manager.py
# -*- coding: utf-8 -*-
"""
Package manager abstraction.

Each OS family gets one PackageManager implementation. The rest of the
provisioner only talks to this interface; adding a platform means adding a
subclass registered with register_package_manager().
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Type

from common.file_utils import write_file_atomic
from common.platform_info import OsFamily, PlatformInfo
from provision.config_models import AppSettings
from provision.exceptions import RepositoryConfigError, UnsupportedPlatformError


@dataclass(frozen=True)
class RepositorySpec:
    """A third-party package source bound to installed trust material."""

    name: str
    url: str
    suite: str
    signed_by: Path
    components: Tuple[str, ...] = ("stable",)
    architectures: Tuple[str, ...] = ()
    description: str = ""


class PackageManager(ABC):
    """
    Capability set over a native package manager.

    All methods block until the underlying process exits. Failures are raised
    as PackageManagerError subclasses carrying the captured diagnostic.
    """

    name: str = "package-manager"
    os_family: OsFamily = OsFamily.UNKNOWN

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def refresh_index(self) -> None:
        """Refresh the package index from all configured sources."""

    @abstractmethod
    def install_packages(self, names: Sequence[str]) -> List[str]:
        """
        Install packages, skipping ones already installed.

        Returns:
            The packages that were actually installed.

        Raises:
            PackageInstallError: The transaction failed.
        """

    @abstractmethod
    def remove_packages_if_present(self, names: Sequence[str]) -> List[str]:
        """
        Remove the packages that are installed; absent ones are ignored.

        Returns:
            The packages that were removed.

        Raises:
            PackageRemovalError: The removal transaction itself failed.
        """

    @abstractmethod
    def is_installed(self, name: str) -> bool:
        """Return True if the package is installed."""

    @property
    @abstractmethod
    def trust_store_dir(self) -> Path:
        """Directory where repository signing keys are installed."""

    @property
    @abstractmethod
    def key_file_suffix(self) -> str:
        """File suffix of installed keys, matching their on-disk format."""

    @abstractmethod
    def prepare_trust_material(self, raw_key: bytes) -> bytes:
        """Convert fetched key material to the trust store's format."""

    @abstractmethod
    def repository_descriptor_path(self, repo_name: str) -> Path:
        """Path of the descriptor written for repo_name."""

    @abstractmethod
    def render_repository(self, repo_spec: RepositorySpec) -> str:
        """Render the descriptor content for repo_spec."""

    def add_signed_repository(self, repo_spec: RepositorySpec) -> Path:
        """
        Write the descriptor for repo_spec, replacing any previous version.

        The descriptor always references the trust material by path; a repository
        whose key is not installed is refused rather than written unsigned.

        Returns:
            The descriptor path.

        Raises:
            RepositoryConfigError: The trust material is missing.
        """
        signed_by = Path(repo_spec.signed_by)
        if not signed_by.is_file():
            raise RepositoryConfigError(
                f"Refusing to register repository '{repo_spec.name}': "
                f"trust material {signed_by} is not installed."
            )

        descriptor_path = self.repository_descriptor_path(repo_spec.name)
        self.logger.info(
            f"Adding repository '{repo_spec.name}' at {descriptor_path}"
        )
        write_file_atomic(
            self.render_repository(repo_spec).encode("utf-8"),
            descriptor_path,
            0o644,
            self.app_settings,
            current_logger=self.logger,
        )
        self._remove_conflicting_descriptors(repo_spec)
        return descriptor_path

    def _remove_conflicting_descriptors(self, repo_spec: RepositorySpec) -> None:
        """Hook for removing other descriptors of the same repository."""


_REGISTRY: Dict[OsFamily, Type[PackageManager]] = {}


def register_package_manager(os_family: OsFamily):
    """Class decorator binding a PackageManager implementation to a family."""

    def decorator(manager_class: Type[PackageManager]) -> Type[PackageManager]:
        if os_family in _REGISTRY:
            raise ValueError(
                f"Package manager for '{os_family.value}' already registered"
            )
        manager_class.os_family = os_family
        _REGISTRY[os_family] = manager_class
        return manager_class

    return decorator


def get_package_manager(
    platform_info: PlatformInfo,
    app_settings: AppSettings,
    logger: Optional[logging.Logger] = None,
) -> PackageManager:
    """
    Instantiate the package manager for the platform's OS family.

    Raises:
        UnsupportedPlatformError: No implementation exists for the family, or
            the family's package manager is not installed on the host.
    """
    # Importing the implementations registers them.
    import common.debian.apt_manager  # noqa: F401
    import common.rhel.yum_manager  # noqa: F401

    manager_class = _REGISTRY.get(platform_info.os_family)
    if manager_class is None:
        raise UnsupportedPlatformError(
            f"No package manager available for OS family "
            f"'{platform_info.os_family.value}'.",
            os_family=platform_info.os_family.value,
            codename=platform_info.codename,
        )
    try:
        return manager_class(app_settings, logger=logger)
    except FileNotFoundError as e:
        raise UnsupportedPlatformError(
            f"Host reports OS family '{platform_info.os_family.value}' but its "
            f"package manager is missing: {e}",
            os_family=platform_info.os_family.value,
            codename=platform_info.codename,
        ) from e
