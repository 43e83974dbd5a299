# common/rhel/yum_manager.py
# -*- coding: utf-8 -*-
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from common.command_utils import (
    command_exists,
    describe_failure,
    run_command,
    run_elevated_command,
)
from common.file_utils import remove_file
from common.package_manager import (
    PackageManager,
    RepositorySpec,
    register_package_manager,
)
from common.platform_info import OsFamily
from provision.config_models import AppSettings
from provision.exceptions import (
    PackageInstallError,
    PackageManagerError,
    PackageRemovalError,
)


@register_package_manager(OsFamily.RHEL_LIKE)
class YumManager(PackageManager):
    """
    Package manager for RHEL-family hosts using yum or dnf.
    Repositories are ``.repo`` files under /etc/yum.repos.d with gpgcheck
    enabled against an armored key under /etc/pki/rpm-gpg.
    """

    name = "yum"

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger=logger)
        self.settings = app_settings.package_manager
        self.command = self.settings.yum_command or self._detect_command()
        self.name = self.command

    def _detect_command(self) -> str:
        for candidate in ("dnf", "yum"):
            if command_exists(candidate):
                return candidate
        self.logger.critical(
            "Neither 'dnf' nor 'yum' found. This manager cannot function."
        )
        raise FileNotFoundError(
            "'dnf'/'yum' not found. Is this a RHEL-based system?"
        )

    def refresh_index(self) -> None:
        self.logger.info(f"Refreshing package metadata via '{self.command} makecache'...")
        result = run_elevated_command(
            [self.command, "makecache", "-y"],
            self.app_settings,
            check=False,
            capture_output=True,
            current_logger=self.logger,
        )
        if result.returncode != 0:
            raise PackageManagerError(
                f"Failed to refresh {self.command} metadata",
                exit_detail=describe_failure(result),
                returncode=result.returncode,
            )
        self.logger.info("Package metadata refreshed successfully.")

    def is_installed(self, name: str) -> bool:
        result = run_command(
            ["rpm", "-q", name],
            self.app_settings,
            check=False,
            capture_output=True,
            current_logger=self.logger,
        )
        return result.returncode == 0

    def install_packages(self, names: Sequence[str]) -> List[str]:
        packages_to_install = [n for n in names if not self.is_installed(n)]
        for pkg_name in names:
            if pkg_name not in packages_to_install:
                self.logger.info(
                    f"Package '{pkg_name}' is already installed. Skipping."
                )

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return []

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        result = run_elevated_command(
            [self.command, "install", "-y"] + packages_to_install,
            self.app_settings,
            check=False,
            capture_output=True,
            current_logger=self.logger,
        )
        if result.returncode != 0:
            raise PackageInstallError(
                f"Failed to install packages: {', '.join(packages_to_install)}",
                packages=packages_to_install,
                exit_detail=describe_failure(result),
                returncode=result.returncode,
            )
        self.logger.info("Packages installed successfully.")
        return packages_to_install

    def remove_packages_if_present(self, names: Sequence[str]) -> List[str]:
        packages_to_remove = [n for n in names if self.is_installed(n)]
        if not packages_to_remove:
            self.logger.info("None of the listed packages are installed.")
            return []

        self.logger.info(f"Committing remove for: {', '.join(packages_to_remove)}")
        result = run_elevated_command(
            [self.command, "remove", "-y"] + packages_to_remove,
            self.app_settings,
            check=False,
            capture_output=True,
            current_logger=self.logger,
        )
        if result.returncode != 0:
            raise PackageRemovalError(
                f"Failed to remove packages: {', '.join(packages_to_remove)}",
                packages=packages_to_remove,
                exit_detail=describe_failure(result),
                returncode=result.returncode,
            )
        self.logger.info("Packages removed successfully.")
        return packages_to_remove

    @property
    def trust_store_dir(self) -> Path:
        return Path(self.settings.rpm_keyring_dir)

    @property
    def key_file_suffix(self) -> str:
        return ".asc"

    def prepare_trust_material(self, raw_key: bytes) -> bytes:
        # rpm reads armored keys directly through gpgkey=file://...
        return raw_key

    def repository_descriptor_path(self, repo_name: str) -> Path:
        return Path(self.settings.yum_repos_dir) / f"{repo_name}.repo"

    def render_repository(self, repo_spec: RepositorySpec) -> str:
        channel = repo_spec.components[0] if repo_spec.components else "stable"
        description = repo_spec.description or repo_spec.name
        return (
            f"[{repo_spec.name}-{channel}]\n"
            f"name={description} - {channel} - $basearch\n"
            f"baseurl={repo_spec.url}/{repo_spec.suite}/$basearch/{channel}\n"
            "enabled=1\n"
            "gpgcheck=1\n"
            f"gpgkey=file://{repo_spec.signed_by}\n"
        )

    def _remove_conflicting_descriptors(self, repo_spec: RepositorySpec) -> None:
        """
        Removes other .repo files whose baseurl points into the same
        repository, such as the upstream docker-ce.repo.
        """
        repos_dir = Path(self.settings.yum_repos_dir)
        own_path = self.repository_descriptor_path(repo_spec.name)
        for repo_file in sorted(repos_dir.glob("*.repo")):
            if repo_file == own_path:
                continue
            try:
                content = repo_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(f"Could not read {repo_file}: {e}")
                continue
            if not any(
                line.partition("=")[2].strip().startswith(repo_spec.url)
                for line in content.splitlines()
                if line.strip().startswith("baseurl")
            ):
                continue
            if remove_file(repo_file, self.app_settings, current_logger=self.logger):
                self.logger.info(
                    f"Removed {repo_file}: it duplicates the '{repo_spec.name}' repository."
                )
