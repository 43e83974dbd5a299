# common/debian/apt_manager.py
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

ARMORED_KEY_HEADER = b"-----BEGIN PGP PUBLIC KEY BLOCK-----"


@register_package_manager(OsFamily.DEBIAN_LIKE)
class AptManager(PackageManager):
    """
    Package manager for Debian-family hosts using the apt command-line tools.
    Repositories are written in the deb822 ``.sources`` format and keys are
    stored dearmored under /etc/apt/keyrings.
    """

    name = "apt"

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the AptManager.
        Args:
            app_settings: The application settings.
            logger: An optional logging object.
        """
        super().__init__(app_settings, logger=logger)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )
        self.settings = app_settings.package_manager

    def refresh_index(self) -> None:
        """
        Updates the list of available packages using 'apt-get update'.
        """
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        result = run_elevated_command(
            ["apt-get", "update", "-yq"],
            self.app_settings,
            check=False,
            capture_output=True,
            current_logger=self.logger,
        )
        if result.returncode != 0:
            raise PackageManagerError(
                "Failed to update apt package lists",
                exit_detail=describe_failure(result),
                returncode=result.returncode,
            )
        self.logger.info("Apt package lists updated successfully.")

    def is_installed(self, name: str) -> bool:
        result = run_command(
            ["dpkg-query", "-W", "-f=${db:Status-Status}", name],
            self.app_settings,
            check=False,
            capture_output=True,
            current_logger=self.logger,
        )
        # dpkg-query exits 1 for packages it has never heard of.
        return result.returncode == 0 and result.stdout.strip() == "installed"

    def install_packages(self, names: Sequence[str]) -> List[str]:
        """
        Installs packages using 'apt-get install', skipping installed ones.
        """
        packages_to_install = []
        for pkg_name in names:
            if self.is_installed(pkg_name):
                self.logger.info(
                    f"Package '{pkg_name}' is already installed. Skipping."
                )
            else:
                self.logger.info(f"Marking package for installation: {pkg_name}")
                packages_to_install.append(pkg_name)

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return []

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        result = run_elevated_command(
            ["apt-get", "install", "-yq"] + packages_to_install,
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
        """
        Removes the listed packages that are installed using 'apt-get remove'.
        """
        packages_to_remove = []
        for pkg_name in names:
            if self.is_installed(pkg_name):
                self.logger.info(f"Marking package for removal: {pkg_name}")
                packages_to_remove.append(pkg_name)
            else:
                self.logger.info(
                    f"Package '{pkg_name}' is not installed. Skipping."
                )

        if not packages_to_remove:
            self.logger.info("None of the listed packages are installed.")
            return []

        self.logger.info(f"Committing remove for: {', '.join(packages_to_remove)}")
        result = run_elevated_command(
            ["apt-get", "remove", "-yq"] + packages_to_remove,
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
        return Path(self.settings.apt_keyring_dir)

    @property
    def key_file_suffix(self) -> str:
        return ".gpg"

    def prepare_trust_material(self, raw_key: bytes) -> bytes:
        """
        Dearmors an ASCII-armored key with 'gpg --dearmor'. Keys that are
        already binary are returned unchanged.
        """
        if ARMORED_KEY_HEADER not in raw_key:
            return raw_key
        result = run_command(
            ["gpg", "--dearmor"],
            self.app_settings,
            check=False,
            capture_output=True,
            text=False,
            cmd_input=raw_key,
            current_logger=self.logger,
        )
        if result.returncode != 0 or not result.stdout:
            raise PackageManagerError(
                "Failed to dearmor signing key with gpg",
                exit_detail=describe_failure(result),
                returncode=result.returncode,
            )
        return result.stdout

    def repository_descriptor_path(self, repo_name: str) -> Path:
        return Path(self.settings.apt_sources_dir) / f"{repo_name}.sources"

    def render_repository(self, repo_spec: RepositorySpec) -> str:
        """
        Renders a deb822 stanza for repo_spec.
        """
        repo_details = {
            "Types": "deb",
            "URIs": repo_spec.url,
            "Suites": repo_spec.suite,
            "Components": " ".join(repo_spec.components),
        }
        if repo_spec.architectures:
            repo_details["Architectures"] = " ".join(repo_spec.architectures)
        repo_details["Signed-By"] = str(repo_spec.signed_by)

        deb822_content = ""
        if repo_spec.description:
            deb822_content += f"X-Repolib-Name: {repo_spec.description}\n"
        for key, value in repo_details.items():
            deb822_content += f"{key}: {value}\n"
        return deb822_content

    def _remove_conflicting_descriptors(self, repo_spec: RepositorySpec) -> None:
        # A one-line .list entry for the same repository would make apt see
        # the source twice.
        legacy_path = Path(self.settings.apt_sources_dir) / f"{repo_spec.name}.list"
        if remove_file(legacy_path, self.app_settings, current_logger=self.logger):
            self.logger.info(
                f"Removed legacy repository file {legacy_path} superseded by the .sources entry."
            )
