# installer/docker_installer.py
# -*- coding: utf-8 -*-
"""
Docker installer module.

Describes the Docker Engine installation as an ordered list of pipeline
steps: clear out conflicting distribution packages, install prerequisites,
install Docker's signing key and repository, then install the engine.
"""

import getpass
import logging
import os
from typing import List, Optional

from common.command_utils import (
    command_exists,
    log_message,
    run_elevated_command,
)
from common.package_manager import PackageManager
from common.platform_info import PlatformInfo
from installer.base_installer import BaseInstaller
from installer.registry import InstallerRegistry
from provision.config_models import AppSettings
from provision.pipeline import InstallStep
from provision.trust_installer import TrustInstaller, TrustMaterial
from provision.verifier import PostInstallVerifier


@InstallerRegistry.register(
    name="docker",
    metadata={
        "estimated_time": 120,
        "description": "Docker Engine container runtime",
    },
)
class DockerInstaller(BaseInstaller):
    """
    Installer for Docker Engine container runtime.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        platform_info: PlatformInfo,
        package_manager: PackageManager,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, platform_info, package_manager, logger)
        self.docker_settings = app_settings.docker
        self.trust_installer = TrustInstaller(
            app_settings, package_manager, logger=self.logger
        )
        self.trust_material: Optional[TrustMaterial] = None

    def build_steps(self) -> List[InstallStep]:
        family = self.platform_info.os_family
        stale = self.docker_settings.stale_packages.get(family, [])
        prerequisites = self.docker_settings.prerequisite_packages.get(family, [])
        manager = self.package_manager

        return [
            InstallStep(
                name="remove-stale-packages",
                description="Remove conflicting container runtime packages",
                action=lambda: manager.remove_packages_if_present(stale),
                critical=False,
            ),
            InstallStep(
                name="refresh-package-index",
                description="Refresh package index",
                action=manager.refresh_index,
            ),
            InstallStep(
                name="install-prerequisites",
                description="Install prerequisite packages",
                action=lambda: manager.install_packages(prerequisites),
            ),
            InstallStep(
                name="install-trust-material",
                description="Install Docker signing key",
                action=self._install_trust_material,
            ),
            InstallStep(
                name="register-repository",
                description="Register Docker package repository",
                action=self._register_repository,
            ),
            InstallStep(
                name="refresh-repository-index",
                description="Refresh package index with Docker repository",
                action=manager.refresh_index,
            ),
            InstallStep(
                name="install-runtime-packages",
                description="Install Docker Engine packages",
                action=lambda: manager.install_packages(self.docker_settings.packages),
            ),
            InstallStep(
                name="enable-runtime-services",
                description="Enable Docker services at boot",
                action=self._enable_services,
                critical=False,
            ),
            InstallStep(
                name="configure-runtime-group",
                description="Grant the invoking user access to Docker",
                action=self._add_user_to_docker_group,
                critical=False,
            ),
        ]

    def build_verifier(self) -> PostInstallVerifier:
        runtime = self.docker_settings.runtime_command
        return PostInstallVerifier(
            self.app_settings,
            workload_command=[runtime, "run", "--rm", self.docker_settings.smoke_image],
            version_command=[runtime, "--version"],
            elevated_workload=True,
            logger=self.logger,
        )

    def _install_trust_material(self) -> TrustMaterial:
        source_url = self.trust_installer.key_source_url(self.platform_info)
        self.trust_material = self.trust_installer.install_trust(source_url)
        return self.trust_material

    def _register_repository(self):
        if self.trust_material is None:
            raise RuntimeError(
                "Docker signing key has not been installed; cannot register the repository."
            )
        return self.trust_installer.register_repository(
            self.trust_material, self.platform_info
        )

    def _enable_services(self) -> None:
        if not command_exists("systemctl"):
            log_message(
                f"{self.symbols.get('warning', '⚠️')} systemctl not found; not enabling {', '.join(self.docker_settings.services)}.",
                "warning",
                self.logger,
                self.app_settings,
            )
            return
        run_elevated_command(
            ["systemctl", "enable"] + list(self.docker_settings.services),
            self.app_settings,
            current_logger=self.logger,
        )

    def _add_user_to_docker_group(self) -> None:
        """
        Add the invoking user to the Docker group.
        """
        user = os.environ.get("SUDO_USER") or getpass.getuser()
        group = self.docker_settings.group
        if user == "root":
            log_message(
                f"{self.symbols.get('info', 'ℹ️')} Running as root; not adding a user to the '{group}' group.",
                "info",
                self.logger,
                self.app_settings,
            )
            return

        run_elevated_command(
            ["groupadd", "-f", group],
            self.app_settings,
            current_logger=self.logger,
        )
        run_elevated_command(
            ["usermod", "-aG", group, user],
            self.app_settings,
            current_logger=self.logger,
        )
        log_message(
            f"{self.symbols.get('warning', '⚠️')} User {user} added to '{group}'. Log out and back in for this change to take full effect.",
            "warning",
            self.logger,
            self.app_settings,
        )
