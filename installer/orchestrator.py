"""
Orchestrator for the component installers.

The orchestrator owns the order of a provisioning run: detect the platform,
pass it through the compatibility gate, and only then create the package
manager and run each component's pipeline followed by its verifier. Any
failure propagates as a ProvisioningError; nothing after it runs.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple, Type

from common.command_utils import get_symbols, log_message
from common.package_manager import PackageManager, get_package_manager
from common.platform_detector import PlatformDetector
from common.platform_info import PlatformInfo
from installer.base_installer import BaseInstaller
from installer.registry import InstallerRegistry
from provision import compatibility_gate
from provision.compatibility_gate import SupportMatrix
from provision.config_models import AppSettings
from provision.exceptions import ConfigurationError
from provision.pipeline import Pipeline
from provision.verifier import VerificationReport


class ProvisioningOrchestrator:
    """
    Runs installers for a list of components on the current host.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.symbols = get_symbols(app_settings)

    def get_available_installers(self) -> Dict[str, Type[BaseInstaller]]:
        return InstallerRegistry.get_all_installers()

    def resolve_installers(
        self, component_names: Sequence[str]
    ) -> List[Tuple[str, Type[BaseInstaller]]]:
        """
        Looks up installer classes, keeping the requested order and dropping
        duplicates.

        Raises:
            ConfigurationError: A component name is not registered.
        """
        resolved: List[Tuple[str, Type[BaseInstaller]]] = []
        for name in component_names:
            if any(name == seen for seen, _ in resolved):
                continue
            try:
                resolved.append((name, InstallerRegistry.get_installer(name)))
            except KeyError as e:
                available = ", ".join(sorted(self.get_available_installers()))
                raise ConfigurationError(
                    f"Unknown component '{name}'. Available components: {available}",
                    original_error=e,
                ) from e
        return resolved

    def check_platform(self) -> PlatformInfo:
        """
        Detects the platform and runs the compatibility gate.

        Raises:
            DetectionError: The platform could not be identified.
            UnsupportedPlatformError: The platform is not supported.
        """
        platform_info = PlatformDetector(self.app_settings, logger=self.logger).detect()
        compatibility_gate.check(
            platform_info,
            SupportMatrix.from_settings(self.app_settings),
            self.app_settings,
            current_logger=self.logger,
        )
        return platform_info

    def _prepare(
        self, component_names: Sequence[str]
    ) -> List[Tuple[str, BaseInstaller]]:
        resolved = self.resolve_installers(component_names)
        platform_info = self.check_platform()
        package_manager: PackageManager = get_package_manager(
            platform_info, self.app_settings, logger=self.logger
        )
        return [
            (
                name,
                installer_class(
                    self.app_settings, platform_info, package_manager, self.logger
                ),
            )
            for name, installer_class in resolved
        ]

    def install(self, component_names: Sequence[str]) -> Dict[str, VerificationReport]:
        """
        Installs and verifies each component in order.

        Returns:
            The verification report of every component.

        Raises:
            ProvisioningError: Detection, the gate, a critical step or the
                verification failed.
        """
        installers = self._prepare(component_names)
        reports: Dict[str, VerificationReport] = {}
        for name, installer in installers:
            log_message(
                f"{self.symbols.get('rocket', '🚀')} Installing {name}: {installer.get_description()}",
                "info",
                self.logger,
                self.app_settings,
            )
            Pipeline(
                installer.build_steps(), self.app_settings, logger=self.logger
            ).run_or_raise()
            reports[name] = installer.verify()
            log_message(
                f"{self.symbols.get('sparkles', '✨')} {name} installed and verified ({reports[name].version_string}).",
                "success",
                self.logger,
                self.app_settings,
            )
        return reports

    def verify(self, component_names: Sequence[str]) -> Dict[str, VerificationReport]:
        """
        Runs only the verifiers of the given components.

        Raises:
            VerificationFailure: A component does not work.
        """
        installers = self._prepare(component_names)
        return {name: installer.verify() for name, installer in installers}
