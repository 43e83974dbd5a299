"""
Base installer class for all installer modules.

An installer describes a component as an ordered list of InstallSteps plus a
post-install verifier. It does not run anything itself; the orchestrator
runs the steps through a Pipeline after the platform has passed the
compatibility gate.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from common.package_manager import PackageManager
from common.platform_info import PlatformInfo
from provision.config_models import AppSettings
from provision.pipeline import InstallStep
from provision.verifier import PostInstallVerifier, VerificationReport


class BaseInstaller(ABC):
    """
    Base class for all installer modules.
    """

    # Overridden by the registry decorator
    metadata: Dict[str, Any] = {
        "estimated_time": 0,  # Estimated installation time in seconds
        "description": "",
    }

    def __init__(
        self,
        app_settings: AppSettings,
        platform_info: PlatformInfo,
        package_manager: PackageManager,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the installer.

        Args:
            app_settings: The application settings.
            platform_info: The platform that passed the compatibility gate.
            package_manager: Package manager for that platform.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.app_settings = app_settings
        self.platform_info = platform_info
        self.package_manager = package_manager
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.symbols = app_settings.symbols

    @abstractmethod
    def build_steps(self) -> List[InstallStep]:
        """
        Returns the ordered installation steps for this component.
        """

    @abstractmethod
    def build_verifier(self) -> PostInstallVerifier:
        """
        Returns the verifier that decides whether the component works.
        """

    def verify(self) -> VerificationReport:
        """
        Runs the verifier.

        Raises:
            VerificationFailure: Either probe failed.
        """
        return self.build_verifier().verify_or_raise()

    def get_estimated_time(self) -> int:
        return int(self.metadata.get("estimated_time", 0))

    def get_description(self) -> str:
        return str(self.metadata.get("description", ""))
