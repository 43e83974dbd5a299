# provision/exceptions.py
# -*- coding: utf-8 -*-
"""
Exception taxonomy for the provisioning run.

Every fatal condition is raised as a ProvisioningError subclass and handled
once, at the CLI entry point, which logs the diagnostic and exits with the
error's exit code.
"""

from typing import List, Optional, Sequence

EXIT_SUCCESS = 0
EXIT_DETECTION_ERROR = 2
EXIT_UNSUPPORTED_PLATFORM = 3
EXIT_STEP_FAILED = 4
EXIT_VERIFICATION_FAILED = 5
EXIT_CONFIGURATION_ERROR = 6
EXIT_INTERRUPTED = 130


class ProvisioningError(Exception):
    """Base class for all fatal provisioning errors."""

    stage: str = "provisioning"
    exit_code: int = EXIT_STEP_FAILED

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class ConfigurationError(ProvisioningError):
    """The configuration file or environment could not be turned into settings."""

    stage = "configuration"
    exit_code = EXIT_CONFIGURATION_ERROR


class DetectionError(ProvisioningError):
    """No OS identification facility is available on this host."""

    stage = "platform detection"
    exit_code = EXIT_DETECTION_ERROR


class UnsupportedPlatformError(ProvisioningError):
    """The detected platform is not listed in the support matrix."""

    stage = "compatibility check"
    exit_code = EXIT_UNSUPPORTED_PLATFORM

    def __init__(
        self,
        message: str,
        os_family: Optional[str] = None,
        codename: Optional[str] = None,
        supported: Optional[Sequence[str]] = None,
    ):
        self.os_family = os_family
        self.codename = codename
        self.supported: List[str] = list(supported or [])
        super().__init__(message)


class PackageManagerError(ProvisioningError):
    """A package manager transaction returned a non-zero exit status."""

    stage = "package manager"

    def __init__(
        self,
        message: str,
        packages: Optional[Sequence[str]] = None,
        exit_detail: Optional[str] = None,
        returncode: Optional[int] = None,
    ):
        self.packages: List[str] = list(packages or [])
        self.exit_detail = exit_detail
        self.returncode = returncode
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.exit_detail:
            return f"{message} ({self.exit_detail})"
        return message


class PackageInstallError(PackageManagerError):
    """Installing packages failed."""

    stage = "package installation"


class PackageRemovalError(PackageManagerError):
    """Removing packages that are present failed (e.g. lock contention)."""

    stage = "package removal"


class RepositoryConfigError(ProvisioningError):
    """A repository descriptor could not be written safely."""

    stage = "repository registration"


class DownloadError(ProvisioningError):
    """A remote resource could not be downloaded over an authenticated channel."""

    stage = "download"

    def __init__(
        self,
        message: str,
        source_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.source_url = source_url
        super().__init__(message, original_error=original_error)


class TrustFetchError(DownloadError):
    """Signing key material could not be fetched or authenticated."""

    stage = "trust installation"


class StepFailedError(ProvisioningError):
    """A critical pipeline step failed; the run stopped at that step."""

    stage = "pipeline"

    def __init__(
        self,
        message: str,
        step_name: str,
        step_index: int,
        original_error: Optional[Exception] = None,
    ):
        self.step_name = step_name
        self.step_index = step_index
        self.stage = f"pipeline step '{step_name}'"
        if isinstance(original_error, ProvisioningError):
            self.stage += f" ({original_error.stage})"
        super().__init__(message, original_error=original_error)


class VerificationFailure(ProvisioningError):
    """Packages were installed but the runtime does not work."""

    stage = "post-install verification"
    exit_code = EXIT_VERIFICATION_FAILED
