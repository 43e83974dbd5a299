# provision/verifier.py
# -*- coding: utf-8 -*-
"""
Post-install verification.

Package installation succeeding only means files were placed on disk. The
verifier runs a trivial workload under the installed runtime and asks the
binary for its version; the run only counts as successful if both work.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

from common.command_utils import (
    describe_failure,
    get_symbols,
    log_message,
    run_command,
    run_elevated_command,
)
from provision.config_models import AppSettings
from provision.exceptions import VerificationFailure

module_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationReport:
    runtime_ok: bool
    version_string: Optional[str] = None
    runtime_detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.runtime_ok and bool(self.version_string)


class PostInstallVerifier:
    """
    Runs a smoke-test workload and a version probe.

    Args:
        app_settings: Application settings.
        workload_command: Side-effect-free command run under the runtime;
            must exit 0.
        version_command: Command whose first output line is the version.
        elevated_workload: Run the workload with elevated privileges (the
            invoking user is usually not in the runtime's group yet).
        logger: Optional logger.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        workload_command: Sequence[str],
        version_command: Sequence[str],
        elevated_workload: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.workload_command: List[str] = list(workload_command)
        self.version_command: List[str] = list(version_command)
        self.elevated_workload = elevated_workload
        self.logger = logger or module_logger
        self.symbols = get_symbols(app_settings)

    def verify(self) -> VerificationReport:
        """Runs both probes. Never raises for a failing probe."""
        runtime_ok, runtime_detail = self._probe_workload()
        version_string = self._probe_version()
        report = VerificationReport(
            runtime_ok=runtime_ok,
            version_string=version_string,
            runtime_detail=runtime_detail,
        )
        if report.succeeded:
            log_message(
                f"{self.symbols.get('sparkles', '✨')} Verification passed: {version_string}",
                "success",
                self.logger,
                self.app_settings,
            )
        return report

    def verify_or_raise(self) -> VerificationReport:
        """
        Runs verify() and raises VerificationFailure if either probe failed.
        """
        report = self.verify()
        if report.succeeded:
            return report

        problems = []
        if not report.runtime_ok:
            problems.append(
                f"smoke test `{subprocess.list2cmdline(self.workload_command)}` failed"
                f" ({report.runtime_detail})"
            )
        if not report.version_string:
            problems.append(
                f"version probe `{subprocess.list2cmdline(self.version_command)}` returned nothing"
            )
        message = "; ".join(problems)
        log_message(
            f"{self.symbols.get('error', '❌')} Verification failed: {message}",
            "error",
            self.logger,
            self.app_settings,
        )
        raise VerificationFailure(
            f"Packages are installed but the runtime does not work: {message}"
        )

    def _probe_workload(self):
        runner = run_elevated_command if self.elevated_workload else run_command
        try:
            result = runner(
                self.workload_command,
                self.app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
            )
        except FileNotFoundError as e:
            return False, f"command not found: {e.filename or self.workload_command[0]}"
        if result.returncode != 0:
            return False, describe_failure(result)
        return True, None

    def _probe_version(self) -> Optional[str]:
        try:
            result = run_command(
                self.version_command,
                self.app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
            )
        except FileNotFoundError:
            return None
        if result.returncode != 0 or not result.stdout:
            return None
        lines = result.stdout.strip().splitlines()
        return lines[0].strip() if lines else None
