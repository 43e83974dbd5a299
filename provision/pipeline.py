# provision/pipeline.py
# -*- coding: utf-8 -*-
"""
Ordered, fail-fast execution of installation steps.

A Pipeline walks NOT_STARTED -> RUNNING(i) -> SUCCEEDED | FAILED(i, error).
Steps run strictly in declared order. A critical step that raises, or
returns False, stops the run at that step; a non-critical failure is logged
and the run moves on. Nothing is retried: re-running the whole pipeline is
safe because every step is idempotent.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from common.command_utils import get_symbols, log_message
from provision.config_models import AppSettings
from provision.exceptions import StepFailedError

module_logger = logging.getLogger(__name__)


class PipelineStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallStep:
    """
    One unit of work. ``action`` takes no arguments; returning False (or
    raising) marks the step as failed, any other return value is success.
    """

    name: str
    action: Callable[[], Any]
    description: str = ""
    idempotent: bool = True
    critical: bool = True

    @property
    def label(self) -> str:
        return self.description or self.name


@dataclass(frozen=True)
class StepResult:
    step: InstallStep
    success: bool
    error_detail: Optional[str] = None
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class PipelineState:
    status: PipelineStatus
    step_index: Optional[int] = None
    step_name: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStatus.SUCCEEDED


class Pipeline:
    """
    Runs a fixed sequence of InstallSteps once.
    """

    def __init__(
        self,
        steps: Sequence[InstallStep],
        app_settings: Optional[AppSettings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.steps: List[InstallStep] = list(steps)
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.symbols = get_symbols(app_settings)
        self._state = PipelineState(PipelineStatus.NOT_STARTED)

    @property
    def state(self) -> PipelineState:
        return self._state

    def run(self) -> PipelineState:
        """
        Executes every step in order and returns the terminal state.

        Raises:
            RuntimeError: The pipeline has already been run.
        """
        if self._state.status != PipelineStatus.NOT_STARTED:
            raise RuntimeError(
                f"Pipeline already run (state: {self._state.status.value})"
            )

        total = len(self.steps)
        for index, step in enumerate(self.steps):
            self._state = PipelineState(
                PipelineStatus.RUNNING, step_index=index, step_name=step.name
            )
            log_message(
                f"--- {self.symbols.get('step', '➡️')} [{index + 1}/{total}] Executing: {step.label} ({step.name}) ---",
                "info",
                self.logger,
                self.app_settings,
            )
            result = self._execute(step)

            if result.success:
                log_message(
                    f"--- {self.symbols.get('success', '✅')} Successfully completed: {step.label} ({step.name}) ---",
                    "success",
                    self.logger,
                    self.app_settings,
                )
                continue

            if step.critical:
                log_message(
                    f"{self.symbols.get('error', '❌')} FAILED: {step.label} ({step.name}): {result.error_detail}",
                    "error",
                    self.logger,
                    self.app_settings,
                )
                self._state = PipelineState(
                    PipelineStatus.FAILED,
                    step_index=index,
                    step_name=step.name,
                    error=result.error,
                )
                return self._state

            log_message(
                f"{self.symbols.get('warning', '⚠️')} Non-critical step failed, continuing: {step.label} ({step.name}): {result.error_detail}",
                "warning",
                self.logger,
                self.app_settings,
            )

        self._state = PipelineState(PipelineStatus.SUCCEEDED)
        return self._state

    def run_or_raise(self) -> PipelineState:
        """
        Like run(), but a failed run raises StepFailedError naming the step.
        """
        state = self.run()
        if state.status == PipelineStatus.FAILED:
            step_number = (state.step_index or 0) + 1
            raise StepFailedError(
                f"Step {step_number}/{len(self.steps)} '{state.step_name}' failed: {state.error}",
                step_name=state.step_name or "",
                step_index=state.step_index or 0,
                original_error=state.error if isinstance(state.error, Exception) else None,
            )
        return state

    def _execute(self, step: InstallStep) -> StepResult:
        try:
            outcome = step.action()
        except Exception as e:
            self.logger.debug(f"Step {step.name} raised", exc_info=True)
            return StepResult(step, False, error_detail=str(e) or type(e).__name__, error=e)
        if outcome is False:
            return StepResult(
                step,
                False,
                error_detail="step reported failure",
                error=RuntimeError(f"{step.name} reported failure"),
            )
        return StepResult(step, True)
