from unittest.mock import MagicMock

import pytest

from provision.exceptions import (
    EXIT_STEP_FAILED,
    PackageInstallError,
    PackageRemovalError,
    StepFailedError,
)
from provision.pipeline import InstallStep, Pipeline, PipelineStatus


def recording_step(name, log, outcome=None, error=None, critical=True):
    def action():
        log.append(name)
        if error is not None:
            raise error
        return outcome

    return InstallStep(name=name, action=action, critical=critical)


def test_runs_steps_in_order(mock_logger):
    log = []
    pipeline = Pipeline(
        [recording_step(n, log) for n in ("a", "b", "c")], logger=mock_logger
    )

    state = pipeline.run()

    assert log == ["a", "b", "c"]
    assert state.status == PipelineStatus.SUCCEEDED
    assert state.succeeded


def test_critical_failure_stops_the_run(mock_logger):
    log = []
    error = PackageInstallError("Failed to install packages: docker-ce")
    pipeline = Pipeline(
        [
            recording_step("a", log),
            recording_step("b", log, error=error),
            recording_step("c", log),
        ],
        logger=mock_logger,
    )

    state = pipeline.run()

    assert log == ["a", "b"]
    assert state.status == PipelineStatus.FAILED
    assert state.step_index == 1
    assert state.step_name == "b"
    assert state.error is error


def test_false_return_is_a_failure(mock_logger):
    log = []
    pipeline = Pipeline(
        [recording_step("a", log, outcome=False), recording_step("b", log)],
        logger=mock_logger,
    )

    state = pipeline.run()

    assert log == ["a"]
    assert state.status == PipelineStatus.FAILED


def test_non_critical_failure_continues(mock_logger):
    log = []
    pipeline = Pipeline(
        [
            recording_step(
                "remove-stale-packages",
                log,
                error=PackageRemovalError("lock held"),
                critical=False,
            ),
            recording_step("b", log),
        ],
        logger=mock_logger,
    )

    state = pipeline.run()

    assert log == ["remove-stale-packages", "b"]
    assert state.succeeded
    assert mock_logger.warning.called


def test_pipeline_cannot_be_rerun(mock_logger):
    pipeline = Pipeline([recording_step("a", [])], logger=mock_logger)
    pipeline.run()

    with pytest.raises(RuntimeError):
        pipeline.run()


def test_empty_pipeline_succeeds():
    assert Pipeline([]).run().succeeded


def test_run_or_raise_names_the_failing_step(mock_logger):
    cause = PackageInstallError("Failed to install packages: docker-ce")
    pipeline = Pipeline(
        [recording_step("install-runtime-packages", [], error=cause)],
        logger=mock_logger,
    )

    with pytest.raises(StepFailedError) as excinfo:
        pipeline.run_or_raise()

    error = excinfo.value
    assert error.step_name == "install-runtime-packages"
    assert error.step_index == 0
    assert error.original_error is cause
    assert error.exit_code == EXIT_STEP_FAILED
    assert "install-runtime-packages" in error.stage
    assert "package installation" in error.stage
    assert "Step 1/1 'install-runtime-packages' failed" in str(error)


def test_step_label_prefers_description():
    step = InstallStep(name="n", action=MagicMock(), description="Do the thing")
    assert step.label == "Do the thing"
    assert InstallStep(name="n", action=MagicMock()).label == "n"
