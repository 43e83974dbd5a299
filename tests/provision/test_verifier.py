import pytest

from provision.exceptions import EXIT_VERIFICATION_FAILED, VerificationFailure
from provision.verifier import PostInstallVerifier


@pytest.fixture
def docker_verifier(app_settings, mock_logger):
    return PostInstallVerifier(
        app_settings,
        workload_command=["docker", "run", "--rm", "hello-world"],
        version_command=["docker", "--version"],
        logger=mock_logger,
    )


def test_verify_succeeds(fake_host, docker_verifier):
    report = docker_verifier.verify_or_raise()

    assert report.succeeded
    assert report.version_string == "Docker version 27.0.3, build 7d4bcd8"
    assert fake_host.ran("docker", "run", "--rm", "hello-world")


def test_smoke_test_failure_is_reported(fake_host, docker_verifier):
    fake_host.failures[("docker", "run")] = (
        125,
        "docker: Cannot connect to the Docker daemon at unix:///var/run/docker.sock.",
    )

    report = docker_verifier.verify()

    assert not report.runtime_ok
    assert not report.succeeded
    assert "exit status 125" in report.runtime_detail


def test_smoke_test_failure_raises(fake_host, docker_verifier):
    fake_host.failures[("docker", "run")] = (125, "Cannot connect to the Docker daemon")

    with pytest.raises(VerificationFailure, match="Cannot connect") as excinfo:
        docker_verifier.verify_or_raise()

    assert excinfo.value.exit_code == EXIT_VERIFICATION_FAILED


def test_empty_version_output_fails(fake_host, docker_verifier):
    fake_host.docker_version = ""

    with pytest.raises(VerificationFailure, match="version probe"):
        docker_verifier.verify_or_raise()


def test_missing_runtime_binary_fails(fake_host, docker_verifier):
    fake_host.missing.add("docker")

    report = docker_verifier.verify()

    assert not report.runtime_ok
    assert report.version_string is None
    assert "command not found" in report.runtime_detail
