# tests/conftest.py
import logging
from pathlib import Path
from typing import Dict
from unittest.mock import MagicMock

import pytest

from provision.config_models import AppSettings
from tests.fakes import FakeHost


@pytest.fixture
def fake_host(mocker):
    """A FakeHost wired into subprocess.run and shutil.which."""
    host = FakeHost()
    mocker.patch("common.command_utils.subprocess.run", side_effect=host.run)
    mocker.patch("common.command_utils.shutil.which", side_effect=host.which)
    return host


@pytest.fixture
def host_paths(tmp_path) -> Dict[str, Path]:
    paths = {
        "os_release": tmp_path / "os-release",
        "apt_keyring_dir": tmp_path / "etc" / "apt" / "keyrings",
        "apt_sources_dir": tmp_path / "etc" / "apt" / "sources.list.d",
        "rpm_keyring_dir": tmp_path / "etc" / "pki" / "rpm-gpg",
        "yum_repos_dir": tmp_path / "etc" / "yum.repos.d",
        "home": tmp_path / "home" / "alice",
    }
    paths["home"].mkdir(parents=True)
    return paths


@pytest.fixture
def app_settings(host_paths) -> AppSettings:
    """AppSettings pointing every host path into tmp_path."""
    settings = AppSettings(os_release_path=host_paths["os_release"])
    settings.package_manager.apt_keyring_dir = host_paths["apt_keyring_dir"]
    settings.package_manager.apt_sources_dir = host_paths["apt_sources_dir"]
    settings.package_manager.rpm_keyring_dir = host_paths["rpm_keyring_dir"]
    settings.package_manager.yum_repos_dir = host_paths["yum_repos_dir"]
    settings.shell.home_dir = host_paths["home"]
    return settings


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def mock_app_settings():
    mock_settings = MagicMock(spec=AppSettings)
    mock_settings.symbols = {"error": "❌", "info": "ℹ️", "warning": "!"}
    return mock_settings
