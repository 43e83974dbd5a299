import hashlib
import stat

import pytest
import requests

from common.debian.apt_manager import AptManager
from common.platform_info import Architecture, OsFamily, PlatformInfo
from common.rhel.yum_manager import YumManager
from provision.exceptions import TrustFetchError
from provision.trust_installer import (
    TrustInstaller,
    looks_like_public_key,
    template_values,
)
from tests.fakes import ARMORED_KEY, DEARMORED_PREFIX, make_response

NOBLE = PlatformInfo(OsFamily.DEBIAN_LIKE, "noble", Architecture.AMD64, "ubuntu")
BOOKWORM_ARMHF = PlatformInfo(OsFamily.DEBIAN_LIKE, "bookworm", Architecture.ARMV7, "debian")
ROCKY_9 = PlatformInfo(OsFamily.RHEL_LIKE, "9", Architecture.ARM64, "rocky")


@pytest.fixture
def apt_trust(fake_host, app_settings):
    return TrustInstaller(app_settings, AptManager(app_settings))


@pytest.fixture
def mock_get(mocker):
    return mocker.patch(
        "common.network_utils.requests.get", return_value=make_response()
    )


def test_looks_like_public_key():
    assert looks_like_public_key(ARMORED_KEY)
    assert looks_like_public_key(bytes([0x99, 0x02, 0x0D]))  # old format, tag 6
    assert looks_like_public_key(bytes([0xC6, 0x01]))  # new format, tag 6
    assert not looks_like_public_key(b"<html>Not Found</html>")
    assert not looks_like_public_key(b"")


def test_template_values_apply_distribution_aliases(app_settings):
    values = template_values(ROCKY_9, app_settings.docker)
    assert values == {"distribution": "centos", "codename": "9", "architecture": "arm64"}


def test_key_source_url(apt_trust):
    assert apt_trust.key_source_url(NOBLE) == "https://download.docker.com/linux/ubuntu/gpg"


def test_derivative_falls_back_to_id_like_distribution(apt_trust):
    pop = PlatformInfo(
        OsFamily.DEBIAN_LIKE, "jammy", Architecture.AMD64, "pop",
        id_like=("ubuntu", "debian"),
    )

    assert apt_trust.key_source_url(pop) == "https://download.docker.com/linux/ubuntu/gpg"


def test_alias_wins_over_id_like(app_settings):
    alma = PlatformInfo(
        OsFamily.RHEL_LIKE, "9", Architecture.AMD64, "almalinux",
        id_like=("rhel", "centos", "fedora"),
    )

    assert template_values(alma, app_settings.docker)["distribution"] == "centos"


def test_unrelated_distribution_is_used_verbatim(app_settings):
    custom = PlatformInfo(OsFamily.DEBIAN_LIKE, "trixie", Architecture.AMD64, "acme")

    assert template_values(custom, app_settings.docker)["distribution"] == "acme"


def test_install_trust_dearmors_and_installs_world_readable(
    apt_trust, mock_get, host_paths, fake_host
):
    url = apt_trust.key_source_url(NOBLE)

    material = apt_trust.install_trust(url)

    key_path = host_paths["apt_keyring_dir"] / "docker.gpg"
    assert material.key_install_path == key_path
    assert material.signed_by_reference == str(key_path)
    assert key_path.read_bytes() == DEARMORED_PREFIX + ARMORED_KEY
    assert stat.S_IMODE(key_path.stat().st_mode) == 0o644
    assert fake_host.ran("gpg", "--dearmor")
    mock_get.assert_called_once_with(url, timeout=60, verify=True)


def test_install_trust_is_idempotent(apt_trust, mock_get, host_paths):
    url = apt_trust.key_source_url(NOBLE)
    apt_trust.install_trust(url)
    key_path = host_paths["apt_keyring_dir"] / "docker.gpg"
    first = key_path.read_bytes()
    mtime = key_path.stat().st_mtime_ns

    apt_trust.install_trust(url)

    assert key_path.read_bytes() == first
    assert key_path.stat().st_mtime_ns == mtime


def test_unreachable_endpoint_installs_nothing(apt_trust, mocker, host_paths):
    mocker.patch(
        "common.network_utils.requests.get",
        side_effect=requests.exceptions.ConnectionError("Network is unreachable"),
    )

    with pytest.raises(TrustFetchError, match="unreachable"):
        apt_trust.install_trust("https://download.docker.com/linux/ubuntu/gpg")

    assert not (host_paths["apt_keyring_dir"] / "docker.gpg").exists()


def test_certificate_failure_is_fatal(apt_trust, mocker):
    mocker.patch(
        "common.network_utils.requests.get",
        side_effect=requests.exceptions.SSLError("certificate verify failed"),
    )

    with pytest.raises(TrustFetchError, match="authenticate"):
        apt_trust.install_trust("https://download.docker.com/linux/ubuntu/gpg")


def test_plain_http_url_is_refused(apt_trust, mock_get):
    with pytest.raises(TrustFetchError):
        apt_trust.install_trust("http://download.docker.com/linux/ubuntu/gpg")

    mock_get.assert_not_called()


def test_non_key_content_is_rejected(apt_trust, mock_get, host_paths):
    mock_get.return_value = make_response(b"<html>captive portal</html>")

    with pytest.raises(TrustFetchError, match="not an OpenPGP public key"):
        apt_trust.install_trust("https://download.docker.com/linux/ubuntu/gpg")

    assert not (host_paths["apt_keyring_dir"] / "docker.gpg").exists()


def test_pinned_digest_mismatch_is_rejected(apt_trust, mock_get, app_settings):
    app_settings.docker.key_sha256 = "0" * 64

    with pytest.raises(TrustFetchError, match="SHA-256"):
        apt_trust.install_trust("https://download.docker.com/linux/ubuntu/gpg")


def test_pinned_digest_match_is_accepted(apt_trust, mock_get, app_settings):
    app_settings.docker.key_sha256 = hashlib.sha256(ARMORED_KEY).hexdigest().upper()

    apt_trust.install_trust("https://download.docker.com/linux/ubuntu/gpg")


def test_register_repository_debian(apt_trust, mock_get, host_paths):
    material = apt_trust.install_trust(apt_trust.key_source_url(BOOKWORM_ARMHF))

    path = apt_trust.register_repository(material, BOOKWORM_ARMHF)

    content = path.read_text()
    assert path == host_paths["apt_sources_dir"] / "docker.sources"
    assert "URIs: https://download.docker.com/linux/debian\n" in content
    assert "Suites: bookworm\n" in content
    assert "Architectures: armhf\n" in content
    assert f"Signed-By: {material.key_install_path}\n" in content


def test_register_repository_rhel(fake_host, app_settings, mock_get, host_paths):
    fake_host.binaries.add("dnf")
    trust = TrustInstaller(app_settings, YumManager(app_settings))
    url = trust.key_source_url(ROCKY_9)
    assert url == "https://download.docker.com/linux/centos/gpg"

    material = trust.install_trust(url)
    path = trust.register_repository(material, ROCKY_9)

    key_path = host_paths["rpm_keyring_dir"] / "docker.asc"
    assert key_path.read_bytes() == ARMORED_KEY
    assert path == host_paths["yum_repos_dir"] / "docker.repo"
    content = path.read_text()
    assert "baseurl=https://download.docker.com/linux/centos/9/$basearch/stable\n" in content
    assert f"gpgkey=file://{key_path}\n" in content
    assert not fake_host.ran("gpg")
