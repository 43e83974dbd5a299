import pytest

from common.platform_info import Architecture, OsFamily, PlatformInfo
from provision.compatibility_gate import SupportMatrix, check
from provision.config_models import AppSettings, SupportedPlatform
from provision.exceptions import EXIT_UNSUPPORTED_PLATFORM, UnsupportedPlatformError


@pytest.fixture
def matrix():
    return SupportMatrix.from_entries(
        [
            SupportedPlatform(os_family="debian_like", codename="noble"),
            SupportedPlatform(os_family="debian_like", codename="Jammy "),
            SupportedPlatform(os_family="rhel_like", codename="9"),
        ]
    )


def platform_info(family, codename, distribution="ubuntu"):
    return PlatformInfo(family, codename, Architecture.AMD64, distribution)


def test_accepts_listed_platform(matrix, mock_logger):
    check(platform_info(OsFamily.DEBIAN_LIKE, "noble"), matrix, current_logger=mock_logger)
    check(platform_info(OsFamily.DEBIAN_LIKE, "jammy"), matrix, current_logger=mock_logger)
    check(platform_info(OsFamily.RHEL_LIKE, "9", "rocky"), matrix, current_logger=mock_logger)


def test_rejects_unlisted_codename_and_names_it(matrix, mock_logger):
    with pytest.raises(UnsupportedPlatformError) as excinfo:
        check(platform_info(OsFamily.DEBIAN_LIKE, "warty"), matrix, current_logger=mock_logger)

    error = excinfo.value
    assert "'warty'" in str(error)
    assert "debian_like/noble" in str(error)
    assert error.codename == "warty"
    assert error.supported == ["debian_like/jammy", "debian_like/noble", "rhel_like/9"]
    assert error.exit_code == EXIT_UNSUPPORTED_PLATFORM


def test_family_must_match_codename(matrix):
    with pytest.raises(UnsupportedPlatformError):
        check(platform_info(OsFamily.RHEL_LIKE, "noble"), matrix)


def test_rejects_unknown_family(matrix):
    with pytest.raises(UnsupportedPlatformError, match="'arch'"):
        check(platform_info(OsFamily.UNKNOWN, "", "arch"), matrix)


def test_rejects_empty_codename(matrix):
    with pytest.raises(UnsupportedPlatformError, match="no codename"):
        check(platform_info(OsFamily.DEBIAN_LIKE, ""), matrix)


def test_default_matrix_covers_supported_ubuntu_releases():
    matrix = SupportMatrix.from_settings(AppSettings())

    for codename in ("noble", "jammy", "focal", "mantic"):
        assert matrix.accepts(OsFamily.DEBIAN_LIKE, codename)
    assert not matrix.accepts(OsFamily.DEBIAN_LIKE, "warty")
