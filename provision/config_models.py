# provision/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the provisioner,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
"""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.platform_info import OsFamily

# --- Default Static Values (can be overridden by config file/env/cli) ---
LOG_PREFIX_DEFAULT: str = "[PROVISION]"

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
    "key": "🔑",
}

OS_RELEASE_PATH_DEFAULT: str = "/etc/os-release"

SUPPORTED_PLATFORMS_DEFAULT: List[Dict[str, str]] = [
    {"os_family": "debian_like", "codename": "noble"},
    {"os_family": "debian_like", "codename": "mantic"},
    {"os_family": "debian_like", "codename": "jammy"},
    {"os_family": "debian_like", "codename": "focal"},
    {"os_family": "debian_like", "codename": "bookworm"},
    {"os_family": "debian_like", "codename": "bullseye"},
    {"os_family": "rhel_like", "codename": "8"},
    {"os_family": "rhel_like", "codename": "9"},
]

DOCKER_REPO_URL_TEMPLATE_DEFAULT: str = "https://download.docker.com/linux/{distribution}"
DOCKER_KEY_URL_TEMPLATE_DEFAULT: str = "https://download.docker.com/linux/{distribution}/gpg"
DOCKER_UPSTREAM_DISTRIBUTIONS_DEFAULT: List[str] = [
    "ubuntu",
    "debian",
    "raspbian",
    "centos",
    "rhel",
    "fedora",
]

DOCKER_STALE_PACKAGES_DEFAULT: Dict[OsFamily, List[str]] = {
    OsFamily.DEBIAN_LIKE: [
        "docker.io",
        "docker-doc",
        "docker-compose",
        "docker-compose-v2",
        "podman-docker",
        "containerd",
        "runc",
    ],
    OsFamily.RHEL_LIKE: [
        "docker",
        "docker-client",
        "docker-client-latest",
        "docker-common",
        "docker-latest",
        "docker-latest-logrotate",
        "docker-logrotate",
        "docker-engine",
        "podman",
        "runc",
    ],
}

DOCKER_PREREQUISITE_PACKAGES_DEFAULT: Dict[OsFamily, List[str]] = {
    OsFamily.DEBIAN_LIKE: [
        "apt-transport-https",
        "ca-certificates",
        "curl",
        "gnupg",
        "lsb-release",
    ],
    OsFamily.RHEL_LIKE: [
        "ca-certificates",
        "curl",
        "gnupg2",
        "yum-utils",
    ],
}

DOCKER_PACKAGES_DEFAULT: List[str] = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]

SHELL_PLUGINS_DEFAULT: Dict[str, str] = {
    "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions",
    "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting.git",
}

SHELL_OMZ_PLUGINS_DEFAULT: List[str] = [
    "git",
    "docker",
    "kubectl",
    "zsh-autosuggestions",
    "zsh-syntax-highlighting",
    "history",
    "colored-man-pages",
]

MANAGED_BLOCK_BEGIN_DEFAULT: str = "# >>> host-provisioner managed block >>>"
MANAGED_BLOCK_END_DEFAULT: str = "# <<< host-provisioner managed block <<<"


class SupportedPlatform(BaseModel):
    """One (os_family, codename) pair of the support matrix."""

    os_family: OsFamily
    codename: str


class PackageManagerSettings(BaseSettings):
    """Filesystem locations owned by the native package managers."""
    model_config = SettingsConfigDict(env_prefix="PKG_", extra="ignore")

    apt_keyring_dir: Path = Field(default=Path("/etc/apt/keyrings"),
                                  description="Directory holding dearmored apt signing keys.")
    apt_sources_dir: Path = Field(default=Path("/etc/apt/sources.list.d"),
                                  description="Directory holding apt repository descriptors.")
    rpm_keyring_dir: Path = Field(default=Path("/etc/pki/rpm-gpg"),
                                  description="Directory holding armored rpm signing keys.")
    yum_repos_dir: Path = Field(default=Path("/etc/yum.repos.d"),
                                description="Directory holding yum/dnf repository descriptors.")
    yum_command: Optional[str] = Field(default=None,
                                       description="Force 'yum' or 'dnf'. Auto-detected when unset.")


class DockerSettings(BaseSettings):
    """Container runtime installation settings."""
    model_config = SettingsConfigDict(env_prefix="DOCKER_", extra="ignore")

    repo_name: str = Field(default="docker", description="Base name of the key and repository descriptor files.")
    repo_url_template: str = Field(default=DOCKER_REPO_URL_TEMPLATE_DEFAULT,
                                   description="Repository base URL. Supports {distribution}, {codename}, {architecture}.")
    key_url_template: str = Field(default=DOCKER_KEY_URL_TEMPLATE_DEFAULT,
                                  description="Signing key URL. Supports {distribution}, {codename}, {architecture}.")
    key_sha256: Optional[str] = Field(default=None,
                                      description="Optional pinned SHA-256 of the fetched signing key.")
    ca_bundle: Optional[Path] = Field(default=None,
                                      description="CA bundle used to validate the key endpoint. System store when unset.")
    fetch_timeout: int = Field(default=60, description="Timeout in seconds for key and installer downloads.")
    channel: str = Field(default="stable", description="Repository channel/component.")
    distribution_aliases: Dict[str, str] = Field(
        default_factory=lambda: {"rocky": "centos", "almalinux": "centos", "ol": "centos"},
        description="Maps os-release IDs without an upstream repository to one that has one.",
    )
    upstream_distributions: List[str] = Field(
        default_factory=lambda: list(DOCKER_UPSTREAM_DISTRIBUTIONS_DEFAULT),
        description="Distributions the repository serves. Other IDs fall back to their first listed ID_LIKE entry.",
    )

    stale_packages: Dict[OsFamily, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DOCKER_STALE_PACKAGES_DEFAULT.items()})
    prerequisite_packages: Dict[OsFamily, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DOCKER_PREREQUISITE_PACKAGES_DEFAULT.items()})
    packages: List[str] = Field(default_factory=lambda: list(DOCKER_PACKAGES_DEFAULT))
    services: List[str] = Field(default_factory=lambda: ["docker.service", "containerd.service"])
    group: str = Field(default="docker", description="Group granting non-root access to the runtime.")

    runtime_command: str = Field(default="docker", description="Runtime CLI used by the verifier.")
    smoke_image: str = Field(default="hello-world", description="Image run as the post-install smoke test.")


class ShellSettings(BaseSettings):
    """Companion shell environment settings."""
    model_config = SettingsConfigDict(env_prefix="SHELL_ENV_", extra="ignore")

    packages: List[str] = Field(default_factory=lambda: ["zsh", "curl", "git"])
    home_dir: Optional[Path] = Field(default=None, description="Target home directory. Current user's when unset.")
    oh_my_zsh_installer_url: str = Field(
        default="https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh")
    starship_installer_url: str = Field(default="https://starship.rs/install.sh")
    plugins: Dict[str, str] = Field(default_factory=lambda: dict(SHELL_PLUGINS_DEFAULT))
    omz_plugins: List[str] = Field(default_factory=lambda: list(SHELL_OMZ_PLUGINS_DEFAULT))
    theme: str = Field(default="clean")
    startup_file: str = Field(default=".zshrc", description="Startup file, relative to the home directory.")
    managed_block_begin: str = Field(default=MANAGED_BLOCK_BEGIN_DEFAULT)
    managed_block_end: str = Field(default=MANAGED_BLOCK_END_DEFAULT)


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(env_prefix="PROVISION_", extra="ignore")

    log_prefix: str = Field(default=LOG_PREFIX_DEFAULT,
                            description="Prefix for log messages from the provisioner.")
    os_release_path: Path = Field(default=Path(OS_RELEASE_PATH_DEFAULT),
                                  description="os-release file read by the platform detector.")
    supported_platforms: List[SupportedPlatform] = Field(
        default_factory=lambda: [SupportedPlatform(**p) for p in SUPPORTED_PLATFORMS_DEFAULT],
        description="Exact (os_family, codename) pairs the provisioner accepts.",
    )

    package_manager: PackageManagerSettings = Field(default_factory=PackageManagerSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    shell: ShellSettings = Field(default_factory=ShellSettings)

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))
