# provision/trust_installer.py
# -*- coding: utf-8 -*-
"""
Installs repository signing keys and registers the repository that uses them.

The key is only ever fetched over HTTPS with certificate validation. A key
that cannot be authenticated aborts the run: installing it would make the
repository look trusted when it is not.
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from common.command_utils import get_symbols, log_message
from common.file_utils import write_file_atomic
from common.network_utils import fetch_https
from common.package_manager import PackageManager, RepositorySpec
from common.platform_info import (
    DEBIAN_ARCHITECTURE_NAMES,
    Architecture,
    OsFamily,
    PlatformInfo,
)
from provision.config_models import AppSettings, DockerSettings
from provision.exceptions import TrustFetchError

module_logger = logging.getLogger(__name__)

ARMORED_PUBLIC_KEY_HEADER = b"-----BEGIN PGP PUBLIC KEY BLOCK-----"
OPENPGP_PUBLIC_KEY_TAG = 6


@dataclass(frozen=True)
class TrustMaterial:
    """Installed signing key and the repository it authenticates."""

    key_source_url: str
    key_install_path: Path
    repository_url_template: str
    signed_by_reference: str


def looks_like_public_key(data: bytes) -> bool:
    """
    True for an ASCII-armored public key block or a binary OpenPGP
    public-key packet (old or new packet format).
    """
    if not data:
        return False
    if data.lstrip().startswith(ARMORED_PUBLIC_KEY_HEADER):
        return True
    first = data[0]
    if first & 0xC0 == 0xC0:
        return first & 0x3F == OPENPGP_PUBLIC_KEY_TAG
    if first & 0xC0 == 0x80:
        return (first >> 2) & 0x0F == OPENPGP_PUBLIC_KEY_TAG
    return False


def repository_distribution(
    platform_info: PlatformInfo, docker_settings: DockerSettings
) -> str:
    """
    Picks the distribution path the upstream repository is published under:
    the os-release ID if the repository serves it (after aliasing), otherwise
    the first ID_LIKE entry it serves.
    """
    aliases = docker_settings.distribution_aliases
    upstream = set(docker_settings.upstream_distributions)
    for candidate in (platform_info.distribution,) + tuple(platform_info.id_like):
        candidate = aliases.get(candidate, candidate)
        if candidate in upstream:
            return candidate
    distribution = platform_info.distribution or platform_info.os_family.value
    return aliases.get(distribution, distribution)


def template_values(
    platform_info: PlatformInfo, docker_settings: DockerSettings
) -> Dict[str, str]:
    distribution = repository_distribution(platform_info, docker_settings)
    return {
        "distribution": distribution,
        "codename": platform_info.codename,
        "architecture": platform_info.architecture.value,
    }


class TrustInstaller:
    """
    Fetches, converts and installs signing keys, and registers repositories
    that reference them through the package manager.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        package_manager: PackageManager,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.docker_settings = app_settings.docker
        self.package_manager = package_manager
        self.logger = logger or module_logger
        self.symbols = get_symbols(app_settings)

    def key_source_url(self, platform_info: PlatformInfo) -> str:
        """Renders the configured key URL template for the platform."""
        return self.docker_settings.key_url_template.format(
            **template_values(platform_info, self.docker_settings)
        )

    def key_install_path(self) -> Path:
        return self.package_manager.trust_store_dir / (
            f"{self.docker_settings.repo_name}{self.package_manager.key_file_suffix}"
        )

    def install_trust(self, source_url: str) -> TrustMaterial:
        """
        Fetches the key at source_url and installs it world-readable in the
        package manager's trust store.

        Re-running with the same key leaves the installed file byte-identical.

        Raises:
            TrustFetchError: The key could not be fetched over an
                authenticated channel or is not OpenPGP public-key material.
        """
        log_message(
            f"{self.symbols.get('key', '🔑')} Fetching signing key from {source_url}",
            "info",
            self.logger,
            self.app_settings,
        )
        raw_key = self._fetch_key(source_url)
        key_material = self.package_manager.prepare_trust_material(raw_key)
        key_path = self.key_install_path()

        write_file_atomic(
            key_material,
            key_path,
            0o644,
            self.app_settings,
            current_logger=self.logger,
        )
        log_message(
            f"{self.symbols.get('success', '✅')} Signing key installed at {key_path}.",
            "success",
            self.logger,
            self.app_settings,
        )
        return TrustMaterial(
            key_source_url=source_url,
            key_install_path=key_path,
            repository_url_template=self.docker_settings.repo_url_template,
            signed_by_reference=str(key_path),
        )

    def register_repository(
        self, material: TrustMaterial, platform_info: PlatformInfo
    ) -> Path:
        """
        Composes the repository descriptor for the platform and hands it to
        the package manager.

        Returns:
            Path of the written descriptor.
        """
        values = template_values(platform_info, self.docker_settings)
        architectures = ()
        if (
            self.package_manager.os_family == OsFamily.DEBIAN_LIKE
            and platform_info.architecture != Architecture.UNKNOWN
        ):
            architectures = (DEBIAN_ARCHITECTURE_NAMES[platform_info.architecture],)

        repo_spec = RepositorySpec(
            name=self.docker_settings.repo_name,
            url=material.repository_url_template.format(**values).rstrip("/"),
            suite=platform_info.codename,
            signed_by=Path(material.signed_by_reference),
            components=(self.docker_settings.channel,),
            architectures=architectures,
            description=f"Docker CE ({values['distribution']} {platform_info.codename})",
        )
        descriptor_path = self.package_manager.add_signed_repository(repo_spec)
        log_message(
            f"{self.symbols.get('success', '✅')} Repository '{repo_spec.name}' registered at {descriptor_path}.",
            "success",
            self.logger,
            self.app_settings,
        )
        return descriptor_path

    def _fetch_key(self, source_url: str) -> bytes:
        content = fetch_https(
            source_url,
            timeout=self.docker_settings.fetch_timeout,
            ca_bundle=self.docker_settings.ca_bundle,
            error_cls=TrustFetchError,
            current_logger=self.logger,
        )
        if not looks_like_public_key(content):
            raise TrustFetchError(
                f"Content served at {source_url} is not an OpenPGP public key.",
                source_url=source_url,
            )

        expected_digest = self.docker_settings.key_sha256
        if expected_digest:
            actual_digest = hashlib.sha256(content).hexdigest()
            if actual_digest.lower() != expected_digest.strip().lower():
                raise TrustFetchError(
                    f"Signing key from {source_url} has SHA-256 {actual_digest}, expected {expected_digest}.",
                    source_url=source_url,
                )

        self.logger.debug(
            f"Fetched {len(content)} bytes of key material from {source_url}"
        )
        return content
