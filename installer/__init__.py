"""
Component installers.

Each module registers one component with the InstallerRegistry. Importing
this package registers all of them.
"""

from installer.base_installer import BaseInstaller
from installer.registry import InstallerRegistry
from installer import docker_installer, shell_installer  # noqa: F401

__all__ = ["BaseInstaller", "InstallerRegistry"]
