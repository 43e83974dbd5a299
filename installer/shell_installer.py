# installer/shell_installer.py
# -*- coding: utf-8 -*-
"""
Shell environment installer module.

Sets up zsh for the target user: Oh My Zsh, the Starship prompt, a couple of
community plugins, and a managed block in the zsh startup file that wires
them together.
"""

import logging
import os
import pwd
from pathlib import Path
from typing import Dict, List, Optional

from common.command_utils import (
    command_exists,
    log_message,
    run_command,
    run_elevated_command,
)
from common.file_utils import upsert_managed_block
from common.network_utils import fetch_https
from common.package_manager import PackageManager
from common.platform_info import PlatformInfo
from installer.base_installer import BaseInstaller
from installer.registry import InstallerRegistry
from provision.config_models import AppSettings
from provision.pipeline import InstallStep
from provision.verifier import PostInstallVerifier


def invoking_user() -> Optional[str]:
    """The non-root user behind sudo, if any."""
    user = os.environ.get("SUDO_USER")
    if not user or user == "root":
        return None
    return user


def resolve_home_dir(configured: Optional[Path]) -> Path:
    """
    The configured home directory, else the invoking user's home when running
    under sudo, else the current user's.
    """
    if configured:
        return Path(configured)
    user = invoking_user()
    if user:
        try:
            return Path(pwd.getpwnam(user).pw_dir)
        except KeyError:
            return Path.home()
    return Path.home()


@InstallerRegistry.register(
    name="shell",
    metadata={
        "estimated_time": 90,
        "description": "Zsh with Oh My Zsh, Starship prompt and plugins",
    },
)
class ShellInstaller(BaseInstaller):
    """
    Installer for the interactive zsh environment.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        platform_info: PlatformInfo,
        package_manager: PackageManager,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, platform_info, package_manager, logger)
        self.shell_settings = app_settings.shell
        self.home_dir = resolve_home_dir(self.shell_settings.home_dir)
        self.target_user = invoking_user() if os.geteuid() == 0 else None

    @property
    def oh_my_zsh_dir(self) -> Path:
        return self.home_dir / ".oh-my-zsh"

    @property
    def custom_plugins_dir(self) -> Path:
        return self.oh_my_zsh_dir / "custom" / "plugins"

    @property
    def startup_file(self) -> Path:
        return self.home_dir / self.shell_settings.startup_file

    def build_steps(self) -> List[InstallStep]:
        manager = self.package_manager
        return [
            InstallStep(
                name="install-shell-packages",
                description="Install zsh and its tooling",
                action=lambda: manager.install_packages(self.shell_settings.packages),
            ),
            InstallStep(
                name="install-oh-my-zsh",
                description="Install Oh My Zsh",
                action=self._install_oh_my_zsh,
            ),
            InstallStep(
                name="install-starship",
                description="Install Starship prompt",
                action=self._install_starship,
            ),
            InstallStep(
                name="install-shell-plugins",
                description="Install Oh My Zsh plugins",
                action=self._install_plugins,
                critical=False,
            ),
            InstallStep(
                name="configure-shell-startup",
                description=f"Configure {self.shell_settings.startup_file}",
                action=self._configure_startup_file,
            ),
        ]

    def build_verifier(self) -> PostInstallVerifier:
        return PostInstallVerifier(
            self.app_settings,
            workload_command=["zsh", "-c", "true"],
            version_command=["zsh", "--version"],
            elevated_workload=False,
            logger=self.logger,
        )

    def _installer_env(self, extra: Dict[str, str]) -> Dict[str, str]:
        env = dict(os.environ)
        env["HOME"] = str(self.home_dir)
        env.update(extra)
        return env

    def _run_remote_script(
        self, url: str, args: List[str], env: Dict[str, str]
    ) -> None:
        script = fetch_https(
            url,
            timeout=self.app_settings.docker.fetch_timeout,
            ca_bundle=self.app_settings.docker.ca_bundle,
            current_logger=self.logger,
        )
        run_command(
            ["sh", "-s", "--"] + args,
            self.app_settings,
            cmd_input=script.decode("utf-8"),
            current_logger=self.logger,
            env=env,
        )

    def _install_oh_my_zsh(self) -> None:
        if self.oh_my_zsh_dir.is_dir():
            log_message(
                f"{self.symbols.get('info', 'ℹ️')} Oh My Zsh is already installed at {self.oh_my_zsh_dir}.",
                "info",
                self.logger,
                self.app_settings,
            )
            return

        # With KEEP_ZSHRC=yes the installer leaves an existing startup file
        # alone instead of replacing it with its template.
        self.startup_file.touch(exist_ok=True)
        self._run_remote_script(
            self.shell_settings.oh_my_zsh_installer_url,
            ["--unattended"],
            self._installer_env(
                {
                    "ZSH": str(self.oh_my_zsh_dir),
                    "RUNZSH": "no",
                    "CHSH": "no",
                    "KEEP_ZSHRC": "yes",
                }
            ),
        )

    def _install_starship(self) -> None:
        if command_exists("starship"):
            log_message(
                f"{self.symbols.get('info', 'ℹ️')} Starship is already installed.",
                "info",
                self.logger,
                self.app_settings,
            )
            return
        self._run_remote_script(
            self.shell_settings.starship_installer_url,
            ["-y"],
            self._installer_env({}),
        )

    def _install_plugins(self) -> None:
        self.custom_plugins_dir.mkdir(parents=True, exist_ok=True)
        for name, repo_url in self.shell_settings.plugins.items():
            target = self.custom_plugins_dir / name
            if target.exists():
                log_message(
                    f"{self.symbols.get('info', 'ℹ️')} Plugin '{name}' is already present.",
                    "info",
                    self.logger,
                    self.app_settings,
                )
                continue
            run_command(
                ["git", "clone", "--depth", "1", repo_url, str(target)],
                self.app_settings,
                current_logger=self.logger,
            )

    def _hand_over_to_target_user(self) -> None:
        """Gives files created as root in the user's home back to the user."""
        if not self.target_user:
            return
        paths = [p for p in (self.oh_my_zsh_dir, self.startup_file) if p.exists()]
        if not paths:
            return
        run_elevated_command(
            ["chown", "-R", f"{self.target_user}:"] + [str(p) for p in paths],
            self.app_settings,
            current_logger=self.logger,
        )

    def render_startup_block(self) -> str:
        plugins = "\n".join(f"    {name}" for name in self.shell_settings.omz_plugins)
        return (
            f'export ZSH="{self.oh_my_zsh_dir}"\n'
            f'ZSH_THEME="{self.shell_settings.theme}"\n'
            f"plugins=(\n{plugins}\n)\n"
            "source $ZSH/oh-my-zsh.sh\n"
            'eval "$(starship init zsh)"\n'
        )

    def _configure_startup_file(self) -> bool:
        changed = upsert_managed_block(
            self.startup_file,
            self.render_startup_block(),
            self.shell_settings.managed_block_begin,
            self.shell_settings.managed_block_end,
            self.app_settings,
            current_logger=self.logger,
        )
        self._hand_over_to_target_user()
        if changed:
            log_message(
                f"{self.symbols.get('success', '✅')} Updated {self.startup_file}. Run 'chsh -s $(which zsh)' to make zsh your login shell.",
                "success",
                self.logger,
                self.app_settings,
            )
        return True
