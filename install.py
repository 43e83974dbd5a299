#!/usr/bin/env python3
"""
Entry point for the host provisioner.

Detects the host platform, checks it against the support matrix and
installs the requested components (Docker Engine by default), then verifies
that they actually work.
"""

import argparse
import logging
import sys
from typing import List, Optional

from common.core_utils import setup_logging
from installer import InstallerRegistry
from installer.orchestrator import ProvisioningOrchestrator
from provision.config_loader import DEFAULT_CONFIG_FILE, load_app_settings
from provision.config_models import LOG_PREFIX_DEFAULT, SYMBOLS_DEFAULT
from provision.exceptions import (
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    ProvisioningError,
)

DEFAULT_COMPONENTS = ["docker"]

logger = logging.getLogger("host_provisioner")


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.
    """
    parser = argparse.ArgumentParser(
        description="Provision a Linux host with a container runtime and shell environment"
    )

    # General options
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--config-file",
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to the YAML configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--log-file", default=None, help="Also append logs to this file")
    parser.add_argument(
        "--log-prefix",
        default=None,
        help=f"Prefix for every log line (default: {LOG_PREFIX_DEFAULT})",
    )
    parser.add_argument(
        "--os-release-path",
        default=None,
        help="Read platform identification from this file instead of /etc/os-release",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("list", help="List available components")
    subparsers.add_parser(
        "check", help="Detect the platform and check that it is supported"
    )

    install_parser = subparsers.add_parser("install", help="Install components")
    install_parser.add_argument(
        "components",
        nargs="*",
        help=f"Components to install (default: {' '.join(DEFAULT_COMPONENTS)})",
    )
    install_parser.add_argument(
        "--channel", default=None, help="Docker repository channel (e.g. stable, test)"
    )
    install_parser.add_argument(
        "--smoke-image", default=None, help="Image run by the Docker smoke test"
    )
    install_parser.add_argument(
        "--home-dir", default=None, help="Home directory to set the shell up in"
    )

    verify_parser = subparsers.add_parser(
        "verify", help="Verify already installed components"
    )
    verify_parser.add_argument(
        "components",
        nargs="*",
        help=f"Components to verify (default: {' '.join(DEFAULT_COMPONENTS)})",
    )
    verify_parser.add_argument(
        "--smoke-image", default=None, help="Image run by the Docker smoke test"
    )

    return parser.parse_args(args)


def _report_failure(error: ProvisioningError) -> None:
    diagnostic = f"Provisioning failed during {error.stage}: {error}"
    logger.error(diagnostic)
    print(diagnostic, file=sys.stderr)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0 on success, otherwise the failing error's exit code.
    """
    parsed_args = parse_args(args)

    setup_logging(
        log_level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        log_file=parsed_args.log_file,
        log_prefix=parsed_args.log_prefix or LOG_PREFIX_DEFAULT,
        symbols=SYMBOLS_DEFAULT,
    )

    try:
        app_settings = load_app_settings(parsed_args, current_logger=logger)
        orchestrator = ProvisioningOrchestrator(app_settings, logger)

        if parsed_args.command == "list":
            logger.info("Available components:")
            for name, installer_class in sorted(
                InstallerRegistry.get_all_installers().items()
            ):
                logger.info(
                    f"  {name}: {installer_class.metadata.get('description', '')}"
                )
            return EXIT_SUCCESS

        if parsed_args.command == "check":
            platform_info = orchestrator.check_platform()
            logger.info(f"Platform {platform_info.describe()} is supported")
            return EXIT_SUCCESS

        if parsed_args.command == "verify":
            reports = orchestrator.verify(parsed_args.components or DEFAULT_COMPONENTS)
            for name, report in reports.items():
                logger.info(f"  {name}: OK ({report.version_string})")
            return EXIT_SUCCESS

        # "install" is also the default when no subcommand is given.
        components = getattr(parsed_args, "components", None) or DEFAULT_COMPONENTS
        orchestrator.install(components)
        logger.info("Provisioning completed successfully")
        return EXIT_SUCCESS

    except ProvisioningError as e:
        _report_failure(e)
        return e.exit_code
    except KeyboardInterrupt:
        logger.error("Provisioning interrupted")
        print("Provisioning interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
