# tests/fakes.py
"""Host doubles shared by the test modules."""
import subprocess
from typing import Dict, List, Optional, Sequence, Tuple
from unittest.mock import MagicMock

import requests

ARMORED_KEY = (
    b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n\n"
    b"mQINBFit2ioBEADhWpZ8/wvZ6hUTiXOwQHXMAlaFHcPH9hAtr4F1y2+OYdbtMuth\n"
    b"-----END PGP PUBLIC KEY BLOCK-----\n"
)
DEARMORED_PREFIX = b"\x99\x02\x0d"

UBUNTU_NOBLE_OS_RELEASE = """\
PRETTY_NAME="Ubuntu 24.04 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION="24.04 LTS (Noble Numbat)"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
UBUNTU_CODENAME=noble
"""

UBUNTU_WARTY_OS_RELEASE = """\
NAME="Ubuntu"
VERSION="4.10 (Warty Warthog)"
ID=ubuntu
ID_LIKE=debian
VERSION_ID="4.10"
VERSION_CODENAME=warty
"""

POP_JAMMY_OS_RELEASE = """\
NAME="Pop!_OS"
VERSION="22.04 LTS"
ID=pop
ID_LIKE="ubuntu debian"
VERSION_ID="22.04"
VERSION_CODENAME=jammy
UBUNTU_CODENAME=jammy
"""

ROCKY_9_OS_RELEASE = """\
NAME="Rocky Linux"
VERSION="9.3 (Blue Onyx)"
ID="rocky"
ID_LIKE="rhel centos fedora"
VERSION_ID="9.3"
PLATFORM_ID="platform:el9"
"""


class FakeHost:
    """
    Stands in for subprocess.run. Answers the package manager, gpg, docker,
    zsh and account commands the provisioner issues and records every call
    with any leading "sudo" stripped.
    """

    def __init__(
        self,
        installed: Sequence[str] = (),
        failures: Optional[Dict[Tuple[str, ...], Tuple[int, str]]] = None,
        binaries: Sequence[str] = (
            "apt-get",
            "dpkg-query",
            "gpg",
            "systemctl",
            "docker",
            "git",
            "zsh",
            "sh",
        ),
        docker_version: str = "Docker version 27.0.3, build 7d4bcd8",
        zsh_version: str = "zsh 5.9 (x86_64-ubuntu-linux-gnu)",
        missing: Sequence[str] = (),
    ):
        self.installed = set(installed)
        self.failures = dict(failures or {})
        self.binaries = set(binaries)
        self.missing = set(missing)
        self.docker_version = docker_version
        self.zsh_version = zsh_version
        self.calls: List[List[str]] = []
        self.inputs: List[object] = []

    def which(self, name, *args, **kwargs):
        return f"/usr/bin/{name}" if name in self.binaries else None

    def ran(self, *prefix: str) -> bool:
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)

    def run(
        self,
        cmd,
        check=False,
        shell=False,
        capture_output=False,
        text=True,
        input=None,
        cwd=None,
        env=None,
        **kwargs,
    ):
        args = list(cmd) if isinstance(cmd, (list, tuple)) else str(cmd).split()
        if args and args[0] == "sudo":
            args = args[1:]
        self.calls.append(args)
        self.inputs.append(input)

        if args and args[0] in self.missing:
            raise FileNotFoundError(2, "No such file or directory", args[0])

        returncode, stdout, stderr = self._respond(args, input)
        if not text:
            stdout = stdout if isinstance(stdout, bytes) else stdout.encode()
            stderr = stderr if isinstance(stderr, bytes) else stderr.encode()
        if check and returncode != 0:
            raise subprocess.CalledProcessError(
                returncode, cmd, output=stdout, stderr=stderr
            )
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)

    def _respond(self, args: List[str], cmd_input):
        for prefix, (returncode, stderr) in self.failures.items():
            if tuple(args[: len(prefix)]) == prefix:
                return returncode, "", stderr

        program = args[0] if args else ""
        if program == "dpkg-query":
            name = args[-1]
            if name in self.installed:
                return 0, "installed", ""
            return 1, "", f"dpkg-query: no packages found matching {name}"
        if program == "rpm":
            name = args[-1]
            if name in self.installed:
                return 0, f"{name}-1.0-1.el9.x86_64", ""
            return 1, f"package {name} is not installed", ""
        if program in ("apt-get", "dnf", "yum") and len(args) > 1:
            packages = [a for a in args[2:] if not a.startswith("-")]
            if args[1] == "install":
                self.installed.update(packages)
            elif args[1] == "remove":
                self.installed.difference_update(packages)
            return 0, "", ""
        if program == "gpg" and "--dearmor" in args:
            return 0, DEARMORED_PREFIX + bytes(cmd_input or b""), b""
        if program == "docker":
            if "--version" in args:
                return 0, self.docker_version + "\n", ""
            if "run" in args:
                return 0, "\nHello from Docker!\n", ""
        if program == "zsh":
            if "--version" in args:
                return 0, self.zsh_version + "\n", ""
        return 0, "", ""


def make_response(
    content: bytes = ARMORED_KEY,
    status_code: int = 200,
    url: str = "https://download.docker.com/linux/ubuntu/gpg",
):
    """A requests.Response stand-in for requests.get."""
    response = MagicMock()
    response.content = content
    response.status_code = status_code
    response.url = url
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Client Error", response=response
        )
    return response
