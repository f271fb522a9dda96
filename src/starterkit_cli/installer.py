"""Install the new project's JavaScript dependencies."""

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from .errors import InstallerError

INSTALL_MESSAGE = "Installing modules -- Please wait..."
# Preferred tool first; each entry is (name, arguments).
INSTALLERS = [
    ("yarn", []),
    ("npm", ["install"]),
]


@dataclass(frozen=True)
class Installer:
    name: str
    executable: str
    args: list[str] = field(default_factory=list)

    @property
    def command(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def run_prefix(self) -> str:
        """How to invoke a package.json script with this tool."""
        return "yarn" if self.name == "yarn" else "npm run"


def select_installer(which: Callable[[str], Optional[str]] = shutil.which) -> Installer:
    for name, args in INSTALLERS:
        executable = which(name)
        if executable:
            return Installer(name=name, executable=executable, args=list(args))
    tried = ", ".join(name for name, _ in INSTALLERS)
    raise InstallerError(f"No package manager found on PATH (tried {tried}). Install Node.js and npm first.")


def run_installer(installer: Installer, cwd: Path, *, console: Console) -> None:
    """Run the installer in ``cwd``, echoing its output under a spinner.

    The spinner runs on rich's own refresh timer and reflects nothing about
    actual install progress.
    """
    try:
        process = subprocess.Popen(
            installer.command,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
    except OSError as e:
        raise InstallerError(f"Couldn't start {installer.name}: {e}") from e

    with console.status(INSTALL_MESSAGE, spinner="line"):
        with process:
            for line in process.stdout:
                console.print(line.rstrip("\n"), markup=False, highlight=False)
            returncode = process.wait()

    if returncode != 0:
        raise InstallerError(
            f"Couldn't install packages: {' '.join([installer.name, *installer.args])} exited with code {returncode}",
            returncode=returncode,
        )
