"""Production dependency installation via ``npm``."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from lambdapack.errors import InstallError

NPM_INSTALL_ARGS: tuple[str, ...] = ("install", "--quiet", "--production", "--no-optional")


@dataclass(slots=True)
class NpmInstaller:
    name: str = "npm"
    command: str = "npm"

    def argv(self) -> list[str]:
        return [self.command, *NPM_INSTALL_ARGS]

    def install(self, directory: Path) -> Path:
        if not (directory / "package.json").exists():
            raise InstallError(
                "No package.json in installation directory.",
                context={"installer": self.name, "directory": str(directory)},
            )

        # HOME points at the install dir so npm's cache and config stay inside it
        env = dict(os.environ)
        env["HOME"] = str(directory)
        cmd = self.argv()
        try:
            result = subprocess.run(
                cmd,
                cwd=str(directory),
                env=env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise InstallError(
                f"Installer `{self.command}` could not be started.",
                hint="Install npm or set the installer path in the packager config.",
                context={"installer": self.name, "command": " ".join(cmd)},
            ) from exc

        if result.returncode != 0:
            raise InstallError(
                "npm install failed.",
                hint="Check npm output for details.",
                context={
                    "installer": self.name,
                    "directory": str(directory),
                    "returncode": str(result.returncode),
                    "stderr": result.stderr[:2000] if result.stderr else "",
                    "command": " ".join(cmd),
                },
            )

        modules_dir = directory / "node_modules"
        modules_dir.mkdir(exist_ok=True)
        return modules_dir
