"""Dependency installation for freshly scaffolded recipes."""

from __future__ import annotations

from pathlib import Path

from cookbook.config import Config
from cookbook.errors import BootstrapError
from cookbook.utils import console, run_command


class Bootstrap:
    """Installs a recipe's npm dependencies.

    Only recipes whose template ships a ``package.json`` need installing;
    :meth:`needs_install` tells the two apart.
    """

    def __init__(self, project_path: str | Path, config: Config | None = None) -> None:
        self.project_path = Path(project_path)
        self.config = config or Config()

    def needs_install(self) -> bool:
        return (self.project_path / "package.json").is_file()

    async def install(self) -> None:
        """Run ``npm install`` in the recipe directory.

        Raises:
            BootstrapError: If npm is missing, fails, or times out.
        """
        cmd = [self.config.npm_command, "install"]
        cmd_str = " ".join(cmd)
        console.print(f"[cyan]Installing dependencies[/cyan] ({cmd_str}) in {self.project_path}")

        try:
            rc, _stdout, stderr = await run_command(
                cmd, cwd=self.project_path, timeout=self.config.install_timeout
            )
        except OSError as exc:
            raise BootstrapError(
                f"Failed to run '{cmd_str}': {exc}", command=cmd_str
            ) from exc

        if rc != 0:
            raise BootstrapError(
                f"Dependency installation failed (exit {rc}): {cmd_str}",
                command=cmd_str,
                stderr=stderr,
            )
        console.print("[green]Dependencies installed[/green]")
