"""Git operations for newly scaffolded recipes.

Creates the ``feat/<slug>`` branch a new recipe is developed on and, when
asked, commits the scaffolded files. All work is delegated to the ``git``
executable through asyncio subprocesses.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from cookbook.errors import GitError
from cookbook.utils import console

DEFAULT_BRANCH_PREFIX = "feat/"


def branch_name_for(slug: str, prefix: str = DEFAULT_BRANCH_PREFIX) -> str:
    """Return the branch a recipe is created on, e.g. ``feat/my-recipe``."""
    return f"{prefix}{slug}"


async def _run_git(
    *args: str,
    cwd: str | Path | None = None,
    timeout: float = 60.0,
) -> tuple[str, str]:
    """Run a git command asynchronously and return (stdout, stderr).

    Raises GitError if git cannot be started, times out, or exits non-zero.
    """
    cmd = ["git"] + list(args)
    cmd_str = " ".join(cmd)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
    except OSError as exc:
        raise GitError(f"Failed to execute git: {exc}", command=cmd_str) from exc

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        raise GitError(
            f"Git command timed out after {timeout}s: {cmd_str}",
            command=cmd_str,
        )

    stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
    stderr = stderr_bytes.decode("utf-8", errors="replace").strip()

    if process.returncode != 0:
        raise GitError(
            f"Git command failed (exit {process.returncode}): {cmd_str}\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )

    return stdout, stderr


class GitOperations:
    """Branch and commit helper bound to one working tree.

    ``repo_path`` may be any directory inside the working tree; git resolves
    the top level itself.
    """

    def __init__(
        self,
        repo_path: str | Path = ".",
        timeout: float = 60.0,
        branch_prefix: str = DEFAULT_BRANCH_PREFIX,
    ) -> None:
        self.repo_path = Path(repo_path).resolve()
        self.timeout = timeout
        self.branch_prefix = branch_prefix

    async def _git(self, *args: str) -> tuple[str, str]:
        return await _run_git(*args, cwd=self.repo_path, timeout=self.timeout)

    def branch_name_for(self, slug: str) -> str:
        return branch_name_for(slug, self.branch_prefix)

    # -- Queries -----------------------------------------------------------

    async def is_git_repo(self) -> bool:
        """Return ``True`` if ``repo_path`` is inside a git working tree."""
        if not self.repo_path.is_dir():
            return False
        try:
            stdout, _ = await self._git("rev-parse", "--is-inside-work-tree")
        except GitError:
            return False
        return stdout == "true"

    async def ensure_repo(self) -> None:
        """Raise ``GitError`` unless ``repo_path`` is inside a working tree."""
        if not await self.is_git_repo():
            raise GitError(
                f"Not a git repository: {self.repo_path}. "
                "Run this from inside a git working tree or pass --no-git."
            )

    async def current_branch(self) -> str:
        """Name of the checked-out branch.

        Raises:
            GitError: Outside a working tree or on a detached HEAD.
        """
        await self.ensure_repo()
        stdout, _ = await self._git("symbolic-ref", "--short", "-q", "HEAD")
        return stdout

    async def branch_exists(self, name: str) -> bool:
        try:
            await self._git("rev-parse", "--verify", "--quiet", f"refs/heads/{name}")
        except GitError:
            return False
        return True

    # -- Mutations ---------------------------------------------------------

    async def init(self) -> None:
        """Initialise a repository at ``repo_path`` (created if missing)."""
        self.repo_path.mkdir(parents=True, exist_ok=True)
        await self._git("init")
        console.print(f"[green]Initialized git repository in[/green] {self.repo_path}")

    async def create_branch(
        self,
        name: str,
        *,
        commit: bool = False,
        message: str | None = None,
        paths: list[str | Path] | None = None,
    ) -> str:
        """Create and check out branch *name*, optionally committing.

        Args:
            name: Full branch name (see :meth:`branch_name_for`).
            commit: Stage and commit after switching.
            message: Commit message; defaults to ``"Initial commit for <name>"``.
            paths: Paths to stage; everything when omitted.

        Returns:
            The branch name.

        Raises:
            GitError: Outside a working tree, if the branch already exists,
                or if checkout/commit fails.
        """
        await self.ensure_repo()

        if await self.branch_exists(name):
            raise GitError(f"Failed to create branch '{name}': branch already exists.")

        await self._git("checkout", "-b", name)
        console.print(f"[cyan]Created and checked out branch[/cyan] [bold]{name}[/bold]")

        if commit:
            await self.commit(message or f"Initial commit for {name}", paths=paths)

        return name

    async def commit(self, message: str, paths: list[str | Path] | None = None) -> str:
        """Stage *paths* (or all changes) and commit. Returns the new HEAD sha."""
        await self.ensure_repo()

        if paths:
            await self._git("add", "--", *(str(p) for p in paths))
        else:
            await self._git("add", "-A")

        await self._git("commit", "-m", message)
        sha, _ = await self._git("rev-parse", "HEAD")
        console.print(f"[green]Committed[/green] {sha[:8]} {message}")
        return sha
