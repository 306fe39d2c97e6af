"""Error taxonomy for the cookbook toolkit.

Every failure surfaced by the loader, resolver, scaffold engine and git helper
is a ``CookbookError`` subclass carrying enough context (a path, a key, a git
command) to diagnose the problem without reading the internals.
"""

from __future__ import annotations

from pathlib import Path


class CookbookError(Exception):
    """Base class for all cookbook errors."""


class ParseError(CookbookError):
    """Raised when a YAML tree is absent or structurally malformed."""

    def __init__(
        self,
        message: str,
        path: str | Path | None = None,
        line: int | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.line = line
        location = ""
        if self.path is not None:
            location = f" ({self.path}"
            location += f", line {line})" if line is not None else ")"
        super().__init__(f"{message}{location}")


class ConfigError(CookbookError):
    """Raised when a version file is missing required keys or has bad values."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        path: str | Path | None = None,
    ) -> None:
        self.key = key
        self.path = Path(path) if path is not None else None
        super().__init__(f"{message}: {self.path}" if self.path is not None else message)


class FileSystemError(CookbookError):
    """Raised when a copy, read or write fails, or the destination is occupied."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(f"{message}: {self.path}" if self.path is not None else message)


class GitError(CookbookError):
    """Raised when a git operation fails."""

    def __init__(self, message: str, command: str = "", stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(message)


class ValidationError(CookbookError):
    """Raised for invalid user input (slug, title, enum values, working dir)."""

    def __init__(self, message: str, value: str | None = None) -> None:
        self.value = value
        super().__init__(message)


class BootstrapError(CookbookError):
    """Raised when installing a recipe's dependencies fails."""

    def __init__(self, message: str, command: str = "", stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(message)
