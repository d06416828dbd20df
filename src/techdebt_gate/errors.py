from __future__ import annotations
from typing import Optional


class TechDebtGateError(Exception):
    """Base class for errors raised by techdebt-gate."""


class RegistryFrozenError(TechDebtGateError):
    pass


class ConfigError(TechDebtGateError):
    pass


class SourceError(TechDebtGateError):
    """A declaration source could not be read, or one declaration in it is malformed."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.line = line

    def __str__(self) -> str:
        if self.path and self.line:
            return f"{self.path}:{self.line}: {self.message}"
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message
