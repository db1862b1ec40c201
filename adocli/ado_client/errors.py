from __future__ import annotations

from typing import Optional


class ADOError(Exception):
    """Base class for every failure the CLI reports to the user."""


class UsageError(ADOError):
    def __init__(self, message: str, usage: Optional[str] = None) -> None:
        super().__init__(message)
        self.usage = usage


class ConfigError(ADOError):
    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.hint = hint


class ADORequestError(ADOError):
    """Non-2xx answer from Azure DevOps. ``preview`` is a bounded slice of the body."""

    def __init__(self, status_code: int, preview: str) -> None:
        super().__init__(f"Azure DevOps API request failed ({status_code}). {preview}".rstrip())
        self.status_code = status_code
        self.preview = preview


class ADODomainError(ADOError):
    pass
