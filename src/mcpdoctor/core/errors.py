"""Exceptions raised by mcp-doctor."""

from __future__ import annotations


class MCPDoctorError(Exception):
    """Base class for mcp-doctor errors."""


class ConfigFileError(MCPDoctorError):
    """A client configuration file could not be read, validated or written."""

    def __init__(self, message: str, path=None, errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


class BackupError(MCPDoctorError):
    """A backup could not be created, restored or deleted."""


class AdvisorError(MCPDoctorError):
    """The AI advisor is unavailable or returned an unusable reply."""


class InvalidFixError(MCPDoctorError):
    """A fix is structurally invalid (programmer error, aborts the cycle)."""


class ConfirmationRequiredError(MCPDoctorError):
    """A plan that requires confirmation was applied without a confirm callback."""
