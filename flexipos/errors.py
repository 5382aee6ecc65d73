"""
Error types and process exit codes for flexipos.
"""

from __future__ import annotations

from typing import Optional

EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_IO_ERROR = 2


class InvalidFormatError(ValueError):
    """Raised when input data or a factory selector is malformed."""


class TerminateToolError(SystemExit):
    """Abort the running tool with an exit code and a diagnostic message."""

    exit_code = EXIT_IO_ERROR

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(self.exit_code if code is None else code)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(TerminateToolError):
    """Invalid settings, flags, dictionary/factory combination or output path."""

    exit_code = EXIT_CONFIG_ERROR


class ToolIOError(TerminateToolError):
    """Reading the corpus, loading a dictionary or writing the model failed."""

    exit_code = EXIT_IO_ERROR
