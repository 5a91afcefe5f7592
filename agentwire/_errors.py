"""Error types for agentwire.

Connection and process errors are fatal for a session; decode errors only
affect the frame that produced them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agentwire.types import Message


class AgentwireError(Exception):
    """Base exception for all agentwire errors."""

    def __str__(self) -> str:
        return self.args[0] if self.args else "An error occurred in agentwire"


class CLIConnectionError(AgentwireError):
    """Raised when the agent process cannot be reached or used."""

    def __init__(self, message: str, messages: list[Message] | None = None):
        super().__init__(message)
        # Messages collected before the failure, when there were any.
        self.messages: list[Message] = list(messages or [])


class CLINotFoundError(CLIConnectionError):
    """Raised when the agent executable does not exist."""


class ProcessError(AgentwireError):
    """Raised when the agent process exits with a non-zero code."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr

    def __str__(self) -> str:
        text = super().__str__()
        if self.stderr:
            text += f"\nStderr: {self.stderr}"
        return text


class DecodeError(AgentwireError):
    """Base class for frame-local decoding failures."""


class CLIJSONDecodeError(DecodeError):
    """Raised when output cannot be reassembled into a JSON frame."""


class MessageParseError(DecodeError):
    """Raised when a JSON frame is not a valid message."""

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.data = data


class UnsupportedOperationError(AgentwireError):
    """Raised when an operation needs a streaming (bidirectional) transport."""


# Short aliases
SDKError = AgentwireError
JSONDecodeError = CLIJSONDecodeError


__all__ = [
    "AgentwireError",
    "CLIConnectionError",
    "CLINotFoundError",
    "ProcessError",
    "DecodeError",
    "CLIJSONDecodeError",
    "MessageParseError",
    "UnsupportedOperationError",
    "SDKError",
    "JSONDecodeError",
]
