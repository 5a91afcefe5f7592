"""Type definitions for agentwire.

Messages and content blocks are frozen dataclasses produced by decoding one
wire envelope. Configuration values are pydantic models.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Largest accumulated frame, in characters, before the decoder gives up on it.
DEFAULT_MAX_BUFFER_SIZE = 1024 * 1024

# Capacity of the inbound message stream between reader task and consumer.
MESSAGE_CHANNEL_CAPACITY = 100

# Amount of captured stderr kept for error reports.
STDERR_TAIL_BYTES = 64 * 1024

DEFAULT_SESSION_ID = "default"

# Environment variable the child reads to learn which client launched it.
ENTRYPOINT_ENV_VAR = "CLAUDE_CODE_ENTRYPOINT"


# =============================================================================
# ContentBlock Types
# =============================================================================


@dataclass(frozen=True)
class TextBlock:
    """Text content block."""

    text: str


@dataclass(frozen=True)
class ThinkingBlock:
    """Thinking content block.

    The signature is what tells a verified reasoning trace apart from
    ordinary text, so both fields are required.
    """

    thinking: str
    signature: str


@dataclass(frozen=True)
class ToolUseBlock:
    """Tool invocation with its parameters."""

    id: str
    name: str
    input: dict[str, Any]


@dataclass(frozen=True)
class ToolResultBlock:
    """Result of a tool execution.

    ``is_error`` is tri-state: ``None`` when the field was absent.
    """

    tool_use_id: str
    content: str | list[dict[str, Any]] | None = None
    is_error: bool | None = None


ContentBlock = TextBlock | ThinkingBlock | ToolUseBlock | ToolResultBlock


# =============================================================================
# Message Types
# =============================================================================


@dataclass(frozen=True)
class UserMessage:
    """User message, either raw text or a sequence of content blocks."""

    content: str | list[ContentBlock]
    parent_tool_use_id: str | None = None


@dataclass(frozen=True)
class AssistantMessage:
    """Assistant message with content blocks."""

    content: list[ContentBlock]
    model: str
    parent_tool_use_id: str | None = None


@dataclass(frozen=True)
class SystemMessage:
    """System message; ``data`` holds the whole envelope."""

    subtype: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResultMessage:
    """Terminal message of a turn, with timing, cost and usage information."""

    subtype: str
    duration_ms: int
    duration_api_ms: int
    is_error: bool
    num_turns: int
    session_id: str
    total_cost_usd: float | None = None
    usage: dict[str, Any] | None = None
    result: str | None = None


Message = UserMessage | AssistantMessage | SystemMessage | ResultMessage


# =============================================================================
# Process exit
# =============================================================================


@dataclass(frozen=True)
class ExitInfo:
    """Exit code and captured stderr tail of a finished child process."""

    returncode: int
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =============================================================================
# Configuration
# =============================================================================

PermissionMode = Literal["default", "acceptEdits", "plan", "bypassPermissions"]


class McpStdioServerConfig(BaseModel):
    """MCP stdio server descriptor."""

    model_config = ConfigDict(frozen=True)

    type: Literal["stdio"] = "stdio"
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


class McpSSEServerConfig(BaseModel):
    """MCP SSE server descriptor."""

    model_config = ConfigDict(frozen=True)

    type: Literal["sse"] = "sse"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)


class McpHttpServerConfig(BaseModel):
    """MCP HTTP server descriptor."""

    model_config = ConfigDict(frozen=True)

    type: Literal["http"] = "http"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)


McpServerConfig = McpStdioServerConfig | McpSSEServerConfig | McpHttpServerConfig


class AgentOptions(BaseModel):
    """Immutable description of one agent invocation."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    allowed_tools: list[str] = Field(default_factory=list)
    disallowed_tools: list[str] = Field(default_factory=list)
    system_prompt: str | None = None
    append_system_prompt: str | None = None
    model: str | None = None
    permission_mode: PermissionMode | None = None
    permission_prompt_tool_name: str | None = None
    max_turns: int | None = Field(default=None, ge=1)
    max_thinking_tokens: int | None = Field(default=None, ge=0)
    continue_conversation: bool = False
    resume: str | None = None
    settings: str | None = None
    cwd: Path | None = None
    add_dirs: list[Path] = Field(default_factory=list)
    mcp_servers: dict[str, McpServerConfig] = Field(default_factory=dict)
    mcp_config_path: Path | None = None
    # Arbitrary pass-through flags; a None value renders as a bare flag.
    extra_args: dict[str, str | None] = Field(default_factory=dict)

    # Transport knobs
    cli_path: str | Path | None = None
    env: dict[str, str] = Field(default_factory=dict)
    max_buffer_size: int = Field(default=DEFAULT_MAX_BUFFER_SIZE, gt=0)
    on_decode_error: Callable[[Exception], None] | None = None


class SpawnConfig(BaseModel):
    """Ready-made process invocation handed to the process supervisor."""

    model_config = ConfigDict(frozen=True)

    executable: str
    args: list[str] = Field(default_factory=list)
    cwd: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)
    entrypoint: str | None = None
    stdin: bool = True

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]


__all__ = [
    "DEFAULT_MAX_BUFFER_SIZE",
    "MESSAGE_CHANNEL_CAPACITY",
    "STDERR_TAIL_BYTES",
    "DEFAULT_SESSION_ID",
    "ENTRYPOINT_ENV_VAR",
    "TextBlock",
    "ThinkingBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ContentBlock",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ResultMessage",
    "Message",
    "ExitInfo",
    "PermissionMode",
    "McpStdioServerConfig",
    "McpSSEServerConfig",
    "McpHttpServerConfig",
    "McpServerConfig",
    "AgentOptions",
    "SpawnConfig",
]
