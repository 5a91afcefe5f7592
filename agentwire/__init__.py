"""agentwire - drive an agent process over line-delimited JSON on stdio.

Quick Start:
    from agentwire import query

    async for message in query("What does this repo do?"):
        print(message)
"""

__version__ = "0.1.0"

from agentwire._errors import (
    AgentwireError,
    CLIConnectionError,
    CLIJSONDecodeError,
    CLINotFoundError,
    DecodeError,
    MessageParseError,
    ProcessError,
    UnsupportedOperationError,
)
from agentwire._internal.transport import Transport
from agentwire._internal.transport.in_memory import InMemoryTransport
from agentwire._internal.transport.stdio_cli import SubprocessCLITransport
from agentwire.client import AgentClient
from agentwire.query import query, query_all, query_sync
from agentwire.types import (
    AgentOptions,
    AssistantMessage,
    ContentBlock,
    McpHttpServerConfig,
    McpServerConfig,
    McpSSEServerConfig,
    McpStdioServerConfig,
    Message,
    ResultMessage,
    SpawnConfig,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

__all__ = [
    "__version__",
    # Entry points
    "AgentClient",
    "query",
    "query_all",
    "query_sync",
    # Transports
    "Transport",
    "SubprocessCLITransport",
    "InMemoryTransport",
    # Types
    "AgentOptions",
    "SpawnConfig",
    "McpServerConfig",
    "McpStdioServerConfig",
    "McpSSEServerConfig",
    "McpHttpServerConfig",
    "Message",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ResultMessage",
    "ContentBlock",
    "TextBlock",
    "ThinkingBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    # Errors
    "AgentwireError",
    "CLIConnectionError",
    "CLINotFoundError",
    "ProcessError",
    "DecodeError",
    "CLIJSONDecodeError",
    "MessageParseError",
    "UnsupportedOperationError",
]
