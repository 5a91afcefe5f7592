"""One-shot queries against an agent process."""

from __future__ import annotations

import functools
from collections.abc import AsyncIterator
from contextlib import aclosing

import anyio

from agentwire._errors import CLIConnectionError, ProcessError
from agentwire._internal.transport import Transport
from agentwire._internal.transport.stdio_cli import PromptSource, SubprocessCLITransport
from agentwire.types import AgentOptions, Message, SystemMessage
from agentwire.utils.log import get_logger

logger = get_logger()


async def query(
    prompt: PromptSource,
    options: AgentOptions | None = None,
    *,
    transport: Transport | None = None,
) -> AsyncIterator[Message]:
    """Run a prompt in a fresh agent process and yield its messages.

    The process is started on first iteration and torn down when the
    generator finishes, is closed, or is cancelled. A fatal transport error
    is raised after the messages decoded before it.

    Example:
        async for message in query("List the files in this directory"):
            print(message)
    """
    if transport is None:
        transport = SubprocessCLITransport(
            prompt,
            options or AgentOptions(),
            close_stdin_after_prompt=True,
            entrypoint="sdk-py",
        )

    try:
        await transport.connect()
        async with aclosing(transport.receive_messages()) as messages:
            async for message in messages:
                yield message
    finally:
        with anyio.CancelScope(shield=True):
            await transport.disconnect()


def _error_text(message: SystemMessage) -> str:
    for key in ("error", "message"):
        value = message.data.get(key)
        if isinstance(value, str) and value:
            return value
    return "Agent reported an error"


async def query_all(
    prompt: PromptSource,
    options: AgentOptions | None = None,
    *,
    transport: Transport | None = None,
) -> list[Message]:
    """Collect every message of a one-shot query.

    Raises:
        CLIConnectionError: If the agent reports an error, or the process
            fails. ``.messages`` holds whatever was received before that.
    """
    collected: list[Message] = []
    try:
        async with aclosing(query(prompt, options, transport=transport)) as messages:
            async for message in messages:
                collected.append(message)
                if isinstance(message, SystemMessage) and message.subtype == "error":
                    raise CLIConnectionError(_error_text(message), messages=collected)
    except CLIConnectionError as e:
        if not e.messages:
            e.messages = list(collected)
        raise
    except ProcessError as e:
        logger.warning(
            "[query] Agent process failed",
            extra={"exit_code": e.exit_code, "received": len(collected)},
        )
        raise CLIConnectionError(str(e), messages=collected) from e
    return collected


def query_sync(
    prompt: PromptSource,
    options: AgentOptions | None = None,
    *,
    transport: Transport | None = None,
) -> list[Message]:
    """Blocking wrapper around query_all() for synchronous callers."""
    return anyio.run(functools.partial(query_all, prompt, options, transport=transport))


__all__ = ["query", "query_all", "query_sync"]
