"""Session client for bidirectional conversations with an agent.

`AgentClient` keeps one agent process alive across turns. For a single
prompt whose inputs are all known up front, use `agentwire.query` instead.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from contextlib import aclosing
from typing import Any

import anyio

from agentwire._errors import CLIConnectionError, UnsupportedOperationError
from agentwire._internal.transport import Transport
from agentwire._internal.transport.stdio_cli import PromptSource, SubprocessCLITransport
from agentwire.types import DEFAULT_SESSION_ID, AgentOptions, Message, ResultMessage
from agentwire.utils.log import get_logger

TransportFactory = Callable[[PromptSource, AgentOptions], Transport]
TurnInput = str | dict[str, Any] | Iterable[dict[str, Any]] | AsyncIterable[dict[str, Any]]

logger = get_logger()


def _subprocess_transport(prompt: PromptSource, options: AgentOptions) -> Transport:
    return SubprocessCLITransport(prompt, options, entrypoint="sdk-py-client")


async def _empty_prompt() -> AsyncIterator[dict[str, Any]]:
    return
    yield  # pragma: no cover


def user_envelope(prompt: str, session_id: str = DEFAULT_SESSION_ID) -> dict[str, Any]:
    """Build the outbound envelope for a plain text turn."""
    return {
        "type": "user",
        "message": {"role": "user", "content": prompt},
        "parent_tool_use_id": None,
        "session_id": session_id,
    }


class AgentClient:
    """Persistent agent session.

    The client is either disconnected or connected to exactly one transport.
    Connect and disconnect are serialized by a lock; messages flow through
    the transport's streams only.

    Example:
        async with AgentClient(options) as client:
            await client.query("What does this repo do?")
            async for message in client.receive_response():
                print(message)
    """

    def __init__(
        self,
        options: AgentOptions | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self.options = options or AgentOptions()
        self._transport_factory = transport_factory or _subprocess_transport
        self._transport: Transport | None = None
        self._connected = False
        self._lock = anyio.Lock()
        self._session_id: str | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def transport(self) -> Transport | None:
        return self._transport

    @property
    def session_id(self) -> str | None:
        """Identifier of the conversation, once known."""
        return self._session_id

    async def __aenter__(self) -> AgentClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.disconnect()

    async def connect(self, prompt: PromptSource | None = None) -> None:
        """Start the agent.

        Args:
            prompt: None for a purely reactive session, a string for a
                one-shot (non-streaming) run, or an (async) iterable of
                message dicts for streaming input.
        """
        async with self._lock:
            if self._connected:
                return

            source: PromptSource = _empty_prompt() if prompt is None else prompt
            transport = self._transport_factory(source, self.options)
            try:
                await transport.connect()
            except BaseException:
                await transport.disconnect()
                raise

            self._transport = transport
            self._connected = True
            logger.debug("[client] Connected", extra={"streaming": transport.is_streaming})

    def _require_transport(self) -> Transport:
        if not self._connected or self._transport is None:
            raise CLIConnectionError("Not connected. Call connect() first.")
        return self._transport

    async def query(self, prompt: TurnInput, session_id: str | None = None) -> None:
        """Send a new turn.

        Dict messages without a ``session_id`` get ``session_id``, falling
        back to the active session identifier and then to ``"default"``.

        Raises:
            CLIConnectionError: If the client is not connected.
            UnsupportedOperationError: If the session is not streaming.
        """
        transport = self._require_transport()
        session_id = session_id or self._session_id or DEFAULT_SESSION_ID
        if not transport.is_streaming:
            raise UnsupportedOperationError(
                "query() requires a streaming session; connect without a string prompt"
            )

        if isinstance(prompt, str):
            await transport.send(user_envelope(prompt, session_id))
        elif isinstance(prompt, dict):
            await transport.send({"session_id": session_id, **prompt})
        elif isinstance(prompt, AsyncIterable):
            async for message in prompt:
                await transport.send({"session_id": session_id, **message})
        else:
            for message in prompt:
                await transport.send({"session_id": session_id, **message})

        self._session_id = session_id

    def receive_messages(self) -> AsyncIterator[Message]:
        """Yield every message until the agent process terminates."""
        transport = self._require_transport()
        return self._receive_messages_impl(transport)

    async def _receive_messages_impl(self, transport: Transport) -> AsyncIterator[Message]:
        async with aclosing(transport.receive_messages()) as messages:
            async for message in messages:
                if isinstance(message, ResultMessage):
                    self._session_id = message.session_id
                yield message

    async def receive_response(self) -> AsyncIterator[Message]:
        """Yield messages up to and including the next ResultMessage.

        Nothing after the ResultMessage is read, so the following turn's
        messages stay queued for the next call.
        """
        async with aclosing(self.receive_messages()) as messages:
            async for message in messages:
                yield message
                if isinstance(message, ResultMessage):
                    return

    async def interrupt(self) -> None:
        """Ask the agent to stop the current turn (streaming sessions only)."""
        transport = self._require_transport()
        if not transport.is_streaming:
            raise UnsupportedOperationError("interrupt() requires a streaming session")
        await transport.interrupt()

    async def disconnect(self) -> None:
        """Tear down the session. Safe to call repeatedly."""
        async with self._lock:
            transport, self._transport = self._transport, None
            self._connected = False
            if transport is not None:
                await transport.disconnect()
                logger.debug("[client] Disconnected")

    async def close(self) -> None:
        """Alias for disconnect()."""
        await self.disconnect()


__all__ = ["AgentClient", "TransportFactory", "TurnInput", "user_envelope"]
