"""In-memory transport for testing and development.

Scripted agent output is pushed through the same FrameDecoder the
subprocess transport uses, so decode behaviour is identical; outbound
messages are recorded instead of written to a pipe.
"""

from __future__ import annotations

import json
import math
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

import anyio

from agentwire._errors import CLIConnectionError, DecodeError, UnsupportedOperationError
from agentwire._internal.framing import FrameDecoder
from agentwire._internal.transport import Transport
from agentwire.types import DEFAULT_MAX_BUFFER_SIZE, Message

Envelope = dict[str, Any] | str
Responder = Callable[[dict[str, Any]], Iterable[Envelope]]


class InMemoryTransport(Transport):
    """Transport double driven by canned envelopes.

    Args:
        inbound: Envelopes (dicts, or raw output text) available right after
            connect.
        streaming: Whether send() and interrupt() are supported.
        responder: Called with every sent message; its envelopes are
            appended to the inbound stream.
        close_after_inbound: End the inbound stream once ``inbound`` is
            delivered, as if the agent exited. Ignored when a responder is
            set; then the stream ends on end_input().
        exit_error: Raised to the consumer after the last message,
            simulating an agent failure.
    """

    def __init__(
        self,
        inbound: Iterable[Envelope] = (),
        *,
        streaming: bool = True,
        responder: Responder | None = None,
        close_after_inbound: bool = True,
        exit_error: Exception | None = None,
        max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE,
    ):
        self._inbound = list(inbound)
        self._streaming = streaming
        self._responder = responder
        self._close_after_inbound = close_after_inbound and responder is None
        self._exit_error = exit_error
        self._decoder = FrameDecoder(max_buffer_size=max_buffer_size)

        self._message_send, self._message_receive = anyio.create_memory_object_stream[
            Message
        ](max_buffer_size=math.inf)

        self.sent: list[dict[str, Any]] = []
        self.decode_errors: list[DecodeError] = []
        self.reads = 0
        self.interrupts = 0
        self.connect_count = 0
        self.disconnect_count = 0
        self._connected = False
        self._closed = False

    @property
    def is_streaming(self) -> bool:
        return self._streaming

    async def connect(self) -> None:
        if self._connected:
            return
        if self._closed:
            raise CLIConnectionError("Transport already disconnected")
        self._connected = True
        self.connect_count += 1
        self.push(*self._inbound)
        if self._close_after_inbound:
            self._finish_output()

    def push(self, *envelopes: Envelope) -> None:
        """Make more agent output available."""
        for envelope in envelopes:
            text = envelope if isinstance(envelope, str) else json.dumps(envelope)
            for item in self._decoder.feed(text + "\n"):
                if isinstance(item, DecodeError):
                    self.decode_errors.append(item)
                    continue
                try:
                    self._message_send.send_nowait(item)
                except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                    return

    def _finish_output(self) -> None:
        for item in self._decoder.flush():
            if isinstance(item, DecodeError):
                self.decode_errors.append(item)
            else:
                self._message_send.send_nowait(item)
        self._message_send.close()

    async def send(self, message: dict[str, Any]) -> None:
        if not self._streaming:
            raise UnsupportedOperationError("send() requires a streaming transport")
        if not self._connected or self._closed:
            raise CLIConnectionError("Not connected")
        self.sent.append(message)
        if self._responder is not None:
            self.push(*self._responder(message))

    def receive_messages(self) -> AsyncIterator[Message]:
        if not self._connected or self._closed:
            raise CLIConnectionError("Not connected")
        return self._receive_messages_impl()

    async def _receive_messages_impl(self) -> AsyncIterator[Message]:
        while True:
            try:
                message = await self._message_receive.receive()
            except anyio.EndOfStream:
                break
            except anyio.ClosedResourceError:
                return
            self.reads += 1
            yield message

        if self._exit_error is not None:
            error, self._exit_error = self._exit_error, None
            raise error

    async def interrupt(self) -> None:
        if not self._streaming:
            raise UnsupportedOperationError("interrupt() requires a streaming transport")
        if not self._connected or self._closed:
            raise CLIConnectionError("Not connected")
        self.interrupts += 1
        self.sent.append(
            {
                "type": "control_request",
                "request_id": f"req_{self.interrupts}",
                "request": {"subtype": "interrupt"},
            }
        )

    async def end_input(self) -> None:
        if self._connected and not self._closed:
            self._finish_output()

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._connected:
            self.disconnect_count += 1
        self._message_send.close()
        self._message_receive.close()

    def is_ready(self) -> bool:
        return self._connected and not self._closed


__all__ = ["InMemoryTransport", "Envelope", "Responder"]
