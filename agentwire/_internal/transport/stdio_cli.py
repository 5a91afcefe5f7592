"""Subprocess transport: the duplex bridge between an agent process and callers.

The agent is started through a ProcessSupervisor. A reader task decodes its
stdout into typed messages on a bounded memory object stream; in streaming
mode a writer task feeds the prompt source to its stdin as NDJSON. Fatal
problems are recorded on a one-slot error stream and raised to the consumer
after the last message.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from contextlib import suppress
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream
from anyio.streams.text import TextReceiveStream, TextSendStream

from agentwire._errors import (
    CLIConnectionError,
    CLIJSONDecodeError,
    DecodeError,
    ProcessError,
    UnsupportedOperationError,
)
from agentwire._internal.command import CommandBuilder, build_command
from agentwire._internal.framing import DecodeResult, FrameDecoder
from agentwire._internal.transport import Transport
from agentwire._internal.transport.process import ProcessSupervisor
from agentwire.types import MESSAGE_CHANNEL_CAPACITY, AgentOptions, Message

logger = logging.getLogger(__name__)

PromptSource = str | AsyncIterable[dict[str, Any]] | Iterable[dict[str, Any]]


async def _iterate_prompt(
    source: AsyncIterable[dict[str, Any]] | Iterable[dict[str, Any]],
) -> AsyncIterator[dict[str, Any]]:
    if isinstance(source, AsyncIterable):
        async for item in source:
            yield item
    else:
        for item in source:
            yield item


def encode_line(message: dict[str, Any]) -> str:
    """Serialize one outbound envelope as a compact NDJSON line."""
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n"


class SubprocessCLITransport(Transport):
    """Stdio subprocess transport.

    Key features:
    - Bounded inbound stream (backpressure reaches the child through the pipe)
    - Write lock serializing the writer task, send() and interrupt()
    - One-slot error stream, first error wins
    - Idempotent disconnect that kills the child and joins both tasks
    """

    def __init__(
        self,
        prompt: PromptSource,
        options: AgentOptions | None = None,
        *,
        close_stdin_after_prompt: bool = False,
        command_builder: CommandBuilder | None = None,
        entrypoint: str | None = "sdk-py",
    ):
        """Initialize the subprocess transport.

        Args:
            prompt: A string for a one-shot run, or an (async) iterable of
                message dicts for streaming mode.
            options: Invocation settings.
            close_stdin_after_prompt: Close stdin once the prompt source is
                exhausted (one-shot streaming).
            command_builder: Turns options into a SpawnConfig.
            entrypoint: Client identity tag exported to the child.
        """
        self._prompt = prompt
        self._is_streaming = not isinstance(prompt, str)
        self._options = options or AgentOptions()
        self._close_stdin_after_prompt = close_stdin_after_prompt
        self._command_builder = command_builder or build_command
        self._entrypoint = entrypoint

        self._supervisor: ProcessSupervisor | None = None
        self._stdout_stream: TextReceiveStream | None = None
        self._stdin_stream: TextSendStream | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None

        self._decoder = FrameDecoder(max_buffer_size=self._options.max_buffer_size)
        self._message_send, self._message_receive = anyio.create_memory_object_stream[
            Message
        ](max_buffer_size=MESSAGE_CHANNEL_CAPACITY)
        self._error_send, self._error_receive = anyio.create_memory_object_stream[
            Exception
        ](max_buffer_size=1)

        # State tracking
        self._ready = False
        self._closing = False
        self._closed = False
        self._exit_error: Exception | None = None
        self._exit_error_raised = False
        self._write_lock = anyio.Lock()
        self._request_counter = 0

    @property
    def is_streaming(self) -> bool:
        return self._is_streaming

    @property
    def supervisor(self) -> ProcessSupervisor | None:
        return self._supervisor

    @property
    def exit_error(self) -> Exception | None:
        return self._exit_error

    async def connect(self) -> None:
        """Start the subprocess and the reader/writer tasks.

        Raises:
            CLIConnectionError: If the process fails to start or the
                transport was already disconnected.
            CLINotFoundError: If the executable does not exist.
        """
        if self._supervisor is not None:
            return
        if self._closed:
            raise CLIConnectionError("Transport already disconnected")

        spawn = self._command_builder(
            self._options,
            None if self._is_streaming else str(self._prompt),
            self._is_streaming,
            self._entrypoint,
        )
        supervisor = ProcessSupervisor(spawn)
        try:
            await supervisor.start()
        except CLIConnectionError as e:
            self._exit_error = e
            raise

        self._supervisor = supervisor
        if supervisor.stdout is not None:
            self._stdout_stream = TextReceiveStream(supervisor.stdout, errors="replace")
        if self._is_streaming and supervisor.stdin is not None:
            self._stdin_stream = TextSendStream(supervisor.stdin)

        self._ready = True
        self._reader_task = asyncio.create_task(self._read_messages())
        prompt = self._prompt
        if not isinstance(prompt, str):
            self._writer_task = asyncio.create_task(self._stream_input(prompt))

        logger.info(
            "Connected to agent",
            extra={"executable": spawn.executable, "streaming": self._is_streaming},
        )

    # ------------------------------------------------------------------
    # Writer path
    # ------------------------------------------------------------------

    async def _stream_input(
        self, source: AsyncIterable[dict[str, Any]] | Iterable[dict[str, Any]]
    ) -> None:
        """Feed the prompt source to stdin."""
        try:
            async for message in _iterate_prompt(source):
                if self._closing:
                    break
                await self.write(encode_line(message))
            if self._close_stdin_after_prompt and not self._closing:
                await self.end_input()
        except CLIConnectionError as e:
            self._record_fatal(e)
        except Exception as e:
            self._record_fatal(CLIConnectionError(f"Prompt stream failed: {e}"))

    async def write(self, data: str) -> None:
        """Write raw data to the subprocess stdin.

        Raises:
            CLIConnectionError: If the transport cannot be written to.
        """
        async with self._write_lock:
            if not self._ready or not self._stdin_stream:
                raise CLIConnectionError("Transport not ready for writing")

            if self._supervisor and self._supervisor.returncode is not None:
                self._ready = False
                error = CLIConnectionError(
                    f"Cannot write to terminated process (exit code: {self._supervisor.returncode})"
                )
                self._record_fatal(error)
                raise error

            try:
                await self._stdin_stream.send(data)
            except Exception as e:
                self._ready = False
                error = CLIConnectionError(f"Failed to write to process: {e}")
                self._record_fatal(error)
                raise error from e

    async def send(self, message: dict[str, Any]) -> None:
        if not self._is_streaming:
            raise UnsupportedOperationError("send() requires a streaming transport")
        if self._supervisor is None or self._closed:
            raise CLIConnectionError("Not connected")
        await self.write(encode_line(message))

    async def interrupt(self) -> None:
        if not self._is_streaming:
            raise UnsupportedOperationError("interrupt() requires a streaming transport")
        if self._supervisor is None or self._closed:
            raise CLIConnectionError("Not connected")
        self._request_counter += 1
        await self.write(
            encode_line(
                {
                    "type": "control_request",
                    "request_id": f"req_{self._request_counter}",
                    "request": {"subtype": "interrupt"},
                }
            )
        )

    async def end_input(self) -> None:
        """End the input stream by closing stdin."""
        async with self._write_lock:
            if self._stdin_stream:
                with suppress(Exception):
                    await self._stdin_stream.aclose()
                self._stdin_stream = None

    # ------------------------------------------------------------------
    # Reader path
    # ------------------------------------------------------------------

    async def _read_messages(self) -> None:
        """Decode stdout into messages until EOF, then check the exit status."""
        try:
            if self._stdout_stream is not None:
                try:
                    async for chunk in self._stdout_stream:
                        for item in self._decoder.feed(chunk):
                            await self._deliver(item)
                except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                    pass  # Stream closed during teardown
                for item in self._decoder.flush():
                    await self._deliver(item)

            if not self._closing and self._supervisor is not None:
                exit_info = await self._supervisor.wait()
                if not exit_info.success and not self._closing:
                    self._record_fatal(
                        ProcessError(
                            f"Command failed with exit code {exit_info.returncode}",
                            exit_code=exit_info.returncode,
                            stderr=exit_info.stderr or None,
                        )
                    )
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            pass  # Consumer side closed
        except Exception as e:
            logger.exception("Error while reading agent output")
            self._record_fatal(CLIConnectionError(f"Failed to read from process: {e}"))
        finally:
            self._message_send.close()

    async def _deliver(self, item: DecodeResult) -> None:
        if isinstance(item, DecodeError):
            self._report_decode_error(item)
            return
        await self._message_send.send(item)

    def _report_decode_error(self, error: DecodeError) -> None:
        callback = self._options.on_decode_error
        if callback is not None:
            try:
                callback(error)
            except Exception:
                logger.exception("on_decode_error callback failed")
        if isinstance(error, CLIJSONDecodeError):
            self._post_error(error)

    def _post_error(self, error: Exception) -> None:
        try:
            self._error_send.send_nowait(error)
        except anyio.WouldBlock:
            logger.debug("Error stream full, discarding", extra={"error": str(error)})
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            pass

    def _record_fatal(self, error: Exception) -> None:
        if self._closing:
            return
        if self._exit_error is None:
            self._exit_error = error
            logger.error(str(error))
        self._post_error(error)

    def receive_messages(self) -> AsyncIterator[Message]:
        """Iterate decoded messages until the agent's stdout closes.

        A fatal error recorded by the reader or writer is raised once,
        after the last message.
        """
        if self._supervisor is None or self._closed:
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
            yield message

        if self._exit_error is not None and not self._exit_error_raised:
            self._exit_error_raised = True
            raise self._exit_error

    def errors(self) -> MemoryObjectReceiveStream[Exception]:
        """Stream of transport errors; holds at most one."""
        return self._error_receive

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def disconnect(self) -> None:
        """Kill the agent, join both tasks and release every resource."""
        if self._closed:
            return
        self._closed = True
        self._closing = True
        self._ready = False

        with anyio.CancelScope(shield=True):
            # Killing first unblocks a writer stuck on a full pipe.
            if self._supervisor is not None:
                await self._supervisor.kill()

            for task in (self._writer_task, self._reader_task):
                if task is None:
                    continue
                if not task.done():
                    task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
            self._writer_task = None
            self._reader_task = None

            async with self._write_lock:
                if self._stdin_stream:
                    with suppress(Exception):
                        await self._stdin_stream.aclose()
                    self._stdin_stream = None

            if self._stdout_stream:
                with suppress(Exception):
                    await self._stdout_stream.aclose()
                self._stdout_stream = None

            self._message_send.close()
            self._message_receive.close()
            self._error_send.close()

            if self._supervisor is not None:
                await self._supervisor.close()

        logger.debug("Disconnected from agent")

    def is_ready(self) -> bool:
        return (
            self._ready
            and self._supervisor is not None
            and self._supervisor.returncode is None
        )


__all__ = ["SubprocessCLITransport", "PromptSource", "encode_line"]
