"""Transport implementations for agentwire.

This module defines the capability interface shared by the subprocess bridge
and the in-memory test double. The session client and the one-shot query
orchestrator only talk to this interface.
"""

from __future__ import annotations

import abc
from collections.abc import AsyncIterator
from typing import Any

from agentwire.types import Message


class Transport(abc.ABC):
    """Abstract duplex transport to an agent.

    A transport is either streaming (stdin stays open and further turns can
    be sent) or one-shot (the prompt is delivered up front).
    """

    @property
    @abc.abstractmethod
    def is_streaming(self) -> bool:
        """Whether the transport accepts messages after connect."""

    @abc.abstractmethod
    async def connect(self) -> None:
        """Start the agent and the background reader/writer.

        Returns once the agent is running, not once it has produced output.
        """

    @abc.abstractmethod
    async def disconnect(self) -> None:
        """Tear everything down. Safe to call repeatedly."""

    @abc.abstractmethod
    async def send(self, message: dict[str, Any]) -> None:
        """Write one outbound envelope.

        Raises:
            UnsupportedOperationError: If the transport is not streaming.
            CLIConnectionError: If the transport is not connected.
        """

    @abc.abstractmethod
    def receive_messages(self) -> AsyncIterator[Message]:
        """Iterate decoded inbound messages until the agent's output ends."""

    @abc.abstractmethod
    async def interrupt(self) -> None:
        """Ask the agent to stop the current turn."""

    @abc.abstractmethod
    async def end_input(self) -> None:
        """Signal that no more input will be sent."""

    @abc.abstractmethod
    def is_ready(self) -> bool:
        """Whether the transport can currently exchange messages."""


__all__ = ["Transport"]
