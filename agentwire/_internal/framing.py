"""Frame decoder for the agent's stdout.

Output arrives in arbitrary chunks. The decoder splits it into lines, glues
lines together until they form one JSON object, and hands every object to
the message parser.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from agentwire._errors import CLIJSONDecodeError, DecodeError, MessageParseError
from agentwire._internal.message_parser import is_control_response, parse_message
from agentwire.types import DEFAULT_MAX_BUFFER_SIZE, Message

logger = logging.getLogger(__name__)

DecodeResult = Message | DecodeError

_INCOMPLETE = object()


class FrameDecoder:
    """Incremental NDJSON decoder producing typed messages.

    A frame may be split over several lines by the writer, so complete lines
    are appended to an accumulation buffer and a parse is attempted after
    each one. If the buffer grows past ``max_buffer_size`` the frame is
    abandoned with a single overflow error and decoding starts over. Text
    that is still unparseable when a complete frame arrives on its own line
    is discarded with one error.

    Errors are returned in the result list alongside messages; ``feed``
    itself never raises for bad input.
    """

    def __init__(self, max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE):
        self.max_buffer_size = max_buffer_size
        self._pending_line = ""
        self._json_buffer = ""
        # Set while the rest of an oversized line is being skipped.
        self._discarding = False

    @property
    def buffered(self) -> int:
        """Characters currently held, accumulated frame plus partial line."""
        return len(self._json_buffer) + len(self._pending_line)

    def feed(self, chunk: str) -> list[DecodeResult]:
        """Consume a chunk of text and return everything it completed."""
        results: list[DecodeResult] = []
        if not chunk:
            return results

        data = self._pending_line + chunk
        lines = data.split("\n")
        self._pending_line = lines.pop()

        for line in lines:
            if self._discarding:
                # End of the oversized line.
                self._discarding = False
                continue
            self._feed_line(line, results)

        if not self._discarding and len(self._pending_line) > self.max_buffer_size:
            size = len(self._pending_line)
            self._pending_line = ""
            self._json_buffer = ""
            self._discarding = True
            results.append(self._overflow(size))
        elif self._discarding:
            self._pending_line = ""

        return results

    def flush(self) -> list[DecodeResult]:
        """Finish decoding at end of stream."""
        results: list[DecodeResult] = []
        if self._pending_line and not self._discarding:
            self._feed_line(self._pending_line, results)
        self._pending_line = ""
        self._discarding = False

        if self._json_buffer:
            error = CLIJSONDecodeError(
                f"Incomplete JSON frame at end of stream ({len(self._json_buffer)} chars)"
            )
            logger.warning(str(error))
            self._json_buffer = ""
            results.append(error)
        return results

    def reset(self) -> None:
        self._pending_line = ""
        self._json_buffer = ""
        self._discarding = False

    def _feed_line(self, line: str, results: list[DecodeResult]) -> None:
        line = line.strip()
        if not line:
            return

        stale = self._json_buffer
        self._json_buffer += line
        frame = _INCOMPLETE
        if len(self._json_buffer) <= self.max_buffer_size:
            try:
                frame = json.loads(self._json_buffer)
            except json.JSONDecodeError:
                pass

        if frame is _INCOMPLETE and stale:
            # A complete frame on its own line means the buffered text was
            # never going to parse; drop it and keep the frame.
            frame = self._parse_standalone(line)
            if frame is not _INCOMPLETE:
                results.append(self._discard(stale))

        if frame is _INCOMPLETE:
            if len(self._json_buffer) > self.max_buffer_size:
                size = len(self._json_buffer)
                self._json_buffer = ""
                results.append(self._overflow(size))
            return

        self._json_buffer = ""
        result = self._dispatch(frame)
        if result is not None:
            results.append(result)

    def _parse_standalone(self, line: str) -> Any:
        if not line.startswith("{") or len(line) > self.max_buffer_size:
            return _INCOMPLETE
        try:
            frame = json.loads(line)
        except json.JSONDecodeError:
            return _INCOMPLETE
        return frame if isinstance(frame, dict) else _INCOMPLETE

    def _discard(self, stale: str) -> CLIJSONDecodeError:
        preview = stale[:80]
        error = CLIJSONDecodeError(f"Discarded non-JSON output ({len(stale)} chars): {preview!r}")
        logger.warning(str(error))
        return error

    def _dispatch(self, frame: Any) -> DecodeResult | None:
        if is_control_response(frame):
            logger.debug("Discarding control response frame")
            return None
        try:
            return parse_message(frame)
        except MessageParseError as e:
            logger.warning(
                "Dropping undecodable frame",
                extra={"reason": str(e)},
            )
            return e

    def _overflow(self, size: int) -> CLIJSONDecodeError:
        error = CLIJSONDecodeError(
            f"JSON message exceeded buffer size ({size} > {self.max_buffer_size})"
        )
        logger.warning(str(error))
        return error


__all__ = ["FrameDecoder", "DecodeResult"]
