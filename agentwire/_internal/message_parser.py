"""Message parser for agentwire.

Turns one decoded wire envelope into a typed Message. Every variant has a
fixed set of required fields; a missing or mis-typed required field, or an
unknown discriminator, is a MessageParseError naming the problem.
"""

from __future__ import annotations

import logging
from typing import Any

from agentwire._errors import MessageParseError
from agentwire.types import (
    AssistantMessage,
    ContentBlock,
    Message,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

logger = logging.getLogger(__name__)

CONTROL_RESPONSE_TYPE = "control_response"


def _require_str(data: dict[str, Any], key: str, where: str, envelope: Any) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MessageParseError(f"Missing or invalid '{key}' field in {where}", envelope)
    return value


def _require_int(data: dict[str, Any], key: str, where: str, envelope: Any) -> int:
    value = data.get(key)
    # bool is an int subclass; JSON true/false is never a count.
    if isinstance(value, bool):
        raise MessageParseError(f"Missing or invalid '{key}' field in {where}", envelope)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise MessageParseError(f"Missing or invalid '{key}' field in {where}", envelope)


def _require_bool(data: dict[str, Any], key: str, where: str, envelope: Any) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise MessageParseError(f"Missing or invalid '{key}' field in {where}", envelope)
    return value


def _require_dict(data: dict[str, Any], key: str, where: str, envelope: Any) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise MessageParseError(f"Missing or invalid '{key}' field in {where}", envelope)
    return value


def parse_content_block(block: Any, envelope: Any = None) -> ContentBlock:
    """Parse one element of a content block sequence."""
    if not isinstance(block, dict):
        raise MessageParseError(
            f"Invalid content block (expected object, got {type(block).__name__})",
            envelope,
        )

    block_type = block.get("type")
    if not isinstance(block_type, str):
        raise MessageParseError("Content block missing 'type' field", envelope)

    match block_type:
        case "text":
            return TextBlock(text=_require_str(block, "text", "text block", envelope))
        case "thinking":
            return ThinkingBlock(
                thinking=_require_str(block, "thinking", "thinking block", envelope),
                signature=_require_str(block, "signature", "thinking block", envelope),
            )
        case "tool_use":
            return ToolUseBlock(
                id=_require_str(block, "id", "tool_use block", envelope),
                name=_require_str(block, "name", "tool_use block", envelope),
                input=_require_dict(block, "input", "tool_use block", envelope),
            )
        case "tool_result":
            is_error = block.get("is_error")
            return ToolResultBlock(
                tool_use_id=_require_str(block, "tool_use_id", "tool_result block", envelope),
                content=block.get("content"),
                is_error=is_error if isinstance(is_error, bool) else None,
            )
        case _:
            raise MessageParseError(f"Unknown content block type: {block_type}", envelope)


def _parse_blocks(items: list[Any], envelope: Any) -> list[ContentBlock]:
    return [parse_content_block(item, envelope) for item in items]


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def parse_message(data: Any) -> Message:
    """Parse a wire envelope into a typed Message.

    Args:
        data: Raw envelope decoded from one frame.

    Returns:
        The Message variant selected by the ``type`` field.

    Raises:
        MessageParseError: If the envelope is not an object, its type is
            unknown, or a required field is missing or malformed.
    """
    if not isinstance(data, dict):
        raise MessageParseError(
            f"Invalid message data type (expected dict, got {type(data).__name__})",
            data,
        )

    message_type = data.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise MessageParseError("Message missing 'type' field", data)

    match message_type:
        case "user":
            message = _require_dict(data, "message", "user message", data)
            if "content" not in message:
                raise MessageParseError("Missing 'content' field in user message", data)
            content = message["content"]
            if isinstance(content, list):
                return UserMessage(
                    content=_parse_blocks(content, data),
                    parent_tool_use_id=_optional_str(data, "parent_tool_use_id"),
                )
            if isinstance(content, str):
                return UserMessage(
                    content=content,
                    parent_tool_use_id=_optional_str(data, "parent_tool_use_id"),
                )
            raise MessageParseError("Invalid 'content' field in user message", data)

        case "assistant":
            message = _require_dict(data, "message", "assistant message", data)
            model = _require_str(message, "model", "assistant message", data)
            content = message.get("content")
            if not isinstance(content, list):
                raise MessageParseError(
                    "Missing or invalid 'content' field in assistant message", data
                )
            return AssistantMessage(
                content=_parse_blocks(content, data),
                model=model,
                parent_tool_use_id=_optional_str(data, "parent_tool_use_id"),
            )

        case "system":
            return SystemMessage(
                subtype=_require_str(data, "subtype", "system message", data),
                data=data,
            )

        case "result":
            where = "result message"
            total_cost = data.get("total_cost_usd")
            usage = data.get("usage")
            return ResultMessage(
                subtype=_require_str(data, "subtype", where, data),
                duration_ms=_require_int(data, "duration_ms", where, data),
                duration_api_ms=_require_int(data, "duration_api_ms", where, data),
                is_error=_require_bool(data, "is_error", where, data),
                num_turns=_require_int(data, "num_turns", where, data),
                session_id=_require_str(data, "session_id", where, data),
                total_cost_usd=(
                    float(total_cost)
                    if isinstance(total_cost, (int, float)) and not isinstance(total_cost, bool)
                    else None
                ),
                usage=usage if isinstance(usage, dict) else None,
                result=_optional_str(data, "result"),
            )

        case _:
            raise MessageParseError(f"Unknown message type: {message_type}", data)


def is_control_response(data: Any) -> bool:
    """Whether an envelope belongs to the control channel."""
    return isinstance(data, dict) and data.get("type") == CONTROL_RESPONSE_TYPE


__all__ = ["parse_message", "parse_content_block", "is_control_response"]
