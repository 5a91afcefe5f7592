"""Tests for decoding wire envelopes into typed messages."""

import pytest

from agentwire._errors import MessageParseError
from agentwire._internal.message_parser import is_control_response, parse_content_block, parse_message
from agentwire.types import (
    AssistantMessage,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)


def test_result_message_keeps_every_field(result_success):
    result_success["usage"] = {"input_tokens": 10, "output_tokens": 3}
    message = parse_message(result_success)

    assert isinstance(message, ResultMessage)
    assert message.subtype == "success"
    assert message.duration_ms == 1500
    assert message.duration_api_ms == 1200
    assert message.is_error is False
    assert message.num_turns == 1
    assert message.session_id == "s1"
    assert message.total_cost_usd == 0.01
    assert message.usage == {"input_tokens": 10, "output_tokens": 3}
    assert message.result is None


def test_result_message_optional_fields_absent(result_success):
    del result_success["total_cost_usd"]
    message = parse_message(result_success)

    assert message.total_cost_usd is None
    assert message.usage is None


def test_result_message_integral_float_counts(result_success):
    result_success["duration_ms"] = 1500.0
    assert parse_message(result_success).duration_ms == 1500


def test_result_message_rejects_bool_count(result_success):
    result_success["num_turns"] = True
    with pytest.raises(MessageParseError, match="num_turns"):
        parse_message(result_success)


@pytest.mark.parametrize(
    "field", ["subtype", "duration_ms", "duration_api_ms", "is_error", "num_turns", "session_id"]
)
def test_result_message_missing_required_field(result_success, field):
    del result_success[field]
    with pytest.raises(MessageParseError) as excinfo:
        parse_message(result_success)
    assert field in str(excinfo.value)
    assert excinfo.value.data is result_success


def test_assistant_message(assistant_hi):
    message = parse_message(assistant_hi)

    assert isinstance(message, AssistantMessage)
    assert message.model == "m1"
    assert message.content == [TextBlock(text="hi")]
    assert message.parent_tool_use_id is None


def test_assistant_message_with_every_block_type():
    message = parse_message(
        {
            "type": "assistant",
            "parent_tool_use_id": "toolu_parent",
            "message": {
                "model": "m1",
                "content": [
                    {"type": "thinking", "thinking": "hmm", "signature": "sig"},
                    {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {"path": "a.py"}},
                    {"type": "tool_result", "tool_use_id": "toolu_1", "content": "ok"},
                ],
            },
        }
    )

    assert message.parent_tool_use_id == "toolu_parent"
    assert message.content == [
        ThinkingBlock(thinking="hmm", signature="sig"),
        ToolUseBlock(id="toolu_1", name="Read", input={"path": "a.py"}),
        ToolResultBlock(tool_use_id="toolu_1", content="ok", is_error=None),
    ]


def test_assistant_message_requires_model(assistant_hi):
    del assistant_hi["message"]["model"]
    with pytest.raises(MessageParseError, match="model"):
        parse_message(assistant_hi)


def test_thinking_block_requires_signature():
    with pytest.raises(MessageParseError, match="signature"):
        parse_content_block({"type": "thinking", "thinking": "hmm"})


def test_unknown_content_block_type(assistant_hi):
    assistant_hi["message"]["content"].append({"type": "image", "source": {}})
    with pytest.raises(MessageParseError, match="Unknown content block type: image"):
        parse_message(assistant_hi)


def test_user_message_string_and_blocks():
    plain = parse_message({"type": "user", "message": {"role": "user", "content": "hello"}})
    assert plain == UserMessage(content="hello")

    blocks = parse_message(
        {
            "type": "user",
            "message": {
                "content": [{"type": "tool_result", "tool_use_id": "t1", "is_error": True}]
            },
        }
    )
    assert blocks.content == [ToolResultBlock(tool_use_id="t1", content=None, is_error=True)]


def test_user_message_requires_content():
    with pytest.raises(MessageParseError, match="content"):
        parse_message({"type": "user", "message": {"role": "user"}})


def test_system_message_keeps_envelope(system_init):
    message = parse_message(system_init)

    assert isinstance(message, SystemMessage)
    assert message.subtype == "init"
    assert message.data == system_init


def test_system_message_requires_subtype():
    with pytest.raises(MessageParseError, match="subtype"):
        parse_message({"type": "system"})


@pytest.mark.parametrize("data", [{"type": "bogus"}, {"no_type": 1}, ["not", "a", "dict"], "text"])
def test_invalid_envelopes(data):
    with pytest.raises(MessageParseError):
        parse_message(data)


def test_control_response_detection():
    assert is_control_response({"type": "control_response", "response": {}})
    assert not is_control_response({"type": "result"})
    assert not is_control_response(None)
