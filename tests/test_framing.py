"""Tests for reassembling stdout chunks into messages."""

import json

from agentwire._errors import CLIJSONDecodeError, MessageParseError
from agentwire._internal.framing import FrameDecoder
from agentwire.types import AssistantMessage, ResultMessage, SystemMessage


def _line(envelope) -> str:
    return json.dumps(envelope) + "\n"


def test_frame_split_across_chunks(system_init):
    decoder = FrameDecoder()
    text = _line(system_init)

    assert decoder.feed(text[:10]) == []
    assert decoder.buffered == 10
    results = decoder.feed(text[10:])

    assert len(results) == 1
    assert isinstance(results[0], SystemMessage)
    assert decoder.buffered == 0


def test_several_frames_in_one_chunk(system_init, assistant_hi, result_success):
    decoder = FrameDecoder()
    results = decoder.feed(_line(system_init) + _line(assistant_hi) + _line(result_success))

    assert [type(r) for r in results] == [SystemMessage, AssistantMessage, ResultMessage]


def test_frame_spread_over_several_lines():
    decoder = FrameDecoder()
    results = decoder.feed('{"type": "system",\n  "subtype": "init"}\n')

    assert results == [SystemMessage(subtype="init", data={"type": "system", "subtype": "init"})]


def test_blank_lines_are_ignored(system_init):
    decoder = FrameDecoder()
    results = decoder.feed("\n   \n" + _line(system_init) + "\n")

    assert len(results) == 1


def test_bad_frame_does_not_stop_decoding(system_init):
    decoder = FrameDecoder()
    results = decoder.feed(_line({"type": "bogus"}) + _line(system_init))

    assert len(results) == 2
    assert isinstance(results[0], MessageParseError)
    assert isinstance(results[1], SystemMessage)


def test_overflowing_line_yields_one_error_then_recovers(system_init):
    decoder = FrameDecoder(max_buffer_size=64)
    oversized = _line({"type": "system", "subtype": "x" * 200})

    results = decoder.feed(oversized)
    assert len(results) == 1
    assert isinstance(results[0], CLIJSONDecodeError)
    assert "exceeded buffer size" in str(results[0])

    assert isinstance(decoder.feed(_line(system_init))[0], SystemMessage)


def test_overflow_inside_unterminated_line_discards_the_rest(system_init):
    decoder = FrameDecoder(max_buffer_size=64)

    first = decoder.feed("x" * 100)
    rest = decoder.feed("y" * 100)
    tail = decoder.feed("zzz\n" + _line(system_init))

    assert len(first) == 1 and isinstance(first[0], CLIJSONDecodeError)
    assert rest == []
    assert len(tail) == 1 and isinstance(tail[0], SystemMessage)


def test_control_responses_are_not_surfaced(system_init):
    decoder = FrameDecoder()
    results = decoder.feed(
        _line({"type": "control_response", "response": {"request_id": "req_1"}})
        + _line(system_init)
    )

    assert len(results) == 1
    assert isinstance(results[0], SystemMessage)


def test_flush_decodes_unterminated_last_line(system_init):
    decoder = FrameDecoder()
    assert decoder.feed(json.dumps(system_init)) == []

    results = decoder.flush()
    assert len(results) == 1
    assert isinstance(results[0], SystemMessage)


def test_flush_reports_incomplete_frame():
    decoder = FrameDecoder()
    decoder.feed('{"type": "system",\n')

    results = decoder.flush()
    assert len(results) == 1
    assert isinstance(results[0], CLIJSONDecodeError)
    assert decoder.buffered == 0


def test_reset_drops_buffered_data():
    decoder = FrameDecoder()
    decoder.feed('{"type": ')
    decoder.reset()

    assert decoder.buffered == 0
    assert decoder.flush() == []


def test_garbage_line_does_not_swallow_later_frames(system_init, result_success):
    decoder = FrameDecoder()
    results = decoder.feed("Warning: cache directory is not writable\n")
    assert results == []

    results += decoder.feed(_line(system_init) + _line(result_success))

    assert [type(r) for r in results] == [CLIJSONDecodeError, SystemMessage, ResultMessage]
    assert "Discarded non-JSON output" in str(results[0])
    assert "cache directory" in str(results[0])
    assert decoder.buffered == 0


def test_garbage_line_alone_is_reported_at_end_of_stream():
    decoder = FrameDecoder()
    assert decoder.feed("not json\n") == []

    results = decoder.flush()
    assert len(results) == 1
    assert isinstance(results[0], CLIJSONDecodeError)
