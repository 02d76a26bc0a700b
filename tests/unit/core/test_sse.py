"""Unit tests for SSE framing."""

import json

import pytest

from ai_stream_mock.core.sse import (
    format_done,
    format_error,
    format_event,
    format_heartbeat,
    format_malformed,
    serialize_payload,
)


class TestSerializePayload:

    def test_strings_pass_through(self):
        assert serialize_payload("[DONE]") == "[DONE]"
        assert serialize_payload('{"already": "json"}') == '{"already": "json"}'

    @pytest.mark.parametrize("value,expected", [
        ({"delta": "hello"}, '{"delta":"hello"}'),
        (42, "42"),
        (True, "true"),
        (None, "null"),
        ([1, "a"], '[1,"a"]'),
        ({"text": "héllo"}, '{"text":"héllo"}'),
    ])
    def test_other_values_are_compact_json(self, value, expected):
        assert serialize_payload(value) == expected


class TestFormatEvent:

    def test_full_record(self):
        assert format_event({"delta": "hello"}, event_id="1", event="token") == (
            'id: 1\nevent: token\ndata: {"delta":"hello"}\n\n'
        )

    def test_message_event_name_is_omitted(self):
        assert format_event("hi", event_id="1", event="message") == "id: 1\ndata: hi\n\n"

    def test_empty_id_is_omitted(self):
        assert format_event("hi", event_id="") == "data: hi\n\n"

    def test_multiline_payload_gets_one_data_line_each(self):
        assert format_event("a\nb\n") == "data: a\ndata: b\ndata: \n\n"

    def test_done_record(self):
        assert format_done() == 'event: done\ndata: {"done":true}\n\n'

    def test_error_record(self):
        text = format_error("2", "mock_error", 2)
        assert text.startswith("id: 2\nevent: error\n")
        payload = text.split("data: ", 1)[1].strip()
        assert json.loads(payload) == {"message": "mock_error", "at": 2}


class TestFaultFrames:

    def test_heartbeat_is_comment(self):
        assert format_heartbeat(1700000000000) == ": ping 1700000000000\n\n"
        assert format_heartbeat().startswith(": ping ")

    def test_malformed_frame_is_invalid_json(self):
        frame = format_malformed("2")
        assert frame == 'id: 2\nevent: message\ndata: {"malformed": true\n\n'
        payload = frame.split("data: ", 1)[1].strip()
        with pytest.raises(json.JSONDecodeError):
            json.loads(payload)
