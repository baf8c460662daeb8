"""
SSE framing tests
"""

import json

from aimarker.utils.sse import format_sse, sse_delta, sse_done, sse_error


def test_format_json_data():
    assert format_sse({"a": 1}) == 'data: {"a": 1}\n\n'


def test_format_with_event():
    assert format_sse("hello", event="error") == "event: error\ndata: hello\n\n"


def test_multiline_string_is_split():
    assert format_sse("one\ntwo") == "data: one\ndata: two\n\n"


def test_error_frame():
    frame = sse_error("GitHub API Error (500): boom", 500)
    assert frame.startswith("event: error\ndata: ")
    payload = json.loads(frame.split("data: ", 1)[1])
    assert payload == {"error": "GitHub API Error (500): boom", "status": 500}


def test_delta_and_done():
    assert sse_delta("Hi") == 'data: {"choices": [{"delta": {"content": "Hi"}}]}\n\n'
    assert sse_done() == "data: [DONE]\n\n"
