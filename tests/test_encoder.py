import json

import pytest

from gemini_bridge.encoder import OpenAIStreamEncoder, format_sse
from gemini_bridge.stream_events import (
    RealThinkingEvent,
    ReasoningEvent,
    TextEvent,
    ThinkingContentEvent,
    ToolCallEvent,
    UsageEvent,
)


def _encoder() -> OpenAIStreamEncoder:
    return OpenAIStreamEncoder(
        "gemini-2.5-flash",
        id_factory=lambda: "chatcmpl-test",
        call_id_factory=lambda: "call_test",
        created=1_700_000_000,
    )


def _deltas(chunks):
    return [c["choices"][0]["delta"] for c in chunks]


def test_role_only_on_first_content_delta():
    encoder = _encoder()
    chunks = encoder.encode(TextEvent("Hel")) + encoder.encode(TextEvent("lo"))

    assert _deltas(chunks) == [{"role": "assistant", "content": "Hel"}, {"content": "lo"}]
    assert {c["id"] for c in chunks} == {"chatcmpl-test"}
    assert {c["created"] for c in chunks} == {1_700_000_000}
    assert all(c["object"] == "chat.completion.chunk" for c in chunks)
    assert all(c["choices"][0]["finish_reason"] is None for c in chunks)


def test_usage_is_held_for_terminal_chunk():
    encoder = _encoder()
    assert encoder.encode(UsageEvent(3, 1)) == []

    encoder.encode(TextEvent("hi"))
    (final,) = encoder.finish()

    assert final["choices"][0]["delta"] == {}
    assert final["choices"][0]["finish_reason"] == "stop"
    assert final["usage"] == {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4}


def test_latest_usage_wins():
    encoder = _encoder()
    encoder.encode(UsageEvent(3, 1))
    encoder.encode(UsageEvent(3, 7))
    (final,) = encoder.finish()
    assert final["usage"]["completion_tokens"] == 7


def test_no_usage_means_no_usage_field():
    encoder = _encoder()
    (final,) = encoder.finish()
    assert "usage" not in final


def test_reasoning_events_use_reasoning_field():
    encoder = _encoder()
    chunks = (
        encoder.encode(ReasoningEvent("thinking..."))
        + encoder.encode(RealThinkingEvent("native"))
        + encoder.encode(ThinkingContentEvent("<thinking>\n"))
    )
    assert _deltas(chunks) == [
        {"role": "assistant", "reasoning": "thinking..."},
        {"reasoning": "native"},
        {"content": "<thinking>\n"},
    ]


def test_tool_calls_get_increasing_indexes_and_finish_reason():
    encoder = _encoder()
    chunks = encoder.encode(ToolCallEvent("lookup", '{"q": "a"}')) + encoder.encode(
        ToolCallEvent("lookup", '{"q": "b"}')
    )
    first, second = _deltas(chunks)

    assert first["role"] == "assistant"
    assert first["content"] is None
    assert first["tool_calls"] == [
        {
            "index": 0,
            "id": "call_test",
            "type": "function",
            "function": {"name": "lookup", "arguments": '{"q": "a"}'},
        }
    ]
    assert second["tool_calls"][0]["index"] == 1

    (final,) = encoder.finish()
    assert final["choices"][0]["finish_reason"] == "tool_calls"


def test_finish_is_idempotent_and_blocks_further_events():
    encoder = _encoder()
    assert len(encoder.finish()) == 1
    assert encoder.finish() == []
    with pytest.raises(RuntimeError):
        encoder.encode(TextEvent("late"))


def test_sse_framing():
    encoder = _encoder()
    (line,) = [format_sse(chunk) for chunk in encoder.encode(TextEvent("x"))]

    assert line.startswith("data: ") and line.endswith("\n\n")
    assert json.loads(line[len("data: "):])["choices"][0]["delta"]["content"] == "x"
    assert format_sse({"a": 1}) == 'data: {"a": 1}\n\n'
