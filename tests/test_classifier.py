import json

from gemini_bridge.classifier import ChunkClassifier
from gemini_bridge.stream_events import (
    RealThinkingEvent,
    TextEvent,
    ToolCallEvent,
    UsageEvent,
)


def _obj(parts=None, usage=None) -> dict:
    response = {}
    if parts is not None:
        response["candidates"] = [{"content": {"role": "model", "parts": parts}}]
    if usage is not None:
        response["usageMetadata"] = usage
    return {"response": response}


def test_text_part_becomes_text_event():
    events = ChunkClassifier().classify(_obj([{"text": "Hello"}]))
    assert events == [TextEvent(content="Hello")]


def test_text_and_usage_in_one_object_keep_order():
    events = ChunkClassifier().classify(
        _obj([{"text": "Hi"}], {"promptTokenCount": 3, "candidatesTokenCount": 1, "totalTokenCount": 4})
    )
    assert events == [TextEvent(content="Hi"), UsageEvent(input_tokens=3, output_tokens=1)]


def test_usage_missing_counts_default_to_zero():
    events = ChunkClassifier().classify(_obj(usage={"totalTokenCount": 9}))
    assert events == [UsageEvent(input_tokens=0, output_tokens=0)]


def test_non_numeric_usage_counts_default_to_zero():
    events = ChunkClassifier().classify(
        _obj([{"text": "hi"}], {"promptTokenCount": "n/a", "candidatesTokenCount": 2})
    )
    assert events == [TextEvent(content="hi"), UsageEvent(input_tokens=0, output_tokens=2)]


def test_every_part_is_visited():
    events = ChunkClassifier().classify(_obj([{"text": "a"}, {"text": ""}, {"text": "b"}]))
    assert events == [TextEvent(content="a"), TextEvent(content="b")]


def test_thought_parts_dropped_unless_enabled():
    obj = _obj([{"text": "pondering", "thought": True}, {"text": "answer"}])

    assert ChunkClassifier().classify(obj) == [TextEvent(content="answer")]
    assert ChunkClassifier(emit_real_thinking=True).classify(obj) == [
        RealThinkingEvent(text="pondering"),
        TextEvent(content="answer"),
    ]


def test_function_call_part_becomes_tool_call():
    events = ChunkClassifier().classify(
        _obj([{"functionCall": {"name": "get_weather", "args": {"city": "Paris"}}}])
    )
    assert len(events) == 1
    assert isinstance(events[0], ToolCallEvent)
    assert events[0].name == "get_weather"
    assert json.loads(events[0].args_json) == {"city": "Paris"}


def test_objects_without_content_yield_nothing():
    classifier = ChunkClassifier()
    assert classifier.classify({}) == []
    assert classifier.classify({"response": {"candidates": []}}) == []
    assert classifier.classify({"response": {"candidates": [{"finishReason": "STOP"}]}}) == []
    assert classifier.classify({"traceId": "abc"}) == []
