import asyncio
import json

import pytest

from gateway_app.streaming import streaming_response_wrapper
from gemini_bridge import GeminiSession


REQUEST = {"model": "gemini-2.5-flash", "messages": [{"role": "user", "content": "hi"}]}


def _text_object(text: str) -> dict:
    return {"response": {"candidates": [{"content": {"parts": [{"text": text}]}}]}}


class RecordingDriver:
    """Stands in for UpstreamRequestDriver and records when its stream is released."""

    def __init__(self, objects, fail_with=None):
        self.objects = objects
        self.fail_with = fail_with
        self.started = False
        self.closed = False

    async def stream(self, payload):
        self.started = True
        try:
            for obj in self.objects:
                yield obj
            if self.fail_with is not None:
                raise self.fail_with
        finally:
            self.closed = True


class DisconnectingRequest:
    def __init__(self, connected_polls: int):
        self.connected_polls = connected_polls

    async def is_disconnected(self) -> bool:
        self.connected_polls -= 1
        return self.connected_polls < 0


def _session(driver, **kwargs) -> GeminiSession:
    return GeminiSession(None, driver, None, **kwargs)


def _payloads(lines):
    return [line[len("data: "):].strip() for line in lines]


@pytest.mark.asyncio
async def test_closing_chat_stream_releases_upstream_immediately():
    driver = RecordingDriver([_text_object("one"), _text_object("two")])
    stream = _session(driver).stream_chat(REQUEST, project_id="proj")

    first = await stream.__anext__()
    assert json.loads(first[len("data: "):])["choices"][0]["delta"]["content"] == "one"
    assert not driver.closed

    await stream.aclose()
    assert driver.closed


@pytest.mark.asyncio
async def test_client_disconnect_stops_pipeline_and_releases_upstream():
    driver = RecordingDriver([_text_object("one"), _text_object("two"), _text_object("three")])
    stream = _session(driver).stream_chat(REQUEST, project_id="proj")

    relayed = [
        line
        async for line in streaming_response_wrapper(DisconnectingRequest(connected_polls=1), stream)
    ]

    assert len(relayed) == 1
    assert driver.closed


@pytest.mark.asyncio
async def test_unexpected_failure_mid_stream_becomes_error_text_and_normal_close():
    driver = RecordingDriver([_text_object("partial")], fail_with=RuntimeError("decoder state lost"))

    lines = [line async for line in _session(driver).stream_chat(REQUEST, project_id="proj")]

    payloads = _payloads(lines)
    assert payloads[-1] == "[DONE]"
    chunks = [json.loads(p) for p in payloads[:-1]]
    assert [c["choices"][0]["delta"].get("content") for c in chunks[:2]] == [
        "partial",
        "Error: decoder state lost",
    ]
    assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
    assert driver.closed


@pytest.mark.asyncio
async def test_unexpected_failure_propagates_in_non_streaming_mode():
    driver = RecordingDriver([_text_object("partial")], fail_with=RuntimeError("decoder state lost"))

    with pytest.raises(RuntimeError, match="decoder state lost"):
        await _session(driver).complete_chat(REQUEST, project_id="proj")


@pytest.mark.asyncio
async def test_cancel_during_paced_reasoning_stops_before_upstream():
    driver = RecordingDriver([_text_object("never")])
    session = _session(driver, enable_fake_thinking=True, reasoning_chunk_delay=10)
    received = []

    async def consume():
        async for line in session.stream_chat(REQUEST, project_id="proj"):
            received.append(line)

    task = asyncio.create_task(consume())
    while not received:
        await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(task, timeout=1)

    assert len(received) == 1
    assert not driver.started
