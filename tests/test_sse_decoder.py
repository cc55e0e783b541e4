import json

import pytest

from gemini_bridge.sse_decoder import SSEDecoderState, decode_sse_stream


RECORDS = [
    {"response": {"candidates": [{"content": {"parts": [{"text": "héllo 👋"}]}}]}},
    {"response": {"usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 1}}},
]
STREAM = "".join(f"data: {json.dumps(r, ensure_ascii=False)}\n\n" for r in RECORDS).encode("utf-8")


async def _aiter(chunks):
    for chunk in chunks:
        yield chunk


async def _decode(chunks, state=None):
    return [obj async for obj in decode_sse_stream(_aiter(chunks), state)]


@pytest.mark.asyncio
async def test_whole_stream_in_one_read():
    assert await _decode([STREAM]) == RECORDS


@pytest.mark.asyncio
@pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
async def test_any_read_boundary_gives_same_records(size):
    chunks = [STREAM[i:i + size] for i in range(0, len(STREAM), size)]
    assert await _decode(chunks) == RECORDS


@pytest.mark.asyncio
async def test_split_between_record_terminator_newlines():
    first = STREAM.index(b"\n\n") + 1
    assert await _decode([STREAM[:first], STREAM[first:]]) == RECORDS


@pytest.mark.asyncio
async def test_trailing_record_without_blank_line_is_flushed():
    body = b'data: {"a": 1}\n\ndata: {"b": 2}'
    assert await _decode([body]) == [{"a": 1}, {"b": 2}]


@pytest.mark.asyncio
async def test_malformed_record_is_skipped_and_recorded():
    state = SSEDecoderState()
    body = b'data: {"a": 1}\n\ndata: {broken\n\ndata: {"c": 3}\n\n'

    assert await _decode([body], state) == [{"a": 1}, {"c": 3}]
    assert len(state.warnings) == 1
    assert state.warnings[0].fragment == "{broken"


def test_multi_line_data_and_crlf():
    state = SSEDecoderState()
    objects = state.feed(b'data: {"a":\r\ndata:  1}\r\n\r\n: comment\r\n')
    objects.extend(state.finish())
    assert objects == [{"a": 1}]


def test_done_sentinel_and_non_objects_are_ignored():
    state = SSEDecoderState()
    objects = state.feed(b"data: [1, 2]\n\ndata: [DONE]\n\n")
    objects.extend(state.finish())
    assert objects == []
    assert state.warnings == []
