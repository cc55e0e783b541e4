# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/sse_decoder.py
"""
Incremental SSE decoding for the backend's streamGenerateContent responses.

Reads can split anywhere: inside the `data: ` prefix, inside the JSON, inside
a multi-byte UTF-8 sequence or between the two newlines of a record
terminator. The decoder keeps a partial-line buffer and a payload buffer in
an explicit state object and only parses once a blank line closes a record
(or the stream ends).
"""

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, AsyncIterable, Dict, List, Optional

from .error_handler import DecodeWarning

lib_logger = logging.getLogger("gemini_bridge")

DATA_PREFIX = "data:"


@dataclass
class SSEDecoderState:
    """Buffers carried between reads of one stream."""

    line_buffer: str = ""
    object_buffer: str = ""
    warnings: List[DecodeWarning] = field(default_factory=list)
    _utf8: Any = field(
        default_factory=lambda: codecs.getincrementaldecoder("utf-8")(errors="replace"),
        repr=False,
    )

    def feed(self, data: bytes) -> List[Dict[str, Any]]:
        """Consume one read and return every record it completed."""
        return self.feed_text(self._utf8.decode(data))

    def feed_text(self, text: str) -> List[Dict[str, Any]]:
        objects: List[Dict[str, Any]] = []
        if not text:
            return objects

        self.line_buffer += text
        lines = self.line_buffer.split("\n")
        # Keep the last, possibly incomplete, line
        self.line_buffer = lines.pop()

        for line in lines:
            line = line.rstrip("\r")
            if line.strip() == "":
                self._flush(objects)
            elif line.startswith(DATA_PREFIX):
                payload = line[len(DATA_PREFIX):]
                if payload.startswith(" "):
                    payload = payload[1:]
                self.object_buffer += payload
            # Comments (":") and other SSE fields carry nothing we use

        return objects

    def finish(self) -> List[Dict[str, Any]]:
        """Flush whatever is left once the stream has ended."""
        objects = self.feed_text(self._utf8.decode(b"", final=True))

        if self.line_buffer:
            # A trailing line without newline still counts
            objects.extend(self.feed_text("\n"))
        self._flush(objects)
        return objects

    def _flush(self, objects: List[Dict[str, Any]]) -> None:
        if not self.object_buffer:
            return

        payload = self.object_buffer
        self.object_buffer = ""

        if payload.strip() == "[DONE]":
            return

        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            warning = DecodeWarning(fragment=payload, error=str(e))
            self.warnings.append(warning)
            lib_logger.warning(str(warning))
            return

        if isinstance(parsed, dict):
            objects.append(parsed)
        else:
            lib_logger.debug(f"Ignoring non-object SSE payload: {payload[:200]}")


async def decode_sse_stream(
    chunks: AsyncIterable[bytes],
    state: Optional[SSEDecoderState] = None,
) -> AsyncGenerator[Dict[str, Any], None]:
    """Yield backend response objects from a live byte stream, in order."""
    state = state if state is not None else SSEDecoderState()

    async for chunk in chunks:
        for obj in state.feed(chunk):
            yield obj

    for obj in state.finish():
        yield obj
