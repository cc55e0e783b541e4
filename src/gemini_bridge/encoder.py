# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/encoder.py

import json
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from .constants import OPENAI_CHAT_COMPLETION_CHUNK_OBJECT
from .stream_events import (
    RealThinkingEvent,
    ReasoningEvent,
    StreamEvent,
    TextEvent,
    ThinkingContentEvent,
    ToolCallEvent,
    UsageEvent,
)


def format_sse(chunk: Dict[str, Any]) -> str:
    return f"data: {json.dumps(chunk)}\n\n"


def _new_chat_id() -> str:
    return f"chatcmpl-{uuid.uuid4()}"


def _new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:24]}"


class OpenAIStreamEncoder:
    """
    Serializes one request's stream events into OpenAI chat.completion chunks.

    The chunk id and `created` timestamp are fixed at construction. Only the
    first content-bearing delta carries `role: "assistant"`. Usage events
    produce no chunk; the latest one is folded into the terminal chunk, whose
    finish_reason is "tool_calls" when any tool call was emitted and "stop"
    otherwise.
    """

    def __init__(
        self,
        model: str,
        id_factory: Callable[[], str] = _new_chat_id,
        call_id_factory: Callable[[], str] = _new_call_id,
        created: Optional[int] = None,
    ):
        self.model = model
        self.chat_id = id_factory()
        self.created = created if created is not None else int(time.time())
        self._call_id_factory = call_id_factory

        self._role_sent = False
        self._tool_call_count = 0
        self._usage: Optional[Dict[str, int]] = None
        self._finished = False

    @property
    def saw_tool_calls(self) -> bool:
        return self._tool_call_count > 0

    @property
    def usage(self) -> Optional[Dict[str, int]]:
        return self._usage

    def _build_chunk(
        self,
        *,
        delta: Optional[Dict[str, Any]] = None,
        finish_reason: Optional[str] = None,
        usage: Optional[Dict[str, int]] = None,
    ) -> Dict[str, Any]:
        chunk = {
            "id": self.chat_id,
            "object": OPENAI_CHAT_COMPLETION_CHUNK_OBJECT,
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta if delta is not None else {},
                    "finish_reason": finish_reason,
                }
            ],
        }
        if usage is not None:
            chunk["usage"] = usage
        return chunk

    def _content_delta(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        if self._role_sent:
            return fields
        self._role_sent = True
        return {"role": "assistant", **fields}

    def encode(self, event: StreamEvent) -> List[Dict[str, Any]]:
        """Return the chunks for one event (none for usage)."""
        if self._finished:
            raise RuntimeError("Encoder already finished")

        if isinstance(event, UsageEvent):
            self._usage = {
                "prompt_tokens": event.input_tokens,
                "completion_tokens": event.output_tokens,
                "total_tokens": event.input_tokens + event.output_tokens,
            }
            return []

        if isinstance(event, TextEvent):
            return [self._build_chunk(delta=self._content_delta({"content": event.content}))]

        if isinstance(event, ThinkingContentEvent):
            return [self._build_chunk(delta=self._content_delta({"content": event.text}))]

        if isinstance(event, (ReasoningEvent, RealThinkingEvent)):
            return [self._build_chunk(delta=self._content_delta({"reasoning": event.text}))]

        if isinstance(event, ToolCallEvent):
            index = self._tool_call_count
            self._tool_call_count += 1
            tool_delta = {
                "content": None,
                "tool_calls": [
                    {
                        "index": index,
                        "id": self._call_id_factory(),
                        "type": "function",
                        "function": {
                            "name": event.name,
                            "arguments": event.args_json,
                        },
                    }
                ],
            }
            return [self._build_chunk(delta=self._content_delta(tool_delta))]

        raise TypeError(f"Unsupported stream event: {event!r}")

    def finish(self) -> List[Dict[str, Any]]:
        """Terminal chunk. Call exactly once, after the last event."""
        if self._finished:
            return []
        self._finished = True
        finish_reason = "tool_calls" if self.saw_tool_calls else "stop"
        return [self._build_chunk(delta={}, finish_reason=finish_reason, usage=self._usage)]
