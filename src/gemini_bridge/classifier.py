# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/classifier.py

import json
import logging
from typing import Any, Dict, List, Optional

from .stream_events import (
    RealThinkingEvent,
    StreamEvent,
    TextEvent,
    ToolCallEvent,
    UsageEvent,
)

lib_logger = logging.getLogger("gemini_bridge")


def _token_count(usage: Dict[str, Any], key: str) -> int:
    value = usage.get(key)
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        lib_logger.debug(f"Non-numeric {key} in usageMetadata: {value!r}")
        return 0


class ChunkClassifier:
    """
    Maps one decoded backend object to zero or more stream events.

    Parts are visited in order: `functionCall` parts become ToolCallEvent,
    parts flagged `thought: true` become RealThinkingEvent (or are dropped when
    native thinking is not forwarded), and any other non-empty `text` becomes
    TextEvent. A `usageMetadata` block adds one UsageEvent after the part
    events. Objects with none of these (heartbeats, metadata) yield nothing.
    """

    def __init__(self, emit_real_thinking: bool = False):
        self.emit_real_thinking = emit_real_thinking

    def classify(self, obj: Dict[str, Any]) -> List[StreamEvent]:
        events: List[StreamEvent] = []

        response = obj.get("response") if isinstance(obj, dict) else None
        if not isinstance(response, dict):
            return events

        for part in self._first_candidate_parts(response):
            event = self._classify_part(part)
            if event is not None:
                events.append(event)

        usage = response.get("usageMetadata")
        if isinstance(usage, dict):
            events.append(
                UsageEvent(
                    input_tokens=_token_count(usage, "promptTokenCount"),
                    output_tokens=_token_count(usage, "candidatesTokenCount"),
                )
            )

        return events

    @staticmethod
    def _first_candidate_parts(response: Dict[str, Any]) -> List[Dict[str, Any]]:
        candidates = response.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return []

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            return []

        content = candidate.get("content")
        if not isinstance(content, dict):
            return []

        parts = content.get("parts")
        if not isinstance(parts, list):
            return []
        return [part for part in parts if isinstance(part, dict)]

    def _classify_part(self, part: Dict[str, Any]) -> Optional[StreamEvent]:
        function_call = part.get("functionCall")
        if isinstance(function_call, dict):
            name = function_call.get("name")
            if not isinstance(name, str) or not name:
                lib_logger.debug(f"Ignoring functionCall part without name: {part}")
                return None
            args = function_call.get("args")
            if args is None:
                args = {}
            return ToolCallEvent(name=name, args_json=json.dumps(args))

        text = part.get("text")
        if not isinstance(text, str) or not text:
            return None

        if part.get("thought") is True:
            if self.emit_real_thinking:
                return RealThinkingEvent(text=text)
            return None

        return TextEvent(content=text)
