# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/reasoning.py
"""
Synthetic reasoning output for thinking-capable models.

Runs to completion before the backend call starts and never touches usage
accounting. Two presentations:

- field mode: one ReasoningEvent per template sentence (`delta.reasoning`)
- inline mode: the whole text wrapped in <thinking> tags and streamed as
  fixed-size ThinkingContentEvent slices (`delta.content`)

Every emitted piece of text is followed by the same pacing delay. The delay is
a plain asyncio.sleep, so a cancelled request stops here immediately.
"""

import asyncio
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

from .constants import (
    REASONING_CHUNK_DELAY_SECONDS,
    REASONING_INLINE_CHUNK_SIZE,
    REASONING_MESSAGES,
    REASONING_PREVIEW_LENGTH,
    THINKING_CLOSE_TAG,
    THINKING_OPEN_TAG,
)
from .stream_events import ReasoningEvent, StreamEvent, ThinkingContentEvent


def extract_text_content(content: Any) -> str:
    """Flatten OpenAI message content (string or segment list) to text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts: List[str] = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                text = item.get("text")
                if isinstance(text, str):
                    texts.append(text)
            elif isinstance(item, str):
                texts.append(item)
        return " ".join(texts)
    return str(content)


def build_request_preview(
    messages: Sequence[Dict[str, Any]], limit: int = REASONING_PREVIEW_LENGTH
) -> str:
    """First `limit` chars of the latest user message, with '...' if cut."""
    for message in reversed(messages):
        if isinstance(message, dict) and message.get("role") == "user":
            text = extract_text_content(message.get("content"))
            if len(text) > limit:
                return text[:limit] + "..."
            return text
    return ""


class ReasoningSynthesizer:
    def __init__(
        self,
        inline: bool = False,
        chunk_delay: float = REASONING_CHUNK_DELAY_SECONDS,
        chunk_size: int = REASONING_INLINE_CHUNK_SIZE,
        templates: Optional[Sequence[str]] = None,
    ):
        self.inline = inline
        self.chunk_delay = chunk_delay
        self.chunk_size = max(1, chunk_size)
        self.templates = list(templates) if templates is not None else list(REASONING_MESSAGES)

    def render(self, messages: Sequence[Dict[str, Any]]) -> List[str]:
        """Template sentences with the request preview substituted into the first one."""
        preview = build_request_preview(messages)
        rendered = list(self.templates)
        if rendered:
            rendered[0] = rendered[0].replace("{requestPreview}", preview)
        return rendered

    async def generate(
        self, messages: Sequence[Dict[str, Any]]
    ) -> AsyncGenerator[StreamEvent, None]:
        sentences = self.render(messages)

        if not self.inline:
            for sentence in sentences:
                yield ReasoningEvent(text=sentence)
                await asyncio.sleep(self.chunk_delay)
            return

        yield ThinkingContentEvent(text=THINKING_OPEN_TAG)
        full_text = "".join(sentences)
        for start in range(0, len(full_text), self.chunk_size):
            yield ThinkingContentEvent(text=full_text[start:start + self.chunk_size])
            await asyncio.sleep(self.chunk_delay)
        yield ThinkingContentEvent(text=THINKING_CLOSE_TAG)
