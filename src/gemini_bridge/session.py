# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/session.py

import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator, Dict, List, Optional

import litellm

from .classifier import ChunkClassifier
from .constants import OPENAI_CHAT_COMPLETION_OBJECT, SSE_DONE_SENTINEL
from .encoder import OpenAIStreamEncoder, format_sse
from .models import DEFAULT_MODEL, is_thinking_model
from .project_resolver import ProjectResolver
from .reasoning import ReasoningSynthesizer
from .request_mapping import build_stream_request
from .stream_events import TextEvent
from .token_manager import TokenLifecycleManager
from .upstream import UpstreamRequestDriver

lib_logger = logging.getLogger("gemini_bridge")


class GeminiSession:
    """
    Process-wide owner of the chat pipeline.

    One session holds the token manager, the resolved project and the
    upstream driver. Each chat request gets its own classifier, encoder and
    (optionally) reasoning synthesizer.
    """

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        driver: UpstreamRequestDriver,
        resolver: ProjectResolver,
        enable_fake_thinking: bool = False,
        enable_real_thinking: bool = False,
        stream_thinking_as_content: bool = False,
        reasoning_chunk_delay: Optional[float] = None,
    ):
        self.token_manager = token_manager
        self.driver = driver
        self.resolver = resolver
        self.enable_fake_thinking = enable_fake_thinking
        self.enable_real_thinking = enable_real_thinking
        self.stream_thinking_as_content = stream_thinking_as_content
        self._reasoning_chunk_delay = reasoning_chunk_delay

    async def prepare(self) -> str:
        """
        Acquire a valid token and the project id.

        Called before any response bytes are committed so failures here can
        still become an HTTP status.
        """
        await self.token_manager.ensure_valid()
        return await self.resolver.resolve()

    def _synthesizer(self) -> ReasoningSynthesizer:
        if self._reasoning_chunk_delay is None:
            return ReasoningSynthesizer(inline=self.stream_thinking_as_content)
        return ReasoningSynthesizer(
            inline=self.stream_thinking_as_content,
            chunk_delay=self._reasoning_chunk_delay,
        )

    def _uses_real_thinking(self, model: str) -> bool:
        return self.enable_real_thinking and is_thinking_model(model)

    def _uses_fake_thinking(self, model: str) -> bool:
        return self.enable_fake_thinking and is_thinking_model(model)

    def build_payload(self, request: Dict[str, Any], project_id: str) -> Dict[str, Any]:
        model = request.get("model") or DEFAULT_MODEL
        return build_stream_request(
            model,
            project_id,
            request.get("messages") or [],
            temperature=request.get("temperature"),
            top_p=request.get("top_p"),
            max_tokens=request.get("max_tokens"),
            stop=request.get("stop"),
            tools=request.get("tools"),
            tool_choice=request.get("tool_choice"),
            thinking_budget=request.get("thinking_budget") if is_thinking_model(model) else None,
            include_thoughts=self._uses_real_thinking(model),
        )

    async def stream_chunks(
        self,
        request: Dict[str, Any],
        project_id: Optional[str] = None,
        synthetic_reasoning: bool = True,
        convert_errors: bool = True,
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Yield OpenAI chat.completion.chunk dicts for one request.

        With `convert_errors`, a failure after streaming has started becomes a
        final "Error: ..." text delta followed by the terminal chunk. Without
        it the error propagates. Cancellation always propagates.
        """
        model = request.get("model") or DEFAULT_MODEL
        messages = request.get("messages") or []
        encoder = OpenAIStreamEncoder(model)
        classifier = ChunkClassifier(emit_real_thinking=self._uses_real_thinking(model))

        try:
            if synthetic_reasoning and self._uses_fake_thinking(model):
                async with aclosing(self._synthesizer().generate(messages)) as reasoning:
                    async for event in reasoning:
                        for chunk in encoder.encode(event):
                            yield chunk

            if project_id is None:
                project_id = await self.resolver.resolve()
            payload = self.build_payload(request, project_id)

            async with aclosing(self.driver.stream(payload)) as upstream:
                async for obj in upstream:
                    for event in classifier.classify(obj):
                        for chunk in encoder.encode(event):
                            yield chunk

        except Exception as e:
            if not convert_errors:
                raise
            lib_logger.error(f"Stream error for model {model}: {e}")
            for chunk in encoder.encode(TextEvent(content=f"Error: {e}")):
                yield chunk

        for chunk in encoder.finish():
            yield chunk

    async def stream_chat(
        self, request: Dict[str, Any], project_id: Optional[str] = None
    ) -> AsyncGenerator[str, None]:
        """SSE lines for one streaming request, ending with the [DONE] sentinel."""
        async with aclosing(self.stream_chunks(request, project_id=project_id)) as chunks:
            async for chunk in chunks:
                yield format_sse(chunk)
        yield SSE_DONE_SENTINEL

    async def complete_chat(
        self, request: Dict[str, Any], project_id: Optional[str] = None
    ) -> litellm.ModelResponse:
        """Non-streaming mode: run the same pipeline and reassemble one completion."""
        chunks = [
            chunk
            async for chunk in self.stream_chunks(
                request,
                project_id=project_id,
                synthetic_reasoning=False,
                convert_errors=False,
            )
        ]
        return aggregate_chunks(chunks)


def aggregate_chunks(chunks: List[Dict[str, Any]]) -> litellm.ModelResponse:
    """Reassemble streamed chunk dicts into a non-streaming ModelResponse."""
    if not chunks:
        raise ValueError("No chunks provided for reassembly")

    final_message: Dict[str, Any] = {"role": "assistant"}
    aggregated_tool_calls: Dict[int, Dict[str, Any]] = {}
    usage_data = None
    chunk_finish_reason = None

    first_chunk = chunks[0]

    for chunk in chunks:
        choices = chunk.get("choices") or []
        if not choices:
            continue

        choice = choices[0]
        delta = choice.get("delta") or {}

        if delta.get("content") is not None:
            final_message["content"] = final_message.get("content", "") + delta["content"]

        if delta.get("reasoning") is not None:
            final_message["reasoning_content"] = (
                final_message.get("reasoning_content", "") + delta["reasoning"]
            )

        for tc_chunk in delta.get("tool_calls") or []:
            index = tc_chunk.get("index", 0)
            if index not in aggregated_tool_calls:
                aggregated_tool_calls[index] = {
                    "type": "function",
                    "function": {"name": "", "arguments": ""},
                }
            if tc_chunk.get("id"):
                aggregated_tool_calls[index]["id"] = tc_chunk["id"]
            fn = tc_chunk.get("function")
            if isinstance(fn, dict):
                if fn.get("name") is not None:
                    aggregated_tool_calls[index]["function"]["name"] += str(fn["name"])
                if fn.get("arguments") is not None:
                    aggregated_tool_calls[index]["function"]["arguments"] += str(fn["arguments"])

        if choice.get("finish_reason"):
            chunk_finish_reason = choice["finish_reason"]

        if chunk.get("usage"):
            usage_data = chunk["usage"]

    if aggregated_tool_calls:
        final_message["tool_calls"] = [
            aggregated_tool_calls[index] for index in sorted(aggregated_tool_calls)
        ]

    for field in ("content", "tool_calls"):
        final_message.setdefault(field, None)

    if aggregated_tool_calls:
        finish_reason = "tool_calls"
    else:
        finish_reason = chunk_finish_reason or "stop"

    final_response_data = {
        "id": first_chunk["id"],
        "object": OPENAI_CHAT_COMPLETION_OBJECT,
        "created": first_chunk["created"],
        "model": first_chunk["model"],
        "choices": [
            {
                "index": 0,
                "message": final_message,
                "finish_reason": finish_reason,
            }
        ],
        "usage": usage_data,
    }

    return litellm.ModelResponse(**final_response_data)
