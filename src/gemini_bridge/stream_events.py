# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/stream_events.py
"""Internal stream event variants passed from the classifier to the encoder."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextEvent:
    content: str


@dataclass(frozen=True)
class UsageEvent:
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class ReasoningEvent:
    """Synthetic reasoning sentence, sent in the delta's `reasoning` field."""

    text: str


@dataclass(frozen=True)
class ThinkingContentEvent:
    """Synthetic reasoning inlined into `content` between thinking tags."""

    text: str


@dataclass(frozen=True)
class RealThinkingEvent:
    """Native thinking text returned by the backend."""

    text: str


@dataclass(frozen=True)
class ToolCallEvent:
    name: str
    args_json: str


StreamEvent = Union[
    TextEvent,
    UsageEvent,
    ReasoningEvent,
    ThinkingContentEvent,
    RealThinkingEvent,
    ToolCallEvent,
]
