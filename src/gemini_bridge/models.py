# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/models.py

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ModelInfo:
    max_tokens: int
    context_window: int
    supports_images: bool
    description: str
    thinking: bool = False
    supports_prompt_cache: bool = False
    input_price: float = 0
    output_price: float = 0


GEMINI_CLI_MODELS: Dict[str, ModelInfo] = {
    "gemini-2.5-pro": ModelInfo(
        max_tokens=65536,
        context_window=1_048_576,
        supports_images=True,
        thinking=True,
        description="Google's Gemini 2.5 Pro model via OAuth (free tier)",
    ),
    "gemini-2.5-flash": ModelInfo(
        max_tokens=65536,
        context_window=1_048_576,
        supports_images=True,
        thinking=True,
        description="Google's Gemini 2.5 Flash model via OAuth (free tier)",
    ),
    "gemini-2.0-flash-001": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        description="Google's Gemini 2.0 Flash model via OAuth (free tier)",
    ),
    "gemini-2.0-flash-lite-preview-02-05": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        description="Google's Gemini 2.0 Flash Lite Preview model via OAuth",
    ),
    "gemini-2.0-pro-exp-02-05": ModelInfo(
        max_tokens=8192,
        context_window=2_097_152,
        supports_images=True,
        description="Google's Gemini 2.0 Pro Experimental model via OAuth",
    ),
    "gemini-2.0-flash-thinking-exp-01-21": ModelInfo(
        max_tokens=65_536,
        context_window=1_048_576,
        supports_images=True,
        thinking=True,
        description="Google's Gemini 2.0 Flash Thinking Experimental model via OAuth",
    ),
    "gemini-2.0-flash-thinking-exp-1219": ModelInfo(
        max_tokens=8192,
        context_window=32_767,
        supports_images=True,
        thinking=True,
        description="Google's Gemini 2.0 Flash Thinking Experimental (1219) model via OAuth",
    ),
    "gemini-2.0-flash-exp": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        description="Google's Gemini 2.0 Flash Experimental model via OAuth",
    ),
    "gemini-1.5-flash-002": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        description="Google's Gemini 1.5 Flash 002 model via OAuth (free tier)",
    ),
    "gemini-1.5-flash-exp-0827": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        description="Google's Gemini 1.5 Flash Experimental (0827) model via OAuth",
    ),
    "gemini-1.5-flash-8b-exp-0827": ModelInfo(
        max_tokens=8192,
        context_window=1_048_576,
        supports_images=True,
        description="Google's Gemini 1.5 Flash 8B Experimental model via OAuth",
    ),
    "gemini-1.5-pro-002": ModelInfo(
        max_tokens=8192,
        context_window=2_097_152,
        supports_images=True,
        description="Google's Gemini 1.5 Pro 002 model via OAuth",
    ),
    "gemini-1.5-pro-exp-0827": ModelInfo(
        max_tokens=8192,
        context_window=2_097_152,
        supports_images=True,
        description="Google's Gemini 1.5 Pro Experimental model via OAuth",
    ),
    "gemini-exp-1206": ModelInfo(
        max_tokens=8192,
        context_window=2_097_152,
        supports_images=True,
        description="Google's Gemini Experimental (1206) model via OAuth",
    ),
}

DEFAULT_MODEL = "gemini-2.5-flash"


def get_model(model_id: str) -> Optional[ModelInfo]:
    return GEMINI_CLI_MODELS.get(model_id)


def get_all_model_ids() -> List[str]:
    return list(GEMINI_CLI_MODELS.keys())


def is_valid_model(model_id: str) -> bool:
    return model_id in GEMINI_CLI_MODELS


def is_thinking_model(model_id: str) -> bool:
    info = GEMINI_CLI_MODELS.get(model_id)
    return bool(info and info.thinking)


def supports_images(model_id: str) -> bool:
    info = GEMINI_CLI_MODELS.get(model_id)
    return bool(info and info.supports_images)
