# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Pydantic models for the gateway application.

This module contains the request/response models used by the API endpoints.
"""

import time
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from gemini_bridge.constants import OPENAI_MODEL_OWNER
from gemini_bridge.models import DEFAULT_MODEL


class ChatMessage(BaseModel):
    """One OpenAI chat message; content may be a string or a segment list."""
    role: str
    content: Optional[Union[str, List[Dict[str, Any]]]] = None
    name: Optional[str] = None
    tool_calls: Optional[List[Dict[str, Any]]] = None
    tool_call_id: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ChatCompletionRequest(BaseModel):
    """Request model for the chat completions endpoint."""
    model: str = DEFAULT_MODEL
    messages: List[ChatMessage] = Field(default_factory=list)
    stream: bool = True
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    stop: Optional[Union[str, List[str]]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
    thinking_budget: Optional[int] = None

    model_config = ConfigDict(extra="allow")

    def to_pipeline_request(self) -> Dict[str, Any]:
        """Plain dict handed to GeminiSession."""
        data = self.model_dump(exclude_none=True)
        data["messages"] = [m.model_dump(exclude_none=True) for m in self.messages]
        return data


class ModelCard(BaseModel):
    """Basic model card for minimal response."""
    id: str
    object: str = "model"
    created: int = Field(default_factory=lambda: int(time.time()))
    owned_by: str = OPENAI_MODEL_OWNER


class ModelList(BaseModel):
    """List of models response."""
    object: str = "list"
    data: List[ModelCard]
