# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
OpenAI-compatible API routes.

This module contains the OpenAI-compatible endpoints plus the public health endpoints:
- Chat completions (/v1/chat/completions)
- Models list (/v1/models)
- Root and health checks (/, /health)
"""

import json
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from gemini_bridge import GeminiSession, get_all_model_ids, get_model
from gemini_bridge.request_mapping import has_image_content
from gateway_app.dependencies import get_session, verify_api_key
from gateway_app.error_mapping import map_gateway_error
from gateway_app.models import ChatCompletionRequest, ModelCard, ModelList
from gateway_app.streaming import SSE_HEADERS, streaming_response_wrapper

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/")
async def root():
    return {
        "name": "Gemini Gateway",
        "description": "OpenAI-compatible API for the Gemini Code Assist backend",
        "endpoints": {
            "chat_completions": "/v1/chat/completions",
            "models": "/v1/models",
            "debug_cache": "/v1/debug/cache",
            "token_test": "/v1/token-test",
            "full_test": "/v1/test",
        },
    }


@router.get("/health")
async def health():
    return {"status": "ok", "timestamp": int(time.time())}


@router.get("/v1/models", response_model=ModelList)
async def list_models(_=Depends(verify_api_key)):
    """Returns the static catalog of supported Gemini models."""
    return ModelList(data=[ModelCard(id=model_id) for model_id in get_all_model_ids()])


def _validate_chat_request(body: ChatCompletionRequest) -> None:
    """Reject requests the pipeline cannot serve, before any upstream call."""
    if not body.messages:
        raise HTTPException(status_code=400, detail="messages is a required field")

    model_info = get_model(body.model)
    if model_info is None:
        raise HTTPException(
            status_code=400,
            detail=f"Model '{body.model}' not found. "
            f"Available models: {', '.join(get_all_model_ids())}",
        )

    messages = [m.model_dump(exclude_none=True) for m in body.messages]
    if has_image_content(messages) and not model_info.supports_images:
        raise HTTPException(
            status_code=400,
            detail=f"Model '{body.model}' does not support image inputs. "
            "Please use a vision-capable model like gemini-2.5-pro or gemini-2.5-flash.",
        )


@router.post("/v1/chat/completions")
async def chat_completions(
    request: Request,
    _=Depends(verify_api_key),
    session: GeminiSession = Depends(get_session),
):
    """
    OpenAI-compatible chat completions endpoint.
    Handles both streaming and non-streaming responses.
    """
    try:
        try:
            request_data = await request.json()
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid JSON in request body.")

        try:
            body = ChatCompletionRequest.model_validate(request_data)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid Request: {e}")

        _validate_chat_request(body)
        logger.info(
            f"Chat completion request: model={body.model}, "
            f"messages={len(body.messages)}, stream={body.stream}"
        )

        # Auth and project lookup happen before the response is committed
        project_id = await session.prepare()
        pipeline_request = body.to_pipeline_request()

        if body.stream:
            return StreamingResponse(
                streaming_response_wrapper(
                    request, session.stream_chat(pipeline_request, project_id=project_id)
                ),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )

        return await session.complete_chat(pipeline_request, project_id=project_id)

    except HTTPException:
        raise
    except Exception as e:
        raise map_gateway_error(e, "chat_completions")
