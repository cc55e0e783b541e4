# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/__init__.py

from .classifier import ChunkClassifier
from .credential_store import CredentialStore, FileCredentialStore, MemoryCredentialStore
from .encoder import OpenAIStreamEncoder, format_sse
from .error_handler import (
    AuthConfigError,
    AuthRefreshError,
    DecodeWarning,
    GatewayError,
    InvalidRequestError,
    ProjectDiscoveryError,
    UpstreamProtocolError,
    UpstreamRequestError,
    mask_credential,
)
from .models import (
    DEFAULT_MODEL,
    GEMINI_CLI_MODELS,
    ModelInfo,
    get_all_model_ids,
    get_model,
    is_thinking_model,
)
from .project_resolver import ProjectResolver
from .reasoning import ReasoningSynthesizer
from .session import GeminiSession, aggregate_chunks
from .sse_decoder import SSEDecoderState, decode_sse_stream
from .token_manager import Credential, TokenLifecycleManager
from .upstream import UpstreamRequestDriver

__all__ = [
    "ChunkClassifier",
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "OpenAIStreamEncoder",
    "format_sse",
    "AuthConfigError",
    "AuthRefreshError",
    "DecodeWarning",
    "GatewayError",
    "InvalidRequestError",
    "ProjectDiscoveryError",
    "UpstreamProtocolError",
    "UpstreamRequestError",
    "mask_credential",
    "DEFAULT_MODEL",
    "GEMINI_CLI_MODELS",
    "ModelInfo",
    "get_all_model_ids",
    "get_model",
    "is_thinking_model",
    "ProjectResolver",
    "ReasoningSynthesizer",
    "GeminiSession",
    "aggregate_chunks",
    "SSEDecoderState",
    "decode_sse_stream",
    "Credential",
    "TokenLifecycleManager",
    "UpstreamRequestDriver",
]
