# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/constants.py

# Code Assist API constants
CODE_ASSIST_ENDPOINT = "https://cloudcode-pa.googleapis.com"
CODE_ASSIST_API_VERSION = "v1internal"
STREAM_METHOD = "streamGenerateContent"
LOAD_CODE_ASSIST_METHOD = "loadCodeAssist"

# OAuth constants (public Gemini CLI installed-app client)
OAUTH_CLIENT_ID = "681255809395-oo8ft2oprdrnp9e3aqf6av3hmdib135j.apps.googleusercontent.com"
OAUTH_CLIENT_SECRET = "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"
OAUTH_REFRESH_URL = "https://oauth2.googleapis.com/token"

# Refresh when token is close to expiry
TOKEN_BUFFER_SECONDS = 5 * 60  # 5 minutes
TOKEN_CACHE_KEY = "oauth_token_cache"

# Placeholder project hint sent to loadCodeAssist
DISCOVERY_PROJECT_HINT = "default-project"

# OpenAI wire constants
OPENAI_CHAT_COMPLETION_CHUNK_OBJECT = "chat.completion.chunk"
OPENAI_CHAT_COMPLETION_OBJECT = "chat.completion"
OPENAI_MODEL_OWNER = "google-gemini-cli"
SSE_DONE_SENTINEL = "data: [DONE]\n\n"

# Generation defaults
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_TOKENS = 8192

# Synthetic reasoning templates, first one receives the request preview
REASONING_MESSAGES = [
    '🔍 **Analyzing the request: "{requestPreview}"**\n\n',
    "🤔 Let me think about this step by step... ",
    "💭 I need to consider the context and provide a comprehensive response. ",
    "🎯 Based on my understanding, I should address the key points while being accurate and helpful. ",
    "✨ Let me formulate a clear and structured answer.\n\n",
]
REASONING_CHUNK_DELAY_SECONDS = 0.1
REASONING_INLINE_CHUNK_SIZE = 15
REASONING_PREVIEW_LENGTH = 100
THINKING_OPEN_TAG = "<thinking>\n"
THINKING_CLOSE_TAG = "\n</thinking>\n\n"
