# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""OpenAI-compatible HTTP gateway for the Gemini Code Assist backend."""

from gateway_app.app_factory import create_app
from gateway_app.settings import GatewaySettings

__all__ = ["create_app", "GatewaySettings"]
