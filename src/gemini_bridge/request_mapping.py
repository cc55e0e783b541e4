# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/gemini_bridge/request_mapping.py

import copy
import json
import logging
import posixpath
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse

from .constants import DEFAULT_MAX_OUTPUT_TOKENS, DEFAULT_TEMPERATURE
from .error_handler import InvalidRequestError
from .reasoning import extract_text_content

lib_logger = logging.getLogger("gemini_bridge")

SUPPORTED_IMAGE_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"

_EXTENSION_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

# JSON-schema keys the backend's function declarations reject
_UNSUPPORTED_SCHEMA_KEYS = ("additionalProperties", "$schema", "strict")


@dataclass(frozen=True)
class ImageValidation:
    is_valid: bool
    mime_type: Optional[str] = None
    error: Optional[str] = None


def validate_image_url(url: Any) -> ImageValidation:
    """Accept base64 data URLs and http(s) URLs for jpeg/png/gif/webp images."""
    if not isinstance(url, str) or not url:
        return ImageValidation(False, error="Image URL is empty")

    if url.startswith("data:"):
        header, sep, data = url.partition(",")
        if not sep or not data:
            return ImageValidation(False, error="Data URL has no payload")
        media = header[len("data:"):]
        mime_type, _, encoding = media.partition(";")
        mime_type = mime_type.strip().lower()
        if mime_type == "image/jpg":
            mime_type = "image/jpeg"
        if encoding.strip().lower() != "base64":
            return ImageValidation(False, error="Data URL must be base64 encoded")
        if mime_type not in SUPPORTED_IMAGE_MIME_TYPES:
            return ImageValidation(
                False,
                error=f"Unsupported image format '{mime_type or 'unknown'}'. "
                f"Supported formats: {', '.join(SUPPORTED_IMAGE_MIME_TYPES)}",
            )
        return ImageValidation(True, mime_type=mime_type)

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ImageValidation(False, error="Image URL must be a data URL or an http(s) URL")

    extension = posixpath.splitext(parsed.path)[1].lower()
    mime_type = _EXTENSION_MIME_TYPES.get(extension, DEFAULT_IMAGE_MIME_TYPE)
    return ImageValidation(True, mime_type=mime_type)


def has_image_content(messages: Sequence[Dict[str, Any]]) -> bool:
    for message in messages:
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, list):
            for item in content:
                if isinstance(item, dict) and item.get("type") == "image_url":
                    return True
    return False


def _image_part(item: Dict[str, Any]) -> Dict[str, Any]:
    image_url = item.get("image_url")
    if isinstance(image_url, dict):
        image_url = image_url.get("url")

    validation = validate_image_url(image_url)
    if not validation.is_valid:
        raise InvalidRequestError(f"Invalid image: {validation.error}")

    if image_url.startswith("data:"):
        data = image_url.partition(",")[2]
        return {"inlineData": {"mimeType": validation.mime_type, "data": data}}

    return {
        "fileData": {
            "mimeType": validation.mime_type or DEFAULT_IMAGE_MIME_TYPE,
            "fileUri": image_url,
        }
    }


def _content_to_parts(content: Any) -> List[Dict[str, Any]]:
    if content is None:
        return []

    if isinstance(content, str):
        return [{"text": content}]

    if isinstance(content, list):
        parts: List[Dict[str, Any]] = []
        for item in content:
            if isinstance(item, str):
                parts.append({"text": item})
            elif not isinstance(item, dict):
                continue
            elif item.get("type") == "text":
                text = item.get("text")
                if isinstance(text, str):
                    parts.append({"text": text})
            elif item.get("type") == "image_url":
                parts.append(_image_part(item))
        return parts

    return [{"text": str(content)}]


def _parse_arguments(arguments: Any) -> Dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str) and arguments.strip():
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            lib_logger.warning(f"Tool call arguments are not valid JSON: {arguments[:200]}")
            return {"arguments": arguments}
        if isinstance(parsed, dict):
            return parsed
        return {"value": parsed}
    return {}


def _tool_result(content: Any) -> Dict[str, Any]:
    text = extract_text_content(content)
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return {"result": text}
    if isinstance(parsed, dict):
        return parsed
    return {"result": parsed}


def convert_messages(
    messages: Sequence[Dict[str, Any]],
) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Convert OpenAI chat messages to backend `contents`.

    Returns the combined system prompt and the conversation turns. The system
    prompt is NOT included in the turns; see `build_contents`.
    """
    system_texts: List[str] = []
    contents: List[Dict[str, Any]] = []
    tool_names: Dict[str, str] = {}

    for message in messages:
        if not isinstance(message, dict):
            continue
        role = message.get("role")
        content = message.get("content")

        if role in ("system", "developer"):
            text = extract_text_content(content)
            if text:
                system_texts.append(text)
            continue

        if role == "tool":
            call_id = message.get("tool_call_id")
            name = tool_names.get(call_id) or message.get("name") or "tool"
            part = {"functionResponse": {"name": name, "response": _tool_result(content)}}
            previous = contents[-1] if contents else None
            if (
                previous is not None
                and previous["role"] == "user"
                and all("functionResponse" in p for p in previous["parts"])
            ):
                previous["parts"].append(part)
            else:
                contents.append({"role": "user", "parts": [part]})
            continue

        if role == "assistant":
            parts = [p for p in _content_to_parts(content) if "text" not in p or p["text"]]
            for tool_call in message.get("tool_calls") or []:
                if not isinstance(tool_call, dict):
                    continue
                function = tool_call.get("function")
                if not isinstance(function, dict):
                    continue
                name = function.get("name")
                if not isinstance(name, str) or not name:
                    continue
                if isinstance(tool_call.get("id"), str):
                    tool_names[tool_call["id"]] = name
                parts.append(
                    {
                        "functionCall": {
                            "name": name,
                            "args": _parse_arguments(function.get("arguments")),
                        }
                    }
                )
            if not parts:
                lib_logger.debug("Skipping assistant message with no content")
                continue
            contents.append({"role": "model", "parts": parts})
            continue

        parts = _content_to_parts(content)
        if not parts:
            parts = [{"text": ""}]
        contents.append({"role": "user", "parts": parts})

    return "\n\n".join(system_texts), contents


def build_contents(messages: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Backend `contents`, with any system prompt as a leading user turn."""
    system_prompt, contents = convert_messages(messages)
    if system_prompt:
        contents.insert(0, {"role": "user", "parts": [{"text": system_prompt}]})
    return contents


def _clean_schema(schema: Any) -> Any:
    if isinstance(schema, dict):
        return {
            key: _clean_schema(value)
            for key, value in schema.items()
            if key not in _UNSUPPORTED_SCHEMA_KEYS
        }
    if isinstance(schema, list):
        return [_clean_schema(item) for item in schema]
    return schema


def convert_tools(tools: Any) -> Optional[List[Dict[str, Any]]]:
    """OpenAI `tools` to a single backend `functionDeclarations` tool entry."""
    if not isinstance(tools, list) or not tools:
        return None

    declarations: List[Dict[str, Any]] = []
    for tool in tools:
        if not isinstance(tool, dict) or tool.get("type", "function") != "function":
            continue
        fn = tool.get("function")
        if not isinstance(fn, dict):
            continue
        name = fn.get("name")
        if not isinstance(name, str) or not name:
            continue

        declaration: Dict[str, Any] = {"name": name}
        if isinstance(fn.get("description"), str):
            declaration["description"] = fn["description"]
        schema = fn.get("parameters")
        if isinstance(schema, dict):
            declaration["parameters"] = _clean_schema(copy.deepcopy(schema))
        declarations.append(declaration)

    if not declarations:
        return None
    return [{"functionDeclarations": declarations}]


def convert_tool_choice(tool_choice: Any) -> Optional[Dict[str, Any]]:
    if tool_choice is None:
        return None

    if isinstance(tool_choice, str):
        mode = {"none": "NONE", "auto": "AUTO", "required": "ANY"}.get(tool_choice, "AUTO")
        return {"functionCallingConfig": {"mode": mode}}

    if isinstance(tool_choice, dict):
        fn = tool_choice.get("function")
        name = fn.get("name") if isinstance(fn, dict) else tool_choice.get("name")
        if isinstance(name, str) and name:
            return {
                "functionCallingConfig": {"mode": "ANY", "allowedFunctionNames": [name]}
            }

    return {"functionCallingConfig": {"mode": "AUTO"}}


def build_generation_config(
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    max_tokens: Optional[int] = None,
    stop: Union[str, Sequence[str], None] = None,
    thinking_budget: Optional[int] = None,
    include_thoughts: bool = False,
) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
        "maxOutputTokens": DEFAULT_MAX_OUTPUT_TOKENS if max_tokens is None else max_tokens,
    }
    if top_p is not None:
        config["topP"] = top_p
    if stop:
        config["stopSequences"] = [stop] if isinstance(stop, str) else list(stop)

    thinking_config: Dict[str, Any] = {}
    if thinking_budget is not None:
        thinking_config["thinkingBudget"] = thinking_budget
    if include_thoughts:
        thinking_config["includeThoughts"] = True
    if thinking_config:
        config["thinkingConfig"] = thinking_config

    return config


def build_stream_request(
    model: str,
    project: str,
    messages: Sequence[Dict[str, Any]],
    *,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    max_tokens: Optional[int] = None,
    stop: Union[str, Sequence[str], None] = None,
    tools: Any = None,
    tool_choice: Any = None,
    thinking_budget: Optional[int] = None,
    include_thoughts: bool = False,
) -> Dict[str, Any]:
    """Full streamGenerateContent body for one chat request."""
    request: Dict[str, Any] = {
        "contents": build_contents(messages),
        "generationConfig": build_generation_config(
            temperature=temperature,
            top_p=top_p,
            max_tokens=max_tokens,
            stop=stop,
            thinking_budget=thinking_budget,
            include_thoughts=include_thoughts,
        ),
    }

    converted_tools = convert_tools(tools)
    if converted_tools:
        request["tools"] = converted_tools
        tool_config = convert_tool_choice(tool_choice)
        if tool_config:
            request["toolConfig"] = tool_config

    return {"model": model, "project": project, "request": request}
