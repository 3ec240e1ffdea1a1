"""Concrete generate-content clients for the Gemini and OpenAI APIs."""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

from lesson_arcade.config.schema import ModelConfig
from lesson_arcade.errors import RemoteError

from .base import ContentBackend, GenerateRequest


class GeminiBackend:
    """
    Client built on the ``google-genai`` SDK.

    Structured output uses the SDK's ``response_schema`` with a JSON response
    mime type, so the returned text is schema-conforming JSON.
    """

    def __init__(
        self,
        config: ModelConfig,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self.config = config
        from google.genai import types

        self._types = types
        if client is not None:
            self._client = client
            return

        key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not key:
            raise RuntimeError("GEMINI_API_KEY must be set or a genai client provided.")
        from google import genai

        self._client = genai.Client(api_key=key)

    def generate(self, model: str, request: GenerateRequest) -> str:
        types = self._types
        config_kwargs: Dict[str, Any] = {}
        if request.system_instruction:
            config_kwargs["system_instruction"] = request.system_instruction
        if request.response_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = request.response_schema
        if self.config.temperature is not None:
            config_kwargs["temperature"] = self.config.temperature
        if self.config.max_output_tokens is not None:
            config_kwargs["max_output_tokens"] = self.config.max_output_tokens

        response = self._client.models.generate_content(
            model=model,
            contents=request.prompt,
            config=types.GenerateContentConfig(**config_kwargs),
        )
        text = (response.text or "").strip()
        if not text:
            raise RemoteError("Empty response from Gemini.", model=model)
        return text


class OpenAIBackend:
    """Chat-completions client for OpenAI-compatible endpoints."""

    def __init__(self, config: ModelConfig, api_key: Optional[str] = None, client: Optional[Any] = None):
        self.config = config
        if client is not None:
            self.client = client
            return
        from openai import OpenAI

        key = api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            raise RuntimeError("OPENAI_API_KEY must be set or an OpenAI client provided.")
        self.client = OpenAI(api_key=key)

    def generate(self, model: str, request: GenerateRequest) -> str:
        messages: List[Dict[str, str]] = []
        system_parts: List[str] = []
        if request.system_instruction:
            system_parts.append(request.system_instruction)
        if request.response_schema is not None:
            # Chat completions cannot enforce array-rooted schemas, so describe it instead.
            system_parts.append(
                "Always respond with strict JSON matching this schema:\n"
                + json.dumps(request.response_schema, indent=2)
                + "\nDo not wrap the JSON in markdown fences."
            )
        if system_parts:
            messages.append({"role": "system", "content": "\n\n".join(system_parts)})
        messages.append({"role": "user", "content": request.prompt})

        params: Dict[str, Any] = {"model": model, "messages": messages}
        if self.config.temperature is not None:
            params["temperature"] = self.config.temperature
        if self.config.max_output_tokens is not None:
            params["max_tokens"] = self.config.max_output_tokens
        response = self.client.chat.completions.create(**params)
        text = (response.choices[0].message.content or "").strip()
        if not text:
            raise RemoteError("Empty response from OpenAI.", model=model)
        return text


def create_backend(config: ModelConfig, api_key: Optional[str] = None) -> ContentBackend:
    """Instantiate the backend named by ``config.provider``."""
    if config.provider == "openai":
        return OpenAIBackend(config, api_key=api_key)
    return GeminiBackend(config, api_key=api_key)
