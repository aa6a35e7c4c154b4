"""OpenAI-compatible chat completion source.

Works with any endpoint the ``openai`` SDK can talk to (OpenAI, Ollama at
``http://localhost:11434/v1``, OpenRouter, DashScope compatible mode).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from streamblocks.errors import SourceError
from streamblocks.types.config import SourceConfig

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class OpenAISource:
    """Streams the assistant reply to one user prompt as text deltas."""

    def __init__(
        self,
        prompt: str,
        config: SourceConfig | None = None,
        *,
        system: str | None = None,
        client: Any | None = None,
    ) -> None:
        self._prompt = prompt
        self._config = config or SourceConfig(provider="openai")
        self._system = system
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import AsyncOpenAI

            kwargs: dict[str, Any] = {}
            if self._config.api_key is not None:
                kwargs["api_key"] = self._config.api_key
            if self._config.base_url is not None:
                kwargs["base_url"] = self._config.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    def _messages(self) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if self._system:
            messages.append({"role": "system", "content": self._system})
        messages.append({"role": "user", "content": self._prompt})
        return messages

    async def stream(self) -> AsyncIterator[str]:
        import openai

        model = self._config.model or DEFAULT_OPENAI_MODEL
        try:
            stream = await self._get_client().chat.completions.create(
                model=model,
                messages=self._messages(),
                temperature=self._config.temperature,
                top_p=self._config.top_p,
                stream=True,
            )
            logger.info("OpenAI stream opened (%s)", model)
            async for chunk in stream:
                choice = chunk.choices[0] if chunk.choices else None
                if choice is None:
                    continue
                if choice.delta.content:
                    yield choice.delta.content
        except openai.OpenAIError as exc:
            status = getattr(exc, "status_code", None)
            raise SourceError(f"OpenAI request failed: {exc}", status_code=status) from exc
