"""DashScope text-generation source (server-sent events over httpx).

DashScope resends the full answer in every event's ``output.text``; this
source turns that into plain deltas.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from streamblocks.errors import SourceError
from streamblocks.sources.base import delta_from_cumulative
from streamblocks.types.config import SourceConfig

logger = logging.getLogger(__name__)

DEFAULT_DASHSCOPE_URL = (
    "https://dashscope.aliyuncs.com/api/v1/services/aigc/text-generation/generation"
)
DEFAULT_DASHSCOPE_MODEL = "qwen-turbo"
DONE_SENTINEL = "[DONE]"


def parse_sse_text(line: str) -> str | None:
    """Return ``output.text`` from one ``data:`` line, or None if it has none."""
    payload = line.removeprefix("data:").strip()
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping non-JSON event: %.80s", payload)
        return None
    output = data.get("output") if isinstance(data, dict) else None
    if not isinstance(output, dict):
        return None
    text = output.get("text")
    return text if isinstance(text, str) else None


class DashScopeSource:
    """Streams a single prompt's answer from DashScope as text deltas.

    Parameters
    ----------
    prompt:
        The user prompt.
    config:
        Model, key and sampling settings. ``base_url`` overrides the endpoint.
    transport:
        Optional ``httpx`` transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        prompt: str,
        config: SourceConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self._prompt = prompt
        self._config = config or SourceConfig(provider="dashscope")
        if not self._config.api_key:
            raise SourceError("No DashScope API key (set DASHSCOPE_API_KEY or pass --api-key)")
        self._transport = transport
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._config.base_url or DEFAULT_DASHSCOPE_URL

    def _request_body(self) -> dict[str, Any]:
        return {
            "model": self._config.model or DEFAULT_DASHSCOPE_MODEL,
            "input": {"prompt": self._prompt},
            "parameters": {
                "temperature": self._config.temperature,
                "top_p": self._config.top_p,
            },
            "stream": True,
        }

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "Accept": "text/event-stream",
        }

    async def stream(self) -> AsyncIterator[str]:
        headers = self._headers()
        # No read timeout: generation can pause for a long time between events.
        timeout = httpx.Timeout(self._timeout, connect=10.0)
        last_text = ""
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
                async with client.stream(
                    "POST", self.url, json=self._request_body(), headers=headers,
                ) as response:
                    if response.status_code >= 400:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        raise SourceError(
                            f"DashScope request failed ({response.status_code}): {body[:200]}",
                            status_code=response.status_code,
                            body=body,
                        )
                    logger.info("DashScope stream opened (%s)", self._request_body()["model"])
                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        if line.removeprefix("data:").strip() == DONE_SENTINEL:
                            break
                        full_text = parse_sse_text(line)
                        if not full_text:
                            continue
                        delta = delta_from_cumulative(last_text, full_text)
                        last_text = full_text
                        if delta:
                            yield delta
        except httpx.HTTPError as exc:
            raise SourceError(f"DashScope connection error: {exc}") from exc
