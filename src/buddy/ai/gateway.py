"""
OpenAI-compatible chat-completions client for the LLM gateway.

All modules that call the model go through ``AIGateway``; replies are
expected to be JSON objects.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
import structlog

from buddy.config import get_settings

logger = structlog.get_logger()

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class AIGatewayError(Exception):
    """The gateway failed or returned something we could not parse."""


def parse_json_reply(content: str) -> dict[str, Any]:
    """Parse a model reply as a JSON object, tolerating a ```json fence."""
    text = content.strip()
    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Model reply is not valid JSON: {e}"
        raise AIGatewayError(msg) from e
    if not isinstance(data, dict):
        msg = "Model reply is not a JSON object"
        raise AIGatewayError(msg)
    return data


class AIGateway:
    """Thin async client over the gateway's chat-completions endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def complete_json(self, system: str, user: str) -> dict[str, Any]:
        """Send a system+user prompt and return the reply parsed as JSON."""
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "messages": [
                            {"role": "system", "content": system},
                            {"role": "user", "content": user},
                        ],
                    },
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("ai_gateway_error", status=e.response.status_code)
            msg = f"AI API error: {e.response.status_code}"
            raise AIGatewayError(msg) from e
        except httpx.HTTPError as e:
            logger.warning("ai_gateway_unreachable", error=str(e))
            msg = f"AI gateway unreachable: {e}"
            raise AIGatewayError(msg) from e

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            msg = "Unexpected AI gateway response shape"
            raise AIGatewayError(msg) from e
        return parse_json_reply(content)


def get_ai_gateway() -> AIGateway:
    """Build the gateway client from settings (FastAPI dependency)."""
    settings = get_settings()
    return AIGateway(
        url=settings.ai_gateway_url,
        api_key=settings.ai_gateway_api_key,
        model=settings.ai_model,
        timeout=settings.ai_timeout_seconds,
    )
