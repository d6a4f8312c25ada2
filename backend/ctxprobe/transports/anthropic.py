"""Anthropic (Claude) chat transport."""

from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from ctxprobe.transports.base import ChatTransport, TransportError, TransportReply


class AnthropicTransport(ChatTransport):
    """Transport backed by Anthropic's Messages API."""

    suggested_models = [
        "claude-sonnet-4-5-20250929",
        "claude-haiku-4-5-20251001",
        "claude-3-5-sonnet-20241022",
        "claude-3-haiku-20240307",
    ]

    def __init__(self, client: AsyncAnthropic) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return "anthropic"

    async def send(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_output_tokens: int,
    ) -> TransportReply:
        try:
            response = await self._client.messages.create(
                model=model,
                max_tokens=max(1, max_output_tokens),
                messages=[{"role": m["role"], "content": m["content"]} for m in messages],
            )
        except anthropic.APIStatusError as e:
            raise TransportError(
                e.message, code=_error_type(e.body), status_code=e.status_code
            ) from e
        except anthropic.APIConnectionError as e:
            raise TransportError(str(e) or "Connection error", code="connection_error") from e

        return TransportReply(
            content=self._extract_text(response),
            output_tokens=response.usage.output_tokens,
            input_tokens=response.usage.input_tokens,
            model=response.model,
            finish_reason=response.stop_reason,
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Extract text content from Anthropic Message response."""
        parts = []
        for block in response.content:
            if block.type == "text":
                parts.append(block.text)
        return "".join(parts)


def _error_type(body: object) -> str | None:
    """Pull error.type out of an Anthropic error body, e.g. 'invalid_request_error'."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("type"):
            return str(error["type"])
    return None
