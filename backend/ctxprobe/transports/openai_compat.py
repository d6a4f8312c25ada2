"""Shared base class for OpenAI-compatible chat transports.

Handles parameter building, response parsing, and SDK error translation.
OpenAITransport, OpenRouterTransport and OllamaTransport are thin subclasses
that differ only in client configuration.
"""

from typing import Any

import openai
from openai import AsyncOpenAI

from ctxprobe.transports.base import ChatTransport, TransportError, TransportReply


class OpenAICompatibleTransport(ChatTransport):
    """Base transport for any API that speaks the OpenAI chat completions protocol."""

    def __init__(self, client: AsyncOpenAI, *, name: str = "openai-compatible") -> None:
        self._client = client
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def send(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_output_tokens: int,
    ) -> TransportReply:
        params = self._build_params(messages, model, max_output_tokens)
        try:
            response = await self._client.chat.completions.create(**params)
        except openai.APIStatusError as e:
            raise TransportError(
                e.message, code=_error_code(e), status_code=e.status_code
            ) from e
        except openai.APIConnectionError as e:
            raise TransportError(str(e) or "Connection error", code="connection_error") from e

        choice = response.choices[0]
        usage = response.usage
        return TransportReply(
            content=choice.message.content or "",
            output_tokens=usage.completion_tokens if usage else 0,
            input_tokens=usage.prompt_tokens if usage else None,
            model=response.model,
            finish_reason=choice.finish_reason,
        )

    @staticmethod
    def _build_params(
        messages: list[dict[str, str]], model: str, max_output_tokens: int
    ) -> dict[str, Any]:
        """Build kwargs dict for client.chat.completions.create()."""
        return {
            "model": model,
            "max_tokens": max(1, max_output_tokens),
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        }


def _error_code(error: openai.APIStatusError) -> str | None:
    # OpenAI puts 'context_length_exceeded' on .code; some compatible servers only set .type
    code = getattr(error, "code", None) or getattr(error, "type", None)
    return str(code) if code else None
