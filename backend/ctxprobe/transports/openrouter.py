"""OpenRouter chat transport: thin subclass of OpenAICompatibleTransport.

OpenRouter routes to many vendors' models behind one OpenAI-compatible API,
which makes it a convenient way to probe models without their own SDK.
"""

from openai import AsyncOpenAI

from ctxprobe.transports.openai_compat import OpenAICompatibleTransport

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterTransport(OpenAICompatibleTransport):
    suggested_models = [
        "anthropic/claude-sonnet-4-5",
        "openai/gpt-4o",
        "google/gemini-2.5-pro",
        "deepseek/deepseek-chat",
        "meta-llama/llama-4-maverick",
        "mistralai/mistral-large",
    ]

    def __init__(self, *, client: AsyncOpenAI | None = None, api_key: str | None = None) -> None:
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=OPENROUTER_BASE_URL,
                default_headers={"X-Title": "ctxprobe"},
            )
        super().__init__(client, name="openrouter")
