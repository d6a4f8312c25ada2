"""Ollama chat transport.

Ollama serves local models behind an OpenAI-compatible API at /v1. Its
context limit is whatever num_ctx the model was loaded with, so probing it
is often the only way to learn the real number.
"""

from openai import AsyncOpenAI

from ctxprobe.transports.openai_compat import OpenAICompatibleTransport

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaTransport(OpenAICompatibleTransport):
    def __init__(
        self,
        *,
        client: AsyncOpenAI | None = None,
        base_url: str = DEFAULT_OLLAMA_URL,
    ) -> None:
        if client is None:
            client = AsyncOpenAI(api_key="ollama", base_url=f"{base_url.rstrip('/')}/v1")
        super().__init__(client, name="ollama")
