"""OpenAI chat transport: thin subclass of OpenAICompatibleTransport."""

from openai import AsyncOpenAI

from ctxprobe.transports.openai_compat import OpenAICompatibleTransport


class OpenAITransport(OpenAICompatibleTransport):
    """Transport backed by OpenAI's Chat Completions API."""

    suggested_models = [
        "gpt-4.1",
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "o4-mini",
    ]

    def __init__(self, *, client: AsyncOpenAI | None = None, api_key: str | None = None) -> None:
        super().__init__(client or AsyncOpenAI(api_key=api_key), name="openai")
