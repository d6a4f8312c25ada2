"""Shared test helpers: fake counters, fake transports, a small catalog."""

import asyncio

from ctxprobe.catalog import ModelCatalog
from ctxprobe.config import Settings
from ctxprobe.models import ModelDescriptor, ProbeConfiguration
from ctxprobe.probing.service import ProbeService
from ctxprobe.probing.tokens import DEFAULT_ENCODING, TokenCounter
from ctxprobe.transports.base import ChatTransport, TransportError, TransportReply

TEST_MODEL = "test-model"
TEST_CONTEXT_LIMIT = 50_000


class WordTokenCounter(TokenCounter):
    """One token per whitespace-separated word. Additive across whitespace joins."""

    def count(self, text: str, encoding: str = DEFAULT_ENCODING) -> int:
        return len(text.split())


class ThresholdTransport(ChatTransport):
    """Fails with a context-length error iff the prompt has more than `threshold` tokens.

    Counts with `counter` (one token per word by default).
    """

    def __init__(
        self,
        threshold: int,
        *,
        output_tokens: int = 10,
        input_tokens: int | None = None,
        transport_name: str = "fake",
        counter: TokenCounter | None = None,
    ) -> None:
        self.threshold = threshold
        self.output_tokens = output_tokens
        self.input_tokens = input_tokens
        self._name = transport_name
        self._counter = counter or WordTokenCounter()
        self.calls: list[int] = []
        self.max_output_tokens: list[int] = []

    @property
    def name(self) -> str:
        return self._name

    async def send(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_output_tokens: int,
    ) -> TransportReply:
        tokens = sum(self._counter.count(m["content"]) for m in messages)
        self.calls.append(tokens)
        self.max_output_tokens.append(max_output_tokens)
        self.before_reply(len(self.calls))
        if tokens > self.threshold:
            raise TransportError(
                f"This model's maximum context length is {self.threshold} tokens. "
                f"However, your messages resulted in {tokens} tokens.",
                code="context_length_exceeded",
                status_code=400,
            )
        return TransportReply(
            content="ACK",
            output_tokens=self.output_tokens,
            input_tokens=self.input_tokens,
            model=model,
            finish_reason="stop",
        )

    def before_reply(self, call_number: int) -> None:
        """Hook for subclasses; runs after the call is recorded."""


class FlakyTransport(ThresholdTransport):
    """Raises a rate-limit error on the listed (1-based) call numbers."""

    def __init__(self, threshold: int, failing_calls: set[int], **kwargs) -> None:
        super().__init__(threshold, **kwargs)
        self.failing_calls = failing_calls

    def before_reply(self, call_number: int) -> None:
        if call_number in self.failing_calls:
            raise TransportError(
                "Rate limit reached for requests", code="rate_limit_exceeded", status_code=429
            )


class AlwaysFailingTransport(ThresholdTransport):
    def __init__(self, error: Exception) -> None:
        super().__init__(threshold=10**9)
        self.error = error

    def before_reply(self, call_number: int) -> None:
        raise self.error


class HangingTransport(ThresholdTransport):
    """Never answers until `release` is set. `started` fires on every call."""

    def __init__(self) -> None:
        super().__init__(threshold=10**9)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def send(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_output_tokens: int,
    ) -> TransportReply:
        self.calls.append(sum(self._counter.count(m["content"]) for m in messages))
        self.started.set()
        await self.release.wait()
        return TransportReply(content="ACK", output_tokens=self.output_tokens)


def make_catalog() -> ModelCatalog:
    return ModelCatalog([
        ModelDescriptor(
            model=TEST_MODEL,
            provider="fake",
            max_context_tokens=TEST_CONTEXT_LIMIT,
            max_output_tokens=4_096,
            input_price_per_1k=0.001,
            output_price_per_1k=0.002,
            encoding="cl100k_base",
        ),
    ])


def make_settings(**overrides) -> Settings:
    values = {"retry_base_delay": 0.0, "retry_max_delay": 0.0, "token_counter": "approximate"}
    values.update(overrides)
    return Settings(**values)


def make_service(**settings_overrides) -> ProbeService:
    return ProbeService(
        make_catalog(),
        WordTokenCounter(),
        settings=make_settings(**settings_overrides),
    )


def make_config(**overrides) -> ProbeConfiguration:
    values = {
        "model": TEST_MODEL,
        "strategy": "binary",
        "min_tokens": 0,
        "max_tokens": 100_000,
        "precision": 100,
        "timeout_seconds": 5.0,
        "output_tokens": 10,
    }
    values.update(overrides)
    return ProbeConfiguration(**values)


class FailingTokenCounter(TokenCounter):
    """Raises on every count, like tiktoken when its encoding file cannot be fetched."""

    def count(self, text: str, encoding: str = DEFAULT_ENCODING) -> int:
        raise ConnectionError("could not download encoding file")
