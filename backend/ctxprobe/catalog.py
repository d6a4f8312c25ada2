"""Model catalog: theoretical limits, prices, and encodings per model.

The probe treats these numbers as claims to be checked, not facts. Falls back
to a conservative descriptor (no pricing) for unknown models.
"""

from ctxprobe.models import ModelDescriptor

DEFAULT_CONTEXT_LIMIT = 200_000
DEFAULT_OUTPUT_LIMIT = 4_096

# Prices are USD per 1000 tokens (input, output).
_KNOWN_MODELS: list[ModelDescriptor] = [
    # Anthropic
    ModelDescriptor(
        model="claude-sonnet-4-5-20250929", provider="anthropic",
        max_context_tokens=200_000, max_output_tokens=64_000,
        input_price_per_1k=0.003, output_price_per_1k=0.015, encoding="claude",
    ),
    ModelDescriptor(
        model="claude-haiku-4-5-20251001", provider="anthropic",
        max_context_tokens=200_000, max_output_tokens=64_000,
        input_price_per_1k=0.001, output_price_per_1k=0.005, encoding="claude",
    ),
    ModelDescriptor(
        model="claude-3-5-sonnet-20241022", provider="anthropic",
        max_context_tokens=200_000, max_output_tokens=8_192,
        input_price_per_1k=0.003, output_price_per_1k=0.015, encoding="claude",
    ),
    ModelDescriptor(
        model="claude-3-haiku-20240307", provider="anthropic",
        max_context_tokens=200_000, max_output_tokens=4_096,
        input_price_per_1k=0.00025, output_price_per_1k=0.00125, encoding="claude",
    ),
    # OpenAI
    ModelDescriptor(
        model="gpt-4o", provider="openai",
        max_context_tokens=128_000, max_output_tokens=16_384,
        input_price_per_1k=0.0025, output_price_per_1k=0.01, encoding="o200k_base",
    ),
    ModelDescriptor(
        model="gpt-4o-mini", provider="openai",
        max_context_tokens=128_000, max_output_tokens=16_384,
        input_price_per_1k=0.00015, output_price_per_1k=0.0006, encoding="o200k_base",
    ),
    ModelDescriptor(
        model="gpt-4.1", provider="openai",
        max_context_tokens=1_047_576, max_output_tokens=32_768,
        input_price_per_1k=0.002, output_price_per_1k=0.008, encoding="o200k_base",
    ),
    ModelDescriptor(
        model="gpt-4-turbo", provider="openai",
        max_context_tokens=128_000, max_output_tokens=4_096,
        input_price_per_1k=0.01, output_price_per_1k=0.03, encoding="cl100k_base",
    ),
    ModelDescriptor(
        model="gpt-4", provider="openai",
        max_context_tokens=8_192, max_output_tokens=4_096,
        input_price_per_1k=0.03, output_price_per_1k=0.06, encoding="cl100k_base",
    ),
    ModelDescriptor(
        model="gpt-3.5-turbo", provider="openai",
        max_context_tokens=16_385, max_output_tokens=4_096,
        input_price_per_1k=0.0005, output_price_per_1k=0.0015, encoding="cl100k_base",
    ),
    ModelDescriptor(
        model="o3-mini", provider="openai",
        max_context_tokens=200_000, max_output_tokens=100_000,
        input_price_per_1k=0.0011, output_price_per_1k=0.0044, encoding="o200k_base",
    ),
    ModelDescriptor(
        model="o4-mini", provider="openai",
        max_context_tokens=200_000, max_output_tokens=100_000,
        input_price_per_1k=0.0011, output_price_per_1k=0.0044, encoding="o200k_base",
    ),
]


class ModelCatalog:
    """Name-keyed descriptor lookup. Also serves as the price table."""

    def __init__(self, descriptors: list[ModelDescriptor] | None = None) -> None:
        self._descriptors: dict[str, ModelDescriptor] = {}
        for descriptor in descriptors if descriptors is not None else _KNOWN_MODELS:
            self.register(descriptor)

    def register(self, descriptor: ModelDescriptor) -> None:
        self._descriptors[descriptor.model] = descriptor

    def get(self, model: str) -> ModelDescriptor | None:
        return self._descriptors.get(model)

    def resolve(self, model: str, provider: str | None = None) -> ModelDescriptor:
        """Look up a model, falling back to a conservative unpriced descriptor."""
        descriptor = self._descriptors.get(model)
        if descriptor is not None:
            return descriptor
        return ModelDescriptor(
            model=model,
            provider=provider or "unknown",
            max_context_tokens=DEFAULT_CONTEXT_LIMIT,
            max_output_tokens=DEFAULT_OUTPUT_LIMIT,
        )

    def prices(self, model: str) -> tuple[float, float]:
        """Return (input, output) price per 1000 tokens; zeros when unknown."""
        descriptor = self.resolve(model)
        return descriptor.input_price_per_1k, descriptor.output_price_per_1k

    def list_models(self) -> list[ModelDescriptor]:
        return list(self._descriptors.values())

    def __contains__(self, model: object) -> bool:
        return model in self._descriptors
