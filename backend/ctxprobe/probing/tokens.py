"""Token counting abstractions for probe synthesis.

The engine only needs a stable, deterministic count(text, encoding). The
tiktoken counter is the default; the approximate counter is a character-ratio
estimate for endpoints whose tokenizer is not available locally.
"""

import math
from abc import ABC, abstractmethod
from functools import lru_cache

import tiktoken

DEFAULT_ENCODING = "cl100k_base"

# Characters per token, by encoding. Rough English-text averages.
CHARS_PER_TOKEN: dict[str, float] = {
    "cl100k_base": 3.5,
    "o200k_base": 3.8,
    "p50k_base": 4.0,
    "r50k_base": 4.0,
    "claude": 3.8,
}


class TokenCounter(ABC):
    """Interface for counting tokens in text under a named encoding."""

    @abstractmethod
    def count(self, text: str, encoding: str = DEFAULT_ENCODING) -> int:
        """Return the token count of text under the given encoding."""
        ...


class ApproximateTokenCounter(TokenCounter):
    """ceil(len(text) / chars_per_token) for the encoding.

    Adequate for offline dry runs and tests; not precise enough to trust a
    discovered boundary against a real endpoint.
    """

    def count(self, text: str, encoding: str = DEFAULT_ENCODING) -> int:
        if not text:
            return 0
        ratio = CHARS_PER_TOKEN.get(encoding, CHARS_PER_TOKEN[DEFAULT_ENCODING])
        return math.ceil(len(text) / ratio)


class TiktokenCounter(TokenCounter):
    """Exact BPE counts via tiktoken.

    Unknown encodings (e.g. a provider-specific name from the catalog) fall
    back to cl100k_base so the count stays deterministic.
    """

    def count(self, text: str, encoding: str = DEFAULT_ENCODING) -> int:
        if not text:
            return 0
        return len(_get_encoding(encoding).encode(text, disallowed_special=()))


@lru_cache(maxsize=8)
def _get_encoding(name: str) -> tiktoken.Encoding:
    try:
        return tiktoken.get_encoding(name)
    except ValueError:
        return tiktoken.get_encoding(DEFAULT_ENCODING)


def get_token_counter(kind: str) -> TokenCounter:
    """Build a counter by settings name ("tiktoken" or "approximate")."""
    if kind == "approximate":
        return ApproximateTokenCounter()
    if kind == "tiktoken":
        return TiktokenCounter()
    raise ValueError(f"Unknown token counter: {kind!r}")
