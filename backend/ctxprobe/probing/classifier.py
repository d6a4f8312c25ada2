"""Failure classification: boundary signal vs. everything else.

A classifier is any callable taking the raised exception and returning True
when the failure means the request was too large for the model's context.
Anything it rejects is treated as transient by the executor.
"""

from collections.abc import Callable, Iterable

BoundaryClassifier = Callable[[BaseException], bool]

DEFAULT_BOUNDARY_MARKERS: tuple[str, ...] = (
    "token limit exceeded",
    "request too large",
    "context length exceeded",
    "maximum context length",
    "too many tokens",
    "input too long",
    "context_length_exceeded",
    "max_tokens_exceeded",
    "prompt is too long",
    "context window",
    "string_above_max_length",
)


class MarkerClassifier:
    """Case-insensitive substring match against the error message and code."""

    def __init__(self, extra_markers: Iterable[str] = ()) -> None:
        self.markers: tuple[str, ...] = DEFAULT_BOUNDARY_MARKERS + tuple(
            m.lower() for m in extra_markers if m
        )

    def __call__(self, error: BaseException) -> bool:
        haystack = _error_text(error)
        return any(marker in haystack for marker in self.markers)


def _error_text(error: BaseException) -> str:
    parts = [str(error)]
    code = getattr(error, "code", None)
    if code:
        parts.append(str(code))
    # SDK errors carry the provider payload on .body
    body = getattr(error, "body", None)
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict):
            parts.extend(str(inner.get(key, "")) for key in ("message", "code", "type"))
    return " ".join(parts).lower()
