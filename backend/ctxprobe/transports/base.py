"""Abstract chat transport interface and shared data types."""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class TransportReply(BaseModel):
    """Full response from a transport after the endpoint answers."""

    content: str
    output_tokens: int = 0
    input_tokens: int | None = None  # provider-reported usage, when available
    model: str | None = None
    finish_reason: str | None = None


class ChatTransport(ABC):
    """Delivers one conversation to a model endpoint and returns its reply."""

    suggested_models: list[str] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport identifier (e.g., 'anthropic')."""
        ...

    @abstractmethod
    async def send(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_output_tokens: int,
    ) -> TransportReply:
        """Send a non-streaming request. Raises TransportError on API failure."""
        ...


class TransportError(Exception):
    """API failure translated from an SDK exception.

    `code` carries the provider's machine-readable error code when it has one
    (e.g. 'context_length_exceeded'); the failure classifier reads it.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code
