"""Transport registry: configured chat transports, keyed by provider name."""

from ctxprobe.models import ModelDescriptor
from ctxprobe.transports.base import ChatTransport

_transports: dict[str, ChatTransport] = {}


def register_transport(transport: ChatTransport) -> None:
    """Register a transport instance by name. Re-registering a name replaces it."""
    _transports[transport.name] = transport


def get_transport(name: str) -> ChatTransport:
    """Get a registered transport by name. Raises TransportNotFoundError if not found."""
    try:
        return _transports[name]
    except KeyError:
        available = ", ".join(_transports.keys()) or "(none)"
        raise TransportNotFoundError(
            f"Transport '{name}' not registered. Available: {available}"
        )


def resolve_transport(name: str | None, descriptor: ModelDescriptor) -> ChatTransport:
    """Pick the transport for a probe.

    An explicit name wins. Otherwise the model's catalog provider is used.
    Models missing from the catalog carry no usable provider, so a sole
    registered transport is taken for them.
    """
    if name:
        return get_transport(name)
    if descriptor.provider in _transports:
        return _transports[descriptor.provider]
    if len(_transports) == 1:
        return next(iter(_transports.values()))
    return get_transport(descriptor.provider)


def list_transports() -> list[str]:
    """Return names of all registered transports."""
    return list(_transports.keys())


def describe_transports() -> list[dict]:
    """Name and suggested models of every registered transport, for the API."""
    return [
        {"name": t.name, "available": True, "models": list(t.suggested_models)}
        for t in _transports.values()
    ]


def clear_transports() -> None:
    """Clear all registered transports. Used in tests and at shutdown."""
    _transports.clear()


class TransportNotFoundError(Exception):
    pass
