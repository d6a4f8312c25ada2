"""Shared pytest fixtures for ctxprobe tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from ctxprobe.main import app
from ctxprobe.probes.router import get_probe_service
from ctxprobe.transports.registry import clear_transports
from tests.fixtures import make_service


@pytest.fixture
def service():
    """ProbeService with the word counter, the test catalog, and no retry delay."""
    return make_service()


@pytest.fixture
async def client(service):
    """Async test client with the probe service wired into the app."""
    clear_transports()
    app.dependency_overrides[get_probe_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
    clear_transports()
