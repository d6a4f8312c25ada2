"""ctxprobe FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from anthropic import AsyncAnthropic
from dotenv import load_dotenv
from fastapi import Depends, FastAPI

from ctxprobe.catalog import ModelCatalog
from ctxprobe.config import Settings
from ctxprobe.models import ModelDescriptor
from ctxprobe.probes.router import get_probe_service
from ctxprobe.probes.router import router as probes_router
from ctxprobe.probing.service import ProbeService
from ctxprobe.reports.router import router as reports_router
from ctxprobe.transports.anthropic import AnthropicTransport
from ctxprobe.transports.ollama import OllamaTransport
from ctxprobe.transports.openai import OpenAITransport
from ctxprobe.transports.openrouter import OpenRouterTransport
from ctxprobe.transports.registry import (
    clear_transports,
    describe_transports,
    register_transport,
)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load settings, register transports, and wire the probe service."""
    # Load .env from backend/ directory (secrets stay out of shell profile)
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    settings = Settings.from_env()
    logging.getLogger("ctxprobe").setLevel(settings.log_level)

    # Register a transport for every configured credential
    if os.environ.get("ANTHROPIC_API_KEY"):
        register_transport(AnthropicTransport(AsyncAnthropic()))

    if os.environ.get("OPENAI_API_KEY"):
        register_transport(OpenAITransport(api_key=os.environ["OPENAI_API_KEY"]))

    if os.environ.get("OPENROUTER_API_KEY"):
        register_transport(OpenRouterTransport(api_key=os.environ["OPENROUTER_API_KEY"]))

    if os.environ.get("OLLAMA_BASE_URL"):
        register_transport(OllamaTransport(base_url=os.environ["OLLAMA_BASE_URL"]))

    catalog = ModelCatalog()
    service = ProbeService(catalog, settings=settings)
    app.dependency_overrides[get_probe_service] = lambda: service

    yield

    for run_id in service.active_runs():
        service.cancel(run_id)
    clear_transports()


app = FastAPI(
    title="ctxprobe",
    description=(
        "Discovers the context length a language-model endpoint actually accepts"
        " by probing it with measured payloads"
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.include_router(reports_router)
app.include_router(probes_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": VERSION}


@app.get("/api/models")
async def models(service: ProbeService = Depends(get_probe_service)) -> list[ModelDescriptor]:
    return service.catalog.list_models()


@app.get("/api/transports")
async def transports() -> list[dict]:
    return describe_transports()
