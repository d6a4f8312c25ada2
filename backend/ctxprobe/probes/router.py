"""FastAPI routes for starting, watching, and cancelling probe runs."""

import asyncio
import json as json_module
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from ctxprobe.models import ProbeConfiguration, ProbeResult, ProbeStep
from ctxprobe.probes.intent import parse_probe_request
from ctxprobe.probes.schemas import (
    CancelResponse,
    ParseProbeRequest,
    RunAccepted,
    RunSummary,
    StartProbeRequest,
)
from ctxprobe.probing.service import ConfigurationError, ProbeService, RunNotFoundError
from ctxprobe.transports.registry import TransportNotFoundError, resolve_transport

router = APIRouter(prefix="/api/probes", tags=["probes"])


def get_probe_service() -> ProbeService:
    """Dependency placeholder; replaced at app startup."""
    raise RuntimeError("ProbeService not initialized")


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=None)
async def start_probe(
    request: StartProbeRequest,
    service: ProbeService = Depends(get_probe_service),
) -> RunAccepted | StreamingResponse:
    try:
        config = request.to_configuration()
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.errors)

    try:
        transport = resolve_transport(request.transport, service.catalog.resolve(config.model))
    except TransportNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.stream:
        try:
            queue: asyncio.Queue[ProbeStep | None] = asyncio.Queue()
            run_id = service.start(config, transport, on_step=queue.put_nowait)
        except ConfigurationError as e:
            raise HTTPException(status_code=422, detail=e.errors)
        return StreamingResponse(
            _stream_sse(service, run_id, queue),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    try:
        run_id = service.start(config, transport)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    return RunAccepted(run_id=run_id)


@router.post("/parse")
async def parse_probe(
    request: ParseProbeRequest,
    service: ProbeService = Depends(get_probe_service),
) -> ProbeConfiguration:
    """Turn a free-text request into a configuration without starting anything."""
    try:
        return parse_probe_request(request.text, service.catalog)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.errors)


@router.get("")
async def list_probes(
    service: ProbeService = Depends(get_probe_service),
) -> list[RunSummary]:
    """Running probes first, then finished ones newest first."""
    running = [service.snapshot(run_id) for run_id in service.active_runs()]
    finished = service.history.results()
    return [RunSummary.from_result(r) for r in running + finished]


@router.get("/{run_id}")
async def get_probe(
    run_id: str,
    service: ProbeService = Depends(get_probe_service),
) -> ProbeResult:
    try:
        return service.snapshot(run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail=f"Probe run not found: {run_id}")


@router.post("/{run_id}/cancel")
async def cancel_probe(
    run_id: str,
    service: ProbeService = Depends(get_probe_service),
) -> CancelResponse:
    try:
        cancelled = service.cancel(run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail=f"Probe run not found: {run_id}")
    return CancelResponse(run_id=run_id, cancelled=cancelled)


async def _stream_sse(
    service: ProbeService,
    run_id: str,
    queue: asyncio.Queue[ProbeStep | None],
) -> AsyncIterator[str]:
    """Async generator that yields one SSE event per step, then the result."""
    waiter = asyncio.ensure_future(service.wait(run_id))
    waiter.add_done_callback(lambda _: queue.put_nowait(None))
    try:
        while True:
            step = await queue.get()
            if step is None:
                break
            data = {"type": "step", **step.model_dump(mode="json")}
            yield f"event: step\ndata: {json_module.dumps(data)}\n\n"

        result = waiter.result()
        data = {"type": "result", **result.model_dump(mode="json")}
        yield f"event: result\ndata: {json_module.dumps(data)}\n\n"
    except Exception as e:
        error = {"error": str(e)}
        yield f"event: error\ndata: {json_module.dumps(error)}\n\n"
    finally:
        if not waiter.done():
            # Client went away mid-run
            service.cancel(run_id)
