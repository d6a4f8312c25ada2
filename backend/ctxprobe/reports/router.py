"""Report API routes."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from ctxprobe.probes.router import get_probe_service
from ctxprobe.probing.service import ProbeService, RunNotFoundError
from ctxprobe.reports.service import (
    render_csv,
    render_history_markdown,
    render_json,
    render_markdown,
)

router = APIRouter(prefix="/api/probes", tags=["reports"])


# Declared before /{run_id}/report so "history" is not taken for a run id.
@router.get("/history/report")
async def history_report(
    service: ProbeService = Depends(get_probe_service),
) -> Response:
    """Markdown comparison of the retained runs."""
    return Response(
        content=render_history_markdown(service.history),
        media_type="text/markdown",
    )


@router.get("/{run_id}/report")
async def probe_report(
    run_id: str,
    format: Literal["markdown", "json", "csv"] = Query("markdown"),
    service: ProbeService = Depends(get_probe_service),
) -> Response:
    """Render a run as Markdown, JSON, or CSV. Running probes render as partial."""
    try:
        result = service.snapshot(run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail=f"Probe run not found: {run_id}")

    if format == "json":
        return JSONResponse(content=render_json(result))

    if format == "csv":
        return Response(
            content=render_csv(result),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="probe-{run_id}.csv"',
            },
        )

    return Response(content=render_markdown(result), media_type="text/markdown")
