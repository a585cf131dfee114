"""
SurfCoachAgent Main Application
===============================

FastAPI entry point for the surf video coaching service.

Analysis runs sample a local video file, send each frame to the active
vision provider and keep the resulting report and annotations in memory
for playback-time rendering.

Endpoints:
    GET  /                           - Service information
    GET  /health                     - Liveness probe
    GET  /providers                  - Registered providers and active selection
    PUT  /providers/active           - Switch the active provider
    PUT  /providers/{id}/credential  - Set or clear a provider credential
    POST /analyze                    - Run an analysis over a local video file
    GET  /report                     - Report of the last successful run
    GET  /annotations?t=             - Annotations active at playback time t
    GET  /overlay?t=                 - Overlay layer at t as an HTML fragment
    GET  /frame.jpg?t=               - Video frame at t with annotations drawn
    GET  /metrics                    - Detailed metrics
    WS   /ws/progress                - Live progress of the running analysis

Error Mapping (POST /analyze):
    InvalidInputError  → 400
    ConfigurationError → 409
    ProviderError      → 502 (backend status and message preserved)
"""

import asyncio
import functools
import json
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, Field

from surfcoach_agent.config import settings
from surfcoach_agent.errors import ConfigurationError, InvalidInputError, ProviderError
from surfcoach_agent.analysis import (
    AnalysisOrchestrator,
    AnnotationSynthesizer,
    PromptBuilder,
    ReportAggregator,
    ResponseParser,
    mock_report,
)
from surfcoach_agent.models import FrameAnalysis, Report
from surfcoach_agent.providers import ProviderRegistry, create_adapter
from surfcoach_agent.render import (
    AnnotationRenderer,
    CanvasSurface,
    OverlaySurface,
    collect_annotations,
)
from surfcoach_agent.video import OpenCVVideoSource


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False
_startup_time: float = 0.0

_registry: Optional[ProviderRegistry] = None
_orchestrator: Optional[AnalysisOrchestrator] = None
_renderer: Optional[AnnotationRenderer] = None

# Last successful run
_video: Optional[OpenCVVideoSource] = None
_current_results: List[FrameAnalysis] = []
_current_report: Optional[Report] = None

_progress: dict = {"percent": 0.0, "status": "idle"}

# Error counters
_run_error_count: int = 0
_last_error: Optional[str] = None


# =============================================================================
# Getters
# =============================================================================

def get_registry() -> Optional[ProviderRegistry]:
    return _registry

def get_orchestrator() -> Optional[AnalysisOrchestrator]:
    return _orchestrator

def get_renderer() -> Optional[AnnotationRenderer]:
    return _renderer

def get_current_report() -> Optional[Report]:
    return _current_report


# =============================================================================
# Request Models
# =============================================================================

class AnalyzeRequest(BaseModel):
    """Body of POST /analyze."""

    video_path: str = Field(..., min_length=1, description="Local path of the video")
    frame_interval_sec: Optional[float] = Field(default=None, description="Overrides config")
    context: Optional[str] = Field(default=None, description="Extra prompt context")
    mock_fallback: Optional[bool] = Field(
        default=None,
        description="Serve the demonstration report when the provider fails",
    )


class ActiveProviderRequest(BaseModel):
    provider_id: str


class CredentialRequest(BaseModel):
    credential: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================

def _report_payload(report: Report) -> dict:
    # model_dump_json writes NaN breakdown axes as null
    return json.loads(report.model_dump_json())


def _error(message: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


async def _on_progress(percent: float, status: str) -> None:
    _progress["percent"] = round(percent, 1)
    _progress["status"] = status


def _record_failure(e: Exception) -> None:
    global _run_error_count, _last_error
    _run_error_count += 1
    _last_error = f"{type(e).__name__}: {e}"
    _progress["status"] = "failed"


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    global _registry, _orchestrator, _renderer, _startup_time, _shutdown_flag
    global _video, _current_report, _current_results

    logger.info(
        f"Starting {settings.service.name} {settings.service.version} "
        f"(provider={settings.providers.active})"
    )
    _startup_time = time.time()
    _shutdown_flag = False

    _registry = ProviderRegistry.from_settings(settings.providers)

    analysis = settings.analysis
    _orchestrator = AnalysisOrchestrator(
        registry=_registry,
        adapter_factory=functools.partial(
            create_adapter,
            timeout=analysis.request_timeout_sec,
            max_rps=analysis.max_rps,
            temperature=analysis.temperature,
            max_output_tokens=analysis.max_output_tokens,
        ),
        prompt_builder=PromptBuilder(level=analysis.level),
        parser=ResponseParser(annotation_duration=settings.render.annotation_duration_sec),
        synthesizer=AnnotationSynthesizer(duration=settings.render.annotation_duration_sec),
        seek_timeout_sec=analysis.seek_timeout_sec,
    )
    _renderer = AnnotationRenderer(tolerance=settings.render.match_tolerance_sec)
    _current_report = None
    _current_results = []

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _video is not None:
        _video.close()
        _video = None

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="SurfCoachAgent",
    description="AI coaching feedback for surfing videos",
    version=settings.service.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    registry = get_registry()
    return JSONResponse({
        "service": "SurfCoachAgent",
        "version": settings.service.version,
        "name": settings.service.name,
        "status": "running",
        "active_provider": registry.active_id if registry else None,
        "frame_interval_sec": settings.analysis.frame_interval_sec,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/providers")
async def providers() -> JSONResponse:
    """Registered providers (credentials are never returned)."""
    registry = get_registry()
    return JSONResponse({
        "active": registry.active_id,
        "available": registry.available(),
        "locked": registry.locked,
        "providers": [config.public_view() for config in registry.all()],
    })


@app.put("/providers/active")
async def set_active_provider(request: ActiveProviderRequest) -> JSONResponse:
    registry = get_registry()
    if request.provider_id not in registry.ids():
        return _error(f"Unknown provider: {request.provider_id}", 404)
    try:
        registry.set_active(request.provider_id)
    except ConfigurationError as e:
        return _error(str(e), 409)
    return JSONResponse({"active": registry.active_id})


@app.put("/providers/{provider_id}/credential")
async def set_provider_credential(provider_id: str, request: CredentialRequest) -> JSONResponse:
    registry = get_registry()
    if provider_id not in registry.ids():
        return _error(f"Unknown provider: {provider_id}", 404)
    try:
        registry.set_credential(provider_id, request.credential)
    except ConfigurationError as e:
        return _error(str(e), 409)
    return JSONResponse(registry.get(provider_id).public_view())


@app.post("/analyze")
async def analyze(request: AnalyzeRequest) -> JSONResponse:
    """
    Analyze a local video file with the active provider.

    Blocks until the run completes; progress is streamed on /ws/progress.
    On failure the previous report stays in place.
    """
    global _video, _current_results, _current_report

    orchestrator = get_orchestrator()
    registry = get_registry()
    interval = (
        request.frame_interval_sec
        if request.frame_interval_sec is not None
        else settings.analysis.frame_interval_sec
    )
    use_fallback = (
        settings.analysis.mock_fallback
        if request.mock_fallback is None
        else request.mock_fallback
    )

    if orchestrator.is_running:
        return _error("An analysis run is already in progress", 409)

    try:
        video = await asyncio.to_thread(
            OpenCVVideoSource,
            request.video_path,
            jpeg_quality=settings.analysis.jpeg_quality,
        )
    except InvalidInputError as e:
        _record_failure(e)
        return _error(str(e), 400, category="invalid_input")

    _progress.update({"percent": 0.0, "status": "starting"})
    try:
        results = await orchestrator.run(
            video,
            frame_interval=interval,
            on_progress=_on_progress,
            context=request.context,
        )
    except InvalidInputError as e:
        video.close()
        _record_failure(e)
        return _error(str(e), 400, category="invalid_input")
    except ConfigurationError as e:
        video.close()
        _record_failure(e)
        return _error(str(e), 409, category="configuration")
    except ProviderError as e:
        video.close()
        _record_failure(e)
        if use_fallback:
            logger.warning(f"Run failed ({e}), serving demonstration report")
            return JSONResponse({"fallback": True, "report": _report_payload(mock_report())})
        return _error(
            e.message,
            502,
            category="provider",
            provider=e.provider_id,
            backend_status=e.status,
        )

    report = ReportAggregator(provider_name=registry.active.name).aggregate(results)

    if _video is not None:
        _video.close()
    _video = video
    _current_results = results
    _current_report = report
    _renderer.set_annotations(collect_annotations(results))
    _progress.update({"percent": 100.0, "status": "complete"})

    return JSONResponse({"fallback": False, "report": _report_payload(report)})


@app.get("/report")
async def report() -> JSONResponse:
    """Report of the last successful run."""
    current_report = get_current_report()
    if current_report is None:
        return _error("No report available yet", 404)
    return JSONResponse(_report_payload(current_report))


@app.get("/annotations")
async def annotations(t: float = Query(..., ge=0)) -> JSONResponse:
    """Annotations active at playback time t."""
    active = get_renderer().active_at(t)
    return JSONResponse({
        "t": t,
        "annotations": [a.model_dump(mode="json") for a in active],
    })


@app.get("/overlay", response_class=HTMLResponse)
async def overlay(
    t: float = Query(..., ge=0),
    width: int = Query(1280, ge=1),
    height: int = Query(720, ge=1),
) -> HTMLResponse:
    """Overlay layer at playback time t."""
    surface = OverlaySurface(width=width, height=height)
    get_renderer().render(surface, t)
    return HTMLResponse(surface.to_html())


@app.get("/frame.jpg")
async def frame(t: float = Query(..., ge=0)) -> Response:
    """Video frame at playback time t with the active annotations drawn."""
    video = _video
    if video is None:
        return _error("No analyzed video loaded", 404)

    def _compose() -> bytes:
        surface = CanvasSurface(lambda: video.frame_at(t))
        get_renderer().render(surface, t)
        return surface.to_jpeg()

    return Response(content=await asyncio.to_thread(_compose), media_type="image/jpeg")


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    registry = get_registry()
    orchestrator = get_orchestrator()
    renderer = get_renderer()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "active_provider": registry.active_id,
        "run_in_progress": orchestrator.is_running,
        "run_errors": _run_error_count,
        "last_error": _last_error,
        "annotations_loaded": len(renderer.annotations),
        "renders": renderer.render_count,
        "frames_in_report": len(_current_results),
        "progress": dict(_progress),
        **orchestrator.get_metrics(),
    })


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/progress")
async def progress_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for analysis progress; sends on every change."""
    await websocket.accept()
    logger.info("Client connected to /ws/progress")

    last_sent: Optional[dict] = None
    try:
        while not _shutdown_flag:
            snapshot = dict(_progress)
            if snapshot != last_sent:
                await websocket.send_json(snapshot)
                last_sent = snapshot
            try:
                await asyncio.wait_for(websocket.receive_text(), timeout=0.25)
            except asyncio.TimeoutError:
                continue
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/progress")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "surfcoach_agent.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
