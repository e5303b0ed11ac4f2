"""
VisionNarrator Main Application
===============================

FastAPI entry point for the live scene narrator.

Wiring:
    capture source -> samplers -> VisionProcessor -> HttpDescriptionClient
    -> POST /api/vision (this app) -> DescriptionGenerator
    VisionProcessor -> SessionForwarder -> SessionTransport

Endpoints:
    GET  /                - Service information
    GET  /health          - Liveness check
    GET  /metrics         - Processor, gate, queue and sampler metrics
    GET  /description     - Current description and forwarded history
    GET  /still           - Most recently captured still
    POST /analyze         - Manual analysis of the current frame
    POST /session/start   - Begin a session call
    POST /session/stop    - End the session call
    POST /api/vision      - Description endpoint
    WS   /ws/descriptions - Real-time description updates
"""

import asyncio
import logging
import os
import signal
import threading
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from vision_narrator.config import get_google_api_key, settings
from vision_narrator.describer import (
    GeminiDescriptionGenerator,
    HttpDescriptionClient,
    MockDescriptionGenerator,
    create_vision_router,
)
from vision_narrator.gating import RateGate
from vision_narrator.models import AdmissionMode, AnalyzeRequest
from vision_narrator.processor import VisionProcessor
from vision_narrator.sampling import SamplingController
from vision_narrator.session import SessionForwarder, create_session_transport
from vision_narrator.signals import ChangeDetector, MetricsTracker
from vision_narrator.stream import (
    CameraFrameSource,
    FrameQueue,
    FrameSource,
    StaticFrameSource,
    synthetic_still,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False
_startup_time: float = 0.0

_client: Optional[HttpDescriptionClient] = None
_processor: Optional[VisionProcessor] = None
_forwarder: Optional[SessionForwarder] = None
_controller: Optional[SamplingController] = None
_transport = None


# =============================================================================
# Getters
# =============================================================================

def get_processor() -> Optional[VisionProcessor]:
    return _processor

def get_controller() -> Optional[SamplingController]:
    return _controller

def get_forwarder() -> Optional[SessionForwarder]:
    return _forwarder


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Factories
# =============================================================================

def create_description_generator() -> Union[MockDescriptionGenerator, GeminiDescriptionGenerator]:
    """
    Create the generator behind /api/vision based on config.

    Raises:
        SetupError: gemini backend without credentials
        ValueError: unknown backend
    """
    backend = settings.describer.backend

    if backend == "mock":
        logger.info("Using MockDescriptionGenerator")
        return MockDescriptionGenerator()

    elif backend == "gemini":
        logger.info(f"Using GeminiDescriptionGenerator: model={settings.describer.model}")
        return GeminiDescriptionGenerator(
            api_key=get_google_api_key(),
            model=settings.describer.model,
            max_output_tokens=settings.describer.max_output_tokens,
            temperature=settings.describer.temperature,
            top_p=settings.describer.top_p,
        )

    else:
        raise ValueError(f"Unknown describer backend: {backend}")


def create_frame_source() -> FrameSource:
    """Create the capture source based on config."""
    cfg = settings.capture

    if cfg.source == "camera":
        logger.info(f"Using CameraFrameSource: device={cfg.device}")
        return CameraFrameSource(
            device=cfg.device,
            width=cfg.width,
            height=cfg.height,
            jpeg_quality=cfg.jpeg_quality,
        )

    elif cfg.source == "static":
        if cfg.static_paths:
            return StaticFrameSource.from_paths(cfg.static_paths)
        logger.warning("No static stills configured, using a synthetic still")
        return StaticFrameSource([synthetic_still(cfg.width, cfg.height)])

    else:
        raise ValueError(f"Unknown capture source: {cfg.source}")


def create_processor(client: HttpDescriptionClient) -> VisionProcessor:
    """Build the processor and its collaborators from config."""
    return VisionProcessor(
        service=client,
        gate=RateGate(min_interval_ms=settings.gate.min_interval_ms),
        change_detector=ChangeDetector(threshold=settings.detection.similarity_threshold),
        metrics=MetricsTracker(
            initial_processing_time_ms=settings.metrics.initial_processing_time_ms,
            initial_success_rate=settings.metrics.initial_success_rate,
            processing_time_alpha=settings.metrics.processing_time_alpha,
            success_rate_alpha=settings.metrics.success_rate_alpha,
        ),
        queue=FrameQueue(
            capacity=settings.queue.capacity,
            stale_after_ms=settings.queue.stale_after_ms,
        ),
        admission_mode=AdmissionMode(settings.processor.admission_mode),
        idle_poll_seconds=settings.processor.idle_poll_seconds,
        busy_poll_seconds=settings.processor.busy_poll_seconds,
        post_call_delay_seconds=settings.processor.post_call_delay_seconds,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _client, _processor, _forwarder, _controller, _transport
    global _startup_time, _shutdown_flag

    # Signal handlers can only be installed from the main thread
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _handle_sigterm)

    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.agent.name} {settings.agent.version}")

    _client = HttpDescriptionClient(
        url=settings.describer.endpoint_url,
        timeout_seconds=settings.describer.timeout_seconds,
    )
    _processor = create_processor(_client)

    _transport = create_session_transport(settings.session.transport, settings.session.url)
    _forwarder = SessionForwarder(_transport, history_size=settings.session.history_size)

    _controller = SamplingController(
        processor=_processor,
        source=create_frame_source(),
        forwarder=_forwarder,
        auto_interval_seconds=settings.sampling.auto_interval_seconds,
        display_interval_seconds=settings.sampling.display_interval_seconds,
    )

    _processor.start()
    _controller.start()

    logger.info("All components started")

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _controller:
        await _controller.stop()
    if _processor:
        await _processor.shutdown()
    if _forwarder:
        await _forwarder.drain()
    if _transport:
        await _transport.close()
    if _client:
        _client.close()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="VisionNarrator",
    description="Rate-limited live scene description for voice sessions",
    version=settings.agent.version,
    lifespan=lifespan,
)

# The description endpoint keeps its own gate, independent of the processor's.
app.include_router(
    create_vision_router(
        generator=create_description_generator(),
        gate=RateGate(min_interval_ms=settings.describer.server_min_interval_ms),
        quota_retry_after_seconds=settings.describer.quota_retry_after_seconds,
    )
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "VisionNarrator",
        "version": settings.agent.version,
        "name": settings.agent.name,
        "status": "running",
        "describer_backend": settings.describer.backend,
        "admission_mode": settings.processor.admission_mode,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness check - always 200 while the process is running."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    processor = get_processor()
    controller = get_controller()
    forwarder = get_forwarder()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "processor": processor.get_metrics() if processor else {},
        "sampling": controller.get_status() if controller else {},
        "session": forwarder.get_metrics() if forwarder else {},
    })


@app.get("/description")
async def description() -> JSONResponse:
    """Current description and forwarded history."""
    processor = get_processor()
    forwarder = get_forwarder()

    if processor is None:
        return JSONResponse({"error": "Processor not initialized"}, status_code=503)

    state = processor.get_description_state()
    return JSONResponse({
        "description": state.current_description,
        "last_significant_change_at": state.last_significant_change_at or None,
        "is_processing": processor.is_processing(),
        "history": forwarder.history if forwarder else [],
    })


@app.get("/still")
async def still() -> JSONResponse:
    """Most recently captured still (for display)."""
    controller = get_controller()

    if controller is None or controller.latest_still is None:
        return JSONResponse({"error": "No still captured yet"}, status_code=503)

    return JSONResponse({
        "image": controller.latest_still,
        "captured_at": controller.latest_still_at,
    })


@app.post("/analyze")
async def analyze(request: AnalyzeRequest) -> JSONResponse:
    """Manual analysis of the current frame."""
    controller = get_controller()

    if controller is None:
        return JSONResponse({"error": "Controller not initialized"}, status_code=503)

    result = await controller.analyze_now(request.prompt)
    return JSONResponse({
        "outcome": result.outcome.value,
        "description": result.description,
        "changed": result.changed,
        "retry_after_ms": result.retry_after_ms,
    })


@app.post("/session/start")
async def session_start() -> JSONResponse:
    controller = get_controller()
    if controller is None:
        return JSONResponse({"error": "Controller not initialized"}, status_code=503)
    controller.start_call()
    return JSONResponse({"call_active": controller.call_active})


@app.post("/session/stop")
async def session_stop() -> JSONResponse:
    controller = get_controller()
    if controller is None:
        return JSONResponse({"error": "Controller not initialized"}, status_code=503)
    controller.end_call()
    return JSONResponse({"call_active": controller.call_active})


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/descriptions")
async def description_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint pushing each new significant description."""
    await websocket.accept()
    logger.info("Client connected to /ws/descriptions")

    last_sent_at: Optional[float] = None
    try:
        while not _shutdown_flag:
            processor = get_processor()
            if processor:
                state = processor.get_description_state()
                if state.current_description and state.last_significant_change_at != last_sent_at:
                    await websocket.send_json({
                        "description": state.current_description,
                        "timestamp": state.last_significant_change_at,
                    })
                    last_sent_at = state.last_significant_change_at
            await asyncio.sleep(1.0)

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/descriptions")


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "vision_narrator.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
