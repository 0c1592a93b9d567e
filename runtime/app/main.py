"""
FastAPI entrypoint for the FLO consumer runtime.

Accepts a host document produced by the engine, verifies the transport
triple it carries, and returns the document with its render target
replaced by either the compiled content or a single placeholder.

Only the decoded payload is trusted, and only after verification. The
rest of the host document is treated as untrusted transport.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional, Set
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse

from runtime.app.config import RuntimeConfig
from runtime.app.coordinator.pipeline import RenderPipeline
from runtime.app.events import MemoryQueueEventEmitter
from runtime.app.render.materializer import RenderTarget

logger = logging.getLogger("runtime.main")

RENDER_STATUS_HEADER = "X-FLO-Render-Status"


def create_app(
    config: Optional[RuntimeConfig] = None,
    pipeline: Optional[RenderPipeline] = None,
) -> FastAPI:
    """
    Application factory.

    Configuration is loaded once at startup and treated as immutable for
    the lifetime of the process.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            resolved_config = config or RuntimeConfig.from_env()
        except Exception:
            logger.exception("invalid_runtime_configuration")
            raise

        app.state.config = resolved_config
        app.state.pipeline = pipeline or RenderPipeline.from_config(
            resolved_config
        )
        app.state.background_renders = set()

        logger.info("runtime_startup_complete", extra={"service": "runtime"})
        yield

    app = FastAPI(
        title="FLO Runtime",
        description="Verifies signed FLO shells and renders their content",
        version="0.3.0",
        lifespan=lifespan,
    )

    # ---------------------------------------------------------------------
    # Request helpers
    # ---------------------------------------------------------------------

    async def read_host_document(request: Request) -> str:
        body = await request.body()

        if not body:
            raise HTTPException(status_code=400, detail="Host document is empty")

        # Hard resource safety limit (NOT a trust decision)
        runtime_config: RuntimeConfig = request.app.state.config
        if len(body) > runtime_config.MAX_HOST_DOCUMENT_KB * 1024:
            raise HTTPException(
                status_code=413,
                detail=(
                    "Host document exceeds maximum allowed size of "
                    f"{runtime_config.MAX_HOST_DOCUMENT_KB} KB"
                ),
            )

        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise HTTPException(
                status_code=400,
                detail="Host document must be UTF-8 encoded",
            ) from exc

    # ---------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------

    @app.post(
        "/render",
        response_class=HTMLResponse,
        summary="Verify and render a FLO host document",
    )
    async def render_document(request: Request) -> HTMLResponse:
        """
        Render a host document in place.

        Aborted renders are still successful responses: the returned
        document carries the placeholder, and the status header names the
        user-visible state.
        """
        host_html = await read_host_document(request)
        render_pipeline: RenderPipeline = request.app.state.pipeline

        target = RenderTarget.from_html(host_html)
        outcome = await render_pipeline.run(target, render_id=str(uuid4()))

        return HTMLResponse(
            content=target.to_html(),
            headers={RENDER_STATUS_HEADER: outcome.state.value},
        )

    @app.post(
        "/render/stream",
        summary="Verify and render a FLO host document (streaming progress)",
    )
    async def render_document_stream(request: Request) -> StreamingResponse:
        """
        Render while streaming progress events.

        Observational only: client disconnects do NOT cancel the render,
        and events do NOT influence execution. The final render_completed
        or render_failed event carries the resulting host document.
        """
        host_html = await read_host_document(request)
        render_pipeline: RenderPipeline = request.app.state.pipeline
        background: Set[asyncio.Task] = request.app.state.background_renders

        target = RenderTarget.from_html(host_html)
        render_id = str(uuid4())
        emitter = MemoryQueueEventEmitter()

        async def run_render_task() -> None:
            try:
                await render_pipeline.run(
                    target, render_id=render_id, emitter=emitter
                )
            finally:
                await emitter.close()

        task = asyncio.create_task(run_render_task())
        background.add(task)
        task.add_done_callback(background.discard)

        async def event_stream():
            try:
                async for event in emitter.stream():
                    yield event.to_sse_payload()
            except asyncio.CancelledError:
                # Client disconnected; render continues
                return

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )

    @app.get("/health", summary="Service health check")
    def health_check() -> JSONResponse:
        """Does NOT perform cryptographic operations."""
        return JSONResponse(
            content={
                "status": "ok",
                "service": "runtime",
                "runtime": f"python {sys.version.split()[0]}",
            }
        )

    return app


app = create_app()
