"""
FastAPI entrypoint for the FLO document engine (producer side).

The engine reads .flo sources, signs their exact bytes, and returns host
shells carrying the transport triple. Key material is loaded once during
startup and treated as immutable for the lifetime of the process.
"""

import logging
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from engine.app.api.routes import router as shell_router
from engine.app.core.config import EngineSettings
from engine.app.core.keys import KeyMaterial, load_key_material
from engine.app.registry.registry import DocumentNotFoundError, DocumentRegistry

logger = logging.getLogger("engine.main")


def get_app_version() -> str:
    """
    Resolve application version deterministically.

    Falls back to the source-tree version when not installed.
    """
    try:
        return version("signed-flo")
    except PackageNotFoundError:
        return "0.3.0"


def create_app(
    settings: Optional[EngineSettings] = None,
    key_material: Optional[KeyMaterial] = None,
) -> FastAPI:
    """
    Application factory.

    Explicit ``settings`` / ``key_material`` are intended for tests and
    embedding; otherwise both are loaded from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Guarantees:
        - Fail-fast startup if configuration or key material is invalid
        - Fail-fast startup if the master document is missing
        """
        logger.info(
            "engine_startup_begin",
            extra={"service": "engine", "version": get_app_version()},
        )

        try:
            resolved_settings = settings or EngineSettings()
        except Exception:
            logger.exception("invalid_engine_configuration")
            raise

        try:
            resolved_keys = key_material or load_key_material(resolved_settings)
        except Exception:
            logger.exception("key_material_unavailable")
            raise

        registry = DocumentRegistry.from_settings(resolved_settings)

        try:
            registry.resolve(resolved_settings.master_document)
        except DocumentNotFoundError:
            logger.error(
                "master_document_missing",
                extra={
                    "master_document": resolved_settings.master_document,
                    "documents_dir": str(registry.root),
                },
            )
            raise RuntimeError(
                "Missing master FLO file: "
                f"{registry.root / resolved_settings.master_document}"
            )

        app.state.settings = resolved_settings
        app.state.key_material = resolved_keys
        app.state.registry = registry

        try:
            yield
        finally:
            logger.info("engine_shutdown_begin")

    app = FastAPI(
        title="FLO Document Engine",
        description="Signs FLO documents and delivers verifiable shells",
        version=get_app_version(),
        lifespan=lifespan,
    )

    app.include_router(shell_router)

    @app.get(
        "/healthz",
        tags=["Monitoring"],
        summary="Liveness and readiness check",
    )
    def health_check() -> JSONResponse:
        """
        Verifies that the runtime is alive.

        Does NOT perform cryptographic operations.
        """
        return JSONResponse(
            content={
                "status": "ok",
                "service": "engine",
                "version": app.version,
                "runtime": f"python {sys.version.split()[0]}",
            }
        )

    return app


app = create_app()
