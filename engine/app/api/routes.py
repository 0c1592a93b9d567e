"""
Shell delivery and SSR endpoints.

Every shell response is signed at request time from the current source
bytes on disk. The key material and registry are process-scope values
wired at startup; no route mutates them.
"""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel

from engine.app.core.config import EngineSettings
from engine.app.core.keys import KeyMaterial
from engine.app.registry.registry import DocumentNotFoundError, DocumentRegistry
from engine.app.services.shell import (
    package_document,
    render_shell,
    render_ssr_page,
)
from engine.app.services.signing import SigningError
from engine.app.utils.hashing import compute_source_hash
from markup import compile_flo

logger = logging.getLogger("engine.api")

router = APIRouter()


# =============================================================================
# Dependency providers
# =============================================================================

def get_engine_settings(request: Request) -> EngineSettings:
    return request.app.state.settings


def get_key_material(request: Request) -> KeyMaterial:
    return request.app.state.key_material


def get_registry(request: Request) -> DocumentRegistry:
    return request.app.state.registry


SettingsDep = Annotated[EngineSettings, Depends(get_engine_settings)]
KeyMaterialDep = Annotated[KeyMaterial, Depends(get_key_material)]
RegistryDep = Annotated[DocumentRegistry, Depends(get_registry)]


# =============================================================================
# Helpers
# =============================================================================

def _read_or_404(registry: DocumentRegistry, name: str) -> str:
    try:
        return registry.read_source(name)
    except DocumentNotFoundError as exc:
        raise HTTPException(
            status_code=404, detail="FLO document not found"
        ) from exc
    except (ValueError, UnicodeDecodeError) as exc:
        logger.warning(
            "document_unreadable",
            extra={"document": name, "error_type": type(exc).__name__},
        )
        raise HTTPException(
            status_code=422, detail="FLO document is not servable"
        ) from exc


def _shell_response(
    *,
    name: str,
    registry: DocumentRegistry,
    settings: EngineSettings,
    key_material: KeyMaterial,
) -> HTMLResponse:
    source = _read_or_404(registry, name)

    try:
        payload = package_document(source=source, key_material=key_material)
    except SigningError as exc:
        logger.exception("shell_signing_failed", extra={"document": name})
        raise HTTPException(
            status_code=500,
            detail="Document signing failed. See engine logs for details.",
        ) from exc

    logger.info(
        "shell_served",
        extra={"document": name, "source_hash": payload.source_hash},
    )

    return HTMLResponse(
        content=render_shell(payload, settings=settings),
        headers={"X-Source-Hash": payload.source_hash},
    )


# =============================================================================
# Routes
# =============================================================================

@router.get(
    "/",
    response_class=HTMLResponse,
    summary="Signed shell for the master document",
)
def serve_master(
    settings: SettingsDep,
    key_material: KeyMaterialDep,
    registry: RegistryDep,
) -> HTMLResponse:
    return _shell_response(
        name=settings.master_document,
        registry=registry,
        settings=settings,
        key_material=key_material,
    )


@router.get(
    "/flocode/{file}",
    response_class=HTMLResponse,
    summary="Signed shell for a named .flo document",
)
def serve_document(
    file: str,
    settings: SettingsDep,
    key_material: KeyMaterialDep,
    registry: RegistryDep,
):
    """
    Serve a named document. Anything that is not a ``.flo`` name is
    rejected before the registry is consulted.
    """
    if not file.endswith(".flo"):
        return PlainTextResponse("Not a FLO file", status_code=404)

    return _shell_response(
        name=file,
        registry=registry,
        settings=settings,
        key_material=key_material,
    )


@router.get(
    "/ssr",
    response_class=HTMLResponse,
    summary="Unsigned server-side render of the master document",
)
def serve_ssr(settings: SettingsDep, registry: RegistryDep) -> HTMLResponse:
    """
    Server-side render for SEO and debugging.

    Uses the same compiler as the consumer runtime, with the SSR bindings.
    No verification is involved; this route is not part of the trust
    boundary.
    """
    source = _read_or_404(registry, settings.master_document)
    html = compile_flo(source, settings.ssr_bindings)

    return HTMLResponse(
        content=render_ssr_page(html, settings=settings),
        headers={"X-Source-Hash": compute_source_hash(source.encode("utf-8"))},
    )


class DocumentListResponse(BaseModel):
    master: str
    documents: List[str]


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    summary="List addressable .flo documents",
)
def list_documents(
    settings: SettingsDep, registry: RegistryDep
) -> DocumentListResponse:
    return DocumentListResponse(
        master=settings.master_document,
        documents=registry.list_documents(),
    )
