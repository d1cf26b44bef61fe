"""FastAPI application for the OCR notes service.

Provides the JSON endpoints for OCR extraction and owner-scoped document
management, mounts the HTML workspace, and renders every application error
as ``{"error": ..., "details": ...}``.
"""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ocrnotes import __version__
from ocrnotes.auth.session import AuthProvider, SessionGuard
from ocrnotes.auth.supabase import SupabaseAuthProvider
from ocrnotes.errors import AuthorizationError, OCRNotesError, ValidationError
from ocrnotes.ocr.gateway import OCRGateway, OCRProvider
from ocrnotes.storage.db import build_engine, build_session_factory, init_models
from ocrnotes.storage.documents import DocumentStore
from ocrnotes.ui.routes import router as ui_router
from ocrnotes.ui.workspace import WorkspaceController, WorkspaceRegistry
from ocrnotes.utils.config import AppConfig, load_config
from ocrnotes.utils.logger import get_logger

from .schemas import (
    DeleteResponse,
    DocumentCreateRequest,
    DocumentEnvelope,
    DocumentListResponse,
    DocumentResponse,
    ErrorResponse,
    HealthResponse,
    OCRRequest,
    OCRResponse,
)

logger = get_logger(__name__)

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing or invalid fields"},
    401: {"model": ErrorResponse, "description": "No valid session"},
    500: {"model": ErrorResponse, "description": "Configuration or provider failure"},
}
_OCR_ERRORS = {code: _ERRORS[code] for code in (400, 500)}


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_gateway(request: Request) -> OCRGateway:
    return request.app.state.gateway


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Return service health and which external services are configured."""
    ocr_configured = request.app.state.gateway.is_configured
    auth_configured = request.app.state.guard.is_configured
    return HealthResponse(
        status="healthy" if ocr_configured and auth_configured else "degraded",
        version=__version__,
        ocr_configured=ocr_configured,
        auth_configured=auth_configured,
    )


@router.get("/documents", response_model=DocumentListResponse, responses=_ERRORS)
async def list_documents(
    request: Request,
    store: Annotated[DocumentStore, Depends(get_store)],
) -> DocumentListResponse:
    """List the caller's documents, newest first."""
    documents = await store.list(request)
    return DocumentListResponse(
        documents=[DocumentResponse.model_validate(d) for d in documents]
    )


@router.post("/documents", response_model=DocumentEnvelope, responses=_ERRORS)
async def create_document(
    request: Request,
    store: Annotated[DocumentStore, Depends(get_store)],
    body: DocumentCreateRequest | None = None,
) -> DocumentEnvelope:
    """Save extracted text as a new document owned by the caller.

    A missing body is reported like missing fields, after the session check.
    """
    body = body or DocumentCreateRequest()
    document = await store.create(request, body.file_name, body.extracted_text)
    return DocumentEnvelope(document=DocumentResponse.model_validate(document))


@router.delete("/documents", response_model=DeleteResponse, responses=_ERRORS)
async def delete_document(
    request: Request,
    store: Annotated[DocumentStore, Depends(get_store)],
    document_id: Annotated[str | None, Query(alias="id")] = None,
) -> DeleteResponse:
    """Delete one of the caller's documents.

    Reports success whether or not the id matched a document the caller owns.
    """
    await store.delete(request, document_id)
    return DeleteResponse(success=True)


@router.post("/ocr", response_model=OCRResponse, responses=_OCR_ERRORS)
async def extract_text(
    gateway: Annotated[OCRGateway, Depends(get_gateway)],
    body: OCRRequest | None = None,
) -> OCRResponse:
    """Extract text from a base64 image; an empty ``text`` means none was found."""
    if body is None or not body.image_base64:
        raise ValidationError("Image data is required")

    result = await gateway.extract(body.image_base64)
    return OCRResponse(text=result.text)


async def _app_error_handler(request: Request, exc: OCRNotesError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthorizationError) else None
    return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=headers)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse({"error": "Invalid request", "details": details}, status_code=400)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(
    config: AppConfig | None = None,
    *,
    ocr_provider: OCRProvider | None = None,
    auth_provider: AuthProvider | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        config: Application configuration; loaded from disk/env when omitted.
        ocr_provider: OCR provider to use instead of the configured Mistral one.
        auth_provider: Auth provider to use instead of the configured Supabase one.

    Returns:
        Configured FastAPI application. Storage is opened in its lifespan.
    """
    config = config or load_config()

    if ocr_provider is not None:
        gateway = OCRGateway(ocr_provider, config.ocr.model)
    else:
        gateway = OCRGateway.from_config(config.ocr)
    if auth_provider is None:
        auth_provider = SupabaseAuthProvider.from_config(config.supabase)
    guard = SessionGuard(auth_provider)

    if not gateway.is_configured:
        logger.warning("OCR is disabled: Mistral API key is not configured")
    if not guard.is_configured:
        logger.warning("Sign-in is disabled: Supabase is not configured")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(config.database)
        await init_models(engine)
        store = DocumentStore(build_session_factory(engine), guard.require)
        app.state.store = store
        app.state.controller = WorkspaceController(gateway, store)
        try:
            yield
        finally:
            await engine.dispose()
            if isinstance(auth_provider, SupabaseAuthProvider):
                await auth_provider.aclose()

    app = FastAPI(
        title="OCR Notes",
        description="Extract text from images and keep it as personal documents",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.gateway = gateway
    app.state.guard = guard
    app.state.workspaces = WorkspaceRegistry()

    app.add_exception_handler(OCRNotesError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router)
    app.include_router(ui_router)
    return app


app = create_app()
