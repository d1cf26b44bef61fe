"""Server-rendered workspace pages and the sign-in/sign-out flow."""

from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from ocrnotes.auth.session import (
    ACCESS_TOKEN_COOKIE,
    CODE_VERIFIER_COOKIE,
    SessionContext,
    extract_access_token,
)
from ocrnotes.errors import OCRNotesError
from ocrnotes.utils.logger import get_logger

from .workspace import ViewMode, Workspace

logger = get_logger(__name__)

router = APIRouter(include_in_schema=False)
templates = Jinja2Templates(directory=Path(__file__).parent / "templates")

_VERIFIER_MAX_AGE = 600


def _home() -> RedirectResponse:
    return RedirectResponse("/", status_code=303)


async def _signed_in(request: Request) -> tuple[SessionContext, Workspace | None]:
    session = await request.app.state.guard.current(request)
    if not session.is_authenticated:
        return session, None
    return session, request.app.state.workspaces.get(session.identity.id)


@router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    """Render the configuration banner, the sign-in page, or the workspace."""
    state = request.app.state
    session, workspace = await _signed_in(request)

    messages = []
    if request.query_params.get("error") == "auth":
        messages.append(("error", "An error occurred while signing in"))
    if request.query_params.get("signed_out"):
        messages.append(("success", "Successfully signed out"))

    if workspace is not None:
        await state.controller.refresh(workspace, request)
        messages.extend((n.level, n.message) for n in workspace.drain_notifications())

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "config_error": not state.guard.is_configured,
            "ocr_configured": state.gateway.is_configured,
            "identity": session.identity,
            "workspace": workspace,
            "messages": messages,
            "rendered": ViewMode.RENDERED,
        },
    )


@router.post("/upload")
async def upload(request: Request, file: Annotated[UploadFile, File(...)]) -> Response:
    _, workspace = await _signed_in(request)
    if workspace is not None:
        data = await file.read()
        await request.app.state.controller.upload(
            workspace, request, file.filename or "", file.content_type, data
        )
    return _home()


@router.post("/workspace/save")
async def save(request: Request) -> Response:
    _, workspace = await _signed_in(request)
    if workspace is not None:
        await request.app.state.controller.save(workspace, request)
    return _home()


@router.post("/workspace/toggle")
async def toggle_view(request: Request) -> Response:
    _, workspace = await _signed_in(request)
    if workspace is not None:
        workspace.toggle_view()
    return _home()


@router.post("/workspace/reset")
async def new_upload(request: Request) -> Response:
    _, workspace = await _signed_in(request)
    if workspace is not None:
        workspace.reset()
    return _home()


@router.post("/workspace/documents/{document_id}/load")
async def load_document(request: Request, document_id: str) -> Response:
    _, workspace = await _signed_in(request)
    if workspace is not None:
        await request.app.state.controller.load(workspace, request, document_id)
    return _home()


@router.post("/workspace/documents/{document_id}/delete")
async def delete_document(request: Request, document_id: str) -> Response:
    _, workspace = await _signed_in(request)
    if workspace is not None:
        await request.app.state.controller.delete(workspace, request, document_id)
    return _home()


@router.get("/workspace/download")
async def download_markdown(request: Request) -> Response:
    """Download the current text as a markdown file."""
    _, workspace = await _signed_in(request)
    if workspace is None or not workspace.extracted_text:
        return _home()

    workspace.notify("success", "Markdown file downloaded")
    return Response(
        content=workspace.extracted_text,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{workspace.download_name}"'},
    )


@router.get("/auth/login")
async def login(request: Request) -> Response:
    guard = request.app.state.guard
    if not guard.is_configured:
        logger.error("Supabase is not configured. Please check your environment variables.")
        return _home()

    authorize_url, verifier = guard.begin_sign_in(str(request.url_for("auth_callback")))
    response = RedirectResponse(authorize_url, status_code=302)
    response.set_cookie(
        CODE_VERIFIER_COOKIE,
        verifier,
        max_age=_VERIFIER_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=request.app.state.config.server.secure_cookies,
    )
    return response


@router.get("/auth/callback", name="auth_callback")
async def auth_callback(request: Request, code: str | None = None) -> Response:
    """Exchange the OAuth code for a session and store it in a cookie."""
    if not code:
        return _home()

    verifier = request.cookies.get(CODE_VERIFIER_COOKIE, "")
    try:
        session = await request.app.state.guard.complete_sign_in(code, verifier)
    except OCRNotesError as exc:
        logger.error("Auth callback error: %s", exc)
        response = RedirectResponse("/?error=auth", status_code=303)
        response.delete_cookie(CODE_VERIFIER_COOKIE)
        return response

    response = _home()
    response.delete_cookie(CODE_VERIFIER_COOKIE)
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        session.access_token,
        max_age=session.expires_in,
        httponly=True,
        samesite="lax",
        secure=request.app.state.config.server.secure_cookies,
    )
    return response


@router.post("/auth/logout")
async def logout(request: Request) -> Response:
    state = request.app.state
    session, _ = await _signed_in(request)
    await state.guard.sign_out(extract_access_token(request))
    if session.identity is not None:
        state.workspaces.discard(session.identity.id)

    response = RedirectResponse("/?signed_out=1", status_code=303)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return response
