"""FastAPI shell hosting a single viewer session around the intake controller."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from .analytics import NullAnalytics
from .config import get_settings
from .controller import IntakeController
from .errors import RenderError
from .gist import GistClient
from .location import LocationSync
from .models import IntakeOutcome, WindowMessage


app = FastAPI(title="Lighthouse Report Viewer")


def _add_cors(app: FastAPI) -> None:
    """Let other windows (e.g. a DevTools opener) post reports to the viewer."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = (
        os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    )
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_add_cors(app)


class PasteRequest(BaseModel):
    text: str


class UrlRequest(BaseModel):
    url: str


class MessageRequest(BaseModel):
    source: Optional[str] = Field(
        None, description="Token identifying the sending window."
    )
    data: Dict[str, Any] = Field(default_factory=dict)


class OpenerToken:
    """Stands in for the opener window; messages must carry its token."""

    closed = False

    def __init__(self, token: str) -> None:
        self.token = token

    def post_message(self, data: Dict[str, Any], target_origin: str) -> None:
        return None


_session: Dict[str, Any] = {"controller": None, "started": False}


def build_controller() -> IntakeController:
    settings = get_settings()
    token = os.getenv("VIEWER_OPENER_TOKEN")
    return IntakeController(
        store=GistClient(settings),
        location=LocationSync(settings.app_url),
        analytics=NullAnalytics(),
        opener=OpenerToken(token) if token else None,
        settings=settings,
    )


def get_controller() -> IntakeController:
    if _session["controller"] is None:
        _session["controller"] = build_controller()
    return _session["controller"]


def reset_session(controller: Optional[IntakeController] = None) -> None:
    """Start a fresh session (tests inject a controller with stub collaborators)."""
    _session["controller"] = controller
    _session["started"] = False


def _outcome_body(controller: IntakeController, outcome: IntakeOutcome) -> Dict[str, Any]:
    return {
        "status": "rendered" if outcome.rendered else outcome.state.value,
        "channel": outcome.channel.value if outcome.channel else None,
        "origin": outcome.origin.value if outcome.origin else None,
        "gist_id": outcome.gist_id,
        "save_offered": outcome.save_offered,
        "location": controller.location.current,
    }


def _respond(controller: IntakeController, outcome: IntakeOutcome) -> JSONResponse:
    if outcome.error is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(outcome.error)
        )
    return JSONResponse(content=_outcome_body(controller, outcome))


async def _run(controller: IntakeController, coro) -> JSONResponse:
    try:
        outcome = await coro
    except RenderError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return _respond(controller, outcome)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/", response_class=HTMLResponse)
async def index(gist: Optional[str] = None) -> HTMLResponse:
    """Serve the document; the first visit follows a `?gist=` deep link."""
    controller = get_controller()
    if not _session["started"]:
        _session["started"] = True
        if gist:
            app_url = controller.location.app_url
            controller.location = LocationSync(app_url, current=controller.location.url_for(gist))
        try:
            await controller.on_startup()
        except RenderError as exc:
            return HTMLResponse(
                controller.document.to_html(error=str(exc)),
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
    return HTMLResponse(controller.document.to_html())


@app.get("/location")
def location() -> Dict[str, Any]:
    controller = get_controller()
    return {
        "url": controller.location.current,
        "gist_id": controller.location.current_gist_id(),
        "origin": controller.origin.value if controller.origin else None,
        "state": controller.state.value,
    }


@app.post("/intake/file")
async def intake_file(request: Request) -> JSONResponse:
    controller = get_controller()
    return await _run(controller, controller.on_file_selected(await request.body()))


@app.post("/intake/paste")
async def intake_paste(payload: PasteRequest) -> JSONResponse:
    controller = get_controller()
    return await _run(controller, controller.on_paste_text(payload.text))


@app.post("/intake/url")
async def intake_url(payload: UrlRequest) -> JSONResponse:
    controller = get_controller()
    return await _run(controller, controller.on_url_changed(payload.url))


@app.post("/intake/message")
async def intake_message(payload: MessageRequest) -> JSONResponse:
    controller = get_controller()
    opener = controller.opener
    source: Any = payload.source
    if isinstance(opener, OpenerToken) and payload.source == opener.token:
        source = opener
    message = WindowMessage(source=source, data=payload.data)
    return await _run(controller, controller.on_message(message))


@app.post("/share", status_code=status.HTTP_201_CREATED)
async def share() -> JSONResponse:
    controller = get_controller()
    callback = controller.document.save_callback
    if callback is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only locally loaded reports can be saved as a gist.",
        )
    gist_id = await callback()
    if gist_id is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not save gist."
        )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"gist_id": gist_id, "location": controller.location.current},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lighthouse_viewer.server:app",
        host=os.getenv("VIEWER_HOST", "0.0.0.0"),
        port=int(os.getenv("VIEWER_PORT", "8000")),
        reload=os.getenv("VIEWER_RELOAD", "false").lower() == "true",
    )
