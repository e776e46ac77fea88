"""HTTP surface: direct review API, GitHub webhook and the SSE stream."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, StreamingResponse

from . import __version__, broadcast
from .broadcast import BroadcastHub
from .config import Settings
from .engine import default_engine
from .errors import SignatureError, ValidationError, err
from .github import GitHubClient
from .webhook import ReviewService, verify_signature

logger = logging.getLogger(__name__)

ENDPOINTS = [
    {"path": "/api/review", "method": "POST", "description": "Review one source file"},
    {"path": "/webhook", "method": "POST", "description": "GitHub pull_request and push webhooks"},
    {"path": "/sse", "method": "GET", "description": "Server-Sent-Events stream of review events"},
    {"path": "/health", "method": "GET", "description": "Liveness probe"},
]


def create_app(
    settings: Settings,
    service: Optional[ReviewService] = None,
    hub: Optional[BroadcastHub] = None,
) -> FastAPI:
    """Build the application; ``service`` and ``hub`` are injectable for tests."""

    settings.require_webhook_policy()
    if service is None:
        hub = hub or BroadcastHub()
        service = ReviewService(
            engine=default_engine(disabled=settings.disabled_rules),
            hub=hub,
            github=GitHubClient(token=settings.github_token, api_url=settings.github_api_url),
            settings=settings,
        )
    hub = service.hub

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("Review server ready on http://%s:%d", settings.host, settings.port)
        yield
        close = getattr(service.github, "aclose", None)
        if close is not None:
            await close()

    app = FastAPI(title="reviewkit", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.state.hub = hub

    @app.get("/")
    async def index() -> Dict[str, Any]:
        return {"message": "reviewkit code review server is running", "endpoints": ENDPOINTS}

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True, "clients": len(hub)}

    @app.get("/sse")
    async def sse() -> StreamingResponse:
        handle = hub.connect()
        return StreamingResponse(
            hub.stream(handle),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.post("/api/review")
    async def review(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(err("Request body must be JSON"), status_code=400)
        if not isinstance(body, dict):
            return JSONResponse(err("Request body must be a JSON object"), status_code=400)
        path = body.get("file") or body.get("path")
        try:
            return JSONResponse(service.review(path, body.get("content")))
        except ValidationError as e:
            return JSONResponse(err(str(e)), status_code=400)
        except Exception as e:
            logger.exception("Review of %s failed", path)
            hub.broadcast(broadcast.REVIEW_ERROR, {"file": path, "error": str(e)})
            return JSONResponse(err("Code review failed", str(e)), status_code=500)

    @app.post("/webhook")
    async def webhook(
        request: Request,
        x_github_event: Optional[str] = Header(None),
        x_hub_signature_256: Optional[str] = Header(None),
    ) -> JSONResponse:
        body = await request.body()
        if settings.webhook_secret:
            try:
                verify_signature(settings.webhook_secret, body, x_hub_signature_256)
            except SignatureError as e:
                logger.warning("Rejected webhook: %s", e)
                return JSONResponse(err("Invalid signature", str(e)), status_code=401)
        try:
            payload = json.loads(body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, ValueError):
            return JSONResponse(err("Webhook body must be JSON"), status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse(err("Webhook body must be a JSON object"), status_code=400)

        event = x_github_event or "unknown"
        logger.info("Received %s webhook", event)
        try:
            outcome = await service.handle_event(event, payload)
        except ValidationError as e:
            hub.broadcast(broadcast.WEBHOOK_ERROR, {"event": event, "error": str(e)})
            return JSONResponse(err(str(e)), status_code=400)
        except Exception as e:
            logger.exception("Handling %s webhook failed", event)
            hub.broadcast(broadcast.WEBHOOK_ERROR, {"event": event, "error": str(e)})
            return JSONResponse(err("Webhook processing failed", str(e)), status_code=500)
        return JSONResponse({"success": True, "event": event, **outcome})

    return app


def run(settings: Settings) -> None:
    """Serve the application with uvicorn until interrupted."""

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
