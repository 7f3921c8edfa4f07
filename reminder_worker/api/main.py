"""FastAPI bridge between the foreground application and the reminder worker."""

import logging
from dataclasses import asdict
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, status
from fastapi.responses import Response

from reminder_worker.core.events import EventKind
from reminder_worker.errors import InstallFailed, NetworkUnavailable
from .schemas import (
    ClickRequest,
    ClientRequest,
    MessageResponse,
    NavigationResponse,
    PushRequest,
    PushResponse,
    StatusResponse,
    SyncResponse,
    VersionRequest,
    VersionResponse,
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Vaccination Reminder Worker API",
    description="Bridge between the vaccination reminder app and its background worker",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
)


# Worker instance (set by run.py)
_worker_instance = None


def set_worker(worker):
    """Set the worker that handles API events."""
    global _worker_instance
    _worker_instance = worker


def get_worker():
    """Get the worker instance."""
    if _worker_instance is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reminder worker is not running."
        )
    return _worker_instance


@app.get("/", tags=["general"])
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Vaccination Reminder Worker API",
        "version": "1.0.0",
        "status": "online",
        "docs": "/docs",
        "endpoints": {
            "messages": "POST /messages - Foreground control and scheduling messages",
            "sync": "POST /sync/{tag} - One-shot reminder check",
            "periodic_sync": "POST /periodic-sync/{tag} - Periodic reminder check tick",
            "push": "POST /push - Push message",
            "click": "POST /notifications/{tag}/click - Notification click",
            "clients": "POST /clients, DELETE /clients/{client_id}",
            "versions": "POST /versions - Install a new worker version",
            "assets": "GET /assets/{path} - Offline-capable assets",
            "status": "GET /status - Worker status",
        }
    }


@app.get("/health", tags=["general"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/status", response_model=StatusResponse, tags=["general"])
async def worker_status():
    """Current versions, capabilities and pending work."""
    worker = get_worker()
    lifecycle = worker.lifecycle

    return StatusResponse(
        active_version=lifecycle.active.name if lifecycle.active else None,
        waiting_version=lifecycle.waiting.name if lifecycle.waiting else None,
        clients=len(lifecycle.clients),
        capabilities=asdict(worker.capabilities),
        live_notifications=[n.tag for n in worker.surface.live()],
        pending_deliveries=len(worker.timers),
    )


@app.post("/messages", response_model=MessageResponse, tags=["bridge"])
async def post_message(message: Dict[str, Any]):
    """
    Deliver a message from the foreground app.

    Unrecognized messages are accepted and ignored.
    """
    handled = await get_worker().emit(EventKind.MESSAGE, message)
    return MessageResponse(handled=handled is not None, type=handled)


@app.post("/sync/{tag}", response_model=SyncResponse, tags=["sync"])
async def one_shot_sync(tag: str):
    """Request a one-shot reminder check."""
    notified = await get_worker().emit(EventKind.SYNC, tag)
    return SyncResponse(tag=tag, notified=notified)


@app.post("/periodic-sync/{tag}", response_model=SyncResponse, tags=["sync"])
async def periodic_sync(tag: str):
    """Deliver a periodic sync tick from an external scheduler."""
    notified = await get_worker().emit(EventKind.PERIODIC_SYNC, tag)
    return SyncResponse(tag=tag, notified=notified)


@app.post("/push", response_model=PushResponse, tags=["notifications"])
async def push(request: PushRequest):
    """Display a push-originated notification."""
    displayed = await get_worker().emit(EventKind.PUSH, request.payload)
    return PushResponse(displayed=displayed)


@app.post("/notifications/{tag}/click", response_model=NavigationResponse, tags=["notifications"])
async def click_notification(tag: str, request: ClickRequest):
    """Click a displayed notification, optionally on one of its actions."""
    url = await get_worker().emit(EventKind.NOTIFICATION_CLICK, tag, request.action or None)
    return NavigationResponse(url=url)


@app.post("/clients", status_code=status.HTTP_204_NO_CONTENT, tags=["lifecycle"])
async def connect_client(request: ClientRequest):
    """Attach a foreground client."""
    get_worker().lifecycle.client_connected(request.client_id)


@app.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["lifecycle"])
async def disconnect_client(client_id: str):
    """Detach a foreground client. The last one leaving lets a waiting version activate."""
    await get_worker().lifecycle.client_disconnected(client_id)


@app.post("/versions", response_model=VersionResponse, tags=["lifecycle"])
async def install_version(request: VersionRequest):
    """Install a new worker version and fill its offline cache."""
    try:
        version = await get_worker().emit(EventKind.INSTALL, request.version)
    except InstallFailed as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )
    return VersionResponse(name=version.name, state=version.state.value)


@app.get("/assets/{path:path}", tags=["assets"])
async def get_asset(path: str):
    """Serve an application asset from the offline cache or the network."""
    try:
        cached = await get_worker().emit(EventKind.FETCH, "/" + path)
    except NetworkUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )

    return Response(
        content=cached.content,
        status_code=cached.status_code,
        media_type=cached.content_type,
        headers={"X-Served-From": "cache" if cached.from_cache else "network"},
    )
