"""Pydantic models for API requests and responses."""

from typing import Optional, List
from pydantic import BaseModel, Field


# Request models
class PushRequest(BaseModel):
    """Push message delivered to the worker."""
    payload: Optional[str] = Field(None, description="Plain text body or JSON object with title, body, reminderId")


class ClientRequest(BaseModel):
    """Foreground client attaching to the worker."""
    client_id: str = Field(..., description="Identifier of the foreground client (e.g. a tab id)")


class VersionRequest(BaseModel):
    """Request to install a new worker version."""
    version: str = Field(..., description="Version suffix of the cache name, e.g. 'v2'")


class ClickRequest(BaseModel):
    """Click on a displayed notification."""
    action: Optional[str] = Field(None, description="mark-complete, snooze, or empty for a body click")


# Response models
class MessageResponse(BaseModel):
    """Outcome of a foreground message."""
    handled: bool
    type: Optional[str] = None


class SyncResponse(BaseModel):
    """Outcome of a sync trigger."""
    tag: str
    notified: int


class PushResponse(BaseModel):
    displayed: bool


class VersionResponse(BaseModel):
    """State of a worker version."""
    name: str
    state: str


class NavigationResponse(BaseModel):
    url: str


class StatusResponse(BaseModel):
    """Worker status."""
    active_version: Optional[str]
    waiting_version: Optional[str]
    clients: int
    capabilities: dict
    live_notifications: List[str]
    pending_deliveries: int
