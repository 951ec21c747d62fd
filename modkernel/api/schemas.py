"""Pydantic models for API requests and responses."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


# Request models
class ReloadRequest(BaseModel):
    """LiveReload-style command received over HTTP."""
    command: str = Field("reload", description="Protocol command, only 'reload' acts")
    path: Optional[str] = Field(None, description="Path of the changed resource")


# Response models
class ModuleResponse(BaseModel):
    """State of one registered module."""
    key: str
    context: Optional[Any] = None
    pending: bool
    enabled: bool
    loaded: bool
    hooks: List[str] = []
    error: Optional[str] = None
    load_count: int = 0


class ChangeEventResponse(BaseModel):
    """A recorded change notification."""
    operation: str
    key: str


class ActionResponse(BaseModel):
    """Outcome of a lifecycle request."""
    success: bool
    key: Optional[str] = None
    context: Optional[str] = None
    enabled: Optional[bool] = None
    detail: Optional[str] = None


class StatusResponse(BaseModel):
    """Runtime status information."""
    status: str
    total_modules: int
    enabled_modules: int
    pending_modules: List[str]
