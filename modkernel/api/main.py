"""FastAPI application exposing module state and lifecycle controls for debug tooling."""

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from modkernel.core import BarrierError, ChangeLog, ModuleRuntime, UnknownModuleError
from modkernel.reload import LiveReloadClient, ReloadBridge
from .schemas import (
    ActionResponse,
    ChangeEventResponse,
    ModuleResponse,
    ReloadRequest,
    StatusResponse,
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="modkernel debug API",
    description="Inspect and drive the module lifecycle of a running runtime",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


# Runtime served by the API (set by run_api.py or tests)
# Endpoints touching it are plain functions: FastAPI runs them in its
# threadpool, so module hooks never block the event loop.
_runtime: Optional[ModuleRuntime] = None
_livereload: Optional[LiveReloadClient] = None
_changes: Optional[ChangeLog] = None


def set_runtime(runtime: Optional[ModuleRuntime], livereload: Optional[LiveReloadClient] = None, changelog_size: int = 200):
    """
    Attach the runtime the API operates on.

    Args:
        runtime: Runtime to serve, or None to detach
        livereload: Client handling reload commands; built from config when omitted
        changelog_size: Number of change events kept for GET /changes
    """
    global _runtime, _livereload, _changes

    if _runtime is not None and _changes is not None:
        _runtime.remove_listener(_changes)

    _runtime = runtime
    _changes = None
    _livereload = None
    if runtime is None:
        return

    _changes = ChangeLog(maxlen=changelog_size)
    runtime.add_listener(_changes)
    _livereload = livereload or LiveReloadClient.from_config(ReloadBridge(runtime))


def get_runtime() -> ModuleRuntime:
    """Get the served runtime."""
    if _runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No module runtime attached",
        )
    return _runtime


def _module_response(runtime: ModuleRuntime, key: str) -> ModuleResponse:
    return ModuleResponse(**runtime.module_state(key).to_dict())


@app.get("/", tags=["general"])
async def root():
    """Root endpoint - API information."""
    return {
        "name": "modkernel debug API",
        "version": "1.0.0",
        "status": "online",
        "docs": "/docs",
    }


@app.get("/health", tags=["general"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "runtime_attached": _runtime is not None}


@app.get("/status", response_model=StatusResponse, tags=["general"])
def get_status():
    """Counts of registered, enabled and pending modules."""
    runtime = get_runtime()
    records = runtime.registry.records()
    return StatusResponse(
        status="running",
        total_modules=len(records),
        enabled_modules=len([r for r in records if r.enabled]),
        pending_modules=runtime.registry.pending_keys(),
    )


@app.get("/modules", response_model=List[ModuleResponse], tags=["modules"])
def list_modules():
    """List every registered module."""
    runtime = get_runtime()
    return [_module_response(runtime, key) for key in runtime.module_names()]


@app.get("/modules/{key}", response_model=ModuleResponse, tags=["modules"])
def get_module(key: str):
    """Get one module's state."""
    return _module_response(get_runtime(), key)


@app.post("/modules/{key}/enable", response_model=ActionResponse, tags=["modules"])
def enable_module(key: str):
    runtime = get_runtime()
    record = runtime.module_state(key)
    allowed = runtime.can_enable(key)
    runtime.enable(key)
    runtime.pump()
    return ActionResponse(success=allowed, key=key, enabled=record.enabled)


@app.post("/modules/{key}/disable", response_model=ActionResponse, tags=["modules"])
def disable_module(key: str):
    runtime = get_runtime()
    record = runtime.module_state(key)
    allowed = runtime.can_disable(key)
    runtime.disable(key)
    runtime.pump()
    return ActionResponse(success=allowed, key=key, enabled=record.enabled)


@app.post("/modules/{key}/reload", response_model=ActionResponse, tags=["modules"])
def reload_module(key: str):
    """Reload a module; the deferred load is drained before answering."""
    runtime = get_runtime()
    runtime.module_state(key)
    allowed = runtime.can_reload(key)
    runtime.reload(key)
    runtime.pump()
    return ActionResponse(
        success=allowed,
        key=key,
        enabled=runtime.module_state(key).enabled,
        detail=None if allowed else "Module lacks on_reload or cannot be disabled",
    )


@app.post("/contexts/{context}/{action}", response_model=ActionResponse, tags=["contexts"])
def context_action(context: str, action: str):
    """Run init, enable or disable over every module of a context."""
    runtime = get_runtime()
    operations = {
        "init": runtime.init_context,
        "enable": runtime.enable_context,
        "disable": runtime.disable_context,
    }
    if action not in operations:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown context action: {action}",
        )
    operations[action](context)
    runtime.pump()
    return ActionResponse(success=True, context=context)


@app.get("/changes", response_model=List[ChangeEventResponse], tags=["modules"])
def list_changes(limit: int = 50):
    """Most recent change notifications, oldest first."""
    get_runtime()
    return [ChangeEventResponse(**event.to_dict()) for event in _changes.recent(limit)]


@app.post("/reload", response_model=ActionResponse, tags=["reload"])
def reload_resource(request: ReloadRequest):
    """Accept a LiveReload command over HTTP."""
    runtime = get_runtime()
    result = _livereload.on_message(request.model_dump_json())
    runtime.pump()
    return ActionResponse(success=bool(result), detail=request.path)


@app.websocket("/livereload")
async def livereload_socket(websocket: WebSocket):
    """LiveReload protocol endpoint: hello on connect, then reload commands."""
    await websocket.accept()
    if _runtime is None:
        await websocket.close(code=1011)
        return

    await websocket.send_text(_livereload.hello())
    try:
        while True:
            text = await websocket.receive_text()
            try:
                await run_in_threadpool(_livereload.on_message, text)
            except ValueError as e:
                logger.warning(f"Ignoring malformed livereload message: {e}")
                continue
            await run_in_threadpool(_runtime.pump)
    except WebSocketDisconnect:
        logger.info("livereload client disconnected")


@app.exception_handler(UnknownModuleError)
async def unknown_module_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


@app.exception_handler(BarrierError)
async def barrier_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc)},
    )


# Error handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
