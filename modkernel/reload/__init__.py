"""Reload transport and the bridge into the module runtime."""

from .bridge import PathKeyResolver, ReloadBridge
from .livereload import LiveReloadClient, ReloadStrategy, restart_process

__all__ = ["PathKeyResolver", "ReloadBridge", "LiveReloadClient", "ReloadStrategy", "restart_process"]
