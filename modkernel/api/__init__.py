"""Debug HTTP API for the module runtime."""

from .main import app, set_runtime, get_runtime

__all__ = ["app", "set_runtime", "get_runtime"]
