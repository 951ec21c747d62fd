"""Application launching on top of the module runtime."""

from .launcher import AppLauncher

__all__ = ["AppLauncher"]
