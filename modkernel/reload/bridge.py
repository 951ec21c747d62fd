"""Bridge from "this resource changed" events to module reloads."""

import logging
import re
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_PATH_PATTERN = r"(?:^|/)src/(.+)\.py$"


class PathKeyResolver:
    """
    Maps a changed file path to a module key.

    The first group of ``pattern`` captures the module path relative to the
    source root; slashes become dots. ``src/apps/pong/balls.py`` maps to
    ``apps.pong.balls`` with the default pattern.
    """

    def __init__(self, pattern: str = DEFAULT_PATH_PATTERN, package_prefix: str = ""):
        self.pattern = re.compile(pattern)
        self.package_prefix = package_prefix.strip(".")

    def __call__(self, resource_path: str) -> Optional[str]:
        match = self.pattern.search(resource_path.replace("\\", "/"))
        if not match:
            return None
        key = match.group(1).strip("/").replace("/", ".")
        if key.endswith(".__init__"):
            key = key[: -len(".__init__")]
        if self.package_prefix:
            key = f"{self.package_prefix}.{key}"
        return key

    @classmethod
    def from_config(cls) -> "PathKeyResolver":
        from modkernel.config import get

        return cls(
            pattern=get("reload.path_pattern", DEFAULT_PATH_PATTERN),
            package_prefix=get("reload.package_prefix", ""),
        )


class ReloadBridge:
    """Resolves a resource path to a module key and reloads that module."""

    def __init__(self, runtime, resolve_key: Callable[[str], Optional[str]] = None):
        """
        Args:
            runtime: ModuleRuntime owning the modules
            resolve_key: Maps a resource path to a module key, or None when unmapped
        """
        self.runtime = runtime
        self.resolve_key = resolve_key or PathKeyResolver()

    def request_reload(self, resource_path: str) -> bool:
        """
        Reload the module behind ``resource_path``.

        Returns:
            True if the path mapped to a key and a reload was requested
        """
        key = self.resolve_key(resource_path)
        if key is None:
            logger.warning(f"No module key for changed resource {resource_path}")
            return False

        if key not in self.runtime.registry:
            logger.warning(f"Changed resource {resource_path} maps to unregistered module {key}")
            return False

        logger.info(f"Resource {resource_path} changed, reloading module {key}")
        self.runtime.reload(key)
        return True
