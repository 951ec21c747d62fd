"""Application launcher: starts and stops groups of modules as one app."""

import logging
from typing import Any, Dict, Optional

from modkernel.core import BarrierError, Hook

logger = logging.getLogger(__name__)


class AppLauncher:
    """
    Launches applications declared in configuration or by an app module.

    Every module of an application is loaded under a context equal to the
    application name, so the whole app is initialized, enabled and disabled
    through the runtime's context operations.
    """

    def __init__(self, runtime, applications: Optional[Dict[str, Any]] = None):
        """
        Args:
            runtime: ModuleRuntime to drive
            applications: Mapping of app name to {"modules": {key: {"enabled": bool}}}
        """
        self.runtime = runtime
        self.applications = dict(applications or {})
        self.current: Optional[str] = None

    @classmethod
    def from_config(cls, runtime) -> "AppLauncher":
        from modkernel.config import get

        return cls(runtime, get("applications", {}))

    def get_module_config(self, name: str) -> Dict[str, Dict[str, Any]]:
        """
        Get the module list of an application.

        Configured applications win; otherwise a loaded module named ``name``
        exposing ``get_module_config`` provides the list.

        Raises:
            KeyError: If the application is unknown
        """
        app = self.applications.get(name)
        if app is not None:
            return dict(app.get("modules") or {})

        record = self.runtime.registry.get(name)
        if record is not None and record.has(Hook.GET_MODULE_CONFIG):
            return dict(self.runtime.call(name, Hook.GET_MODULE_CONFIG) or {})

        raise KeyError(f"Unknown application: {name}")

    def launch_app(self, name: str):
        """
        Load, initialize and enable the modules of ``name``.

        Completes once all loads resolve (after the runtime is pumped when it
        uses a deferred queue).

        Raises:
            KeyError: If the application is unknown
            BarrierError: If another launch is still waiting for its loads
        """
        modules = self.get_module_config(name)
        if self.runtime.loader.barrier_outstanding:
            raise BarrierError(f"Cannot launch {name}: a previous launch is still loading")

        if self.current is not None:
            self.end_app(self.current)

        logger.info(f"Launching app {name} with {len(modules)} modules")
        for key in modules:
            self.runtime.request_load(key, name)

        def _start():
            self.runtime.init_context(name)
            enabled = 0
            for key, settings in modules.items():
                # Skip if explicitly disabled
                if not (settings or {}).get("enabled", True):
                    logger.info(f"Skipping disabled module: {key}")
                    continue
                self.runtime.enable(key)
                enabled += 1
            for record in self.runtime.registry.records_in(name):
                self.runtime.call(record.key, Hook.LAUNCH_APP)
            logger.info(f"App {name} started: {enabled}/{len(modules)} modules enabled")

        self.current = name
        self.runtime.when_all_loaded(_start)

    def end_app(self, name: str):
        """Notify the app's modules and disable them."""
        for record in self.runtime.registry.records_in(name):
            self.runtime.call(record.key, Hook.END_APP)
        self.runtime.disable_context(name)
        if self.current == name:
            self.current = None
        logger.info(f"Ended app {name}")
