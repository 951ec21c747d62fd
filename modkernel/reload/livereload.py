"""LiveReload protocol client routing reload commands to a strategy."""

import json
import logging
import os
import sys
from enum import Enum
from typing import Callable, Optional

from .bridge import ReloadBridge

logger = logging.getLogger(__name__)

LIVERELOAD_PROTOCOL = "http://livereload.com/protocols/official-7"


class ReloadStrategy(str, Enum):
    RELOAD_PROCESS = "reload_process"
    RELOAD_MODULE = "reload_module"


def restart_process():
    """Replace the current process with a fresh copy of itself."""
    logger.info("Restarting process for reload")
    os.execv(sys.executable, [sys.executable] + sys.argv)


class LiveReloadClient:
    """
    Handles messages of the LiveReload protocol.

    The transport (a WebSocket) is owned by the caller, which sends
    ``hello()`` on open and feeds every received text frame to
    ``on_message``.
    """

    def __init__(
        self,
        bridge: ReloadBridge,
        strategy: str = ReloadStrategy.RELOAD_PROCESS,
        restart: Callable[[], None] = restart_process,
    ):
        self.bridge = bridge
        self.strategy = ReloadStrategy(strategy)
        self.restart = restart

    @classmethod
    def from_config(cls, bridge: ReloadBridge, **kwargs) -> "LiveReloadClient":
        from modkernel.config import get

        return cls(bridge, strategy=get("reload.strategy", ReloadStrategy.RELOAD_MODULE.value), **kwargs)

    def hello(self) -> str:
        return json.dumps({"command": "hello", "protocols": [LIVERELOAD_PROTOCOL]})

    def on_message(self, text: str) -> Optional[bool]:
        """
        Handle one protocol message.

        Returns:
            The bridge's result for module reloads, None for anything else

        Raises:
            ValueError: If the message is not a JSON object
        """
        logger.debug(f"livereload message: {text}")
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected livereload message: {text!r}")

        if data.get("command") != "reload":
            return None

        if self.strategy is ReloadStrategy.RELOAD_PROCESS:
            self.restart()
            return None

        path = data.get("path")
        if not path:
            logger.warning("Reload command without a path")
            return False
        return self.bridge.request_reload(path)
