#!/usr/bin/env python3
"""Run the modkernel debug API server."""

import logging
import logging.handlers
import sys
from pathlib import Path

# Add project to path
sys.path.insert(0, str(Path(__file__).parent))

from modkernel.config import get, load_config

logger = logging.getLogger(__name__)


def setup_logging():
    """Configure console logging plus an optional rotating log file."""
    log_file = get("logging.file")
    log_level = get("logging.level", "INFO")
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        # Time-based rotating file handler (keep logs for 24 hours)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when='midnight',
            interval=1,
            backupCount=1,
        )
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, str(log_level).upper()),
        format=log_format,
        handlers=handlers,
    )


def main():
    """Run the API server."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    load_config(config_path)
    setup_logging()

    from modkernel.apps import AppLauncher
    from modkernel.core import ModuleRuntime

    runtime = ModuleRuntime.from_config()
    app_name = get("runtime.autostart")
    if app_name:
        AppLauncher.from_config(runtime).launch_app(app_name)
        runtime.pump()

    host = get("api.host", "127.0.0.1")
    port = get("api.port", 8000)

    logger.info(f"Starting modkernel debug API on {host}:{port}")
    logger.info(f"  - Swagger UI: http://{host}:{port}/docs")
    logger.info(f"  - LiveReload endpoint: ws://{host}:{port}/livereload")

    # Import here to avoid circular imports
    import uvicorn
    from modkernel.api import app, set_runtime

    set_runtime(runtime, changelog_size=get("api.changelog_size", 200))

    # Run server
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
