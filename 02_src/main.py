"""Main entry point for Browser Monitor."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from browser_monitor.api import create_fastapi_app
from browser_monitor.config import DEFAULT_API_PORT
from browser_monitor.logging_config import setup_logging
from browser_monitor.monitor import Monitor
from sim import Sim


def main():
    """Run the monitor API."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", str(DEFAULT_API_PORT)))

    # EVENT_SOURCE=sim replays a canned scenario instead of attaching to Chrome
    source_factory = Sim if os.getenv("EVENT_SOURCE") == "sim" else None
    monitor = Monitor(source_factory=source_factory)

    app = create_fastapi_app(monitor)

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
