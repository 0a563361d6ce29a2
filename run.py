#!/usr/bin/env python3
"""Start the orchestrator API server."""
import os

import uvicorn

from src.infrastructure.config import load_config

if __name__ == "__main__":
    config = load_config()
    # Workers write into the workspace; with reload on, that restarts the server mid-run.
    uvicorn.run(
        "src.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=os.getenv("RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=config.log_level.lower(),
    )
