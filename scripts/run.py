#!/usr/bin/env python3
"""Run the timesheet API with Uvicorn."""

import logging
import os

import uvicorn

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

logger = logging.getLogger("timesheet.run")

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    # Host / port / reload come from the environment so the same script serves dev and Cloud Run
    app_host = os.getenv("APP_HOST", "127.0.0.1")
    app_port = int(os.getenv("PORT", os.getenv("APP_PORT", "8000")))
    app_reload = os.getenv("APP_RELOAD", "True").lower() in ("true", "1", "t")
    app_log_level = os.getenv("APP_LOG_LEVEL", "info")

    logger.info(f"Starting Uvicorn on {app_host}:{app_port} (reload={app_reload}, log level={app_log_level})")

    uvicorn.run(
        "main:app",
        host=app_host,
        port=app_port,
        reload=app_reload,
        log_level=app_log_level,
        app_dir=PROJECT_ROOT,
        reload_dirs=[PROJECT_ROOT],
    )
