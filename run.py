"""Entry point for serving the UTASK API.

This script starts the FastAPI application with Uvicorn.  It is
intended to be executed from the project root, for example under
Docker, where you only specify a single Python file to run.

Configuration such as JWT_SECRET, DATABASE_URL and LOG_LEVEL is read
from environment variables (see ``utask_api.app.core.config``).  The
listening address comes from ``HOST`` and ``PORT``.

Usage:
    python run.py
"""
import asyncio
import os

from uvicorn import Config, Server

from utask_api.app.main import app


async def run_api() -> None:
    """Start the API using Uvicorn.

    Host and port are read from environment variables `HOST` and
    `PORT`. Defaults are `0.0.0.0` and `8000`.
    """
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level=os.getenv("LOG_LEVEL", "info").lower())
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(run_api())
    except KeyboardInterrupt:
        pass
