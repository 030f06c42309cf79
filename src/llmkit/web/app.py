"""FastAPI application serving the model router statistics.

This module defines the FastAPI application, includes the API routes and
provides a convenience function to launch the server via Uvicorn.
"""

from __future__ import annotations

from fastapi import FastAPI
import uvicorn

from .routes import router


app = FastAPI(
    title="llmkit",
    description="Model router telemetry and statistics",
    version="0.1.0",
)

app.include_router(router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


def start_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:
    """Start the Uvicorn web server.

    Parameters
    ----------
    host: str
        Host to bind the server to. Defaults to ``127.0.0.1``.
    port: int
        Port to listen on. Defaults to 8000.
    reload: bool
        Whether to enable auto-reload. Useful during development.
    """
    uvicorn.run(
        "llmkit.web.app:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    start_server()
