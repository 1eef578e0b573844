"""
FastAPI application for quizlog.

Provides the persistence API used by the http file backend:
- File saves (write or append) under the storage root
- Recursive listing of the outcome and error trees
- Raw file reads
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import get_settings
from quizlog.api.routers import files_router

settings = get_settings()


def create_app(
    base_dir: Path | str,
    results_root: str = "log",
    errors_root: str = "error",
) -> FastAPI:
    """
    Build the API for a storage root.

    Args:
        base_dir: Directory every request path is resolved against
        results_root: Outcome tree served by /api/list-log-files
        errors_root: Error tree served by /api/list-error-files
    """
    base_dir = Path(base_dir).resolve()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        logger.info(f"Starting quizlog API, serving {base_dir}")
        yield
        logger.info("Shutting down quizlog API...")

    app = FastAPI(
        title="quizlog",
        description="""
    File persistence for the quizlog trainer.

    ```
    data/{subject}/{topic}.txt      question banks
    log/{subject}/{session}.txt     exam outcomes
    error/{subject}/{session}.txt   wrong answers
    ```
    """,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.base_dir = base_dir
    app.state.results_root = results_root
    app.state.errors_root = errors_root

    # CORS middleware for local use
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )

    @app.get("/", tags=["Health"])
    def root() -> dict[str, Any]:
        """Root endpoint returning service info."""
        return {
            "service": "quizlog",
            "version": "0.1.0",
            "status": "ok",
        }

    app.include_router(files_router.router)
    return app


app = create_app(settings.storage_root, settings.results_dir, settings.errors_dir)
