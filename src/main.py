"""Main application entry point."""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from src.api.utilities import router as utilities_router, utility_validation_error_handler
from src.services.config import AppConfig, load_config
from src.services.db import create_engine_for_url, create_schema, create_session_factory
from src.services.logging import setup_server_logging

logger = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the FastAPI application.

    The engine and session factory are created in the lifespan and kept on
    ``app.state``; request handlers get their sessions from there.

    Args:
        config: Settings to use (loaded from the environment when None)
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = create_engine_for_url(config.database_url)
        if config.create_schema:
            await create_schema(engine)
            logger.info("Database schema ensured")
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        logger.info("Utility billing API started")
        try:
            yield
        finally:
            await engine.dispose()
            logger.info("Database engine disposed")

    app = FastAPI(
        title="Estate Utilities",
        description="Utility bill allocation across property units",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.include_router(utilities_router)
    app.add_exception_handler(RequestValidationError, utility_validation_error_handler)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint for monitoring."""
        return {"status": "ok"}

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    config = load_config()
    setup_server_logging(config.log_file, config.log_level)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info("Starting utility billing API on %s:%d", host, port)
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
