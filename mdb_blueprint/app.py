"""
Application helper.

Builds a FastAPI application wired for blueprints: the shared MongoDB
client is opened on startup and closed on shutdown, and every request gets
its own store session.

Usage:
    app = create_app(BlueprintConfig(mongo_uri="mongodb://localhost:27017", db_name="blog"))
    Blueprint(Article, app.state.config.db_name, "article").routes(app)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI

from .config import BlueprintConfig
from .database import (StoreSessionMiddleware, close_shared_client,
                       get_shared_mongo_client, verify_shared_client)

logger = logging.getLogger(__name__)


def create_app(config: BlueprintConfig | None = None, **fastapi_kwargs: Any) -> FastAPI:
    """
    Create a FastAPI application with store session handling installed.

    Args:
        config: Blueprint configuration (read from the environment when omitted)
        **fastapi_kwargs: Passed through to FastAPI()

    Returns:
        FastAPI application; ``app.state.config`` holds the configuration

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config = config or BlueprintConfig()
    config.validate()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.mongo_client = get_shared_mongo_client(config)
        if not await verify_shared_client():
            logger.warning("MongoDB did not answer ping at startup; requests may fail")
        try:
            yield
        finally:
            close_shared_client()
            app.state.mongo_client = None

    app = FastAPI(lifespan=lifespan, **fastapi_kwargs)
    app.state.config = config
    app.add_middleware(StoreSessionMiddleware)
    return app
