"""
Request-scoped store handles.

Each inbound request borrows its own client session derived from the
shared Motor client, wrapped in a StoreHandle and attached to
``request.state``. The session is ended by the middleware on every exit
path, so handlers never manage cleanup themselves.

Usage:
    app.add_middleware(StoreSessionMiddleware, client=client)

    @app.get("/ping")
    async def ping(handle: StoreHandle = Depends(get_store_handle)):
        ...
"""

import logging
from typing import Any, Awaitable, Callable, Mapping

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.middleware.base import BaseHTTPMiddleware

from ..constants import REQUEST_ID_HEADER, STORE_STATE_KEY
from ..exceptions import StoreOperationError
from ..observability import clear_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)


class SessionCollection:
    """
    Wraps an `AsyncIOMotorCollection` so every operation runs inside the
    borrowing request's client session.
    """

    __slots__ = ("_collection", "_session")

    def __init__(self, collection: Any, session: Any):
        self._collection = collection
        self._session = session

    @property
    def name(self) -> str:
        return self._collection.name

    def find(self, filter: Mapping[str, Any] | None = None, *args, **kwargs):
        """Return a cursor; skip/limit/sort are chained by the caller."""
        return self._collection.find(filter or {}, *args, session=self._session, **kwargs)

    async def find_one(self, filter: Mapping[str, Any], *args, **kwargs):
        return await self._collection.find_one(filter, *args, session=self._session, **kwargs)

    async def insert_one(self, document: Mapping[str, Any], *args, **kwargs):
        return await self._collection.insert_one(document, *args, session=self._session, **kwargs)

    async def replace_one(
        self, filter: Mapping[str, Any], replacement: Mapping[str, Any], *args, **kwargs
    ):
        return await self._collection.replace_one(
            filter, replacement, *args, session=self._session, **kwargs
        )

    async def update_one(
        self, filter: Mapping[str, Any], update: Mapping[str, Any], *args, **kwargs
    ):
        return await self._collection.update_one(
            filter, update, *args, session=self._session, **kwargs
        )

    async def delete_one(self, filter: Mapping[str, Any], *args, **kwargs):
        return await self._collection.delete_one(filter, *args, session=self._session, **kwargs)


class StoreHandle:
    """
    A store handle valid for exactly one request.

    Attributes:
        client: The shared client the session was derived from
        session: The request's own client session
    """

    def __init__(self, client: Any, session: Any):
        self.client = client
        self.session = session
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Mark the handle unusable. The session itself is ended by its owner."""
        self._released = True

    def collection(self, database: str, name: str) -> SessionCollection:
        """
        Get a session-bound collection.

        Raises:
            StoreOperationError: If the handle has already been released
        """
        if self._released:
            raise StoreOperationError(
                "Store handle used after its request completed",
                operation="collection",
                context={"database": database, "collection": name},
            )
        return SessionCollection(self.client[database][name], self.session)


class StoreSessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware acquiring a fresh store handle per request.

    The handle is stored on ``request.state`` under STORE_STATE_KEY and the
    underlying session is ended after the downstream handler returns,
    whether it succeeded, failed or raised. A correlation id is set for the
    request (taken from the X-Request-ID header when present) and echoed
    back on the response.
    """

    def __init__(self, app, client: Any = None):
        """
        Initialize the middleware.

        Args:
            app: ASGI application
            client: Shared Motor client. When omitted, the client is read
                from ``request.app.state.mongo_client`` on each request.
        """
        super().__init__(app)
        self._client = client

    def _resolve_client(self, request: Request) -> Any:
        if self._client is not None:
            return self._client
        return getattr(request.app.state, "mongo_client", None)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = set_correlation_id(request.headers.get(REQUEST_ID_HEADER))
        try:
            client = self._resolve_client(request)
            if client is None:
                logger.error("No MongoDB client configured for StoreSessionMiddleware")
                return JSONResponse({"detail": "Store not configured"}, status_code=503)

            try:
                session = await client.start_session()
            except PyMongoError as e:
                logger.error(f"Failed to start store session: {e}", exc_info=True)
                return JSONResponse({"detail": "Store unavailable"}, status_code=503)

            async with session:
                handle = StoreHandle(client, session)
                setattr(request.state, STORE_STATE_KEY, handle)
                try:
                    response = await call_next(request)
                finally:
                    handle.release()
                    logger.debug(f"Released store session for {request.method} {request.url.path}")

            response.headers[REQUEST_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()


async def get_store_handle(request: Request) -> StoreHandle:
    """FastAPI dependency returning the request's store handle."""
    handle = getattr(request.state, STORE_STATE_KEY, None)
    if handle is None:
        raise HTTPException(503, "Store handle not available (is StoreSessionMiddleware installed?)")
    return handle
