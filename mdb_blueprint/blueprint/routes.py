"""
Route registration.

Attaches the CRUD handlers of a resource to a FastAPI application or
router, under the resource's route group:

    POST   /articles/           create
    GET    /articles/           list
    GET    /articles/{id}       get
    PUT    /articles/{id}       replace
    PATCH  /articles/{id}       partial update
    DELETE /articles/{id}       delete

Usage:
    descriptor = register(Article, "blog", "article")
    bind_routes(descriptor, app, Route.LIST | Route.GET)

    # or, in one step
    Blueprint(Article, "blog", "article").routes(app)
"""

import enum
import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from ..constants import DEFAULT_MAX_PAGE_SIZE
from ..database.session import StoreHandle, get_store_handle
from ..exceptions import BlueprintError, ClientInputError
from . import handlers
from .descriptor import ResourceDescriptor, register
from .document import Document

logger = logging.getLogger(__name__)


class Route(enum.Flag):
    """Selects which operations bind_routes attaches."""

    CREATE = enum.auto()
    LIST = enum.auto()
    GET = enum.auto()
    REPLACE = enum.auto()
    PATCH = enum.auto()
    DELETE = enum.auto()
    ALL = CREATE | LIST | GET | REPLACE | PATCH | DELETE


@contextmanager
def _handler_boundary(descriptor: ResourceDescriptor, operation: str) -> Iterator[None]:
    """Map the first BlueprintError raised inside to its HTTP response."""
    try:
        yield
    except BlueprintError as e:
        logger.info(
            f"{operation} {descriptor.path} failed with {e.status_code}: {e}"
        )
        raise HTTPException(status_code=e.status_code, detail=e.message) from e


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        raise ClientInputError("Request body is required")
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ClientInputError(f"Malformed JSON body: {e}") from e


def bind_routes(
    descriptor: ResourceDescriptor,
    router: FastAPI | APIRouter,
    routes: Route = Route.ALL,
    max_page_size: int | None = None,
) -> APIRouter:
    """
    Attach the selected CRUD operations for a resource.

    Args:
        descriptor: Registered resource
        router: FastAPI application or APIRouter to attach to
        routes: Operations to expose; omitted operations get no route
        max_page_size: Upper bound applied to _limit on List (0 for none).
            Defaults to the max_page_size of the BlueprintConfig stored on
            app.state.config, or no bound when there is none.

    Returns:
        The APIRouter holding the resource's routes
    """
    group = APIRouter(prefix=descriptor.path, tags=[descriptor.group])
    name = descriptor.group

    def _page_cap(request: Request) -> int:
        if max_page_size is not None:
            return max_page_size
        config = getattr(request.app.state, "config", None)
        return getattr(config, "max_page_size", DEFAULT_MAX_PAGE_SIZE)

    async def create_endpoint(
        request: Request, handle: StoreHandle = Depends(get_store_handle)
    ) -> Response:
        with _handler_boundary(descriptor, "create"):
            payload = await _read_json(request)
            record = await handlers.create(descriptor, handle, payload)
        location = f"{request.url.path.rstrip('/')}/{record.id}"
        return Response(status_code=201, headers={"Location": location})

    async def list_endpoint(
        request: Request, handle: StoreHandle = Depends(get_store_handle)
    ) -> Response:
        with _handler_boundary(descriptor, "list"):
            records = await handlers.list_records(
                descriptor, handle, request.query_params, max_limit=_page_cap(request)
            )
        return JSONResponse([record.to_response() for record in records])

    async def get_endpoint(
        record_id: str, handle: StoreHandle = Depends(get_store_handle)
    ) -> Response:
        with _handler_boundary(descriptor, "get"):
            record = await handlers.get_record(descriptor, handle, record_id)
        return JSONResponse(record.to_response())

    async def replace_endpoint(
        record_id: str, request: Request, handle: StoreHandle = Depends(get_store_handle)
    ) -> Response:
        with _handler_boundary(descriptor, "replace"):
            handlers.require_id(record_id)
            payload = await _read_json(request)
            record = await handlers.replace_record(descriptor, handle, record_id, payload)
        return JSONResponse(record.to_response())

    async def patch_endpoint(
        record_id: str, request: Request, handle: StoreHandle = Depends(get_store_handle)
    ) -> Response:
        with _handler_boundary(descriptor, "patch"):
            record = await handlers.patch_record(
                descriptor, handle, record_id, lambda: _read_json(request)
            )
        return JSONResponse(record.to_response())

    async def delete_endpoint(
        record_id: str, handle: StoreHandle = Depends(get_store_handle)
    ) -> Response:
        with _handler_boundary(descriptor, "delete"):
            await handlers.delete_record(descriptor, handle, record_id)
        return Response(status_code=204)

    def _missing_id(operation: str):
        # PUT/PATCH/DELETE on the group root carry an empty id
        async def missing_id_endpoint() -> Response:
            with _handler_boundary(descriptor, operation):
                handlers.require_id(None)

        return missing_id_endpoint

    if Route.CREATE in routes:
        group.add_api_route(
            "/", create_endpoint, methods=["POST"], status_code=201, name=f"{name}:create"
        )
    if Route.LIST in routes:
        group.add_api_route("/", list_endpoint, methods=["GET"], name=f"{name}:list")
    if Route.GET in routes:
        group.add_api_route("/{record_id}", get_endpoint, methods=["GET"], name=f"{name}:get")
    for flag, method, operation, endpoint, status_code in (
        (Route.REPLACE, "PUT", "replace", replace_endpoint, 200),
        (Route.PATCH, "PATCH", "patch", patch_endpoint, 200),
        (Route.DELETE, "DELETE", "delete", delete_endpoint, 204),
    ):
        if flag not in routes:
            continue
        group.add_api_route(
            "/{record_id}", endpoint, methods=[method], status_code=status_code,
            name=f"{name}:{operation}",
        )
        group.add_api_route(
            "/", _missing_id(operation), methods=[method], include_in_schema=False,
            name=f"{name}:{operation}-missing-id",
        )

    router.include_router(group)
    logger.debug(f"Bound {routes} for {descriptor.name} under {descriptor.path}")
    return group


class Blueprint:
    """
    A registered resource together with its route bindings.

    Example:
        blueprint = Blueprint(Article, "blog", "article")
        blueprint.routes(app)                       # all six operations
        blueprint.routes(admin, Route.DELETE)       # plus delete on another router
    """

    def __init__(
        self,
        model: type[Document],
        database: str,
        collection: str,
        group: str | None = None,
    ):
        self.descriptor = register(model, database, collection, group=group)
        self.routers: list[APIRouter] = []

    def routes(
        self,
        router: FastAPI | APIRouter,
        routes: Route = Route.ALL,
        max_page_size: int | None = None,
    ) -> APIRouter:
        group = bind_routes(self.descriptor, router, routes, max_page_size=max_page_size)
        self.routers.append(group)
        return group
