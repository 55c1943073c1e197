"""
CRUD operation handlers.

One coroutine per verb. Each takes the resource descriptor, the request's
store handle and the decoded request inputs, and either returns
data or raises a BlueprintError. No handler keeps state between calls.

Note on patch_record: the fetch of the current record and the $set write
are two separate store operations. A concurrent writer may change the
document in between; the patch is applied regardless (last write wins per
touched field, untouched fields keep whatever the other writer stored).
"""

from typing import Any, Awaitable, Callable, Mapping

from bson import ObjectId
from pymongo.errors import PyMongoError

from ..database.session import SessionCollection, StoreHandle
from ..exceptions import NotFoundError, StoreOperationError
from ..observability import get_logger, log_operation, set_resource_context, timed_operation
from ..utils.mongo import parse_object_id
from .descriptor import ResourceDescriptor
from .document import Document
from .hooks import run_post, run_pre
from .query import build_patch, build_query

logger = get_logger(__name__)


def _collection_of(descriptor: ResourceDescriptor, *args: Any, **kwargs: Any) -> str:
    return descriptor.collection


def _collection(descriptor: ResourceDescriptor, handle: StoreHandle) -> SessionCollection:
    set_resource_context(collection=descriptor.collection, database=descriptor.database)
    return handle.collection(descriptor.database, descriptor.collection)


def require_id(record_id: str | None) -> ObjectId:
    """
    Decode the path identifier.

    Raises:
        NotFoundError: If the id is missing or blank
        ClientInputError: If the id is not a valid ObjectId
    """
    if record_id is None or not record_id.strip():
        raise NotFoundError("not found", context={"id": record_id})
    return parse_object_id(record_id)


async def _fetch(
    descriptor: ResourceDescriptor, coll: SessionCollection, oid: ObjectId, operation: str
) -> Document | None:
    try:
        raw = await coll.find_one({"_id": oid})
    except PyMongoError as e:
        raise StoreOperationError(
            f"Failed to load {descriptor.name}: {e}", operation=operation, context={"id": str(oid)}
        ) from e
    if raw is None:
        return None
    return descriptor.model.from_document(raw)


async def _fetch_existing(
    descriptor: ResourceDescriptor, coll: SessionCollection, oid: ObjectId
) -> Document:
    record = await _fetch(descriptor, coll, oid, "find")
    if record is None:
        raise NotFoundError(f"{descriptor.name} not found", context={"id": str(oid)})
    return record


async def _refetch(
    descriptor: ResourceDescriptor, coll: SessionCollection, oid: ObjectId
) -> Document:
    record = await _fetch(descriptor, coll, oid, "refetch")
    if record is None:
        raise StoreOperationError(
            f"{descriptor.name} disappeared after write", operation="refetch",
            context={"id": str(oid)},
        )
    return record


@timed_operation("blueprint.create", _collection_of)
async def create(descriptor: ResourceDescriptor, handle: StoreHandle, payload: Any) -> Document:
    """Decode, run pre_create, insert, run post_create. Returns the stored record."""
    coll = _collection(descriptor, handle)
    record = descriptor.model.from_request(payload)

    await run_pre(descriptor.capabilities, "pre_create", record)

    try:
        result = await coll.insert_one(record.to_document())
    except PyMongoError as e:
        raise StoreOperationError(f"Failed to create {descriptor.name}: {e}", operation="insert") from e
    record.id = result.inserted_id
    log_operation(logger, "blueprint.create", record.id)

    await run_post(descriptor.capabilities, "post_create", record)
    return record


@timed_operation("blueprint.list", _collection_of)
async def list_records(
    descriptor: ResourceDescriptor,
    handle: StoreHandle,
    params: Mapping[str, Any],
    max_limit: int = 0,
) -> list[Document]:
    """Run a filtered, sorted, paginated find. Returns [] when nothing matches."""
    query = build_query(params, max_limit=max_limit)
    coll = _collection(descriptor, handle)

    try:
        cursor = coll.find(query.filter)
        if query.skip > 0:
            cursor = cursor.skip(query.skip)
        if query.limit > 0:
            cursor = cursor.limit(query.limit)
        if query.sort:
            cursor = cursor.sort(query.sort)
        docs = await cursor.to_list(length=None)
    except PyMongoError as e:
        raise StoreOperationError(f"Failed to list {descriptor.name}: {e}", operation="find") from e

    logger.debug(f"Listed {len(docs)} {descriptor.name} record(s) with filter {query.filter}")
    return [descriptor.model.from_document(doc) for doc in docs]


@timed_operation("blueprint.get", _collection_of)
async def get_record(
    descriptor: ResourceDescriptor, handle: StoreHandle, record_id: str | None
) -> Document:
    oid = require_id(record_id)
    coll = _collection(descriptor, handle)
    return await _fetch_existing(descriptor, coll, oid)


@timed_operation("blueprint.replace", _collection_of)
async def replace_record(
    descriptor: ResourceDescriptor, handle: StoreHandle, record_id: str | None, payload: Any
) -> Document:
    """
    Replace a record wholesale.

    post_update runs on the re-fetched record and receives the decoded
    replacement value as ``previous``.
    """
    oid = require_id(record_id)
    coll = _collection(descriptor, handle)
    replacement = descriptor.model.from_request(payload)
    # The identifier is immutable; whatever the body says is ignored.
    replacement.id = oid

    await run_pre(descriptor.capabilities, "pre_update", replacement)

    try:
        result = await coll.replace_one({"_id": oid}, replacement.to_document(include_id=False))
    except PyMongoError as e:
        raise StoreOperationError(
            f"Failed to replace {descriptor.name}: {e}", operation="replace",
            context={"id": str(oid)},
        ) from e
    if result.matched_count == 0:
        raise NotFoundError(f"{descriptor.name} not found", context={"id": str(oid)})

    updated = await _refetch(descriptor, coll, oid)
    log_operation(logger, "blueprint.replace", updated.id)

    await run_post(descriptor.capabilities, "post_update", updated, replacement)
    return updated


@timed_operation("blueprint.patch", _collection_of)
async def patch_record(
    descriptor: ResourceDescriptor,
    handle: StoreHandle,
    record_id: str | None,
    payload: Any | Callable[[], Awaitable[Any]],
) -> Document:
    """
    Set the given field paths on a record.

    ``payload`` is the decoded body, or an async callable producing it; the
    callable is only awaited once the record is known to exist. The record
    as it would read after the patch is validated against the model before
    anything is written.

    pre_update runs on the record as fetched before the patch; post_update
    runs on the re-fetched record and receives that snapshot as ``previous``.
    """
    oid = require_id(record_id)
    coll = _collection(descriptor, handle)
    current = await _fetch_existing(descriptor, coll, oid)
    if callable(payload):
        payload = await payload()
    changes = build_patch(payload)
    current.patched(changes)

    await run_pre(descriptor.capabilities, "pre_update", current)

    try:
        result = await coll.update_one({"_id": oid}, {"$set": changes})
    except PyMongoError as e:
        raise StoreOperationError(
            f"Failed to patch {descriptor.name}: {e}", operation="update",
            context={"id": str(oid)},
        ) from e
    if result.matched_count == 0:
        raise NotFoundError(f"{descriptor.name} not found", context={"id": str(oid)})

    updated = await _refetch(descriptor, coll, oid)
    log_operation(logger, "blueprint.patch", updated.id, fields=list(changes))

    await run_post(descriptor.capabilities, "post_update", updated, current)
    return updated


@timed_operation("blueprint.delete", _collection_of)
async def delete_record(
    descriptor: ResourceDescriptor, handle: StoreHandle, record_id: str | None
) -> Document:
    """Delete a record. Hooks see the record as it was before removal."""
    oid = require_id(record_id)
    coll = _collection(descriptor, handle)
    current = await _fetch_existing(descriptor, coll, oid)

    await run_pre(descriptor.capabilities, "pre_delete", current)

    try:
        result = await coll.delete_one({"_id": oid})
    except PyMongoError as e:
        raise StoreOperationError(
            f"Failed to delete {descriptor.name}: {e}", operation="delete",
            context={"id": str(oid)},
        ) from e
    if result.deleted_count == 0:
        raise NotFoundError(f"{descriptor.name} not found", context={"id": str(oid)})
    log_operation(logger, "blueprint.delete", oid)

    await run_post(descriptor.capabilities, "post_delete", current)
    return current
