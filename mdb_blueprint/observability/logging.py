"""
Request-scoped logging context.

Records logged through get_logger carry the request's correlation id and
the resource being served, so every line belonging to one request can be
grouped:

    blueprint.patch blog.article id=65ab0c... fields=['title']
"""

import contextvars
import logging
import uuid
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "blueprint_correlation_id", default=None
)
_resource: contextvars.ContextVar[tuple[str, str] | None] = contextvars.ContextVar(
    "blueprint_resource", default=None
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Use the caller's id, or a fresh uuid4 when it is empty. Returns the id in effect."""
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_resource_context(database: str, collection: str) -> None:
    """Tag subsequent records in this context with the resource's database and collection."""
    _resource.set((database, collection))


class ResourceLoggerAdapter(logging.LoggerAdapter):
    """Adds correlation_id, database and collection to every record's extra."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra: dict[str, Any] = {"correlation_id": _correlation_id.get()}
        resource = _resource.get()
        if resource is not None:
            extra["database"], extra["collection"] = resource
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> ResourceLoggerAdapter:
    return ResourceLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    record_id: Any,
    **details: Any,
) -> None:
    """
    Log a committed write at INFO.

    Args:
        logger: Logger or adapter to emit on
        operation: Handler name, e.g. "blueprint.create"
        record_id: Identifier of the record written
        **details: Extra fields, appended to the message and set on the record
    """
    resource = _resource.get()
    where = ".".join(resource) if resource else "-"
    message = f"{operation} {where} id={record_id}"
    for key, value in details.items():
        message += f" {key}={value}"
    logger.info(
        message, extra={"operation": operation, "record_id": str(record_id), **details}
    )
