"""
Resource descriptors.

A descriptor binds a record type to its storage location and route group.
It is built once, when the resource is registered, and shared read-only by
every request served for that resource.
"""

import logging
from dataclasses import dataclass, field

import inflect

from ..constants import (INVALID_DATABASE_NAME_CHARS,
                         MAX_COLLECTION_NAME_LENGTH, MAX_DATABASE_NAME_LENGTH,
                         RESERVED_COLLECTION_PREFIXES)
from ..exceptions import ConfigurationError
from .document import Document
from .hooks import HookCapabilities

logger = logging.getLogger(__name__)

_inflector = inflect.engine()


def default_group(model: type) -> str:
    """Lower-cased, pluralized class name: Article -> articles, Category -> categories."""
    name = model.__name__.lower()
    return _inflector.plural_noun(name) or name


def _validate_database_name(database: str) -> None:
    if not database:
        raise ConfigurationError("database name is required", config_key="database")
    if len(database) > MAX_DATABASE_NAME_LENGTH:
        raise ConfigurationError(
            f"database name longer than {MAX_DATABASE_NAME_LENGTH} characters",
            config_key="database",
            config_value=database,
        )
    if any(ch in INVALID_DATABASE_NAME_CHARS for ch in database):
        raise ConfigurationError(
            "database name contains invalid characters",
            config_key="database",
            config_value=database,
        )


def _validate_collection_name(collection: str) -> None:
    if not collection:
        raise ConfigurationError("collection name is required", config_key="collection")
    if len(collection) > MAX_COLLECTION_NAME_LENGTH:
        raise ConfigurationError(
            f"collection name longer than {MAX_COLLECTION_NAME_LENGTH} characters",
            config_key="collection",
            config_value=collection,
        )
    if "$" in collection or "\x00" in collection or collection.startswith(
        RESERVED_COLLECTION_PREFIXES
    ):
        raise ConfigurationError(
            "collection name is reserved or contains invalid characters",
            config_key="collection",
            config_value=collection,
        )


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Immutable description of one registered resource.

    Attributes:
        model: Document subclass for the records
        database: Database holding the collection
        collection: Collection holding the records
        group: Route-group path segment (no surrounding slashes)
        capabilities: Hook capabilities probed at registration
    """

    model: type[Document]
    database: str
    collection: str
    group: str
    capabilities: HookCapabilities = field(default_factory=HookCapabilities)

    @property
    def name(self) -> str:
        return self.model.__name__

    @property
    def path(self) -> str:
        return f"/{self.group}"


def register(
    model: type[Document],
    database: str,
    collection: str,
    group: str | None = None,
) -> ResourceDescriptor:
    """
    Register a record type and build its descriptor.

    Args:
        model: Document subclass describing the records
        database: Database name
        collection: Collection name
        group: Route-group path, e.g. "blog/posts". Defaults to the
            lower-cased, pluralized class name.

    Returns:
        ResourceDescriptor

    Raises:
        ConfigurationError: If the model or the storage names are invalid
    """
    if not isinstance(model, type) or not issubclass(model, Document):
        raise ConfigurationError(
            "Resource model must be a subclass of Document",
            config_key="model",
            config_value=getattr(model, "__name__", repr(model)),
        )
    _validate_database_name(database)
    _validate_collection_name(collection)

    if group is None:
        group = default_group(model)
    group = group.strip("/")
    if not group:
        raise ConfigurationError("route group must not be empty", config_key="group")

    descriptor = ResourceDescriptor(
        model=model,
        database=database,
        collection=collection,
        group=group,
        capabilities=HookCapabilities.probe(model),
    )
    logger.info(
        f"Registered resource {descriptor.name} -> {database}.{collection} at "
        f"{descriptor.path} (hooks: {', '.join(descriptor.capabilities.enabled) or 'none'})"
    )
    return descriptor
