"""
MDB_BLUEPRINT - MongoDB Resource Blueprints

Turns declared record types into REST endpoints backed by MongoDB,
with query-string filtering, pagination, sorting and lifecycle hooks.
"""

from .app import create_app
from .blueprint import (Blueprint, Document, ResourceDescriptor, Route,
                        bind_routes, register)
from .config import BlueprintConfig
from .database import StoreHandle, StoreSessionMiddleware, get_store_handle
from .exceptions import (BlueprintError, ClientInputError, ConfigurationError,
                         HookAbortError, InvalidParameterError, NotFoundError,
                         PostHookError, StoreOperationError)

__version__ = "0.1.0"

__all__ = [
    # Blueprints
    "Blueprint",
    "Document",
    "ResourceDescriptor",
    "Route",
    "bind_routes",
    "register",
    # Application
    "create_app",
    "BlueprintConfig",
    # Store handles
    "StoreHandle",
    "StoreSessionMiddleware",
    "get_store_handle",
    # Errors
    "BlueprintError",
    "ClientInputError",
    "ConfigurationError",
    "HookAbortError",
    "InvalidParameterError",
    "NotFoundError",
    "PostHookError",
    "StoreOperationError",
]
