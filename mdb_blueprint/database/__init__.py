"""
Database layer.

Provides the shared MongoDB client and the request-scoped store handles
derived from it.
"""

from .connection import (close_shared_client, get_shared_mongo_client,
                         verify_shared_client)
from .session import (SessionCollection, StoreHandle, StoreSessionMiddleware,
                      get_store_handle)

__all__ = [
    # Request-scoped handles
    "StoreHandle",
    "SessionCollection",
    "StoreSessionMiddleware",
    "get_store_handle",
    # Connection
    "get_shared_mongo_client",
    "verify_shared_client",
    "close_shared_client",
]
