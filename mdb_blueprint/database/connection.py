"""
Store client lifecycle.

One Motor client per process, built from the BlueprintConfig the
application was created with. Requests never touch the client directly;
StoreSessionMiddleware starts a session on it for each request.

Usage:
    client = get_shared_mongo_client(config)
    ...
    close_shared_client()
"""

import logging
import threading

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConfigurationError as MongoConfigurationError
from pymongo.errors import InvalidOperation, PyMongoError

from ..config import BlueprintConfig
from ..constants import DEFAULT_MAX_IDLE_TIME_MS

logger = logging.getLogger(__name__)

_shared_client: AsyncIOMotorClient | None = None
_init_lock = threading.Lock()


def get_shared_mongo_client(config: BlueprintConfig) -> AsyncIOMotorClient:
    """
    Return the process-wide store client, creating it on first use.

    Later calls return the existing client regardless of ``config``.

    Raises:
        pymongo.errors.ConfigurationError, ValueError, TypeError: If the
            driver rejects the URI or pool options
    """
    global _shared_client

    if _shared_client is not None:
        return _shared_client

    with _init_lock:
        if _shared_client is not None:
            return _shared_client

        try:
            client = AsyncIOMotorClient(
                config.mongo_uri,
                appname="MDB_BLUEPRINT",
                maxPoolSize=config.max_pool_size,
                minPoolSize=config.min_pool_size,
                serverSelectionTimeoutMS=config.server_selection_timeout_ms,
                maxIdleTimeMS=DEFAULT_MAX_IDLE_TIME_MS,
                retryWrites=True,
                retryReads=True,
            )
        except (MongoConfigurationError, ValueError, TypeError) as e:
            logger.error(f"Store client for {config.db_name} could not be created: {e}")
            raise

        _shared_client = client
        logger.info(
            f"Store client ready for {config.db_name} "
            f"(pool {config.min_pool_size}-{config.max_pool_size})"
        )
        return _shared_client


async def verify_shared_client() -> bool:
    """Ping the store. False when there is no client or it does not answer."""
    if _shared_client is None:
        return False
    try:
        await _shared_client.admin.command("ping")
    except PyMongoError as e:
        logger.warning(f"Store ping failed: {e}")
        return False
    return True


def close_shared_client() -> None:
    """Close the store client, if any. Safe to call more than once."""
    global _shared_client

    client, _shared_client = _shared_client, None
    if client is None:
        return
    try:
        client.close()
    except InvalidOperation as e:
        logger.warning(f"Store client did not close cleanly: {e}")
    else:
        logger.info("Store client closed")
