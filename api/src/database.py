"""
MongoDB connection management.

Provides:
- The startup connection attempt (client creation plus a ping)
- Client shutdown
- FastAPI dependencies handing the shared client and database to routes

A single AsyncMongoClient is created at startup and stored on ``app.state``;
pymongo maintains the connection pool behind it.
"""

import structlog
from typing import Optional
from fastapi import Request
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import ConfigurationError, PyMongoError

from api.src.config import Settings

logger = structlog.get_logger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when the startup connection to MongoDB cannot be established."""


def redact_uri(uri: str) -> str:
    """Strip credentials from a connection string before logging it."""
    scheme, sep, rest = uri.partition("://")
    if not sep:
        return uri
    if "@" in rest:
        rest = rest.rsplit("@", 1)[1]
    return f"{scheme}://{rest}"


async def connect_database(settings: Settings) -> AsyncMongoClient:
    """
    Open a client and verify the server answers a ping.

    The attempt resolves or fails exactly once; there is no retry.

    Args:
        settings: Application settings

    Returns:
        Connected AsyncMongoClient

    Raises:
        DatabaseConnectionError: If MONGO_URI is missing or invalid, or the
            server is unreachable within the selection timeout
    """
    if not settings.mongo_uri:
        raise DatabaseConnectionError("MONGO_URI is not set")

    try:
        client = AsyncMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
            maxPoolSize=settings.mongo_max_pool_size,
            tz_aware=True,
        )
    except (ConfigurationError, ValueError, TypeError) as e:
        raise DatabaseConnectionError(f"Invalid MONGO_URI: {e}") from e

    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        await client.close()
        raise DatabaseConnectionError(str(e)) from e

    logger.debug("database_ping_ok", uri=redact_uri(settings.mongo_uri))
    return client


async def close_database(client: Optional[AsyncMongoClient]) -> None:
    """Close the client if one was opened."""
    if client is None:
        return
    await client.close()
    logger.info("database_connection_closed")


async def ping_database(client: Optional[AsyncMongoClient]) -> bool:
    """
    Check the database still answers.

    Returns:
        True if the ping succeeded, False otherwise
    """
    if client is None:
        return False
    try:
        await client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.error("database_health_check_failed", error=str(e))
        return False


def get_app_database(client: AsyncMongoClient, settings: Settings) -> AsyncDatabase:
    """Return the database named in the URI path, or the configured default."""
    return client.get_default_database(default=settings.mongo_database)


# ============================================================================
# FASTAPI DEPENDENCIES
# ============================================================================


def get_mongo_client(request: Request) -> AsyncMongoClient:
    """
    Get the shared MongoDB client.

    Raises:
        RuntimeError: If the application was built without a client
    """
    client = getattr(request.app.state, "mongo_client", None)
    if client is None:
        logger.error("database_client_not_initialized")
        raise RuntimeError(
            "MongoDB client not initialized. Connect before serving requests."
        )
    return client


def get_database(request: Request) -> AsyncDatabase:
    """Get the application database from the shared client."""
    client = get_mongo_client(request)
    return get_app_database(client, request.app.state.settings)
