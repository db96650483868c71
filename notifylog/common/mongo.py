from __future__ import annotations

import os
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from notifylog.common.logging import get_logger


log = get_logger("mongo")

DEFAULT_DB = "notification_log_db"

_client: AsyncIOMotorClient | None = None


def mongo_uri() -> str:
    return os.getenv("MONGO_URI", "mongodb://localhost:27017")


def mongo_db_name() -> str:
    return os.getenv("MONGO_DB", DEFAULT_DB)


def get_mongo_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        uri = mongo_uri()
        timeout_ms = int(os.getenv("MONGO_TIMEOUT_MS", "10000"))
        log.info("mongo_connect", extra={"extra": {"uri": uri, "timeout_ms": timeout_ms}})
        _client = AsyncIOMotorClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
        )
    return _client


def get_db(name: Optional[str] = None) -> AsyncIOMotorDatabase:
    return get_mongo_client()[name or mongo_db_name()]


async def close_mongo() -> None:
    global _client
    if _client is not None:
        log.info("mongo_close")
        _client.close()
        _client = None
