from __future__ import annotations

from typing import Awaitable, Optional, TypeVar

from pymongo.errors import CollectionInvalid, ConnectionFailure, OperationFailure, PyMongoError


# Server error codes (src/mongo/base/error_codes.yml).
UNAUTHORIZED = 13
AUTHENTICATION_FAILED = 18
NAMESPACE_EXISTS = 48
INDEX_ALREADY_EXISTS = 68
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86

_PERMISSION_CODES = frozenset({UNAUTHORIZED, AUTHENTICATION_FAILED})
_INDEX_CONFLICT_CODES = frozenset({INDEX_ALREADY_EXISTS, INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT})

T = TypeVar("T")


class SchemaInitError(RuntimeError):
    """Base for every failure that aborts a schema initialization run."""


class SchemaConnectionError(SchemaInitError, ConnectionError):
    pass


class SchemaPermissionError(SchemaInitError, PermissionError):
    pass


class IndexConflictError(SchemaInitError):
    def __init__(self, collection: str, index: str, detail: str) -> None:
        super().__init__(f"index_conflict:{collection}.{index}: {detail}")
        self.collection = collection
        self.index = index


class CollectionConflictError(SchemaInitError):
    def __init__(self, collection: str, detail: str) -> None:
        super().__init__(f"collection_conflict:{collection}: {detail}")
        self.collection = collection


def is_namespace_exists(exc: PyMongoError) -> bool:
    if isinstance(exc, OperationFailure):
        return exc.code == NAMESPACE_EXISTS
    return isinstance(exc, CollectionInvalid) and "already exists" in str(exc)


def translate_error(
    exc: PyMongoError,
    *,
    collection: Optional[str] = None,
    index: Optional[str] = None,
) -> Optional[SchemaInitError]:
    """Map a driver error onto the schema error taxonomy.

    Returns None for errors outside the taxonomy; callers re-raise those as-is.
    The driver's message is kept so the operator sees what the server said.
    """
    if isinstance(exc, ConnectionFailure):
        return SchemaConnectionError(str(exc))
    if isinstance(exc, OperationFailure):
        if exc.code in _PERMISSION_CODES:
            return SchemaPermissionError(str(exc))
        if exc.code in _INDEX_CONFLICT_CODES and collection is not None:
            return IndexConflictError(collection, index or "?", str(exc))
        return None
    if isinstance(exc, CollectionInvalid) and collection is not None:
        return CollectionConflictError(collection, str(exc))
    return None


async def translated(
    awaitable: Awaitable[T],
    *,
    collection: Optional[str] = None,
    index: Optional[str] = None,
) -> T:
    """Await a driver call, re-raising its failure as a SchemaInitError where one applies."""
    try:
        return await awaitable
    except PyMongoError as e:
        err = translate_error(e, collection=collection, index=index)
        if err is None:
            raise
        raise err from e
