from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from notifylog.common.logging import get_logger
from notifylog.common.run_context import update_run_context
from notifylog.schema_init.app.errors import IndexConflictError, is_namespace_exists, translate_error, translated
from notifylog.schema_init.app.specs import (
    NOTIFICATION_LOG_COLLECTIONS,
    CollectionSpec,
    IndexSpec,
    key_pattern,
)


log = get_logger("schema_init")

IndexOutcome = Literal["created", "exists"]
IndexInfo = dict[str, dict[str, Any]]


@dataclass
class ApplyResult:
    collections_created: list[str] = field(default_factory=list)
    collections_existing: list[str] = field(default_factory=list)
    indexes_created: list[tuple[str, str]] = field(default_factory=list)
    indexes_existing: list[tuple[str, str]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.collections_created or self.indexes_created)


class SchemaInitializer:
    """Ensure a fixed set of collections and indexes exists in one database.

    Every step is create-if-absent, so re-running against a configured
    database is a no-op. The first failure aborts the run; steps already
    applied stay applied.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        specs: Sequence[CollectionSpec] = NOTIFICATION_LOG_COLLECTIONS,
    ) -> None:
        self._db = db
        self._specs = tuple(specs)

    async def apply(self) -> ApplyResult:
        result = ApplyResult()
        log.info(
            "schema_init_start",
            extra={"extra": {"collections": [s.name for s in self._specs]}},
        )

        for spec in self._specs:
            update_run_context(collection=spec.name, step="ensure_collection")
            if await self.ensure_collection(spec):
                result.collections_created.append(spec.name)
            else:
                result.collections_existing.append(spec.name)

            update_run_context(step="ensure_index")
            col = self._db[spec.name]
            existing = await translated(col.index_information(), collection=spec.name)
            for index in spec.indexes:
                outcome = await self.ensure_index(col, index, existing)
                bucket = result.indexes_created if outcome == "created" else result.indexes_existing
                bucket.append((spec.name, index.name))

        update_run_context(collection=None, step=None)
        log.info(
            "schema_init_done",
            extra={
                "extra": {
                    "collections_created": len(result.collections_created),
                    "indexes_created": len(result.indexes_created),
                    "indexes_existing": len(result.indexes_existing),
                }
            },
        )
        return result

    async def ensure_collection(self, spec: CollectionSpec) -> bool:
        names = await translated(
            self._db.list_collection_names(filter={"name": spec.name}),
            collection=spec.name,
        )
        if spec.name in names:
            log.info("collection_exists")
            return False

        try:
            await self._db.create_collection(spec.name)
        except PyMongoError as e:
            # Lost a race with another creator; the end state is the same.
            if is_namespace_exists(e):
                log.info("collection_exists")
                return False
            err = translate_error(e, collection=spec.name)
            if err is None:
                raise
            raise err from e

        log.info("collection_created")
        return True

    async def ensure_index(
        self,
        col: AsyncIOMotorCollection,
        spec: IndexSpec,
        existing: IndexInfo,
    ) -> IndexOutcome:
        """Create ``spec`` on ``col`` unless an equivalent index is already there.

        ``existing`` is the collection's ``index_information()``; it is updated
        in place when an index is created so later specs see it.
        """
        collection = col.name
        current = existing.get(spec.name)
        if current is not None:
            if spec.matches(current):
                log.info("index_exists", extra={"extra": {"index": spec.name}})
                return "exists"
            raise IndexConflictError(
                collection,
                spec.name,
                f"existing keys={list(key_pattern(current))}, declared keys={list(spec.keys)}, "
                f"differing options (existing, declared)={spec.option_diff(current)}",
            )

        for other_name, info in existing.items():
            if key_pattern(info) != spec.keys:
                continue
            # Same keys under another name: reuse only an exact equivalent.
            if not spec.matches(info):
                raise IndexConflictError(
                    collection,
                    spec.name,
                    f"index {other_name!r} has the same keys with different options "
                    f"(existing, declared)={spec.option_diff(info)}",
                )
            log.warning(
                "index_exists_under_other_name",
                extra={"extra": {"index": spec.name, "existing_name": other_name}},
            )
            return "exists"

        await translated(
            col.create_index(list(spec.keys), name=spec.name, unique=spec.unique),
            collection=collection,
            index=spec.name,
        )
        existing[spec.name] = {"key": list(spec.keys), "unique": spec.unique}
        log.info("index_created", extra={"extra": {"index": spec.name, "unique": spec.unique}})
        return "created"

