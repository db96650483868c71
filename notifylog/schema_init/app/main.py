from __future__ import annotations

import asyncio
import os
import sys
from typing import Sequence, TextIO

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from notifylog.common.logging import configure_logging, get_logger
from notifylog.common.mongo import close_mongo, get_db, get_mongo_client, mongo_db_name
from notifylog.common.run_context import RunContext, new_run_id, set_run_context, update_run_context
from notifylog.schema_init.app.errors import SchemaInitError, translated
from notifylog.schema_init.app.initializer import SchemaInitializer
from notifylog.schema_init.app.report import SchemaReport, collect_report, diff_report, format_report, render_keys
from notifylog.schema_init.app.specs import NOTIFICATION_LOG_COLLECTIONS, CollectionSpec


log = get_logger("schema_init")


async def run(
    db: AsyncIOMotorDatabase,
    specs: Sequence[CollectionSpec] = NOTIFICATION_LOG_COLLECTIONS,
    out: TextIO = sys.stdout,
) -> SchemaReport:
    """Apply ``specs`` to ``db``, then print the verification report to ``out``."""
    await SchemaInitializer(db, specs).apply()

    update_run_context(step="report")
    report = await collect_report(db, specs)
    out.write(format_report(report))
    out.flush()

    diffs = diff_report(report, specs)
    if diffs:
        log.warning(
            "schema_diff",
            extra={
                "extra": {
                    name: {
                        "missing": [render_keys(k) for k in d.missing],
                        "unexpected": [render_keys(k) for k in d.unexpected],
                    }
                    for name, d in diffs.items()
                }
            },
        )
    return report


async def main() -> None:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    db_name = mongo_db_name()
    set_run_context(RunContext(run_id=new_run_id(), database=db_name, step="connect"))

    try:
        await translated(get_mongo_client().admin.command("ping"))
        await run(get_db(db_name))
    except (SchemaInitError, PyMongoError) as e:
        log.error("schema_init_failed", extra={"extra": {"error": type(e).__name__, "detail": str(e)}})
        raise
    finally:
        await close_mongo()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
