"""Create the notification log collections and indexes, then print what exists.

Needs the package importable: run `pip install -e .` first, then either
    MONGO_URI=mongodb://host:27017 python scripts/setup_mongodb_collections.py
or the installed console script `notifylog-setup-schema`.
Safe to re-run; existing collections and indexes are left alone.
"""
from __future__ import annotations

import asyncio

from notifylog.schema_init.app.main import main


if __name__ == "__main__":
    asyncio.run(main())
