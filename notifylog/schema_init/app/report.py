from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

from notifylog.schema_init.app.errors import translated
from notifylog.schema_init.app.specs import NOTIFICATION_LOG_COLLECTIONS, CollectionSpec, KeyPattern, key_pattern


ID_KEY: KeyPattern = (("_id", 1),)


@dataclass(frozen=True)
class IndexView:
    name: str
    keys: KeyPattern
    unique: bool = False


@dataclass(frozen=True)
class CollectionView:
    name: str
    indexes: tuple[IndexView, ...]

    def key_patterns(self) -> set[KeyPattern]:
        return {ix.keys for ix in self.indexes}


@dataclass(frozen=True)
class SchemaReport:
    database: str
    collections: tuple[str, ...]
    managed: tuple[CollectionView, ...]

    def view(self, name: str) -> CollectionView:
        for v in self.managed:
            if v.name == name:
                return v
        raise KeyError(name)


@dataclass
class IndexDiff:
    missing: list[KeyPattern] = field(default_factory=list)
    unexpected: list[KeyPattern] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.missing or self.unexpected)


async def collect_report(
    db: AsyncIOMotorDatabase,
    specs: Sequence[CollectionSpec] = NOTIFICATION_LOG_COLLECTIONS,
) -> SchemaReport:
    names = sorted(await translated(db.list_collection_names()))
    views: list[CollectionView] = []
    for spec in specs:
        info = await translated(db[spec.name].index_information(), collection=spec.name)
        views.append(
            CollectionView(
                name=spec.name,
                indexes=tuple(
                    IndexView(name=ix_name, keys=key_pattern(ix), unique=bool(ix.get("unique", False)))
                    for ix_name, ix in info.items()
                ),
            )
        )
    return SchemaReport(database=db.name, collections=tuple(names), managed=tuple(views))


def diff_report(
    report: SchemaReport,
    specs: Sequence[CollectionSpec] = NOTIFICATION_LOG_COLLECTIONS,
) -> dict[str, IndexDiff]:
    """Compare present key patterns with declared ones; only non-empty diffs are returned."""
    out: dict[str, IndexDiff] = {}
    for spec in specs:
        declared = [ix.keys for ix in spec.indexes]
        try:
            present = report.view(spec.name).key_patterns()
        except KeyError:
            present = set()

        diff = IndexDiff(
            missing=[k for k in declared if k not in present],
            unexpected=sorted((k for k in present if k not in declared and k != ID_KEY), key=render_keys),
        )
        if diff:
            out[spec.name] = diff
    return out


def render_keys(keys: KeyPattern) -> str:
    return json.dumps(dict(keys), ensure_ascii=False)


def format_report(report: SchemaReport) -> str:
    lines = [f"Collections in database {report.database!r}:"]
    lines.extend(f"  - {name}" for name in report.collections)
    lines.append("")
    lines.append("Indexes per collection:")
    for view in report.managed:
        lines.append(f"{view.name} ({len(view.indexes)} indexes):")
        for ix in view.indexes:
            suffix = " unique" if ix.unique else ""
            lines.append(f"  - {render_keys(ix.keys)}{suffix}")
    return "\n".join(lines) + "\n"
