from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional

from pymongo import ASCENDING, DESCENDING


Direction = Literal[1, -1]
KeyPattern = tuple[tuple[str, Direction], ...]

# index_information() entries that say nothing about how the index behaves.
_NEUTRAL_FIELDS = frozenset({"v", "key", "unique", "ns", "background"})


@dataclass(frozen=True)
class IndexSpec:
    name: str
    keys: KeyPattern
    unique: bool = False

    def options(self) -> dict[str, Any]:
        return {"unique": True} if self.unique else {}

    def option_diff(self, info: Mapping[str, Any]) -> dict[str, tuple[Any, Any]]:
        """Options that differ between an existing index and this one, as (existing, declared)."""
        existing, declared = index_options(info), self.options()
        return {
            k: (existing.get(k), declared.get(k))
            for k in sorted(existing.keys() | declared.keys())
            if existing.get(k) != declared.get(k)
        }

    def matches(self, info: Mapping[str, Any]) -> bool:
        """True if an ``index_information()`` entry has our keys and exactly our options.

        A sparse or partial index is not a match even when keys and uniqueness
        agree: it would not index (or enforce uniqueness on) every document.
        """
        return key_pattern(info) == self.keys and not self.option_diff(info)


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    indexes: tuple[IndexSpec, ...]


def index_options(info: Mapping[str, Any]) -> dict[str, Any]:
    opts = {k: v for k, v in info.items() if k not in _NEUTRAL_FIELDS}
    if info.get("unique"):
        opts["unique"] = True
    return opts


def key_pattern(info: Mapping[str, Any]) -> KeyPattern:
    # index_information() gives [(field, dir)]; servers may report 1.0 for 1.
    # Special index types ("text", "2dsphere") keep their string direction.
    return tuple(
        (field, int(direction) if isinstance(direction, (int, float)) else direction)
        for field, direction in info["key"]
    )


def _asc(field: str, name: Optional[str] = None, *, unique: bool = False) -> IndexSpec:
    return IndexSpec(name=name or f"{field}_idx", keys=((field, ASCENDING),), unique=unique)


def _desc(field: str) -> IndexSpec:
    return IndexSpec(name=f"{field}_desc", keys=((field, DESCENDING),))


PUSH_RECORDS = CollectionSpec(
    name="push_records",
    indexes=(
        _asc("message_id", "message_id_unique", unique=True),
        _desc("push_time"),
        _asc("message_type"),
        _asc("target"),
        _asc("success"),
        _asc("sender_id"),
        _asc("status"),
    ),
)

# Several log entries per message are expected, so message_id is not unique here.
NOTIFICATION_LOGS = CollectionSpec(
    name="notification_logs",
    indexes=(
        _asc("message_id"),
        _desc("timestamp"),
        _asc("event_type"),
        _asc("user_id"),
    ),
)

ADMIN_USER_RECEIVE_RECORDS = CollectionSpec(
    name="admin_user_receive_records",
    indexes=(
        _asc("message_id"),
        _asc("user_id"),
        _desc("created_at"),
        IndexSpec(
            name="message_user_unique",
            keys=(("message_id", ASCENDING), ("user_id", ASCENDING)),
            unique=True,
        ),
        _asc("is_received"),
        _asc("is_read"),
        _asc("is_confirmed"),
        _asc("delivery_status"),
        _asc("push_channel"),
        _asc("username"),
    ),
)

# One status document per admin user.
ADMIN_USER_ONLINE_STATUS = CollectionSpec(
    name="admin_user_online_status",
    indexes=(
        _asc("user_id", "user_id_unique", unique=True),
        _asc("is_online"),
        _desc("last_seen"),
        _asc("username"),
    ),
)

NOTIFICATION_LOG_COLLECTIONS: tuple[CollectionSpec, ...] = (
    PUSH_RECORDS,
    NOTIFICATION_LOGS,
    ADMIN_USER_RECEIVE_RECORDS,
    ADMIN_USER_ONLINE_STATUS,
)
