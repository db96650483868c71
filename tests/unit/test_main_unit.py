from __future__ import annotations

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from notifylog.schema_init.app import main as main_mod
from notifylog.schema_init.app.errors import SchemaConnectionError
from tests.unit.fake_mongo import FakeDatabase


class FakeAdmin:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self.commands: list[str] = []

    async def command(self, name: str):
        self.commands.append(name)
        if self._error is not None:
            raise self._error
        return {"ok": 1.0}


class FakeClient:
    def __init__(self, error: Exception | None = None) -> None:
        self.admin = FakeAdmin(error)


def _patch(monkeypatch: pytest.MonkeyPatch, client: FakeClient, db: FakeDatabase) -> list[bool]:
    closed: list[bool] = []

    async def close_mongo() -> None:
        closed.append(True)

    monkeypatch.setattr(main_mod, "configure_logging", lambda level="INFO": None)
    monkeypatch.setattr(main_mod, "get_mongo_client", lambda: client)
    monkeypatch.setattr(main_mod, "get_db", lambda name=None: db)
    monkeypatch.setattr(main_mod, "close_mongo", close_mongo)
    return closed


@pytest.mark.asyncio
async def test_main_pings_applies_and_closes(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]):
    client, db = FakeClient(), FakeDatabase()
    closed = _patch(monkeypatch, client, db)

    await main_mod.main()

    assert client.admin.commands == ["ping"]
    assert closed == [True]
    assert len(await db.list_collection_names()) == 4
    assert "push_records (8 indexes):" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_main_unreachable_server_fails_before_any_change(monkeypatch: pytest.MonkeyPatch):
    client, db = FakeClient(ServerSelectionTimeoutError("No servers found yet")), FakeDatabase()
    closed = _patch(monkeypatch, client, db)

    with pytest.raises(SchemaConnectionError):
        await main_mod.main()

    assert closed == [True]
    assert db.calls == []


@pytest.mark.asyncio
async def test_main_uses_configured_database_name(monkeypatch: pytest.MonkeyPatch):
    client, db = FakeClient(), FakeDatabase("staging_notification_log_db")
    _patch(monkeypatch, client, db)
    seen: list[str | None] = []
    monkeypatch.setattr(main_mod, "get_db", lambda name=None: seen.append(name) or db)
    monkeypatch.setenv("MONGO_DB", "staging_notification_log_db")

    await main_mod.main()

    assert seen == ["staging_notification_log_db"]
