import json
import logging

import httpx
import pytest

from conftest import make_ledger
from courtbook.schemas import Settings
from courtbook.services.ledger import GAMES, PLAYERS, SESSIONS, SETTINGS
from courtbook.services.sheets import SheetsClient
from courtbook.services.sync import RemoteSync, apply_remote_state

URL = "https://sheets.example.test/exec"


def make_sync(handler) -> RemoteSync:
    transport = httpx.MockTransport(handler)
    return RemoteSync(SheetsClient(URL, client=httpx.AsyncClient(transport=transport)))


REMOTE_ROWS = {
    "players": [{"id": "r1", "name": "Remote", "gender": "Male", "level": "Pro", "active": "true"}],
    "sessions": [],
    "gameuses": [],
    "settings": [{"currency": "USD", "courtFee": "90", "shuttlePrice": "30", "enableAutoSelect": "false"}],
}


@pytest.mark.anyio
async def test_load_all_skips_failed_collections(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        entity = request.url.params["entity"]
        if entity == "gameuses":
            return httpx.Response(503)
        return httpx.Response(200, json={"ok": True, "rows": REMOTE_ROWS[entity]})

    sync = make_sync(handler)
    with caplog.at_level(logging.WARNING, logger="courtbook.services.sync"):
        remote = await sync.load_all()
    await sync.client.aclose()

    assert set(remote) == {PLAYERS, SESSIONS, SETTINGS}
    assert remote[SESSIONS] == []
    assert remote[SETTINGS].currency == "USD"
    assert "Failed to load gameuses" in caplog.text


def test_apply_remote_state_only_overwrites_non_empty():
    ledger = make_ledger()
    sessions_before = list(ledger.sessions)
    remote = {
        PLAYERS: [],
        SESSIONS: [],
        SETTINGS: Settings(currency="USD"),
    }

    overwritten = apply_remote_state(ledger, remote)

    assert overwritten == [SETTINGS]
    assert len(ledger.players) == 6
    assert ledger.sessions == sessions_before
    assert ledger.settings.currency == "USD"
    assert ledger.drain_changes() == {SETTINGS}


@pytest.mark.anyio
async def test_push_all_sends_each_changed_collection():
    posted = []

    def handler(request: httpx.Request) -> httpx.Response:
        posted.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    ledger = make_ledger()
    sync = make_sync(handler)
    await sync.push_all({SETTINGS, PLAYERS}, ledger)
    await sync.client.aclose()

    assert [body["entity"] for body in posted] == [PLAYERS, SETTINGS]
    assert len(posted[0]["data"]) == 6
    assert posted[1]["data"]["id"] == "default"
    assert posted[1]["data"]["courtFee"] == 70


@pytest.mark.anyio
async def test_push_failure_is_logged_not_raised(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    ledger = make_ledger()
    sync = make_sync(handler)
    with caplog.at_level(logging.WARNING, logger="courtbook.services.sync"):
        ok = await sync.push_collection(GAMES, ledger)
    await sync.client.aclose()

    assert ok is False
    assert "Failed to push gameuses" in caplog.text
