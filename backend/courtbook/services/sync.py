"""Best-effort mirroring of the ledger to the spreadsheet proxy.

Remote state wins on load when it is non-empty; afterwards every local
change pushes the full collection. Failures are logged and otherwise
ignored, so the core ledger never sees network errors.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx
from pydantic import ValidationError

from .ledger import COLLECTIONS, GAMES, PLAYERS, SESSIONS, SETTINGS, Ledger
from .sheets import SheetsClient, SheetsError, settings_row, to_rows

logger = logging.getLogger(__name__)

SYNC_ERRORS = (httpx.HTTPError, SheetsError, ValidationError)


class RemoteSync:
    def __init__(self, client: SheetsClient) -> None:
        self.client = client

    async def load_all(self) -> Dict[str, Any]:
        """Fetch every collection; a collection that fails to load is left out."""
        loaders = {
            PLAYERS: self.client.get_players,
            SESSIONS: self.client.get_sessions,
            GAMES: self.client.get_game_uses,
            SETTINGS: self.client.get_settings,
        }
        remote: Dict[str, Any] = {}
        for key, loader in loaders.items():
            try:
                remote[key] = await loader()
            except SYNC_ERRORS:
                logger.warning("Failed to load %s from remote", key, exc_info=True)
        return remote

    async def push_collection(self, key: str, ledger: Ledger) -> bool:
        if key not in COLLECTIONS:
            raise KeyError(key)
        value = ledger.collection(key)
        data: Any = settings_row(value) if key == SETTINGS else to_rows(value)
        try:
            await self.client.upsert(key, data)
        except SYNC_ERRORS:
            logger.warning("Failed to push %s to remote", key, exc_info=True)
            return False
        return True

    async def push_all(self, keys, ledger: Ledger) -> None:
        for key in sorted(keys):
            await self.push_collection(key, ledger)


def apply_remote_state(ledger: Ledger, remote: Dict[str, Any]) -> List[str]:
    """Overwrite local collections with their non-empty remote copies."""
    overwritten = []
    for key in COLLECTIONS:
        value = remote.get(key)
        if not value:
            continue
        ledger.replace_collection(key, value)
        overwritten.append(key)
    if overwritten:
        logger.info("Remote state replaced local %s", ", ".join(overwritten))
    return overwritten
