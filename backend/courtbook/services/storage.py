"""Local persistence of the ledger collections.

Each collection is saved as a whole: the table is cleared and rewritten in
ledger order. Saves are serialised with a lock but there is no transaction
spanning collections, matching the load/save contract the ledger expects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional

from fastapi import BackgroundTasks
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..db import get_sessionmaker
from ..schemas import CourtSession, GameUse, Player, Settings
from .ledger import GAMES, PLAYERS, SESSIONS, SETTINGS, Ledger, LedgerState
from .sheets import SETTINGS_ROW_ID
from .sync import RemoteSync

logger = logging.getLogger(__name__)


def _player_to_model(player: Player, position: int) -> models.Player:
    return models.Player(
        id=player.id,
        name=player.name,
        gender=player.gender.value,
        level=player.level.value,
        active=player.active,
        status=player.status.value,
        visit_count=player.visit_count,
        shuttle_count=player.shuttle_count,
        position=position,
    )


def _player_from_model(row: models.Player) -> Player:
    return Player(
        id=row.id,
        name=row.name,
        gender=row.gender,
        level=row.level,
        active=row.active,
        status=row.status,
        visit_count=row.visit_count or 0,
        shuttle_count=row.shuttle_count or 0.0,
    )


def _session_to_model(session: CourtSession, position: int) -> models.CourtSession:
    return models.CourtSession(
        id=session.id,
        name=session.name,
        start_time=session.start_time,
        end_time=session.end_time,
        game_use_ids=list(session.game_use_ids),
        total_cost=session.total_cost,
        currency=session.currency,
        is_closed=session.is_closed,
        present_player_ids=list(session.present_player_ids),
        payment_status=dict(session.payment_status),
        position=position,
    )


def _session_from_model(row: models.CourtSession) -> CourtSession:
    return CourtSession(
        id=row.id,
        name=row.name,
        start_time=row.start_time,
        end_time=row.end_time,
        game_use_ids=row.game_use_ids or [],
        total_cost=row.total_cost or 0.0,
        currency=row.currency,
        is_closed=row.is_closed,
        present_player_ids=row.present_player_ids or [],
        payment_status=row.payment_status or {},
    )


def _game_to_model(game: GameUse, position: int) -> models.GameUse:
    return models.GameUse(
        id=game.id,
        timestamp=game.timestamp,
        shuttle_session_id=game.shuttle_session_id,
        shuttles_used=game.shuttles_used,
        player_ids=list(game.players),
        player_gender_mix=game.player_gender_mix,
        avg_level=game.avg_level,
        notes=game.notes,
        is_active=game.is_active,
        score1=game.score1,
        score2=game.score2,
        position=position,
    )


def _game_from_model(row: models.GameUse) -> GameUse:
    return GameUse(
        id=row.id,
        timestamp=row.timestamp,
        shuttle_session_id=row.shuttle_session_id,
        shuttles_used=row.shuttles_used,
        players=row.player_ids or [],
        player_gender_mix=row.player_gender_mix or "",
        avg_level=row.avg_level or 0.0,
        notes=row.notes,
        is_active=row.is_active,
        score1=row.score1,
        score2=row.score2,
    )


def _settings_to_model(settings: Settings) -> models.Setting:
    return models.Setting(
        id=SETTINGS_ROW_ID,
        currency=settings.currency,
        court_fee=settings.court_fee,
        shuttle_price=settings.shuttle_price,
        enable_auto_select=settings.enable_auto_select,
    )


async def load_state(session: AsyncSession) -> LedgerState:
    players = (
        await session.execute(select(models.Player).order_by(models.Player.position))
    ).scalars().all()
    sessions = (
        await session.execute(
            select(models.CourtSession).order_by(models.CourtSession.position)
        )
    ).scalars().all()
    games = (
        await session.execute(select(models.GameUse).order_by(models.GameUse.position))
    ).scalars().all()
    setting = await session.get(models.Setting, SETTINGS_ROW_ID)

    return LedgerState(
        players=[_player_from_model(p) for p in players],
        sessions=[_session_from_model(s) for s in sessions],
        games=[_game_from_model(g) for g in games],
        settings=(
            Settings(
                currency=setting.currency,
                court_fee=setting.court_fee,
                shuttle_price=setting.shuttle_price,
                enable_auto_select=setting.enable_auto_select,
            )
            if setting is not None
            else Settings()
        ),
    )


async def save_collection(session: AsyncSession, key: str, ledger: Ledger) -> None:
    """Replace the stored copy of one collection; the caller commits."""

    if key == SETTINGS:
        await session.merge(_settings_to_model(ledger.settings))
        return

    converters: dict[str, tuple[type, Callable, Iterable]] = {
        PLAYERS: (models.Player, _player_to_model, ledger.players),
        SESSIONS: (models.CourtSession, _session_to_model, ledger.sessions),
        GAMES: (models.GameUse, _game_to_model, ledger.games),
    }
    if key not in converters:
        raise KeyError(key)
    model, convert, items = converters[key]
    await session.execute(delete(model))
    session.add_all([convert(item, index) for index, item in enumerate(items)])


class LedgerStore:
    """Flushes ledger changes to the database and, optionally, the remote."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        remote: Optional[RemoteSync] = None,
    ) -> None:
        self._session_factory = session_factory
        self.remote = remote
        self._lock = asyncio.Lock()

    def _new_session(self) -> AsyncSession:
        factory = self._session_factory or get_sessionmaker()
        return factory()

    async def load(self) -> LedgerState:
        async with self._new_session() as session:
            return await load_state(session)

    async def save(self, keys: Iterable[str], ledger: Ledger) -> bool:
        keys = sorted(keys)
        async with self._lock:
            async with self._new_session() as session:
                try:
                    for key in keys:
                        await save_collection(session, key, ledger)
                    await session.commit()
                except SQLAlchemyError:
                    await session.rollback()
                    logger.exception("Failed to save %s", ", ".join(keys))
                    return False
        return True

    async def flush(
        self,
        ledger: Ledger,
        background_tasks: Optional[BackgroundTasks] = None,
        *,
        push: bool = True,
    ) -> set[str]:
        """Persist whatever the ledger changed since the last flush.

        Remote pushes are scheduled as background tasks when ``background_tasks``
        is given, so the response does not wait on the spreadsheet.
        """
        changes = ledger.drain_changes()
        if not changes:
            return changes
        if not await self.save(changes, ledger):
            # Retried on the next flush.
            ledger.mark_dirty(*changes)
        if push and self.remote is not None:
            if background_tasks is not None:
                background_tasks.add_task(self.remote.push_all, changes, ledger)
            else:
                await self.remote.push_all(changes, ledger)
        return changes
