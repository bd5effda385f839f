"""Session/roster ledger.

The ledger owns the three canonical collections (players, court sessions and
game records) plus the settings, and every mutation goes through its methods
so that the derived fields stay consistent:

* ``Player.status`` is ``Playing`` exactly while the player is in an active
  game of the active session.
* ``Player.shuttle_count`` accumulates a quarter of ``shuttles_used`` for
  every game the player appears in.
* ``GameUse.player_gender_mix`` / ``avg_level`` are recomputed whenever the
  lineup changes.

The ledger performs no I/O. Mutations record which collections changed and
the persistence layer collects them with :meth:`Ledger.drain_changes`.
"""

from __future__ import annotations

import copy
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from ..exceptions import (
    GameNotFound,
    InvalidLineup,
    NoViewedSession,
    PlayerNotFound,
    PlayersAlreadyPlaying,
    SessionNotFound,
)
from ..schemas import (
    CourtSession,
    GameScores,
    GameUse,
    Gender,
    Level,
    Player,
    PlayerStatus,
    Settings,
)
from ..time_utils import coerce_utc, utcnow
from .stats import game_stats, session_total_cost

logger = logging.getLogger(__name__)

PLAYERS = "players"
SESSIONS = "sessions"
GAMES = "gameuses"
SETTINGS = "settings"
COLLECTIONS = (PLAYERS, SESSIONS, GAMES, SETTINGS)

TEAM_SIZE = 4


@dataclass
class LedgerState:
    players: List[Player] = field(default_factory=list)
    sessions: List[CourtSession] = field(default_factory=list)
    games: List[GameUse] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)


class Ledger:
    def __init__(
        self,
        state: LedgerState | None = None,
        *,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        state = state or LedgerState()
        self.players: List[Player] = list(state.players)
        self.sessions: List[CourtSession] = list(state.sessions)
        self.games: List[GameUse] = list(state.games)
        self.settings: Settings = state.settings
        self.viewed_session_id: Optional[str] = None
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._now = clock or utcnow
        self._changes: set[str] = set()

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    def _touch(self, *collections: str) -> None:
        self._changes.update(collections)

    def mark_dirty(self, *collections: str) -> None:
        """Queue collections for the next flush, e.g. after a failed save."""
        self._touch(*collections)

    def drain_changes(self) -> set[str]:
        """Return and reset the collections modified since the last call."""
        changes, self._changes = self._changes, set()
        return changes

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        """Restore every collection if the wrapped block raises."""
        snapshot = (
            copy.deepcopy(self.players),
            copy.deepcopy(self.sessions),
            copy.deepcopy(self.games),
            set(self._changes),
        )
        try:
            yield
        except Exception:
            self.players, self.sessions, self.games, self._changes = snapshot
            raise

    def replace_collection(self, key: str, value) -> None:
        """Swap a whole collection, e.g. after loading a remote copy."""
        if key == PLAYERS:
            self.players = list(value)
        elif key == SESSIONS:
            self.sessions = list(value)
        elif key == GAMES:
            self.games = list(value)
        elif key == SETTINGS:
            self.settings = value
        else:
            raise KeyError(key)
        self._touch(key)

    def collection(self, key: str):
        if key == PLAYERS:
            return self.players
        if key == SESSIONS:
            return self.sessions
        if key == GAMES:
            return self.games
        if key == SETTINGS:
            return self.settings
        raise KeyError(key)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def require_player(self, player_id: str) -> Player:
        player = self.get_player(player_id)
        if player is None:
            raise PlayerNotFound(player_id)
        return player

    def get_session(self, session_id: str) -> Optional[CourtSession]:
        return next((s for s in self.sessions if s.id == session_id), None)

    def require_session(self, session_id: str) -> CourtSession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def get_game(self, game_id: str) -> Optional[GameUse]:
        return next((g for g in self.games if g.id == game_id), None)

    def require_game(self, game_id: str) -> GameUse:
        game = self.get_game(game_id)
        if game is None:
            raise GameNotFound(game_id)
        return game

    @property
    def active_session(self) -> Optional[CourtSession]:
        return next((s for s in self.sessions if not s.is_closed), None)

    @property
    def viewed_session(self) -> Optional[CourtSession]:
        """The session under management, falling back to the active one."""
        if self.viewed_session_id is not None:
            session = self.get_session(self.viewed_session_id)
            if session is not None:
                return session
        return self.active_session

    def set_viewed_session(self, session_id: Optional[str]) -> Optional[CourtSession]:
        if session_id is None:
            self.viewed_session_id = None
            return self.viewed_session
        session = self.require_session(session_id)
        self.viewed_session_id = session.id
        return session

    @property
    def present_player_ids(self) -> set[str]:
        session = self.viewed_session
        return set(session.present_player_ids) if session else set()

    def games_for_session(self, session: CourtSession) -> List[GameUse]:
        by_id = {g.id: g for g in self.games}
        return [by_id[gid] for gid in session.game_use_ids if gid in by_id]

    def active_games(self) -> List[GameUse]:
        active = self.active_session
        if active is None:
            return []
        return [g for g in self.games_for_session(active) if g.is_active]

    def available_players(self, free_only: bool = True) -> List[Player]:
        """Active players present in the viewed session, optionally only free ones."""
        present = self.present_player_ids
        return [
            p
            for p in self.players
            if p.id in present
            and p.active
            and (not free_only or p.status == PlayerStatus.FREE)
        ]

    def _belongs_to_active_session(self, game_id: str) -> bool:
        active = self.active_session
        return active is not None and game_id in active.game_use_ids

    def _resolve_lineup(self, player_ids: Sequence[str]) -> List[Player]:
        if len(set(player_ids)) != len(player_ids):
            raise InvalidLineup("a player cannot fill two slots of the same game")
        resolved = [p for p in (self.get_player(pid) for pid in player_ids) if p]
        if len(resolved) != TEAM_SIZE:
            raise InvalidLineup(
                f"a game needs {TEAM_SIZE} known players, got {len(resolved)}"
            )
        return resolved

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def add_player(self, name: str, gender: Gender, level: Level) -> Player:
        player = Player(
            id=self._new_id(),
            name=name,
            gender=gender,
            level=level,
            active=True,
            status=PlayerStatus.FREE,
            visit_count=0,
            shuttle_count=0.0,
        )
        self.players.append(player)
        self._touch(PLAYERS)
        return player

    def update_player(self, player: Player) -> Player:
        for index, existing in enumerate(self.players):
            if existing.id == player.id:
                self.players[index] = player
                self._touch(PLAYERS)
                return player
        raise PlayerNotFound(player.id)

    def toggle_presence(self, player_id: str) -> Optional[CourtSession]:
        session = self.viewed_session
        if session is None:
            return None
        self.require_player(player_id)
        if player_id in session.present_player_ids:
            session.present_player_ids = [
                pid for pid in session.present_player_ids if pid != player_id
            ]
        else:
            session.present_player_ids = [*session.present_player_ids, player_id]
        self._touch(SESSIONS)
        return session

    def toggle_payment_status(self, player_id: str, session_id: str) -> bool:
        session = self.require_session(session_id)
        paid = not session.payment_status.get(player_id, False)
        session.payment_status = {**session.payment_status, player_id: paid}
        self._touch(SESSIONS)
        return paid

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    def add_game(
        self,
        players: Sequence[str],
        shuttle_session_id: int,
        shuttles_used: float = 1,
        notes: Optional[str] = None,
    ) -> GameUse:
        session = self.viewed_session
        if session is None:
            raise NoViewedSession()
        lineup = self._resolve_lineup(players)

        active = self.active_session
        for_active = active is not None and active.id == session.id
        if for_active:
            busy = [p.id for p in lineup if p.status == PlayerStatus.PLAYING]
            if busy:
                raise PlayersAlreadyPlaying(busy)

        gender_mix, avg_level = game_stats(lineup)
        share = shuttles_used / TEAM_SIZE
        with self._atomic():
            game = GameUse(
                id=self._new_id(),
                timestamp=self._now(),
                shuttle_session_id=shuttle_session_id,
                shuttles_used=shuttles_used,
                players=list(players),
                player_gender_mix=gender_mix,
                avg_level=avg_level,
                notes=notes,
                # games recorded into a historical session are already over
                is_active=for_active,
            )
            self.games.append(game)
            session.game_use_ids = [*session.game_use_ids, game.id]
            for player in lineup:
                player.shuttle_count = (player.shuttle_count or 0) + share
                if for_active:
                    player.status = PlayerStatus.PLAYING
        self._touch(PLAYERS, SESSIONS, GAMES)
        return game

    def update_game(
        self,
        game_id: str,
        players: Sequence[str],
        shuttle_session_id: int,
        shuttles_used: float = 1,
        notes: Optional[str] = None,
    ) -> GameUse:
        game = self.require_game(game_id)
        lineup = self._resolve_lineup(players)
        old_ids = set(game.players)
        new_ids = set(players)
        track_status = game.is_active and self._belongs_to_active_session(game_id)

        if track_status:
            busy = [
                p.id
                for p in lineup
                if p.id not in old_ids and p.status == PlayerStatus.PLAYING
            ]
            if busy:
                raise PlayersAlreadyPlaying(busy)

        old_share = (game.shuttles_used or 1) / TEAM_SIZE
        new_share = (shuttles_used or 1) / TEAM_SIZE
        gender_mix, avg_level = game_stats(lineup)
        with self._atomic():
            # Players in both lineups get the old share retracted and the
            # new one added, so their net change is the share difference.
            for pid in old_ids | new_ids:
                player = self.get_player(pid)
                if player is None:
                    continue
                adjustment = 0.0
                if pid in old_ids:
                    adjustment -= old_share
                if pid in new_ids:
                    adjustment += new_share
                if adjustment:
                    player.shuttle_count = (player.shuttle_count or 0) + adjustment
                if track_status:
                    if pid in old_ids and pid not in new_ids:
                        player.status = PlayerStatus.FREE
                    elif pid in new_ids and pid not in old_ids:
                        player.status = PlayerStatus.PLAYING

            game.players = list(players)
            game.shuttle_session_id = shuttle_session_id
            game.shuttles_used = shuttles_used
            game.notes = notes
            game.player_gender_mix = gender_mix
            game.avg_level = avg_level
        self._touch(PLAYERS, GAMES)
        return game

    def end_game(
        self, game_id: str, scores: Optional[GameScores] = None
    ) -> Optional[GameUse]:
        game = self.get_game(game_id)
        if game is None or not game.is_active:
            return None

        game.is_active = False
        if scores is not None:
            game.score1 = scores.score1
            game.score2 = scores.score2
        self._touch(GAMES)

        if self._belongs_to_active_session(game_id):
            lineup = set(game.players)
            for player in self.players:
                if player.id in lineup:
                    player.status = PlayerStatus.FREE
            self._touch(PLAYERS)
        return game

    def update_game_scores(self, game_id: str, scores: GameScores) -> GameUse:
        game = self.require_game(game_id)
        game.score1 = scores.score1
        game.score2 = scores.score2
        self._touch(GAMES)
        return game

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def start_session(self) -> Optional[CourtSession]:
        if self.active_session is not None:
            return None
        started = self._now()
        session = CourtSession(
            id=self._new_id(),
            name=f"Session - {started:%Y-%m-%d}",
            start_time=started,
            currency=self.settings.currency,
            is_closed=False,
        )
        self.sessions.append(session)
        self.viewed_session_id = session.id
        self._touch(SESSIONS)
        logger.info("Started session %s", session.id)
        return session

    def close_session(self) -> Optional[CourtSession]:
        session = self.active_session
        if session is None:
            return None

        with self._atomic():
            for game in self.games_for_session(session):
                if game.is_active:
                    self.end_game(game.id)

            present = set(session.present_player_ids)
            for player in self.players:
                if player.id in present:
                    player.visit_count = (player.visit_count or 0) + 1

            session.end_time = self._now()
            session.total_cost = session_total_cost(
                session, self.games_for_session(session), self.settings
            )
            session.is_closed = True
        self._touch(PLAYERS, SESSIONS, GAMES)
        logger.info(
            "Closed session %s with %d present players",
            session.id,
            len(present),
        )
        return session

    def update_session(
        self,
        session_id: str,
        *,
        name: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> CourtSession:
        session = self.require_session(session_id)
        if name is not None:
            session.name = name
        if start_time is not None:
            session.start_time = coerce_utc(start_time)
        if end_time is not None:
            session.end_time = coerce_utc(end_time)
        self._touch(SESSIONS)
        return session

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def update_settings(self, **updates) -> Settings:
        merged = {**self.settings.model_dump(), **updates}
        self.settings = Settings.model_validate(merged)
        self._touch(SETTINGS)
        return self.settings

    def players_by_id(self) -> Dict[str, Player]:
        return {p.id: p for p in self.players}
