"""CSV dumps of the ledger collections."""

from __future__ import annotations

import csv
import io
import json
import re
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from ..schemas import CourtSession, GameUse, Player

PLAYER_COLUMNS = [
    "id",
    "name",
    "gender",
    "level",
    "active",
    "status",
    "visitCount",
    "shuttleCount",
]
SESSION_COLUMNS = [
    "id",
    "name",
    "startTime",
    "endTime",
    "gameUseIds",
    "totalCost",
    "currency",
    "isClosed",
    "presentPlayerIds",
    "paymentStatus",
]
GAME_COLUMNS = [
    "id",
    "timestamp",
    "shuttleSessionId",
    "shuttlesUsed",
    "players",
    "playerGenderMix",
    "avgLevel",
    "notes",
    "isActive",
    "score1",
    "score2",
]
SESSION_GAME_COLUMNS = [
    "GameID",
    "ShuttleSessionID",
    "Timestamp",
    "Players",
    "AvgLevel",
    "GenderMix",
]

LIST_DELIMITER = ";"
_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


def format_field(value: Any) -> str:
    """Flatten a value into a single CSV cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return LIST_DELIMITER.join(str(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(dict(value), separators=(",", ":"))
    return str(value)


def to_csv(rows: Iterable[Mapping[str, Any]], columns: Sequence[str]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\r\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([format_field(row.get(col)) for col in columns])
    return buf.getvalue()


def players_csv(players: Iterable[Player]) -> str:
    return to_csv((p.model_dump(by_alias=True) for p in players), PLAYER_COLUMNS)


def sessions_csv(sessions: Iterable[CourtSession]) -> str:
    return to_csv((s.model_dump(by_alias=True) for s in sessions), SESSION_COLUMNS)


def games_csv(games: Iterable[GameUse]) -> str:
    return to_csv((g.model_dump(by_alias=True) for g in games), GAME_COLUMNS)


def session_games_csv(games: Iterable[GameUse]) -> str:
    """Per-session game sheet, one row per game in session order."""
    rows = (
        {
            "GameID": g.id,
            "ShuttleSessionID": g.shuttle_session_id,
            "Timestamp": g.timestamp,
            "Players": g.players,
            "AvgLevel": g.avg_level,
            "GenderMix": g.player_gender_mix,
        }
        for g in games
    )
    return to_csv(rows, SESSION_GAME_COLUMNS)


def session_filename(session: CourtSession) -> str:
    safe = _UNSAFE_FILENAME.sub("_", session.name.strip()) or session.id
    return f"session_{safe}.csv"
