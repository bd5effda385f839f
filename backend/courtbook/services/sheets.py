"""Client for the spreadsheet-backed CRUD proxy.

The proxy speaks a tiny JSON protocol: ``GET ?entity=<name>`` returns
``{"ok": true, "rows": [...]}`` and ``POST`` with a ``{"entity", "data"}``
body upserts rows. Every cell comes back as a string, so reads coerce the
flat rows back into ledger entities.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Literal, Optional, TypeVar

import httpx

from ..schemas import CourtSession, GameUse, Gender, Level, Player, PlayerStatus, Settings

logger = logging.getLogger(__name__)

Entity = Literal["players", "sessions", "gameuses", "settings"]
Row = Dict[str, Any]
T = TypeVar("T")

SETTINGS_ROW_ID = "default"


class SheetsError(Exception):
    """Raised when the proxy answers with ``ok: false`` or an unusable payload."""


def to_bool(value: Any) -> bool:
    return value is True or str(value).strip().lower() == "true"


def to_num(value: Any, default: float = 0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    return int(to_num(value, default))


def to_str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def parse_json(value: Any, fallback: T) -> T:
    if not isinstance(value, str):
        return fallback if value is None else value
    try:
        return json.loads(value)
    except ValueError:
        return fallback


def to_gender(value: Any) -> Gender:
    try:
        return Gender(str(value))
    except ValueError:
        return Gender.OTHER


def to_level(value: Any) -> Level:
    try:
        return Level(str(value))
    except ValueError:
        return Level.BEGINNER


def to_status(value: Any) -> PlayerStatus:
    try:
        return PlayerStatus(str(value))
    except ValueError:
        return PlayerStatus.FREE


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def player_from_row(row: Row) -> Player:
    return Player(
        id=to_str(row.get("id")),
        name=to_str(row.get("name")),
        gender=to_gender(row.get("gender")),
        level=to_level(row.get("level")),
        active=to_bool(row.get("active")),
        status=to_status(row.get("status")),
        visit_count=to_int(row.get("visitCount")),
        shuttle_count=to_num(row.get("shuttleCount")),
    )


def session_from_row(row: Row) -> CourtSession:
    data = {
        "id": to_str(row.get("id")),
        "name": to_str(row.get("name")),
        "end_time": _optional_str(row.get("endTime")),
        "game_use_ids": parse_json(row.get("gameUseIds"), []),
        "total_cost": to_num(row.get("totalCost")),
        "currency": to_str(row.get("currency"), "THB"),
        "is_closed": to_bool(row.get("isClosed")),
        "present_player_ids": parse_json(row.get("presentPlayerIds"), []),
        "payment_status": parse_json(row.get("paymentStatus"), {}),
    }
    start_time = _optional_str(row.get("startTime"))
    if start_time:
        data["start_time"] = start_time
    return CourtSession.model_validate(data)


def game_from_row(row: Row) -> GameUse:
    data = {
        "id": to_str(row.get("id")),
        "shuttle_session_id": to_int(row.get("shuttleSessionId")),
        "shuttles_used": to_num(row.get("shuttlesUsed"), 1),
        "players": parse_json(row.get("players"), []),
        "player_gender_mix": to_str(row.get("playerGenderMix")),
        "avg_level": to_num(row.get("avgLevel")),
        "notes": _optional_str(row.get("notes")),
        "is_active": to_bool(row.get("isActive")),
        "score1": _optional_str(row.get("score1")),
        "score2": _optional_str(row.get("score2")),
    }
    timestamp = _optional_str(row.get("timestamp"))
    if timestamp:
        data["timestamp"] = timestamp
    return GameUse.model_validate(data)


def settings_from_rows(rows: List[Row]) -> Settings:
    defaults = Settings()
    row = rows[0] if rows else {}
    return Settings(
        currency=to_str(row.get("currency"), defaults.currency),
        shuttle_price=to_num(row.get("shuttlePrice"), defaults.shuttle_price),
        court_fee=to_num(row.get("courtFee"), defaults.court_fee),
        enable_auto_select=to_bool(row.get("enableAutoSelect")),
    )


def to_rows(items: List[Any]) -> List[Row]:
    return [item.model_dump(by_alias=True, mode="json") for item in items]


def settings_row(settings: Settings) -> Row:
    return {**settings.model_dump(by_alias=True, mode="json"), "id": SETTINGS_ROW_ID}


class SheetsClient:
    """Thin async wrapper over the proxy's GET/POST endpoints."""

    def __init__(
        self,
        base_url: str,
        secret: str = "",
        captcha_token: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url
        self.secret = secret
        self.captcha_token = captcha_token
        self._client = client or httpx.AsyncClient()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _params(self, **extra: str) -> Dict[str, str]:
        params = dict(extra)
        if self.secret:
            params["secret"] = self.secret
        return params

    @staticmethod
    def _unwrap(response: httpx.Response, action: str) -> Any:
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise SheetsError(f"{action} returned invalid JSON") from exc
        if not isinstance(payload, dict) or not payload.get("ok"):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise SheetsError(error or f"{action} failed")
        return payload.get("rows")

    async def get(self, entity: Entity) -> List[Row]:
        response = await self._client.get(
            self.base_url, params=self._params(entity=entity)
        )
        rows = self._unwrap(response, "GET")
        return list(rows or [])

    async def upsert(self, entity: Entity, data: Row | List[Row]) -> Any:
        body: Dict[str, Any] = {"entity": entity, "data": data}
        if self.captcha_token:
            body["captchaToken"] = self.captcha_token
        response = await self._client.post(
            self.base_url,
            params=self._params(),
            content=json.dumps(body),
            headers={"Content-Type": "text/plain;charset=UTF-8"},
        )
        return self._unwrap(response, "POST")

    # ---- typed reads ----

    async def get_players(self) -> List[Player]:
        return [player_from_row(r) for r in await self.get("players")]

    async def get_sessions(self) -> List[CourtSession]:
        return [session_from_row(r) for r in await self.get("sessions")]

    async def get_game_uses(self) -> List[GameUse]:
        return [game_from_row(r) for r in await self.get("gameuses")]

    async def get_settings(self) -> Optional[Settings]:
        rows = await self.get("settings")
        return settings_from_rows(rows) if rows else None
