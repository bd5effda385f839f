from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .time_utils import coerce_utc, utcnow


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Level(str, Enum):
    BEGINNER = "Beginner"
    NOVICE = "Novice"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"
    PRO = "Pro"


LEVEL_VALUES: Dict[Level, int] = {
    Level.BEGINNER: 1,
    Level.NOVICE: 2,
    Level.INTERMEDIATE: 3,
    Level.ADVANCED: 4,
    Level.EXPERT: 5,
    Level.PRO: 6,
}


class PlayerStatus(str, Enum):
    FREE = "Free"
    PLAYING = "Playing"


class CamelModel(BaseModel):
    """Snake-case attributes exposed with the camelCase names used on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _trimmed_name(value: str) -> str:
    if not isinstance(value, str):
        raise TypeError("name must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValueError("name must not be empty")
    return trimmed


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class Player(CamelModel):
    id: str
    name: str
    gender: Gender = Gender.OTHER
    level: Level = Level.BEGINNER
    active: bool = True
    status: PlayerStatus = PlayerStatus.FREE
    visit_count: int = 0
    shuttle_count: float = 0.0

    @property
    def level_value(self) -> int:
        return LEVEL_VALUES[self.level]


class CourtSession(CamelModel):
    id: str
    name: str
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    game_use_ids: List[str] = Field(default_factory=list)
    total_cost: float = 0.0
    currency: str = "THB"
    is_closed: bool = False
    present_player_ids: List[str] = Field(default_factory=list)
    payment_status: Dict[str, bool] = Field(default_factory=dict)

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, v: datetime | None) -> datetime | None:
        return coerce_utc(v)


class GameUse(CamelModel):
    id: str
    timestamp: datetime = Field(default_factory=utcnow)
    shuttle_session_id: int
    shuttles_used: float = 1.0
    players: List[str]
    player_gender_mix: str = ""
    avg_level: float = 0.0
    notes: Optional[str] = None
    is_active: bool = False
    score1: Optional[str] = None
    score2: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, v: datetime) -> datetime:
        return coerce_utc(v)


class Settings(CamelModel):
    currency: str = "THB"
    court_fee: float = 70
    shuttle_price: float = 25
    enable_auto_select: bool = True


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PlayerCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    gender: Gender
    level: Level

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _trimmed_name(value)


class PlayerUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    gender: Optional[Gender] = None
    level: Optional[Level] = None
    active: Optional[bool] = None
    status: Optional[PlayerStatus] = None
    visit_count: Optional[int] = Field(default=None, ge=0)
    shuttle_count: Optional[float] = Field(default=None, ge=0)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _trimmed_name(value)


class GameCreate(CamelModel):
    players: List[str]
    shuttle_session_id: int = Field(..., ge=0)
    shuttles_used: float = Field(default=1.0, gt=0)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("notes", mode="before")
    @classmethod
    def _normalize_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise TypeError("notes must be a string")
        trimmed = value.strip()
        return trimmed or None


class GameUpdate(GameCreate):
    pass


class GameScores(CamelModel):
    score1: Optional[str] = Field(default=None, max_length=50)
    score2: Optional[str] = Field(default=None, max_length=50)


class SessionUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _trimmed_name(value)

    @model_validator(mode="after")
    def _ensure_fields(self) -> "SessionUpdate":
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        return self


class SettingsUpdate(CamelModel):
    currency: Optional[str] = Field(default=None, min_length=1, max_length=10)
    court_fee: Optional[float] = Field(default=None, ge=0)
    shuttle_price: Optional[float] = Field(default=None, ge=0)
    enable_auto_select: Optional[bool] = None


class ViewedSessionIn(CamelModel):
    session_id: Optional[str] = None


GenderFilter = Literal["Any", "Male", "Female", "Mixed"]


class AutoSuggestIn(CamelModel):
    gender: GenderFilter = "Any"
    level: Optional[Level] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PlayerListOut(CamelModel):
    players: List[Player]
    total: int


class TeamSuggestionOut(CamelModel):
    team_a: List[Player]
    team_b: List[Player]
    difference: Optional[int] = None


class PlayerCostOut(CamelModel):
    player_id: str
    name: str
    games_played: int
    shuttles: float
    cost: float
    paid: bool


class SessionSummaryOut(CamelModel):
    session_id: str
    present_count: int
    games_count: int
    total_shuttles: float
    total_cost: float
    currency: str
    players: List[PlayerCostOut]


class NextShuttleNumberOut(CamelModel):
    session_id: str
    next_number: int


class SyncResultOut(CamelModel):
    configured: bool
    overwritten: List[str] = Field(default_factory=list)
