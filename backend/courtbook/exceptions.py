from pydantic import BaseModel
from typing import Iterable, Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class PlayerNotFound(DomainException):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Player not found",
            detail=f"player '{player_id}' not found",
            code="player_not_found",
        )


class SessionNotFound(DomainException):
    def __init__(self, session_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Session not found",
            detail=f"session '{session_id}' not found",
            code="session_not_found",
        )


class GameNotFound(DomainException):
    def __init__(self, game_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Game not found",
            detail=f"game '{game_id}' not found",
            code="game_not_found",
        )


class NoViewedSession(DomainException):
    def __init__(self) -> None:
        super().__init__(
            status_code=409,
            title="No session selected",
            detail="select or start a session before recording games",
            code="no_viewed_session",
        )


class InvalidLineup(DomainException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=422,
            title="Invalid lineup",
            detail=detail,
            code="invalid_lineup",
        )


class PlayersAlreadyPlaying(DomainException):
    def __init__(self, player_ids: Iterable[str]) -> None:
        self.player_ids = sorted(player_ids)
        super().__init__(
            status_code=409,
            title="Players already playing",
            detail="players already on court: " + ", ".join(self.player_ids),
            code="players_already_playing",
        )


class InsufficientPlayers(DomainException):
    def __init__(self, available: int, required: int = 4) -> None:
        self.available = available
        super().__init__(
            status_code=422,
            title="Not enough players",
            detail=f"need {required} available players, found {available}",
            code="insufficient_players",
        )


class AutoSelectDisabled(DomainException):
    def __init__(self) -> None:
        super().__init__(
            status_code=403,
            title="Auto select disabled",
            detail="random team suggestions are turned off in settings",
            code="auto_select_disabled",
        )
