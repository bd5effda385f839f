from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query

from ..exceptions import NoViewedSession, ProblemDetail
from ..schemas import GameCreate, GameScores, GameUpdate, GameUse, NextShuttleNumberOut
from ..services.ledger import Ledger
from ..services.stats import next_shuttle_number
from ..services.storage import LedgerStore
from .deps import get_ledger, get_store

router = APIRouter(
    prefix="/games",
    tags=["games"],
    responses={
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
        422: {"model": ProblemDetail},
    },
)


@router.get("", response_model=list[GameUse])
async def list_games(
    active_only: bool = Query(False, alias="activeOnly"),
    ledger: Ledger = Depends(get_ledger),
):
    if active_only:
        return ledger.active_games()
    return ledger.games


@router.get("/next-number", response_model=NextShuttleNumberOut)
async def get_next_number(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    ledger: Ledger = Depends(get_ledger),
):
    """Suggested shuttle sequence number for the next game of a session."""
    session = (
        ledger.require_session(session_id) if session_id else ledger.viewed_session
    )
    if session is None:
        raise NoViewedSession()
    return NextShuttleNumberOut(
        session_id=session.id,
        next_number=next_shuttle_number(ledger.games_for_session(session)),
    )


@router.post("", response_model=GameUse)
async def add_game(
    body: GameCreate,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    game = ledger.add_game(
        body.players,
        shuttle_session_id=body.shuttle_session_id,
        shuttles_used=body.shuttles_used,
        notes=body.notes,
    )
    await store.flush(ledger, background_tasks)
    return game


@router.get("/{game_id}", response_model=GameUse)
async def get_game(game_id: str, ledger: Ledger = Depends(get_ledger)):
    return ledger.require_game(game_id)


@router.put("/{game_id}", response_model=GameUse)
async def update_game(
    game_id: str,
    body: GameUpdate,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    game = ledger.update_game(
        game_id,
        body.players,
        shuttle_session_id=body.shuttle_session_id,
        shuttles_used=body.shuttles_used,
        notes=body.notes,
    )
    await store.flush(ledger, background_tasks)
    return game


@router.post("/{game_id}/end", response_model=GameUse)
async def end_game(
    game_id: str,
    background_tasks: BackgroundTasks,
    scores: Optional[GameScores] = Body(default=None),
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    game = ledger.require_game(game_id)
    # Ending an already finished game is silently ignored.
    ledger.end_game(game_id, scores)
    await store.flush(ledger, background_tasks)
    return game


@router.put("/{game_id}/scores", response_model=GameUse)
async def update_scores(
    game_id: str,
    body: GameScores,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    game = ledger.update_game_scores(game_id, body)
    await store.flush(ledger, background_tasks)
    return game
