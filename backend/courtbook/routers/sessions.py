from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from ..exceptions import ProblemDetail
from ..schemas import (
    CourtSession,
    GameUse,
    SessionSummaryOut,
    SessionUpdate,
    ViewedSessionIn,
)
from ..services.ledger import Ledger
from ..services.stats import session_summary
from ..services.storage import LedgerStore
from .deps import get_ledger, get_store

router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
    responses={404: {"model": ProblemDetail}, 409: {"model": ProblemDetail}},
)


@router.get("", response_model=list[CourtSession])
async def list_sessions(
    closed: Optional[bool] = None, ledger: Ledger = Depends(get_ledger)
):
    sessions = [s for s in ledger.sessions if closed is None or s.is_closed == closed]
    return sorted(sessions, key=lambda s: s.start_time, reverse=True)


@router.get("/active", response_model=Optional[CourtSession])
async def get_active_session(ledger: Ledger = Depends(get_ledger)):
    return ledger.active_session


@router.post("", response_model=CourtSession)
async def start_session(
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    # Starting while a session is open is a no-op that returns the open one.
    ledger.start_session()
    await store.flush(ledger, background_tasks)
    return ledger.active_session


@router.post("/close", response_model=Optional[CourtSession])
async def close_session(
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    session = ledger.close_session()
    await store.flush(ledger, background_tasks)
    return session


@router.get("/viewed", response_model=Optional[CourtSession])
async def get_viewed_session(ledger: Ledger = Depends(get_ledger)):
    return ledger.viewed_session


@router.put("/viewed", response_model=Optional[CourtSession])
async def set_viewed_session(
    body: ViewedSessionIn, ledger: Ledger = Depends(get_ledger)
):
    return ledger.set_viewed_session(body.session_id)


@router.post("/viewed/presence/{player_id}", response_model=Optional[CourtSession])
async def toggle_presence(
    player_id: str,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    session = ledger.toggle_presence(player_id)
    await store.flush(ledger, background_tasks)
    return session


@router.get("/{session_id}", response_model=CourtSession)
async def get_session(session_id: str, ledger: Ledger = Depends(get_ledger)):
    return ledger.require_session(session_id)


@router.patch("/{session_id}", response_model=CourtSession)
async def update_session(
    session_id: str,
    body: SessionUpdate,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    session = ledger.update_session(
        session_id, name=body.name, start_time=body.start_time, end_time=body.end_time
    )
    await store.flush(ledger, background_tasks)
    return session


@router.post("/{session_id}/payments/{player_id}")
async def toggle_payment(
    session_id: str,
    player_id: str,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    paid = ledger.toggle_payment_status(player_id, session_id)
    await store.flush(ledger, background_tasks)
    return {"playerId": player_id, "sessionId": session_id, "paid": paid}


@router.get("/{session_id}/games", response_model=list[GameUse])
async def session_games(session_id: str, ledger: Ledger = Depends(get_ledger)):
    return ledger.games_for_session(ledger.require_session(session_id))


@router.get("/{session_id}/summary", response_model=SessionSummaryOut)
async def get_session_summary(session_id: str, ledger: Ledger = Depends(get_ledger)):
    session = ledger.require_session(session_id)
    return session_summary(
        session,
        ledger.games_for_session(session),
        ledger.players_by_id(),
        ledger.settings,
    )
