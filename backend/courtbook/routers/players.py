from fastapi import APIRouter, BackgroundTasks, Depends, Query

from ..exceptions import ProblemDetail
from ..schemas import Player, PlayerCreate, PlayerListOut, PlayerUpdate
from ..services.ledger import Ledger
from ..services.storage import LedgerStore
from .deps import get_ledger, get_store

router = APIRouter(
    prefix="/players",
    tags=["players"],
    responses={404: {"model": ProblemDetail}, 422: {"model": ProblemDetail}},
)


@router.get("", response_model=PlayerListOut)
async def list_players(
    q: str = "",
    include_inactive: bool = Query(False, alias="includeInactive"),
    ledger: Ledger = Depends(get_ledger),
):
    needle = q.strip().lower()
    players = [
        p
        for p in ledger.players
        if (include_inactive or p.active) and (not needle or needle in p.name.lower())
    ]
    return PlayerListOut(players=players, total=len(players))


@router.get("/available", response_model=list[Player])
async def available_players(
    free_only: bool = Query(True, alias="freeOnly"),
    ledger: Ledger = Depends(get_ledger),
):
    """Active players marked present in the viewed session."""
    return ledger.available_players(free_only=free_only)


@router.post("", response_model=Player)
async def create_player(
    body: PlayerCreate,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    player = ledger.add_player(body.name, body.gender, body.level)
    await store.flush(ledger, background_tasks)
    return player


@router.get("/{player_id}", response_model=Player)
async def get_player(player_id: str, ledger: Ledger = Depends(get_ledger)):
    return ledger.require_player(player_id)


@router.patch("/{player_id}", response_model=Player)
async def update_player(
    player_id: str,
    body: PlayerUpdate,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    existing = ledger.require_player(player_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    updated = existing.model_copy(update=changes)
    player = ledger.update_player(updated)
    await store.flush(ledger, background_tasks)
    return player
