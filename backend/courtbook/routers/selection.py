from fastapi import APIRouter, Depends, Query

from ..exceptions import AutoSelectDisabled, ProblemDetail
from ..schemas import AutoSuggestIn, TeamSuggestionOut
from ..services.ledger import Ledger
from ..services.selection import find_balanced_team, suggest_random_team
from .deps import get_ledger

router = APIRouter(
    prefix="/selection",
    tags=["selection"],
    responses={403: {"model": ProblemDetail}, 422: {"model": ProblemDetail}},
)


@router.post("/balanced", response_model=TeamSuggestionOut)
async def balanced_team(
    free_only: bool = Query(True, alias="freeOnly"),
    ledger: Ledger = Depends(get_ledger),
):
    """Most evenly matched 2v2 among the present players."""
    pool = ledger.available_players(free_only=free_only)
    suggestion = find_balanced_team(pool)
    return TeamSuggestionOut(
        team_a=list(suggestion.team_a),
        team_b=list(suggestion.team_b),
        difference=suggestion.difference,
    )


@router.post("/random", response_model=TeamSuggestionOut)
async def random_team(body: AutoSuggestIn, ledger: Ledger = Depends(get_ledger)):
    if not ledger.settings.enable_auto_select:
        raise AutoSelectDisabled()
    pool = ledger.available_players(free_only=True)
    team = suggest_random_team(pool, gender=body.gender, level=body.level)
    return TeamSuggestionOut(team_a=team[:2], team_b=team[2:])
