from fastapi import APIRouter, Depends, Response

from ..exceptions import ProblemDetail
from ..services import export as csv_export
from ..services.ledger import Ledger
from .deps import get_ledger

router = APIRouter(
    prefix="/export",
    tags=["export"],
    responses={404: {"model": ProblemDetail}},
)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/players.csv")
async def export_players(ledger: Ledger = Depends(get_ledger)):
    return _csv_response(csv_export.players_csv(ledger.players), "badminton_players.csv")


@router.get("/sessions.csv")
async def export_sessions(ledger: Ledger = Depends(get_ledger)):
    return _csv_response(
        csv_export.sessions_csv(ledger.sessions), "badminton_sessions.csv"
    )


@router.get("/games.csv")
async def export_games(ledger: Ledger = Depends(get_ledger)):
    return _csv_response(csv_export.games_csv(ledger.games), "badminton_games.csv")


@router.get("/sessions/{session_id}.csv")
async def export_session_games(session_id: str, ledger: Ledger = Depends(get_ledger)):
    session = ledger.require_session(session_id)
    return _csv_response(
        csv_export.session_games_csv(ledger.games_for_session(session)),
        csv_export.session_filename(session),
    )
