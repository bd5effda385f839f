from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Sequence, Tuple

from ..schemas import (
    CourtSession,
    GameUse,
    Gender,
    Player,
    PlayerCostOut,
    SessionSummaryOut,
    Settings,
)


def game_stats(players: Sequence[Player]) -> Tuple[str, float]:
    """Return ``(gender_mix, avg_level)`` for the four players of a game.

    ``gender_mix`` is formatted as ``"<m>M/<f>F"``; players of other genders
    count toward neither side. ``avg_level`` is the mean integer level
    rounded half up to one decimal.
    """
    if len(players) != 4:
        raise ValueError("a game needs exactly 4 players")
    males = sum(1 for p in players if p.gender == Gender.MALE)
    females = sum(1 for p in players if p.gender == Gender.FEMALE)
    total = sum(p.level_value for p in players)
    avg = (Decimal(total) / 4).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{males}M/{females}F", float(avg)


def shuttle_units(game: GameUse) -> float:
    # Legacy rows may carry 0 for "not recorded"; those count as one shuttle.
    return game.shuttles_used or 1


def next_shuttle_number(games: Iterable[GameUse]) -> int:
    return max((g.shuttle_session_id for g in games), default=0) + 1


def player_session_cost(
    player_id: str, games: Iterable[GameUse], settings: Settings
) -> float:
    """Court fee plus a quarter of every shuttle used in the player's games."""
    shuttles = sum(shuttle_units(g) for g in games if player_id in g.players)
    return settings.court_fee + shuttles * settings.shuttle_price / 4


def session_total_cost(
    session: CourtSession, games: Iterable[GameUse], settings: Settings
) -> float:
    shuttles = sum(shuttle_units(g) for g in games)
    return (
        len(session.present_player_ids) * settings.court_fee
        + shuttles * settings.shuttle_price
    )


def session_summary(
    session: CourtSession,
    games: Sequence[GameUse],
    players: Dict[str, Player],
    settings: Settings,
) -> SessionSummaryOut:
    """Aggregate the per-player cost sheet for ``session``.

    Present ids that no longer resolve to a player are skipped; rows are
    ordered by player name.
    """
    rows = []
    for pid in session.present_player_ids:
        player = players.get(pid)
        if player is None:
            continue
        own_games = [g for g in games if pid in g.players]
        rows.append(
            PlayerCostOut(
                player_id=pid,
                name=player.name,
                games_played=len(own_games),
                shuttles=sum(shuttle_units(g) for g in own_games),
                cost=player_session_cost(pid, games, settings),
                paid=session.payment_status.get(pid, False),
            )
        )
    rows.sort(key=lambda r: r.name.lower())
    return SessionSummaryOut(
        session_id=session.id,
        present_count=len(session.present_player_ids),
        games_count=len(games),
        total_shuttles=sum(shuttle_units(g) for g in games),
        total_cost=session_total_cost(session, games, settings),
        currency=session.currency,
        players=rows,
    )
