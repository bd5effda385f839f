"""Internal application services."""

from .ledger import Ledger, LedgerState
from .selection import TeamSuggestion, find_balanced_team, suggest_random_team
from .stats import (
    game_stats,
    next_shuttle_number,
    player_session_cost,
    session_summary,
    session_total_cost,
)

__all__ = [
    "Ledger",
    "LedgerState",
    "TeamSuggestion",
    "find_balanced_team",
    "suggest_random_team",
    "game_stats",
    "next_shuttle_number",
    "player_session_cost",
    "session_summary",
    "session_total_cost",
]
