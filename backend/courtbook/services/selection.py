"""Team selection for doubles games.

Two independent modes:

* :func:`find_balanced_team` enumerates every 4-player subset of the pool
  and every 2v2 split of it, keeping the splits whose summed skill levels
  are closest, then picks one of them at random.
* :func:`suggest_random_team` applies coarse gender/level filters and takes
  four players from a shuffled pool, with no balancing.
"""

from __future__ import annotations

import logging
import random
from itertools import combinations
from typing import List, NamedTuple, Optional, Sequence, Tuple

from ..exceptions import InsufficientPlayers
from ..schemas import Gender, GenderFilter, Level, Player

logger = logging.getLogger(__name__)

TEAM_SIZE = 4
# C(40, 4) is ~91k subsets; beyond that the exhaustive search gets slow.
LARGE_POOL_WARNING = 40


class TeamSuggestion(NamedTuple):
    team_a: Tuple[Player, Player]
    team_b: Tuple[Player, Player]
    difference: int

    @property
    def players(self) -> List[Player]:
        return [*self.team_a, *self.team_b]


def _splits(
    group: Tuple[Player, Player, Player, Player]
) -> List[TeamSuggestion]:
    p1, p2, p3, p4 = group
    pairings = (
        ((p1, p2), (p3, p4)),
        ((p1, p3), (p2, p4)),
        ((p1, p4), (p2, p3)),
    )
    return [
        TeamSuggestion(
            a,
            b,
            abs(
                (a[0].level_value + a[1].level_value)
                - (b[0].level_value + b[1].level_value)
            ),
        )
        for a, b in pairings
    ]


def balanced_candidates(pool: Sequence[Player]) -> List[TeamSuggestion]:
    """Return every subset's best split that reaches the global minimum difference."""
    if len(pool) < TEAM_SIZE:
        raise InsufficientPlayers(len(pool), TEAM_SIZE)
    if len(pool) > LARGE_POOL_WARNING:
        logger.warning(
            "Balanced selection over %d players enumerates every 4-player subset",
            len(pool),
        )

    best: List[TeamSuggestion] = []
    best_diff: Optional[int] = None
    for group in combinations(pool, TEAM_SIZE):
        split = min(_splits(group), key=lambda s: s.difference)
        if best_diff is None or split.difference < best_diff:
            best_diff = split.difference
            best = [split]
        elif split.difference == best_diff:
            best.append(split)
    return best


def find_balanced_team(
    pool: Sequence[Player], rng: Optional[random.Random] = None
) -> TeamSuggestion:
    candidates = balanced_candidates(pool)
    return (rng or random).choice(candidates)


def suggest_random_team(
    pool: Sequence[Player],
    gender: GenderFilter = "Any",
    level: Optional[Level] = None,
    rng: Optional[random.Random] = None,
) -> List[Player]:
    """Pick four players at random after the gender/level filters.

    ``Mixed`` prefers two men and two women, ``Male``/``Female`` prefer four
    players of that gender; when the shuffled pool cannot satisfy the gender
    preference the first four players are used instead.
    """
    candidates = [p for p in pool if level is None or p.level == level]
    if len(candidates) < TEAM_SIZE:
        raise InsufficientPlayers(len(candidates), TEAM_SIZE)

    shuffled = list(candidates)
    (rng or random).shuffle(shuffled)

    if gender == "Mixed":
        males = [p for p in shuffled if p.gender == Gender.MALE]
        females = [p for p in shuffled if p.gender == Gender.FEMALE]
        if len(males) >= 2 and len(females) >= 2:
            return males[:2] + females[:2]
    elif gender in ("Male", "Female"):
        wanted = Gender(gender)
        same = [p for p in shuffled if p.gender == wanted]
        if len(same) >= TEAM_SIZE:
            return same[:TEAM_SIZE]
    return shuffled[:TEAM_SIZE]
