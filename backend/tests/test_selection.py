import logging
import random

import pytest

from courtbook.exceptions import InsufficientPlayers
from courtbook.schemas import Gender, Level, Player
from courtbook.services.selection import (
    LARGE_POOL_WARNING,
    balanced_candidates,
    find_balanced_team,
    suggest_random_team,
)

LEVELS = {
    1: Level.BEGINNER,
    2: Level.NOVICE,
    3: Level.INTERMEDIATE,
    4: Level.ADVANCED,
    5: Level.EXPERT,
    6: Level.PRO,
}


def make_pool(levels, genders=None):
    genders = genders or [Gender.MALE] * len(levels)
    return [
        Player(id=f"p{i}", name=f"Player {i}", gender=g, level=LEVELS[lv])
        for i, (lv, g) in enumerate(zip(levels, genders), start=1)
    ]


def team_sum(team):
    return sum(p.level_value for p in team)


def test_balanced_team_splits_extremes():
    pool = make_pool([1, 1, 5, 5])

    suggestion = find_balanced_team(pool, rng=random.Random(0))

    assert suggestion.difference == 0
    assert team_sum(suggestion.team_a) == team_sum(suggestion.team_b) == 6
    assert sorted(p.id for p in suggestion.players) == ["p1", "p2", "p3", "p4"]


def test_balanced_team_minimum_difference_one():
    pool = make_pool([2, 4, 3, 4])

    suggestion = find_balanced_team(pool, rng=random.Random(1))

    assert suggestion.difference == 1
    assert abs(team_sum(suggestion.team_a) - team_sum(suggestion.team_b)) == 1


def test_balanced_candidates_cover_every_optimal_subset():
    pool = make_pool([3, 3, 3, 3, 6])

    candidates = balanced_candidates(pool)

    # Only the subset without the Pro can be split evenly.
    assert len(candidates) == 1
    assert {p.id for p in candidates[0].players} == {"p1", "p2", "p3", "p4"}
    assert candidates[0].difference == 0


def test_balanced_team_picks_among_ties():
    pool = make_pool([3] * 5)
    assert len(balanced_candidates(pool)) == 5

    seen = {
        frozenset(p.id for p in find_balanced_team(pool, rng=random.Random(seed)).players)
        for seed in range(50)
    }
    assert len(seen) > 1


@pytest.mark.parametrize("size", [0, 3])
def test_balanced_team_needs_four_players(size):
    with pytest.raises(InsufficientPlayers) as exc:
        find_balanced_team(make_pool([3] * size))
    assert exc.value.available == size
    assert exc.value.status_code == 422


def test_large_pool_logs_warning(caplog):
    pool = make_pool([1] * (LARGE_POOL_WARNING + 1))

    with caplog.at_level(logging.WARNING, logger="courtbook.services.selection"):
        suggestion = find_balanced_team(pool, rng=random.Random(0))

    assert suggestion.difference == 0
    assert any("enumerates every 4-player subset" in r.message for r in caplog.records)


MIXED = [Gender.MALE, Gender.FEMALE] * 3


def test_random_team_any_returns_four_distinct():
    pool = make_pool([1, 2, 3, 4, 5, 6], MIXED)

    team = suggest_random_team(pool, rng=random.Random(3))

    assert len(team) == 4
    assert len({p.id for p in team}) == 4


def test_random_team_mixed_prefers_two_and_two():
    pool = make_pool([1, 2, 3, 4, 5, 6], MIXED)

    for seed in range(10):
        team = suggest_random_team(pool, gender="Mixed", rng=random.Random(seed))
        genders = sorted(p.gender.value for p in team)
        assert genders == ["Female", "Female", "Male", "Male"]


def test_random_team_single_gender_falls_back_when_short():
    pool = make_pool([1, 2, 3, 4, 5, 6], MIXED)

    team = suggest_random_team(pool, gender="Male", rng=random.Random(4))

    # Only three men are present, so any four players are acceptable.
    assert len(team) == 4


def test_random_team_single_gender():
    genders = [Gender.FEMALE] * 4 + [Gender.MALE] * 2
    pool = make_pool([1, 2, 3, 4, 5, 6], genders)

    team = suggest_random_team(pool, gender="Female", rng=random.Random(5))

    assert {p.gender for p in team} == {Gender.FEMALE}


def test_random_team_level_filter():
    pool = make_pool([3, 3, 3, 3, 6, 1], MIXED)

    team = suggest_random_team(pool, level=Level.INTERMEDIATE, rng=random.Random(6))

    assert {p.level for p in team} == {Level.INTERMEDIATE}


def test_random_team_level_filter_too_narrow():
    pool = make_pool([3, 3, 3, 6, 6, 1], MIXED)
    with pytest.raises(InsufficientPlayers) as exc:
        suggest_random_team(pool, level=Level.INTERMEDIATE)
    assert exc.value.available == 3
