from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW, make_ledger
from courtbook.exceptions import (
    InvalidLineup,
    NoViewedSession,
    PlayerNotFound,
    PlayersAlreadyPlaying,
    SessionNotFound,
)
from courtbook.schemas import GameScores, Gender, Level, PlayerStatus
from courtbook.services import ledger as ledger_module
from courtbook.services.ledger import GAMES, PLAYERS, SESSIONS, SETTINGS, Ledger

LINEUP = ["id1", "id2", "id3", "id4"]


def shuttle_counts(ledger):
    return {p.id: p.shuttle_count for p in ledger.players}


def statuses(ledger):
    return {p.id: p.status for p in ledger.players}


def test_add_player_defaults():
    ledger = Ledger(id_factory=lambda: "p1")
    player = ledger.add_player("Anna", Gender.FEMALE, Level.PRO)

    assert player.id == "p1"
    assert player.active is True
    assert player.status == PlayerStatus.FREE
    assert player.visit_count == 0
    assert player.shuttle_count == 0
    assert ledger.drain_changes() == {PLAYERS}
    assert ledger.drain_changes() == set()


def test_update_unknown_player_raises():
    ledger = make_ledger(present=False)
    ghost = ledger.players[0].model_copy(update={"id": "ghost"})
    with pytest.raises(PlayerNotFound):
        ledger.update_player(ghost)


def test_start_session_names_and_selects_it():
    ledger = make_ledger(present=False)
    ledger.update_settings(currency="EUR")

    session = ledger.start_session()

    assert session.name == "Session - 2024-05-01"
    assert session.currency == "EUR"
    assert session.start_time == NOW
    assert ledger.active_session is session
    assert ledger.viewed_session is session


def test_start_session_is_noop_while_one_is_open(ledger):
    assert ledger.start_session() is None
    assert len(ledger.sessions) == 1


def test_toggle_presence_round_trip(ledger):
    session = ledger.viewed_session
    assert "id1" in session.present_player_ids

    ledger.toggle_presence("id1")
    assert "id1" not in ledger.viewed_session.present_player_ids

    ledger.toggle_presence("id1")
    assert "id1" in ledger.viewed_session.present_player_ids
    assert ledger.drain_changes() == {SESSIONS}


def test_toggle_presence_without_session_is_noop():
    ledger = make_ledger(present=False)
    assert ledger.toggle_presence("id1") is None
    assert ledger.drain_changes() == set()


def test_toggle_presence_unknown_player(ledger):
    with pytest.raises(PlayerNotFound):
        ledger.toggle_presence("ghost")


def test_add_game_in_active_session(ledger):
    game = ledger.add_game(LINEUP, shuttle_session_id=1, shuttles_used=2)

    assert game.is_active is True
    assert game.player_gender_mix == "2M/2F"
    assert game.avg_level == 3.5
    assert game.timestamp == NOW
    assert ledger.active_session.game_use_ids == [game.id]
    for pid in LINEUP:
        player = ledger.get_player(pid)
        assert player.status == PlayerStatus.PLAYING
        assert player.shuttle_count == pytest.approx(0.5)
    assert ledger.get_player("id5").status == PlayerStatus.FREE
    assert ledger.drain_changes() == {PLAYERS, SESSIONS, GAMES}


def test_add_game_rejects_players_on_court(ledger):
    ledger.add_game(LINEUP, shuttle_session_id=1)
    before_counts = shuttle_counts(ledger)
    ledger.drain_changes()

    with pytest.raises(PlayersAlreadyPlaying) as exc:
        ledger.add_game(["id1", "id5", "id6", "id2"], shuttle_session_id=2)

    assert exc.value.player_ids == ["id1", "id2"]
    assert len(ledger.games) == 1
    assert shuttle_counts(ledger) == before_counts
    assert ledger.drain_changes() == set()


@pytest.mark.parametrize(
    "players",
    [
        ["id1", "id2", "id3"],
        ["id1", "id2", "id3", "ghost"],
        ["id1", "id1", "id3", "id4"],
    ],
    ids=["three-players", "unknown-player", "duplicate-player"],
)
def test_add_game_rejects_bad_lineups(ledger, players):
    with pytest.raises(InvalidLineup):
        ledger.add_game(players, shuttle_session_id=1)
    assert ledger.games == []


def test_add_game_needs_a_session():
    ledger = make_ledger(present=False)
    with pytest.raises(NoViewedSession):
        ledger.add_game(LINEUP, shuttle_session_id=1)


def test_end_game_frees_players_and_records_scores(ledger):
    game = ledger.add_game(LINEUP, shuttle_session_id=1)

    ended = ledger.end_game(game.id, GameScores(score1="21", score2="17"))

    assert ended.is_active is False
    assert (ended.score1, ended.score2) == ("21", "17")
    assert all(s == PlayerStatus.FREE for s in statuses(ledger).values())
    assert ledger.end_game(game.id) is None
    assert ledger.end_game("ghost") is None


def test_update_game_round_trip_restores_counts(ledger):
    game = ledger.add_game(LINEUP, shuttle_session_id=1, shuttles_used=2)
    before = shuttle_counts(ledger)

    ledger.update_game(game.id, ["id1", "id2", "id5", "id6"], 1, shuttles_used=3)
    assert ledger.get_player("id5").shuttle_count == pytest.approx(0.75)
    assert ledger.get_player("id1").shuttle_count == pytest.approx(0.75)
    assert ledger.get_player("id3").shuttle_count == pytest.approx(0.0)

    ledger.update_game(game.id, LINEUP, 1, shuttles_used=2)
    after = shuttle_counts(ledger)
    assert after == pytest.approx(before)


def test_update_game_moves_playing_status(ledger):
    game = ledger.add_game(LINEUP, shuttle_session_id=1)

    updated = ledger.update_game(game.id, ["id1", "id2", "id3", "id5"], 1)

    assert ledger.get_player("id4").status == PlayerStatus.FREE
    assert ledger.get_player("id5").status == PlayerStatus.PLAYING
    assert updated.player_gender_mix == "2M/2F"
    assert updated.avg_level == 3.0


def test_update_game_rejects_newcomer_on_another_court(ledger):
    for name in ("Golf", "Fah"):
        extra = ledger.add_player(name, Gender.MALE, Level.EXPERT)
        ledger.toggle_presence(extra.id)
    first = ledger.add_game(LINEUP, shuttle_session_id=1)
    second = ledger.add_game(["id5", "id6", "id8", "id9"], shuttle_session_id=2)
    before = shuttle_counts(ledger)

    with pytest.raises(PlayersAlreadyPlaying) as exc:
        ledger.update_game(first.id, ["id1", "id2", "id3", "id5"], 1)

    assert exc.value.player_ids == ["id5"]
    assert shuttle_counts(ledger) == before
    assert ledger.get_game(first.id).players == LINEUP
    assert ledger.get_player("id4").status == PlayerStatus.PLAYING
    assert second.is_active is True


def test_close_session(ledger):
    first = ledger.add_game(LINEUP, shuttle_session_id=1)
    ledger.end_game(first.id)
    game = ledger.add_game(LINEUP, shuttle_session_id=2, shuttles_used=2)
    ledger.toggle_presence("id6")  # Mint leaves
    ledger.drain_changes()

    session = ledger.close_session()

    assert session.is_closed is True
    assert session.end_time == NOW
    # 5 present players * 70 + 3 shuttles * 25
    assert session.total_cost == pytest.approx(425)
    assert ledger.get_game(game.id).is_active is False
    assert all(s == PlayerStatus.FREE for s in statuses(ledger).values())
    visits = {p.id: p.visit_count for p in ledger.players}
    assert visits == {"id1": 1, "id2": 1, "id3": 1, "id4": 1, "id5": 1, "id6": 0}
    assert ledger.active_session is None
    assert ledger.drain_changes() == {PLAYERS, SESSIONS, GAMES}


def test_close_session_without_active_session():
    ledger = make_ledger(present=False)
    assert ledger.close_session() is None


def test_close_session_failure_leaves_state_untouched(ledger, monkeypatch):
    game = ledger.add_game(LINEUP, shuttle_session_id=1)

    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(ledger_module, "session_total_cost", boom)
    with pytest.raises(RuntimeError):
        ledger.close_session()

    assert ledger.active_session is not None
    assert ledger.get_game(game.id).is_active is True
    assert all(p.visit_count == 0 for p in ledger.players)
    assert ledger.get_player("id1").status == PlayerStatus.PLAYING


def test_game_in_historical_session_is_not_active(ledger):
    old = ledger.close_session()
    ledger.start_session()
    ledger.set_viewed_session(old.id)

    game = ledger.add_game(LINEUP, shuttle_session_id=5)

    assert game.is_active is False
    assert game.id in ledger.get_session(old.id).game_use_ids
    assert game.id not in ledger.active_session.game_use_ids
    assert all(s == PlayerStatus.FREE for s in statuses(ledger).values())
    assert ledger.get_player("id1").shuttle_count == pytest.approx(0.25)


def test_set_viewed_session_falls_back_to_active(ledger):
    active = ledger.active_session
    with pytest.raises(SessionNotFound):
        ledger.set_viewed_session("ghost")
    assert ledger.set_viewed_session(None) is active


def test_toggle_payment_status(ledger):
    session_id = ledger.active_session.id
    assert ledger.toggle_payment_status("id1", session_id) is True
    assert ledger.toggle_payment_status("id1", session_id) is False
    with pytest.raises(SessionNotFound):
        ledger.toggle_payment_status("id1", "ghost")


def test_update_session_normalises_times(ledger):
    session_id = ledger.active_session.id
    local = datetime(2024, 5, 1, 21, 0, tzinfo=timezone(timedelta(hours=7)))

    session = ledger.update_session(session_id, name="Friday night", start_time=local)

    assert session.name == "Friday night"
    assert session.start_time == datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc)
    assert session.end_time is None


def test_update_settings_merges(ledger):
    settings = ledger.update_settings(court_fee=80)
    assert settings.court_fee == 80
    assert settings.shuttle_price == 25
    assert ledger.drain_changes() == {SETTINGS}


def test_update_game_scores_has_no_side_effects(ledger):
    game = ledger.add_game(LINEUP, shuttle_session_id=1)
    ledger.drain_changes()
    before = statuses(ledger)

    updated = ledger.update_game_scores(game.id, GameScores(score1="21", score2="19"))

    assert (updated.score1, updated.score2) == ("21", "19")
    assert updated.is_active is True
    assert statuses(ledger) == before
    assert ledger.drain_changes() == {GAMES}
