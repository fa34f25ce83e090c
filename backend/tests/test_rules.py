import threading
from collections import Counter

import pytest

from conftest import make_game
from errors import (
    DuplicateSubmissionError,
    GameFinishedError,
    InvalidCardError,
    InvalidSubmissionError,
    JudgeCannotSubmitError,
    NotJudgeError,
    RevealPendingError,
    RoundNotStartedError,
    UnknownPlayerError,
)
from models import HandView, HeaderView, RevealView


def test_first_player_becomes_judge():
    game, notifier = make_game(players=["alice"])

    assert game.judge == "alice"
    assert game.round.prompt == "P1"
    assert game.phase == "awaiting_second_player"
    assert game.players[0].hand == [f"R{i}" for i in range(7)]
    assert notifier.channels == [("g1", "alice")]
    assert len(notifier.sent_to("g1", "alice", "header")) == 1
    assert notifier.sent_to("g1", "alice", "hand") == []


def test_second_join_starts_round_and_notifies_once():
    game, notifier = make_game(players=["alice"])
    notifier.clear()

    view = game.join("bob")

    assert game.phase == "round_in_progress"
    assert view.hand.cards == [f"R{i}" for i in range(7, 14)]
    assert view.header.judge == "alice"
    assert len(notifier.sent_to("g1", "alice", "header")) == 1
    assert len(notifier.sent_to("g1", "bob", "header")) == 1
    assert len(notifier.sent_to("g1", "bob", "hand")) == 1
    assert notifier.sent_to("g1", "alice", "hand") == []
    hand = notifier.sent_to("g1", "bob", "hand")[0]
    assert isinstance(hand, HandView)
    assert len(hand.cards) == 7


def test_rejoin_is_idempotent():
    game, notifier = make_game(players=["alice", "bob"])
    game.submit("bob", 0)
    bob = game.players[1]
    hand_before = list(bob.hand)
    deck_before = len(game.response_deck)
    notifier.clear()

    view = game.join("bob")

    assert bob.hand == hand_before
    assert bob.score == 0
    assert len(game.response_deck) == deck_before
    assert len(game.players) == 2
    assert notifier.events == []
    assert view.hand.submitted is True


def test_join_deals_short_hand_when_deck_runs_low():
    game, _ = make_game(responses=10, players=["alice", "bob"])

    assert len(game.players[0].hand) == 7
    assert game.players[1].hand == ["R7", "R8", "R9"]
    assert game.response_deck == []


def test_submit_before_round_started():
    game, _ = make_game(players=["alice"])

    with pytest.raises(RoundNotStartedError):
        game.submit("alice", 0)
    # round check comes before the roster check
    with pytest.raises(RoundNotStartedError):
        game.submit("nobody", 0)


def test_submit_unknown_player():
    game, _ = make_game(players=["alice", "bob"])

    with pytest.raises(UnknownPlayerError):
        game.submit("Bob", 0)


def test_judge_cannot_submit():
    game, _ = make_game(players=["alice", "bob"])

    with pytest.raises(JudgeCannotSubmitError):
        game.submit("alice", 0)
    assert game.round.submissions == []
    assert len(game.players[0].hand) == 7


def test_duplicate_submission_leaves_state_unchanged():
    game, notifier = make_game(players=["alice", "bob", "carol"])
    game.submit("bob", 0)
    bob = game.players[1]
    hand_before = list(bob.hand)
    submissions_before = list(game.round.submissions)
    notifier.clear()

    with pytest.raises(DuplicateSubmissionError):
        game.submit("bob", 1)

    assert bob.hand == hand_before
    assert game.round.submissions == submissions_before
    assert notifier.events == []


@pytest.mark.parametrize("index", [7, 100, -1])
def test_invalid_card_index(index):
    game, _ = make_game(players=["alice", "bob"])
    hand_before = list(game.players[1].hand)

    with pytest.raises(InvalidCardError):
        game.submit("bob", index)

    assert game.players[1].hand == hand_before
    assert game.round.submissions == []


def test_submit_removes_card_by_position():
    game, _ = make_game(players=["alice", "bob", "carol"])
    bob = game.players[1]
    bob.hand = ["X", "Y", "X"]

    game.submit("bob", 2)

    assert bob.hand == ["X", "Y"]
    assert game.round.submissions[0].card == "X"


def test_reveal_goes_only_to_judge_without_authors():
    game, notifier = make_game(players=["alice", "bob", "carol"])
    carol_card = game.players[2].hand[3]
    bob_card = game.players[1].hand[0]
    notifier.clear()

    game.submit("carol", 3)
    assert game.phase == "round_in_progress"
    assert notifier.events == []

    game.submit("bob", 0)

    assert game.phase == "revealing"
    assert len(notifier.events) == 1
    key, kind, payload = notifier.events[0]
    assert (key, kind) == (("g1", "alice"), "hand")
    assert isinstance(payload, RevealView)
    assert payload.responses == [carol_card, bob_card]
    assert "bob" not in payload.model_dump_json()
    assert "carol" not in payload.model_dump_json()


def test_full_round_scenario():
    game, notifier = make_game(players=["alice", "bob"])
    bob = game.players[1]
    played = bob.hand[0]
    rest = bob.hand[1:]

    game.submit("bob", 0)
    assert bob.hand == rest
    reveal = notifier.sent_to("g1", "alice", "hand")[-1]
    assert reveal.responses == [played]

    notifier.clear()
    game.choose_winner("alice", 0)

    assert bob.score == 1
    assert game.round.submissions == []
    assert game.round.prompt == "P2"
    assert game.judge == "bob"
    assert len(bob.hand) == 7
    assert len(game.players[0].hand) == 7
    assert game.phase == "round_in_progress"

    header = notifier.sent_to("g1", "alice", "header")[-1]
    assert isinstance(header, HeaderView)
    assert header.judge == "bob"
    assert [(s.name, s.score) for s in header.scores] == [("alice", 0), ("bob", 1)]
    assert len(notifier.sent_to("g1", "alice", "hand")) == 1
    assert len(notifier.sent_to("g1", "bob", "hand")) == 1
    assert notifier.sent_to("g1", "bob", "hand")[0].is_judge is True


def test_judge_rotation_is_positional():
    game, _ = make_game(prompts=10, players=["A", "B", "C"])
    seen = [game.judge]

    for _ in range(3):
        judge = game.judge
        others = [p.name for p in game.players if p.name != judge]
        for name in others:
            game.submit(name, 0)
        # always reward the last submitter so scores drift unevenly
        game.choose_winner(judge, 1)
        seen.append(game.judge)

    assert seen == ["A", "B", "C", "A"]


def test_choose_winner_validation():
    game, _ = make_game(players=["alice", "bob", "carol"])

    with pytest.raises(RevealPendingError):
        game.choose_winner("alice", 0)

    game.submit("bob", 0)
    game.submit("carol", 0)

    with pytest.raises(NotJudgeError):
        game.choose_winner("bob", 0)
    with pytest.raises(UnknownPlayerError):
        game.choose_winner("dave", 0)
    with pytest.raises(InvalidSubmissionError):
        game.choose_winner("alice", 2)
    with pytest.raises(InvalidSubmissionError):
        game.choose_winner("alice", -1)
    assert [p.score for p in game.players] == [0, 0, 0]
    assert len(game.round.submissions) == 2


def test_joiner_after_reveal_must_submit_before_judging():
    game, notifier = make_game(players=["alice", "bob"])
    game.submit("bob", 0)
    assert game.phase == "revealing"

    game.join("carol")

    assert game.phase == "round_in_progress"
    assert game.header().submitted == 1
    assert game.header().needed == 2
    assert game.view_for("alice").reveal is None
    with pytest.raises(RevealPendingError):
        game.choose_winner("alice", 0)

    notifier.clear()
    game.submit("carol", 0)

    assert game.phase == "revealing"
    reveal = notifier.sent_to("g1", "alice", "hand")
    assert len(reveal) == 1
    assert len(reveal[0].responses) == 2

    deck_before = len(game.response_deck)
    game.choose_winner("alice", 1)

    assert [p.score for p in game.players] == [0, 0, 1]
    assert [len(p.hand) for p in game.players] == [7, 7, 7]
    assert len(game.response_deck) == deck_before - 2


def test_replenishment_skipped_when_deck_too_small():
    game, notifier = make_game(responses=15, players=["alice", "bob"])
    assert game.response_deck == ["R14"]
    game.submit("bob", 0)
    notifier.clear()

    game.choose_winner("alice", 0)

    assert len(game.players[1].hand) == 6
    assert game.response_deck == ["R14"]
    assert game.round.prompt == "P2"
    assert all(kind == "header" for _, kind, _ in notifier.events)


def test_prompt_exhaustion_finishes_game():
    game, notifier = make_game(prompts=2, players=["alice", "bob"])
    game.submit("bob", 0)
    game.choose_winner("alice", 0)
    assert game.round.prompt == "P2"
    assert game.prompt_deck == []

    game.submit("alice", 0)
    notifier.clear()
    game.choose_winner("bob", 0)

    assert game.finished is True
    assert game.phase == "finished"
    assert game.round.prompt == "P2"
    assert game.judge == "bob"
    assert [p.score for p in game.players] == [1, 1]
    header = notifier.sent_to("g1", "alice", "header")[-1]
    assert header.finished is True

    # later actions must not crash the game
    game.choose_winner("bob", 0)
    game.choose_winner("alice", 5)
    with pytest.raises(GameFinishedError):
        game.submit("alice", 0)
    assert game.round.prompt == "P2"


def test_cards_are_conserved():
    game, _ = make_game(prompts=6, responses=40, players=["A", "B", "C"])
    initial = Counter(f"R{i}" for i in range(40))

    def all_cards():
        cards = list(game.response_deck)
        for p in game.players:
            cards.extend(p.hand)
        return cards

    assert Counter(all_cards()) == initial
    assert not set(game.response_deck) & {c for p in game.players for c in p.hand}

    spent = []
    for _ in range(4):
        judge = game.judge
        for p in game.players:
            if p.name != judge:
                game.submit(p.name, 0)
        spent.extend(s.card for s in game.round.submissions)
        assert len(game.round.submissions) <= len(game.players) - 1
        assert judge not in {s.player for s in game.round.submissions}
        game.choose_winner(judge, 0)

    assert Counter(all_cards() + spent) == initial


def test_concurrent_duplicate_submissions():
    game, _ = make_game(players=["alice", "bob", "carol"])
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        try:
            game.submit("bob", 0)
            results.append("ok")
        except DuplicateSubmissionError:
            results.append("dup")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("dup") == 7
    assert len(game.players[1].hand) == 6


def test_view_for_judge_includes_reveal():
    game, _ = make_game(players=["alice", "bob"])
    assert game.view_for("alice").reveal is None

    game.submit("bob", 0)

    assert game.view_for("alice").reveal is not None
    assert game.view_for("bob").reveal is None
    with pytest.raises(UnknownPlayerError):
        game.view_for("nobody")
