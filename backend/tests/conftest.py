import random
from typing import List, Optional

import pytest

from deck import Deck
from game import Game
from hub import ChannelKey, channel_key


class KeepOrder(random.Random):
    """Leaves decks in file order so tests can predict every draw."""

    def shuffle(self, x, *args, **kwargs):
        return None


class RecordingNotifier:
    def __init__(self):
        self.channels: List[ChannelKey] = []
        self.events: list = []

    def create_channel(self, game_name: str, player_name: str) -> None:
        self.channels.append(channel_key(game_name, player_name))

    def publish(self, key, event_kind, payload) -> None:
        self.events.append((key, event_kind, payload))

    def sent_to(self, game_name: str, player_name: str, kind: Optional[str] = None) -> list:
        key = channel_key(game_name, player_name)
        return [payload for k, e, payload in self.events if k == key and (kind is None or e == kind)]

    def clear(self):
        self.events.clear()


def make_deck(prompts: int = 5, responses: int = 60) -> Deck:
    return Deck(
        prompts=tuple(f"P{i}" for i in range(1, prompts + 1)),
        responses=tuple(f"R{i}" for i in range(responses)),
    )


def make_game(prompts: int = 5, responses: int = 60, players=(), name: str = "g1", hand_size: int = 7):
    notifier = RecordingNotifier()
    game = Game(name, make_deck(prompts, responses), notifier, hand_size=hand_size, rng=KeepOrder())
    for player in players:
        game.join(player)
    return game, notifier


@pytest.fixture()
def notifier():
    return RecordingNotifier()
