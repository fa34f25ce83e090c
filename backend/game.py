from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from deck import Deck
from errors import (
    DeckExhaustedError,
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
from hub import NotificationPort, channel_key
from models import (
    GameSummary,
    HandView,
    HeaderView,
    Phase,
    Player,
    PlayerView,
    RevealView,
    ScoreLine,
    Submission,
)

logger = logging.getLogger(__name__)

HAND_SIZE = 7


@dataclass
class Round:
    prompt: str
    judge: Optional[str] = None
    submissions: List[Submission] = field(default_factory=list)
    revealed: bool = False
    number: int = 1

    def submitted_by(self, player_name: str) -> bool:
        return any(s.player == player_name for s in self.submissions)

    def clear(self):
        self.submissions.clear()
        self.revealed = False

    def advance(self, prompt: str, judge: str):
        self.prompt = prompt
        self.judge = judge
        self.number += 1


class Game:
    """One table: shuffled decks, roster and the current round.

    Every public method runs under the game lock, notifications included,
    so subscribers observe events in the order they were applied.
    """

    def __init__(
        self,
        name: str,
        deck: Deck,
        notifier: NotificationPort,
        *,
        hand_size: int = HAND_SIZE,
        rng: Optional[random.Random] = None,
    ):
        self.name = name
        self.hand_size = hand_size
        self.notifier = notifier
        self.players: List[Player] = []
        self.finished = False
        self._lock = threading.RLock()

        self.prompt_deck, self.response_deck = deck.shuffle(rng or random.Random())
        if not self.prompt_deck:
            raise DeckExhaustedError(f"Cannot create game {name}: the prompt deck is empty")
        self.round = Round(prompt=self._draw_prompt())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @property
    def judge(self) -> Optional[str]:
        return self.round.judge

    @property
    def phase(self) -> Phase:
        if self.finished:
            return "finished"
        if not self.players:
            return "empty"
        if len(self.players) < 2:
            return "awaiting_second_player"
        if self.round.revealed:
            return "revealing"
        return "round_in_progress"

    def _find(self, player_name: str) -> Optional[Player]:
        for player in self.players:
            if player.name == player_name:
                return player
        return None

    def _draw_prompt(self) -> str:
        return self.prompt_deck.pop(0)

    def _draw_responses(self, count: int) -> List[str]:
        drawn = self.response_deck[:count]
        del self.response_deck[:count]
        return drawn

    def _next_judge(self) -> str:
        for idx, player in enumerate(self.players):
            if player.name == self.round.judge:
                return self.players[(idx + 1) % len(self.players)].name
        return self.players[0].name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def join(self, player_name: str) -> PlayerView:
        with self._lock:
            player = self._find(player_name)
            if player is not None:
                logger.info("Player %s rejoined game %s", player_name, self.name)
                return self._view_for(player)

            player = Player(name=player_name, hand=self._draw_responses(self.hand_size))
            self.players.append(player)
            self.notifier.create_channel(self.name, player_name)
            logger.info("Player %s is new to game %s", player_name, self.name)

            if len(self.players) == 1:
                logger.info("%s is the judge because they are the only player", player_name)
                self.round.judge = player_name
            elif len(self.players) == 2:
                logger.info("Second player joined game %s, starting the round", self.name)
                self._publish_hands(include_judge=False)
            elif self.round.revealed:
                # the newcomer owes a submission before the judge can pick
                logger.info("%s joined game %s after the reveal, reopening submissions", player_name, self.name)
                self.round.revealed = False
            self._publish_header()
            return self._view_for(player)

    def submit(self, player_name: str, card_index: int) -> None:
        with self._lock:
            logger.info("Submission: game %s player %s card %s", self.name, player_name, card_index)
            if self.finished:
                raise GameFinishedError(f"Game {self.name} is over")
            if len(self.players) < 2:
                raise RoundNotStartedError("The round has not started yet")
            player = self._find(player_name)
            if player is None:
                raise UnknownPlayerError(f"Player {player_name} is not in game {self.name}")
            if player_name == self.round.judge:
                raise JudgeCannotSubmitError(f"{player_name} is the judge this round")
            if self.round.submitted_by(player_name):
                raise DuplicateSubmissionError(f"Player {player_name} has already submitted a card this round")
            if not 0 <= card_index < len(player.hand):
                raise InvalidCardError(f"{card_index} refers to a nonexistent card")

            card = player.hand.pop(card_index)
            self.round.submissions.append(Submission(player=player_name, card=card))
            needed = len(self.players) - 1
            logger.info("Game %s has %d of %d submissions", self.name, len(self.round.submissions), needed)
            if len(self.round.submissions) == needed:
                self._reveal()

    def choose_winner(self, judge_name: str, submission_index: int) -> None:
        with self._lock:
            if self.finished:
                logger.warning("Game %s is over, ignoring winner choice from %s", self.name, judge_name)
                return
            if len(self.players) < 2:
                raise RoundNotStartedError("The round has not started yet")
            if self._find(judge_name) is None:
                raise UnknownPlayerError(f"Player {judge_name} is not in game {self.name}")
            if judge_name != self.round.judge:
                raise NotJudgeError(f"{judge_name} is not the judge this round")
            if not self.round.revealed:
                raise RevealPendingError("Not every player has submitted yet")
            if not 0 <= submission_index < len(self.round.submissions):
                raise InvalidSubmissionError(f"{submission_index} refers to a nonexistent submission")

            winner = self._find(self.round.submissions[submission_index].player)
            winner.score += 1
            logger.info("Game %s: %s wins round %d", self.name, winner.name, self.round.number)
            self._new_round()

    def header(self) -> HeaderView:
        with self._lock:
            return self._header()

    def view_for(self, player_name: str) -> PlayerView:
        with self._lock:
            player = self._find(player_name)
            if player is None:
                raise UnknownPlayerError(f"Player {player_name} is not in game {self.name}")
            return self._view_for(player)

    def has_player(self, player_name: str) -> bool:
        with self._lock:
            return self._find(player_name) is not None

    def summary(self) -> GameSummary:
        with self._lock:
            return GameSummary(
                name=self.name,
                players=len(self.players),
                phase=self.phase,
                prompts_left=len(self.prompt_deck),
                finished=self.finished,
            )

    # ------------------------------------------------------------------
    # Round lifecycle
    # ------------------------------------------------------------------
    def _reveal(self):
        logger.info("Game %s: all players are in, revealing to judge %s", self.name, self.round.judge)
        self.round.revealed = True
        self.notifier.publish(channel_key(self.name, self.round.judge), "hand", self._reveal_view())

    def _new_round(self):
        self.round.clear()
        if not self.prompt_deck:
            logger.info("Game %s: game over", self.name)
            self.finished = True
            self._publish_header()
            return

        self.round.advance(self._draw_prompt(), self._next_judge())
        logger.info("Game %s: round %d, judge %s", self.name, self.round.number, self.round.judge)
        self._publish_header()

        if len(self.response_deck) < len(self.players):
            logger.warning("Can't deal hands in game %s, out of cards", self.name)
            return
        for player in self.players:
            # a player who joined mid-round already holds a full hand
            if len(player.hand) >= self.hand_size:
                continue
            player.hand.extend(self._draw_responses(1))
        self._publish_hands(include_judge=True)

    # ------------------------------------------------------------------
    # Projections and notifications
    # ------------------------------------------------------------------
    def _header(self) -> HeaderView:
        return HeaderView(
            game=self.name,
            prompt=self.round.prompt,
            judge=self.round.judge,
            phase=self.phase,
            finished=self.finished,
            round_number=self.round.number,
            prompts_left=len(self.prompt_deck),
            responses_left=len(self.response_deck),
            submitted=len(self.round.submissions),
            needed=max(len(self.players) - 1, 0),
            scores=[
                ScoreLine(
                    name=p.name,
                    score=p.score,
                    is_judge=p.name == self.round.judge,
                    hand_count=len(p.hand),
                )
                for p in self.players
            ],
        )

    def _hand_view(self, player: Player) -> HandView:
        return HandView(
            player=player.name,
            is_judge=player.name == self.round.judge,
            cards=list(player.hand),
            submitted=self.round.submitted_by(player.name),
        )

    def _reveal_view(self) -> RevealView:
        return RevealView(prompt=self.round.prompt, responses=[s.card for s in self.round.submissions])

    def _view_for(self, player: Player) -> PlayerView:
        reveal = None
        if player.name == self.round.judge and self.round.revealed:
            reveal = self._reveal_view()
        return PlayerView(
            me=player.name,
            score=player.score,
            header=self._header(),
            hand=self._hand_view(player),
            reveal=reveal,
        )

    def _publish_header(self):
        header = self._header()
        for player in self.players:
            self.notifier.publish(channel_key(self.name, player.name), "header", header)

    def _publish_hands(self, *, include_judge: bool):
        for player in self.players:
            if player.name == self.round.judge and not include_judge:
                continue
            self.notifier.publish(channel_key(self.name, player.name), "hand", self._hand_view(player))


class GameRegistry:
    """Process-wide game name -> Game mapping, created on first reference."""

    def __init__(
        self,
        deck: Deck,
        notifier: NotificationPort,
        *,
        hand_size: int = HAND_SIZE,
        rng: Optional[random.Random] = None,
    ):
        self.deck = deck
        self.notifier = notifier
        self.hand_size = hand_size
        self.rng = rng or random.Random()
        self._games: Dict[str, Game] = {}
        self._lock = threading.Lock()

    def get_or_create(self, name: str) -> Game:
        with self._lock:
            game = self._games.get(name)
            if game is None:
                game = Game(name, self.deck, self.notifier, hand_size=self.hand_size, rng=self.rng)
                self._games[name] = game
                logger.info("Created a new game: %s", name)
            return game

    def get(self, name: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(name)

    def summaries(self) -> List[GameSummary]:
        with self._lock:
            games = list(self._games.values())
        return [game.summary() for game in games]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._games

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
