from __future__ import annotations
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Phase = Literal[
    "empty",
    "awaiting_second_player",
    "round_in_progress",
    "revealing",
    "finished",
]

EventKind = Literal["header", "hand"]


class Player(BaseModel):
    name: str
    score: int = 0
    hand: List[str] = Field(default_factory=list)


class Submission(BaseModel):
    player: str
    card: str


class ScoreLine(BaseModel):
    name: str
    score: int
    is_judge: bool = False
    hand_count: int = 0


class HeaderView(BaseModel):
    game: str
    prompt: Optional[str] = None
    judge: Optional[str] = None
    phase: Phase
    finished: bool = False
    round_number: int = 0
    prompts_left: int = 0
    responses_left: int = 0
    submitted: int = 0
    needed: int = 0
    scores: List[ScoreLine] = Field(default_factory=list)


class HandView(BaseModel):
    player: str
    is_judge: bool = False
    cards: List[str] = Field(default_factory=list)
    submitted: bool = False


class RevealView(BaseModel):
    """Responses in arrival order. Authors are deliberately absent."""

    prompt: str
    responses: List[str] = Field(default_factory=list)


class PlayerView(BaseModel):
    me: str
    score: int
    header: HeaderView
    hand: HandView
    reveal: Optional[RevealView] = None

    model_config = ConfigDict(extra="ignore")


class GameSummary(BaseModel):
    name: str
    players: int
    phase: Phase
    prompts_left: int
    finished: bool = False
