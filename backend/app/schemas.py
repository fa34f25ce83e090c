from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, StrictInt


class JoinRequest(BaseModel):
    game: str
    player: str

    model_config = ConfigDict(extra="ignore")


class SubmitRequest(BaseModel):
    game: str
    player: str
    card: StrictInt

    model_config = ConfigDict(extra="ignore")


class ChooseRequest(BaseModel):
    game: str
    player: str
    submission: StrictInt

    model_config = ConfigDict(extra="ignore")


class ActionResult(BaseModel):
    ok: bool = True


# ---------- WebSocket frames ----------
class SubmitMessage(BaseModel):
    type: Literal["submit"]
    card: StrictInt

    model_config = ConfigDict(extra="ignore")


class ChooseMessage(BaseModel):
    type: Literal["choose"]
    submission: StrictInt

    model_config = ConfigDict(extra="ignore")
