from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from app.api.games import router as games_router
from app.schemas import ChooseMessage, SubmitMessage
from app.settings import get_settings
from auth import verify_identity
from deck import Deck
from errors import GameError
from game import Game, GameRegistry
from hub import Hub, Subscription

logger = logging.getLogger(__name__)


# ---------- CORS with multiple origins ----------
def _parse_origins(raw: str) -> list[str]:
    """
    Splits ORIGIN on commas, dropping blanks.
    Example: "https://czar.example, https://www.czar.example"
    """
    return [x.strip() for x in raw.split(",") if x.strip()]

ALLOWED_ORIGINS = ["http://localhost:5173"] + _parse_origins(get_settings().origin)

app = FastAPI(title="Card Czar")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

logger.info("[CORS] allow_origins: %s", ALLOWED_ORIGINS)

app.include_router(games_router)


@app.on_event("startup")
async def _load_deck() -> None:
    settings = get_settings()
    try:
        deck = Deck.load(settings.prompt_deck_path, settings.response_deck_path)
    except OSError:
        logger.exception("Could not load the card decks, refusing to start")
        raise
    hub = Hub(settings.channel_buffer)
    app.state.hub = hub
    app.state.registry = GameRegistry(
        deck,
        hub,
        hand_size=settings.hand_size,
        rng=random.Random(settings.shuffle_seed),
    )


# ---------- REST ----------
@app.get("/")
async def root():
    return {"message": "Card Czar API"}


@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------- WebSockets ----------
_MESSAGES = {"submit": SubmitMessage, "choose": ChooseMessage}


def _error(code: str, error: str) -> dict:
    return {"type": "error", "code": code, "error": error}


def _apply_message(game: Game, player_name: str, data) -> Optional[dict]:
    if not isinstance(data, dict):
        return _error("bad_message", "Message must be an object")
    t = data.get("type")
    schema = _MESSAGES.get(t) if isinstance(t, str) else None
    if schema is None:
        return _error("unknown_message", f"Unknown message type {t!r}")
    try:
        msg = schema.model_validate(data)
    except ValidationError as exc:
        return _error("bad_message", f"Malformed {t} message: {exc.errors()[0]['msg']}")
    try:
        if isinstance(msg, SubmitMessage):
            game.submit(player_name, msg.card)
        else:
            game.choose_winner(player_name, msg.submission)
    except GameError as exc:
        logger.warning("Rejected %s from %s in game %s: %s", t, player_name, game.name, exc)
        return _error(exc.code, exc.message)
    return None


async def _relay(ws: WebSocket, sub: Subscription) -> None:
    while True:
        message = await sub.queue.get()
        await ws.send_json(message)


async def _stop_relay(relay: asyncio.Task, player_name: str) -> None:
    relay.cancel()
    try:
        await relay
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("Relay for %s failed", player_name)


@app.websocket("/ws/{game_name}")
async def ws_game(ws: WebSocket, game_name: str, player: str = Query(...)):
    try:
        who = verify_identity(game_name, player)
    except ValueError as exc:
        await ws.close(code=1008, reason=str(exc))
        return
    registry: Optional[GameRegistry] = getattr(ws.app.state, "registry", None)
    game = registry.get(who.game) if registry else None
    if game is None or not game.has_player(who.player):
        await ws.close(code=1008, reason="player_not_found")
        return

    hub: Hub = ws.app.state.hub
    await ws.accept()
    sub = hub.subscribe(who.game, who.player)
    relay: Optional[asyncio.Task] = None
    try:
        await ws.send_json({"type": "state", "payload": game.view_for(who.player).model_dump()})
        relay = asyncio.create_task(_relay(ws, sub))
        while True:
            try:
                data = await ws.receive_json()
            except ValueError:
                reply = _error("bad_message", "Message is not valid JSON")
            else:
                reply = _apply_message(game, who.player, data)
            if reply is not None:
                # errors share the queue so the relay task stays the only writer
                sub.offer(reply)
    except WebSocketDisconnect:
        logger.info("player %s left game %s", who.player, who.game)
    finally:
        hub.unsubscribe(sub)
        if relay is not None:
            await _stop_relay(relay, who.player)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
