from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from app.schemas import ActionResult, ChooseRequest, JoinRequest, SubmitRequest
from auth import Identity, verify_identity
from errors import GameError
from game import Game, GameRegistry
from models import GameSummary, PlayerView

logger = logging.getLogger(__name__)
router = APIRouter()


def get_registry(request: Request) -> GameRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="registry_not_ready")
    return registry


def _identify(game: str, player: str) -> Identity:
    try:
        return verify_identity(game, player)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _get_game_or_404(registry: GameRegistry, name: str) -> Game:
    game = registry.get(name)
    if not game:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="game_not_found")
    return game


def _rejected(exc: GameError) -> HTTPException:
    logger.warning("Rejected action: %s", exc)
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": exc.code, "message": exc.message},
    )


@router.get("/api/games", response_model=List[GameSummary])
async def list_games(registry: GameRegistry = Depends(get_registry)):
    return registry.summaries()


@router.post("/api/game/join", response_model=PlayerView)
async def join_game(req: JoinRequest, registry: GameRegistry = Depends(get_registry)):
    who = _identify(req.game, req.player)
    logger.info("player %s connected to game %s", who.player, who.game)
    try:
        game = registry.get_or_create(who.game)
    except GameError as exc:
        raise _rejected(exc)
    return game.join(who.player)


@router.post("/api/game/submit", response_model=ActionResult)
async def submit_card(req: SubmitRequest, registry: GameRegistry = Depends(get_registry)):
    who = _identify(req.game, req.player)
    game = _get_game_or_404(registry, who.game)
    try:
        game.submit(who.player, req.card)
    except GameError as exc:
        raise _rejected(exc)
    return ActionResult()


@router.post("/api/game/choose", response_model=ActionResult)
async def choose_winner(req: ChooseRequest, registry: GameRegistry = Depends(get_registry)):
    who = _identify(req.game, req.player)
    game = _get_game_or_404(registry, who.game)
    try:
        game.choose_winner(who.player, req.submission)
    except GameError as exc:
        raise _rejected(exc)
    return ActionResult()


@router.get("/api/game/state/{game_name}", response_model=PlayerView)
async def game_state(
    game_name: str,
    x_player_name: str = Header(...),
    registry: GameRegistry = Depends(get_registry),
):
    who = _identify(game_name, x_player_name)
    game = _get_game_or_404(registry, who.game)
    try:
        return game.view_for(who.player)
    except GameError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.code)
