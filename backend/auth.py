from dataclasses import dataclass

from app.settings import get_settings


@dataclass(frozen=True)
class Identity:
    game: str
    player: str


def _clean(value: str, what: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(f"No {what} name provided")
    if len(cleaned) > max_length:
        raise ValueError(f"{what.capitalize()} name is longer than {max_length} characters")
    return cleaned


def verify_identity(game: str, player: str) -> Identity:
    """Identify the acting player. The caller-supplied name is trusted as is."""
    max_length = get_settings().max_name_length
    return Identity(game=_clean(game, "game", max_length), player=_clean(player, "player", max_length))
