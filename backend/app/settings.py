from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DECKS_DIR = Path(__file__).resolve().parent.parent / "decks"


class Settings(BaseSettings):
    prompt_deck_path: Path = Field(default=DECKS_DIR / "prompts.txt", alias="PROMPT_DECK_PATH")
    response_deck_path: Path = Field(default=DECKS_DIR / "responses.txt", alias="RESPONSE_DECK_PATH")
    hand_size: int = Field(default=7, ge=1, alias="HAND_SIZE")
    shuffle_seed: Optional[int] = Field(default=None, alias="SHUFFLE_SEED")
    channel_buffer: int = Field(default=64, ge=1, alias="CHANNEL_BUFFER")
    max_name_length: int = Field(default=40, ge=1, alias="MAX_NAME_LENGTH")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    origin: str = Field(default="", alias="ORIGIN")
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        extra = "ignore"

    def log_status(self) -> None:
        env_name = os.getenv("ENV", "unknown")
        logger.info(
            "Game settings: prompts=%s, responses=%s, hand_size=%s, seeded=%s, env=%s",
            self.prompt_deck_path,
            self.response_deck_path,
            self.hand_size,
            self.shuffle_seed is not None,
            env_name,
        )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.log_status()
    return settings
