from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_cards(path: PathLike) -> List[str]:
    """One card per non-blank line, in file order. Raises OSError if unreadable."""
    text = Path(path).read_text(encoding="utf-8")
    return [line.rstrip("\r\n") for line in text.splitlines() if line.strip()]


@dataclass(frozen=True)
class Deck:
    prompts: Tuple[str, ...]
    responses: Tuple[str, ...]

    @classmethod
    def load(cls, prompt_path: PathLike, response_path: PathLike) -> "Deck":
        deck = cls(prompts=tuple(read_cards(prompt_path)), responses=tuple(read_cards(response_path)))
        logger.info(
            "Loaded deck: %d prompts from %s, %d responses from %s",
            len(deck.prompts),
            prompt_path,
            len(deck.responses),
            response_path,
        )
        return deck

    def shuffle(self, rng: random.Random) -> Tuple[List[str], List[str]]:
        prompts = list(self.prompts)
        responses = list(self.responses)
        rng.shuffle(prompts)
        rng.shuffle(responses)
        return prompts, responses
