from __future__ import annotations


class GameError(ValueError):
    """Base for caller-facing game errors. Never fatal to the process."""

    code = "game_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RoundNotStartedError(GameError):
    code = "round_not_started"


class UnknownPlayerError(GameError):
    code = "unknown_player"


class JudgeCannotSubmitError(GameError):
    code = "judge_cannot_submit"


class DuplicateSubmissionError(GameError):
    code = "duplicate_submission"


class InvalidCardError(GameError):
    code = "invalid_card"


class NotJudgeError(GameError):
    code = "not_judge"


class RevealPendingError(GameError):
    code = "reveal_pending"


class InvalidSubmissionError(GameError):
    code = "invalid_submission"


class GameFinishedError(GameError):
    code = "game_finished"


class DeckExhaustedError(GameError):
    code = "deck_exhausted"
