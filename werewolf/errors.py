"""Game error taxonomy and the structured result returned to the binding.

Validation code raises a ``GameError`` subclass; the public session operations
catch it and hand back an ``ActionResult`` instead, so nothing ever reaches the
chat layer as a stack trace.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class GameError(Exception):
    """Base class for every rejection the engine can produce."""

    code = "GameError"

    def __init__(self, message: str, **data):
        super().__init__(message)
        self.message = message
        self.data = data


class InvalidState(GameError):
    """Action attempted outside the phase it belongs to."""
    code = "InvalidState"


class NotYourTurn(GameError):
    """Role does not act in the current night sub-phase."""
    code = "NotYourTurn"


class AlreadyActed(GameError):
    code = "AlreadyActed"


class AlreadyVoted(GameError):
    code = "AlreadyVoted"


class Busy(GameError):
    """A previous submission for the same actor is still in flight."""
    code = "Busy"


class InvalidTarget(GameError):
    code = "InvalidTarget"


class NotEnoughPlayers(GameError):
    code = "NotEnoughPlayers"


class NotHost(GameError):
    code = "NotHost"


class GameEnded(GameError):
    code = "GameEnded"


class AlreadyJoined(GameError):
    code = "AlreadyJoined"


class GameInProgress(GameError):
    code = "GameInProgress"


INTERNAL_ERROR = "InternalError"


@dataclass
class ActionResult:
    """Outcome of one inbound operation."""

    success: bool
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def ok(cls, message: str = "", **data) -> "ActionResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failure(cls, error: GameError) -> "ActionResult":
        return cls(success=False, message=error.message, data=dict(error.data), error=error.code)

    @classmethod
    def internal_error(cls) -> "ActionResult":
        return cls(
            success=False,
            message="Something went wrong while handling that action. It was ignored.",
            error=INTERNAL_ERROR,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "error": self.error,
        }
