"""Exception types raised by the study engine."""
from typing import Optional


class VocaMasterError(Exception):
    """Base class for caller-facing faults."""


class InvalidKey(VocaMasterError):
    """Unknown level or day outside the level's curriculum."""

    def __init__(self, level: str, day: Optional[int] = None):
        self.level = level
        self.day = day
        if day is None:
            message = f"Unknown level: {level!r}"
        else:
            message = f"Unknown day {day} for level {level!r}"
        super().__init__(message)


class InvalidDuration(VocaMasterError):
    """Plan duration or pacing is not positive."""


class CurriculumError(VocaMasterError):
    """The curriculum source failed validation at load time."""


class QuizStateError(VocaMasterError):
    """Operation is not valid in the quiz session's current state."""


class EmptyPool(Exception):
    """Every item of the level is already memorized.

    This is the normal "course mastered" terminal state rather than a fault,
    so it does not derive from VocaMasterError.
    """

    def __init__(self, level: str):
        self.level = level
        super().__init__(f"No remaining items to plan for level {level!r}")
