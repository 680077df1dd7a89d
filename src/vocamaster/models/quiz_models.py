"""Models for quiz-related data structures."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from vocamaster.models.vocabulary import QuizType, VocabItem


class QuizPhase(Enum):
    """Lifecycle of a quiz session."""
    SELECTING_FORMAT = "selecting_format"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    ABANDONED = "abandoned"  # Left mid-session, nothing is persisted


class QuestionState(Enum):
    """State of the current question."""
    ANSWERING = "answering"  # Countdown running
    ANSWERED = "answered"  # Learner submitted, result shown
    TIMED_OUT = "timed_out"  # Countdown expired, result shown


@dataclass
class Question:
    """A single quiz question."""
    item: VocabItem
    quiz_type: QuizType
    correct_answer: str
    options: Optional[List[str]] = None  # Only for choice questions


@dataclass
class AnswerResult:
    """Outcome of one question."""
    question: Question
    answer: str
    is_correct: bool
    timed_out: bool = False
