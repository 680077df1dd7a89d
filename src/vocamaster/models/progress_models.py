"""Serializable records persisted in the local store."""
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Set

from vocamaster.models.vocabulary import QuizType, StudyStatus, VocabItem


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class ProgressRecord:
    """Progress of one (level, day) bucket."""
    level: str
    day: int
    status: StudyStatus = StudyStatus.NOT_STARTED
    memorized_item_ids: Set[str] = field(default_factory=set)
    last_studied_at: Optional[datetime] = None

    def to_data(self) -> Dict[str, Any]:
        """Convert to serializable data for storage."""
        return {
            "level": self.level,
            "day": self.day,
            "status": self.status.value,
            "memorizedWords": sorted(self.memorized_item_ids),
            "lastStudied": _format_datetime(self.last_studied_at),
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "ProgressRecord":
        """Create a record from stored data."""
        return cls(
            level=str(data["level"]),
            day=int(data["day"]),
            status=StudyStatus(data.get("status", StudyStatus.NOT_STARTED.value)),
            memorized_item_ids=set(data.get("memorizedWords") or []),
            last_studied_at=_parse_datetime(data.get("lastStudied")),
        )


@dataclass
class StudyGoal:
    """User-chosen pacing override for a level."""
    level: str
    duration_days: int
    started_at: datetime
    items_per_day: int

    def to_data(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "duration": self.duration_days,
            "startDate": _format_datetime(self.started_at),
            "wordsPerDay": self.items_per_day,
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "StudyGoal":
        started_at = _parse_datetime(data.get("startDate"))
        if started_at is None:
            raise ValueError("Study goal has no start date")
        return cls(
            level=str(data["level"]),
            duration_days=int(data["duration"]),
            started_at=started_at,
            items_per_day=int(data["wordsPerDay"]),
        )


@dataclass
class StudyPlan:
    """Day-number to item-id schedule generated for a goal."""
    level: str
    items_per_day: int
    schedule: Dict[int, List[str]] = field(default_factory=dict)

    @property
    def total_items(self) -> int:
        return sum(len(ids) for ids in self.schedule.values())

    def item_ids(self) -> List[str]:
        """All scheduled ids in day order."""
        return [item_id for day in sorted(self.schedule) for item_id in self.schedule[day]]

    def to_data(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "wordsPerDay": self.items_per_day,
            # JSON object keys are strings
            "schedule": {str(day): list(ids) for day, ids in self.schedule.items()},
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "StudyPlan":
        return cls(
            level=str(data["level"]),
            items_per_day=int(data["wordsPerDay"]),
            schedule={int(day): list(ids) for day, ids in (data.get("schedule") or {}).items()},
        )


@dataclass
class WrongAnswerEntry:
    """Per-item miss counter with a snapshot of the item."""
    item: VocabItem
    level: str
    day: int
    wrong_count: int = 1
    added_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def item_id(self) -> str:
        return self.item.id

    def to_data(self) -> Dict[str, Any]:
        return {
            "word": self.item.to_data(),
            "level": self.level,
            "day": self.day,
            "wrongCount": self.wrong_count,
            "addedAt": _format_datetime(self.added_at),
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "WrongAnswerEntry":
        return cls(
            item=VocabItem.from_data(data["word"]),
            level=str(data["level"]),
            day=int(data["day"]),
            wrong_count=int(data.get("wrongCount", 1)),
            added_at=_parse_datetime(data.get("addedAt")) or datetime.now(UTC),
        )


@dataclass
class QuizResultRecord:
    """Outcome of a completed quiz session."""
    quiz_type: QuizType
    level: str
    day: Optional[int]
    total_questions: int
    correct_answers: int
    missed_item_ids: List[str] = field(default_factory=list)
    completed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_data(self) -> Dict[str, Any]:
        return {
            "quizType": self.quiz_type.value,
            "level": self.level,
            "day": self.day,
            "totalQuestions": self.total_questions,
            "correctAnswers": self.correct_answers,
            "wrongWordIds": list(self.missed_item_ids),
            "completedAt": _format_datetime(self.completed_at),
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "QuizResultRecord":
        day = data.get("day")
        return cls(
            quiz_type=QuizType(data["quizType"]),
            level=str(data["level"]),
            day=int(day) if day is not None else None,
            total_questions=int(data["totalQuestions"]),
            correct_answers=int(data["correctAnswers"]),
            missed_item_ids=list(data.get("wrongWordIds") or []),
            completed_at=_parse_datetime(data.get("completedAt")) or datetime.now(UTC),
        )
