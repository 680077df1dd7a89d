"""Vocabulary data structures owned by the word pool."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class StudyStatus(Enum):
    """Progress status of a (level, day) bucket."""
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class QuizType(Enum):
    """Quiz formats."""
    CHOICE = "choice"  # Pick the definition from four options
    SPELLING = "spelling"  # Type the headword
    MATCHING = "matching"  # Type a synonym or antonym


@dataclass(frozen=True)
class Example:
    """Example sentence with its translation."""
    sentence: str
    translation: str = ""


@dataclass(frozen=True)
class VocabItem:
    """A published vocabulary item.

    ``id``, ``headword`` and ``definition`` are required; everything else is
    optional and defaults to empty.
    """
    id: str
    headword: str
    definition: str
    pronunciation: str = ""
    synonyms: Tuple[str, ...] = ()
    antonyms: Tuple[str, ...] = ()
    examples: Tuple[Example, ...] = ()
    category: Optional[str] = None

    def to_data(self) -> Dict[str, Any]:
        """Convert to the serialized word layout."""
        data = {
            "id": self.id,
            "word": self.headword,
            "meaning": self.definition,
            "pronunciation": self.pronunciation,
            "synonyms": list(self.synonyms),
            "antonyms": list(self.antonyms),
            "examples": [
                {"sentence": example.sentence, "translation": example.translation}
                for example in self.examples
            ],
        }
        if self.category is not None:
            data["category"] = self.category
        return data

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "VocabItem":
        """Create an item from the serialized word layout.

        Raises KeyError or TypeError for malformed records; the word pool
        turns those into CurriculumError at its load boundary.
        """
        examples = []
        for example in data.get("examples") or []:
            if isinstance(example, dict):
                examples.append(Example(str(example["sentence"]), str(example.get("translation", ""))))
            else:
                examples.append(Example(str(example)))
        category = data.get("category")
        return cls(
            id=str(data["id"]),
            headword=str(data["word"]),
            definition=str(data["meaning"]),
            pronunciation=str(data.get("pronunciation") or ""),
            synonyms=tuple(str(s) for s in data.get("synonyms") or ()),
            antonyms=tuple(str(a) for a in data.get("antonyms") or ()),
            examples=tuple(examples),
            category=str(category) if category else None,
        )


@dataclass(frozen=True)
class LevelInfo:
    """Curriculum constants of a level."""
    id: str
    name: str
    total_days: int
    items_per_day: int
    description: str = ""
    seed: Optional[int] = None


@dataclass
class DayBucket:
    """Fixed curriculum grouping of items for one level and day."""
    level: str
    day: int
    items: List[VocabItem] = field(default_factory=list)

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]
