"""Read-only curriculum: the word pool of every level split into day buckets."""
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from vocamaster.config import settings
from vocamaster.errors import CurriculumError, InvalidKey
from vocamaster.models.vocabulary import DayBucket, LevelInfo, VocabItem

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "unknown"


class WordPool:
    """Curriculum source mapping each level to its ordered day buckets.

    Loaded once at startup and never mutated afterwards. Every level has
    exactly ``total_days`` buckets; days missing from the source are empty.
    """

    def __init__(self, levels: Mapping[str, LevelInfo], buckets: Mapping[str, List[DayBucket]]):
        self._levels: Dict[str, LevelInfo] = dict(levels)
        self._buckets: Dict[str, List[DayBucket]] = {level: list(days) for level, days in buckets.items()}
        self._index: Dict[str, Dict[str, VocabItem]] = {}
        for level, days in self._buckets.items():
            self._index[level] = {item.id: item for bucket in days for item in bucket.items}

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "WordPool":
        """Load the curriculum from a JSON document."""
        path = Path(path)
        logger.info(f"Loading curriculum from {path}")
        try:
            with path.open(encoding="utf-8") as fp:
                document = json.load(fp)
        except (OSError, json.JSONDecodeError) as e:
            raise CurriculumError(f"Cannot read curriculum {path}: {e}") from e
        return cls.from_mapping(document)

    @classmethod
    def from_mapping(
        cls,
        document: Mapping[str, Any],
        default_total_days: Optional[int] = None,
        default_items_per_day: Optional[int] = None,
    ) -> "WordPool":
        """Build and validate the curriculum from its decoded document.

        The document has a ``data`` section ``{level: [{"day": n, "words": [...]}]}``
        and an optional ``levels`` section with per-level metadata.
        """
        if default_total_days is None:
            default_total_days = settings.curriculum.total_days
        if default_items_per_day is None:
            default_items_per_day = settings.curriculum.items_per_day

        data = document.get("data")
        if not isinstance(data, Mapping):
            raise CurriculumError("Curriculum document has no 'data' section")
        meta = document.get("levels") or {}

        levels: Dict[str, LevelInfo] = {}
        buckets: Dict[str, List[DayBucket]] = {}
        for level, days in data.items():
            info = _parse_level_info(level, meta.get(level) or {}, default_total_days, default_items_per_day)
            levels[level] = info
            buckets[level] = _parse_days(info, days)
            logger.debug(f"Level {level}: {info.total_days} days, {sum(len(b.items) for b in buckets[level])} items")

        return cls(levels, buckets)

    def levels(self) -> List[str]:
        """Get the level identifiers in source order."""
        return list(self._levels)

    def level_info(self, level: str) -> LevelInfo:
        """Get the curriculum constants of a level."""
        try:
            return self._levels[level]
        except KeyError:
            raise InvalidKey(level) from None

    def validate_key(self, level: str, day: Optional[int] = None) -> None:
        """Raise InvalidKey for an unknown level or an out-of-range day."""
        info = self.level_info(level)
        if day is None:
            return
        if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= info.total_days:
            raise InvalidKey(level, day)

    def get_vocabulary(self, level: str, day: int) -> DayBucket:
        """Get the day bucket of a level."""
        self.validate_key(level, day)
        return self._buckets[level][day - 1]

    def days_list(self, level: str) -> List[int]:
        self.validate_key(level)
        return [bucket.day for bucket in self._buckets[level]]

    def total_days(self, level: str) -> int:
        return self.level_info(level).total_days

    def all_items(self, level: str) -> List[VocabItem]:
        """Get the full word pool of a level in curriculum order."""
        self.validate_key(level)
        return [item for bucket in self._buckets[level] for item in bucket.items]

    def get_item(self, level: str, item_id: str) -> Optional[VocabItem]:
        self.validate_key(level)
        return self._index[level].get(item_id)

    def items_by_ids(self, level: str, ids: Iterable[str]) -> List[VocabItem]:
        """Resolve ids to items, keeping order and dropping unknown ids."""
        self.validate_key(level)
        index = self._index[level]
        return [index[item_id] for item_id in ids if item_id in index]

    def category_items(self, level: str, category: str) -> List[VocabItem]:
        """Get every item of a level tagged with the category."""
        return [item for item in self.all_items(level) if item.category == category]

    def category_counts(self, level: str) -> Dict[str, int]:
        """Count items per category; untagged items count as 'unknown'."""
        counts: Dict[str, int] = defaultdict(int)
        for item in self.all_items(level):
            counts[item.category or UNKNOWN_CATEGORY] += 1
        return dict(counts)


def _parse_level_info(
    level: str, meta: Mapping[str, Any], default_total_days: int, default_items_per_day: int
) -> LevelInfo:
    try:
        total_days = int(meta.get("totalDays", default_total_days))
        items_per_day = int(meta.get("wordsPerDay", default_items_per_day))
        seed = meta.get("seed")
        seed = int(seed) if seed is not None else None
    except (TypeError, ValueError) as e:
        raise CurriculumError(f"Invalid metadata for level {level!r}: {e}") from e
    if total_days < 1:
        raise CurriculumError(f"Level {level!r} must have at least one day")
    return LevelInfo(
        id=level,
        name=str(meta.get("name", level)),
        total_days=total_days,
        items_per_day=items_per_day,
        description=str(meta.get("description", "")),
        seed=seed,
    )


def _parse_days(info: LevelInfo, days: Any) -> List[DayBucket]:
    if not isinstance(days, list):
        raise CurriculumError(f"Level {info.id!r} must map to a list of days")

    by_day: Dict[int, List[VocabItem]] = {}
    seen: Dict[str, int] = {}
    for entry in days:
        try:
            day = int(entry["day"])
            raw_words = entry.get("words") or []
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CurriculumError(f"Malformed day entry in level {info.id!r}: {e}") from e
        if not 1 <= day <= info.total_days:
            raise CurriculumError(f"Day {day} is outside 1..{info.total_days} in level {info.id!r}")
        if day in by_day:
            raise CurriculumError(f"Day {day} appears twice in level {info.id!r}")

        items = []
        for raw in raw_words:
            try:
                item = VocabItem.from_data(raw)
            except (KeyError, TypeError, AttributeError) as e:
                raise CurriculumError(
                    f"Malformed word in level {info.id!r} day {day}: missing or invalid {e}"
                ) from e
            if item.id in seen:
                raise CurriculumError(
                    f"Item {item.id!r} appears in days {seen[item.id]} and {day} of level {info.id!r}"
                )
            seen[item.id] = day
            items.append(item)
        by_day[day] = items

    return [DayBucket(info.id, day, by_day.get(day, [])) for day in range(1, info.total_days + 1)]
