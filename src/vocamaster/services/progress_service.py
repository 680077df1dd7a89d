"""Progress tracking over (level, day) buckets."""
import logging
import math
from datetime import UTC, datetime
from typing import Dict, List, Optional, Set, Tuple

from vocamaster.models.progress_models import ProgressRecord
from vocamaster.models.vocabulary import StudyStatus
from vocamaster.monitoring import days_completed, words_memorized
from vocamaster.services.mirror_service import RemoteMirror
from vocamaster.services.storage_service import PROGRESS_KEY, LocalCache
from vocamaster.services.word_pool import WordPool

logger = logging.getLogger(__name__)


def round_percent(numerator: float, denominator: float) -> int:
    """Percentage rounded half up, 0 for an empty denominator."""
    if denominator <= 0:
        return 0
    return int(math.floor(100 * numerator / denominator + 0.5))


class ProgressTracker:
    """State machine over per-day progress records.

    Records are hydrated from the local cache once, flushed back on every
    mutation, and mirrored remotely on a best-effort basis.
    """

    def __init__(self, cache: LocalCache, word_pool: WordPool, mirror: Optional[RemoteMirror] = None):
        self.cache = cache
        self.word_pool = word_pool
        self.mirror = mirror or RemoteMirror()
        self.records: Dict[Tuple[str, int], ProgressRecord] = {}
        self._hydrate()

    def _hydrate(self) -> None:
        for data in self.cache.read_collection(PROGRESS_KEY):
            try:
                record = ProgressRecord.from_data(data)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable progress record {data!r}: {e}")
                continue
            self.records[(record.level, record.day)] = record
        logger.debug(f"Hydrated {len(self.records)} progress records")

    def _flush(self) -> None:
        self.cache.write_collection(PROGRESS_KEY, [record.to_data() for record in self.records.values()])

    def _save(self, record: ProgressRecord) -> None:
        record.last_studied_at = datetime.now(UTC)
        self.records[(record.level, record.day)] = record
        self._flush()
        self.mirror.upsert_progress(record)

    def _get_or_create(self, level: str, day: int) -> ProgressRecord:
        record = self.records.get((level, day))
        if record is None:
            record = ProgressRecord(level=level, day=day)
        return record

    def get_record(self, level: str, day: int) -> Optional[ProgressRecord]:
        self.word_pool.validate_key(level, day)
        return self.records.get((level, day))

    def get_status(self, level: str, day: int) -> StudyStatus:
        """Get the status of a day, NOT_STARTED when no record exists."""
        record = self.get_record(level, day)
        return record.status if record else StudyStatus.NOT_STARTED

    def get_memorized(self, level: str, day: int) -> Set[str]:
        record = self.get_record(level, day)
        return set(record.memorized_item_ids) if record else set()

    def set_status(self, level: str, day: int, status: StudyStatus) -> ProgressRecord:
        """Upsert the status of a day, keeping its memorized set."""
        self.word_pool.validate_key(level, day)
        record = self._get_or_create(level, day)
        previous = record.status
        record.status = status
        self._save(record)
        if status == StudyStatus.COMPLETED and previous != StudyStatus.COMPLETED:
            days_completed.labels(level=level).inc()
        logger.debug(f"Status of {level} day {day}: {previous.value} -> {status.value}")
        return record

    def mark_memorized(self, level: str, day: int, item_id: str, total_items_in_day: int) -> ProgressRecord:
        """Add an item to the day's memorized set.

        The day becomes COMPLETED once the set covers ``total_items_in_day``
        items, otherwise a NOT_STARTED day moves to IN_PROGRESS.
        """
        self.word_pool.validate_key(level, day)
        record = self._get_or_create(level, day)
        if item_id in record.memorized_item_ids:
            return record

        record.memorized_item_ids.add(item_id)
        words_memorized.labels(level=level).inc()
        previous = record.status
        if len(record.memorized_item_ids) >= total_items_in_day:
            record.status = StudyStatus.COMPLETED
        elif record.status == StudyStatus.NOT_STARTED:
            record.status = StudyStatus.IN_PROGRESS
        self._save(record)

        if record.status == StudyStatus.COMPLETED and previous != StudyStatus.COMPLETED:
            days_completed.labels(level=level).inc()
            logger.info(f"Completed {level} day {day} ({total_items_in_day} items)")
        return record

    def unmark_memorized(self, level: str, day: int, item_id: str) -> Optional[ProgressRecord]:
        """Remove an item from the day's memorized set.

        The status is forced back to IN_PROGRESS even when the day had been
        COMPLETED or the set becomes empty. Days without a record are left
        untouched.
        """
        self.word_pool.validate_key(level, day)
        record = self.records.get((level, day))
        if record is None:
            logger.debug(f"No progress for {level} day {day}, nothing to unmark")
            return None

        record.memorized_item_ids.discard(item_id)
        record.status = StudyStatus.IN_PROGRESS
        self._save(record)
        return record

    def records_for_level(self, level: str) -> List[ProgressRecord]:
        self.word_pool.validate_key(level)
        return sorted(
            (record for (lvl, _), record in self.records.items() if lvl == level),
            key=lambda record: record.day,
        )

    def completion_rate(self, level: str) -> int:
        """Percent of the level's curriculum days that are completed."""
        completed = sum(
            1 for record in self.records_for_level(level) if record.status == StudyStatus.COMPLETED
        )
        return round_percent(completed, self.word_pool.total_days(level))

    def all_memorized_ids(self, level: str) -> Set[str]:
        """Union of memorized ids across every day of the level."""
        memorized: Set[str] = set()
        for record in self.records_for_level(level):
            memorized.update(record.memorized_item_ids)
        return memorized

    def reset_level(self, level: str) -> int:
        """Delete every progress record of the level. Returns the count removed."""
        self.word_pool.validate_key(level)
        keys = [key for key in self.records if key[0] == level]
        for key in keys:
            del self.records[key]
        self._flush()
        self.mirror.delete_level_progress(level)
        logger.info(f"Reset {len(keys)} progress records of level {level}")
        return len(keys)
