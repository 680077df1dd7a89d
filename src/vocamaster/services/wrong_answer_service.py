"""Ledger of missed items driving remedial review."""
import logging
from datetime import UTC, datetime
from typing import Dict, List, Optional

from vocamaster.models.progress_models import WrongAnswerEntry
from vocamaster.models.vocabulary import VocabItem
from vocamaster.monitoring import wrong_answers_recorded
from vocamaster.services.mirror_service import RemoteMirror
from vocamaster.services.storage_service import WRONG_ANSWERS_KEY, LocalCache

logger = logging.getLogger(__name__)


class WrongAnswerLedger:
    """Per-item miss counts, kept until explicitly removed."""

    def __init__(self, cache: LocalCache, mirror: Optional[RemoteMirror] = None):
        self.cache = cache
        self.mirror = mirror or RemoteMirror()
        self.entries: Dict[str, WrongAnswerEntry] = {}
        for data in self.cache.read_collection(WRONG_ANSWERS_KEY):
            try:
                entry = WrongAnswerEntry.from_data(data)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable wrong answer {data!r}: {e}")
                continue
            self.entries[entry.item_id] = entry

    def _flush(self) -> None:
        self.cache.write_collection(WRONG_ANSWERS_KEY, [entry.to_data() for entry in self.entries.values()])

    def record_miss(self, item: VocabItem, level: str, day: int) -> WrongAnswerEntry:
        """Count a miss, creating the entry on the first one."""
        entry = self.entries.get(item.id)
        if entry is None:
            entry = WrongAnswerEntry(item=item, level=level, day=day, wrong_count=1, added_at=datetime.now(UTC))
            self.entries[item.id] = entry
        else:
            entry.wrong_count += 1
        self._flush()
        self.mirror.upsert_wrong_answer(entry)
        wrong_answers_recorded.labels(level=level).inc()
        logger.debug(f"Recorded miss for {item.id} ({entry.wrong_count} total)")
        return entry

    def get(self, item_id: str) -> Optional[WrongAnswerEntry]:
        return self.entries.get(item_id)

    def remove(self, item_id: str) -> bool:
        """Delete an entry once the learner has mastered the item."""
        if self.entries.pop(item_id, None) is None:
            return False
        self._flush()
        self.mirror.delete_wrong_answer(item_id)
        return True

    def clear(self) -> None:
        self.entries.clear()
        self.cache.clear(WRONG_ANSWERS_KEY)
        self.mirror.clear_wrong_answers()

    def list(self) -> List[WrongAnswerEntry]:
        """Entries by descending wrong count, oldest first on ties."""
        return sorted(self.entries.values(), key=lambda entry: (-entry.wrong_count, entry.added_at))

    def review_items(self) -> List[VocabItem]:
        """Item snapshots for a remedial quiz, most missed first."""
        return [entry.item for entry in self.list()]

    def __len__(self) -> int:
        return len(self.entries)
