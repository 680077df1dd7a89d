"""Local durable key-value store holding serialized collections."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from vocamaster.models.base import session_scope
from vocamaster.models.models import StorageEntry
from vocamaster.monitoring import storage_recoveries

logger = logging.getLogger(__name__)

PROGRESS_KEY = "vocamaster_progress"
WRONG_ANSWERS_KEY = "vocamaster_wrong_answers"
QUIZ_RESULTS_KEY = "vocamaster_quiz_results"
STUDY_GOALS_KEY = "vocamaster_study_goals"
STUDY_PLANS_KEY = "vocamaster_study_plans"

ALL_KEYS = (
    PROGRESS_KEY,
    WRONG_ANSWERS_KEY,
    QUIZ_RESULTS_KEY,
    STUDY_GOALS_KEY,
    STUDY_PLANS_KEY,
)


class KeyValueStore(ABC):
    """String key to string value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError("Subclasses must implement this method")


class MemoryStore(KeyValueStore):
    """In-process store, used for tests and guest sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqlStore(KeyValueStore):
    """Store backed by the storage_entries table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with session_scope(self.session_factory) as db:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with session_scope(self.session_factory) as db:
            entry = db.get(StorageEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(StorageEntry(key=key, value=value))

    def delete(self, key: str) -> None:
        with session_scope(self.session_factory) as db:
            entry = db.get(StorageEntry, key)
            if entry:
                db.delete(entry)


class LocalCache:
    """Reads and writes whole collections as JSON lists.

    A missing, undecodable or non-list value reads as an empty collection.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def read_collection(self, key: str) -> List[Dict[str, Any]]:
        raw = self.store.get(key)
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupt value under {key}, treating it as empty: {e}")
            storage_recoveries.labels(key=key).inc()
            return []
        if not isinstance(value, list):
            logger.warning(f"Value under {key} is not a list, treating it as empty")
            storage_recoveries.labels(key=key).inc()
            return []
        return [entry for entry in value if isinstance(entry, dict)]

    def write_collection(self, key: str, items: List[Dict[str, Any]]) -> None:
        self.store.set(key, json.dumps(items, ensure_ascii=False))

    def clear(self, key: str) -> None:
        self.store.delete(key)

    def clear_all(self) -> None:
        for key in ALL_KEYS:
            self.store.delete(key)
