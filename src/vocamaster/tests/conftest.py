"""Test configuration."""
import os
import random
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest
from dotenv import load_dotenv
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from vocamaster.config import QuizSettings
from vocamaster.services.mirror_service import RemoteMirror
from vocamaster.services.progress_service import ProgressTracker
from vocamaster.services.storage_service import LocalCache, MemoryStore
from vocamaster.services.word_pool import WordPool
from vocamaster.services.wrong_answer_service import WrongAnswerLedger

fake = Faker()

LEVEL = "middle_1"
ITEMS_PER_DAY = 10


@pytest.fixture
def make_word() -> Callable[..., Dict[str, Any]]:
    """Factory for raw word records in the curriculum layout."""
    fake.unique.clear()

    def factory(item_id: str, **overrides: Any) -> Dict[str, Any]:
        headword = fake.unique.word()
        word = {
            "id": item_id,
            "word": headword,
            "meaning": f"meaning of {headword}",
            "pronunciation": headword,
            "synonyms": [fake.unique.word()],
            "antonyms": [fake.unique.word()],
            "examples": [{"sentence": fake.sentence(), "translation": fake.sentence()}],
        }
        word.update(overrides)
        return word

    return factory


@pytest.fixture
def curriculum_document(make_word) -> Dict[str, Any]:
    """Two levels: middle_1 with three 10-item days out of 30, high_1 with 5 days."""
    middle_days: List[Dict[str, Any]] = []
    for day in range(1, 4):
        words = [make_word(f"m-{day}-{n}") for n in range(ITEMS_PER_DAY)]
        middle_days.append({"day": day, "words": words})

    high_days = [
        {"day": day, "words": [make_word(f"h-{day}-{n}", category="science" if n % 2 else None) for n in range(4)]}
        for day in range(1, 6)
    ]
    return {
        "levels": {
            LEVEL: {"name": "Middle School 1", "totalDays": 30, "wordsPerDay": ITEMS_PER_DAY},
            "high_1": {"name": "High School 1", "totalDays": 5, "wordsPerDay": 4, "seed": 42},
        },
        "data": {LEVEL: middle_days, "high_1": high_days},
    }


@pytest.fixture
def word_pool(curriculum_document) -> WordPool:
    return WordPool.from_mapping(curriculum_document)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore) -> LocalCache:
    return LocalCache(store)


@pytest.fixture
def mirror() -> RemoteMirror:
    """Disabled mirror (guest mode)."""
    return RemoteMirror()


@pytest.fixture
def tracker(cache: LocalCache, word_pool: WordPool, mirror: RemoteMirror) -> ProgressTracker:
    return ProgressTracker(cache, word_pool, mirror)


@pytest.fixture
def ledger(cache: LocalCache, mirror: RemoteMirror) -> WrongAnswerLedger:
    return WrongAnswerLedger(cache, mirror)


@pytest.fixture
def quiz_settings() -> QuizSettings:
    return QuizSettings(
        max_questions=20,
        points_per_correct=5,
        choice_options=4,
        timer_ticks=10,
        tick_seconds=0.01,
        dwell_seconds=0.02,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
