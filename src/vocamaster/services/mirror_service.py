"""Best-effort mirroring of local writes to the remote multi-tenant store."""
import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional, Set

from sqlalchemy.orm import Session, sessionmaker

from vocamaster.models.base import session_scope
from vocamaster.models.models import QuizHistory, StudentProgress, WrongAnswerRecord
from vocamaster.models.progress_models import ProgressRecord, QuizResultRecord, WrongAnswerEntry
from vocamaster.monitoring import mirror_errors

logger = logging.getLogger(__name__)


class RemoteMirror:
    """Fire-and-forget writer scoped to one academy and user.

    Every write is an idempotent upsert keyed by (academy, user, level, day)
    or (academy, user, item id), so duplicate delivery is harmless. Writes
    run in submission order on the mirror's own worker thread and never
    block the caller. Failures are logged and never reach the caller.
    Without a session factory or a user identity (guest mode) the mirror is
    a no-op.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        academy_id: str = "default",
        user_id: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.academy_id = academy_id
        self.user_id = user_id
        self.pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def enabled(self) -> bool:
        return self.session_factory is not None and bool(self.user_id)

    def upsert_progress(self, record: ProgressRecord) -> None:
        """Mirror a progress record."""
        self._submit(
            "upsert_progress",
            self._upsert_progress,
            record.level,
            record.day,
            record.status.value,
            sorted(record.memorized_item_ids),
            record.last_studied_at,
        )

    def delete_level_progress(self, level: str) -> None:
        """Delete every mirrored progress row of a level."""
        self._submit("delete_level_progress", self._delete_level_progress, level)

    def upsert_wrong_answer(self, entry: WrongAnswerEntry) -> None:
        """Mirror a wrong-answer entry with its absolute wrong count."""
        self._submit(
            "upsert_wrong_answer",
            self._upsert_wrong_answer,
            entry.item.to_data(),
            entry.level,
            entry.day,
            entry.wrong_count,
            entry.added_at,
        )

    def delete_wrong_answer(self, item_id: str) -> None:
        self._submit("delete_wrong_answer", self._delete_wrong_answer, item_id)

    def clear_wrong_answers(self) -> None:
        self._submit("clear_wrong_answers", self._clear_wrong_answers)

    def insert_quiz_result(self, result: QuizResultRecord) -> None:
        """Mirror a quiz result, keyed by its type and completion time."""
        self._submit("insert_quiz_result", self._upsert_quiz_result, result.to_data(), result.completed_at)

    async def drain(self) -> None:
        """Wait for pending mirror writes to finish."""
        while self.pending:
            with self._lock:
                futures = list(self.pending)
            await asyncio.gather(*(asyncio.wrap_future(f) for f in futures), return_exceptions=True)
            self._forget(futures)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until pending mirror writes finish; for callers without an event loop."""
        with self._lock:
            futures = list(self.pending)
        done, _ = wait(futures, timeout=timeout)
        self._forget(done)

    def close(self) -> None:
        """Finish queued writes and stop the worker thread."""
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def _submit(self, operation: str, writer: Callable[..., None], *args: Any) -> None:
        if not self.enabled:
            return
        if self._executor is None:
            # A single worker keeps writes in submission order
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vocamaster-mirror")

        future = self._executor.submit(self._run, operation, writer, *args)
        with self._lock:
            self.pending.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: Future) -> None:
        with self._lock:
            self.pending.discard(future)

    def _forget(self, futures) -> None:
        # Done callbacks may still be running when a waiter wakes up
        with self._lock:
            self.pending.difference_update(futures)

    def _run(self, operation: str, writer: Callable[..., None], *args: Any) -> None:
        try:
            with session_scope(self.session_factory) as db:
                writer(db, *args)
            logger.debug(f"Mirrored {operation} for user {self.user_id}")
        except Exception as e:
            # The local cache stays authoritative
            logger.error(f"Mirror write {operation} failed for user {self.user_id}: {e}")
            mirror_errors.labels(operation=operation).inc()

    def _scoped(self, db: Session, model):
        return db.query(model).filter(
            model.academy_id == self.academy_id,
            model.user_id == self.user_id,
        )

    def _upsert_progress(self, db: Session, level, day, status, memorized, last_studied_at) -> None:
        row = (
            self._scoped(db, StudentProgress)
            .filter(StudentProgress.level == level, StudentProgress.day == day)
            .first()
        )
        if row is None:
            row = StudentProgress(academy_id=self.academy_id, user_id=self.user_id, level=level, day=day)
            db.add(row)
        row.status = status
        row.memorized_words = memorized
        row.last_studied_at = last_studied_at

    def _delete_level_progress(self, db: Session, level) -> None:
        self._scoped(db, StudentProgress).filter(StudentProgress.level == level).delete(
            synchronize_session=False
        )

    def _upsert_wrong_answer(self, db: Session, word_data, level, day, wrong_count, added_at) -> None:
        row = (
            self._scoped(db, WrongAnswerRecord)
            .filter(WrongAnswerRecord.word_id == word_data["id"])
            .first()
        )
        if row is None:
            row = WrongAnswerRecord(academy_id=self.academy_id, user_id=self.user_id, word_id=word_data["id"])
            db.add(row)
        row.word_data = word_data
        row.level = level
        row.day = day
        row.wrong_count = wrong_count
        row.added_at = added_at

    def _delete_wrong_answer(self, db: Session, item_id) -> None:
        self._scoped(db, WrongAnswerRecord).filter(WrongAnswerRecord.word_id == item_id).delete(
            synchronize_session=False
        )

    def _clear_wrong_answers(self, db: Session) -> None:
        self._scoped(db, WrongAnswerRecord).delete(synchronize_session=False)

    def _upsert_quiz_result(self, db: Session, data, completed_at) -> None:
        row = (
            self._scoped(db, QuizHistory)
            .filter(QuizHistory.quiz_type == data["quizType"], QuizHistory.completed_at == completed_at)
            .first()
        )
        if row is None:
            row = QuizHistory(
                academy_id=self.academy_id,
                user_id=self.user_id,
                quiz_type=data["quizType"],
                completed_at=completed_at,
            )
            db.add(row)
        row.level = data["level"]
        row.day = data["day"]
        row.total_questions = data["totalQuestions"]
        row.correct_answers = data["correctAnswers"]
        row.wrong_word_ids = data["wrongWordIds"]
