"""Quiz generation, scoring and completion handling."""
import logging
import random
from typing import Callable, List, Optional, Sequence

from vocamaster.config import QuizSettings, settings
from vocamaster.errors import QuizStateError
from vocamaster.models.progress_models import QuizResultRecord
from vocamaster.models.quiz_models import AnswerResult, Question, QuestionState, QuizPhase
from vocamaster.models.vocabulary import QuizType, StudyStatus, VocabItem
from vocamaster.monitoring import quiz_answers, quiz_sessions
from vocamaster.services.mirror_service import RemoteMirror
from vocamaster.services.progress_service import ProgressTracker, round_percent
from vocamaster.services.quiz_timer import Countdown
from vocamaster.services.storage_service import QUIZ_RESULTS_KEY, LocalCache
from vocamaster.services.wrong_answer_service import WrongAnswerLedger

logger = logging.getLogger(__name__)

NO_DAY = 0  # Ledger day for misses outside a curriculum day (category or review quizzes)


def normalize_answer(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def has_matching_data(item: VocabItem) -> bool:
    return bool(item.synonyms or item.antonyms)


class QuizSession:
    """One quiz run: SELECTING_FORMAT -> IN_PROGRESS -> COMPLETE.

    Without ``auto_timer`` the caller drives the countdown with ``tick()``.
    With it, an asyncio countdown ticks once per configured interval and a
    timed-out question auto-advances after the dwell period; both timers are
    always cancelled before the session moves away from the current question.
    """

    def __init__(
        self,
        quiz_settings: Optional[QuizSettings] = None,
        rng: Optional[random.Random] = None,
        auto_timer: bool = False,
    ):
        self.settings = quiz_settings or settings.quiz
        self.rng = rng or random.Random()
        self.auto_timer = auto_timer

        self.phase = QuizPhase.SELECTING_FORMAT
        self.quiz_type: Optional[QuizType] = None
        self.questions: List[Question] = []
        self.current_index = 0
        self.score = 0
        self.missed_items: List[VocabItem] = []
        self.results: List[AnswerResult] = []
        self.question_state: Optional[QuestionState] = None
        self.time_left = self.settings.timer_ticks

        self._question_timer: Optional[Countdown] = None
        self._dwell_timer: Optional[Countdown] = None
        if auto_timer:
            self._question_timer = Countdown(self.settings.timer_ticks, self.settings.tick_seconds, self.tick)
            self._dwell_timer = Countdown(1, self.settings.dwell_seconds, self._advance_after_timeout)

    # Generation

    def start(self, items: Sequence[VocabItem], quiz_type: QuizType) -> List[Question]:
        """Generate the questions and make the first one current."""
        if self.phase != QuizPhase.SELECTING_FORMAT:
            raise QuizStateError(f"Cannot start a quiz in phase {self.phase.value}")

        self.quiz_type = quiz_type
        self.questions = self.generate_questions(items, quiz_type)
        quiz_sessions.labels(quiz_type=quiz_type.value).inc()
        logger.info(f"Started {quiz_type.value} quiz with {len(self.questions)} questions from {len(items)} items")

        if not self.questions:
            self.phase = QuizPhase.COMPLETE
            return self.questions

        self.phase = QuizPhase.IN_PROGRESS
        self._begin_question()
        return self.questions

    def generate_questions(self, items: Sequence[VocabItem], quiz_type: QuizType) -> List[Question]:
        """Build at most ``max_questions`` questions from a shuffled copy of the items."""
        shuffled = list(items)
        self.rng.shuffle(shuffled)

        if quiz_type == QuizType.CHOICE:
            questions = [self._choice_question(item, items) for item in shuffled]
        elif quiz_type == QuizType.SPELLING:
            questions = [self._spelling_question(item) for item in shuffled]
        elif quiz_type == QuizType.MATCHING:
            questions = [self._matching_question(item) for item in shuffled if has_matching_data(item)]
        else:
            raise ValueError(f"Unknown quiz type: {quiz_type}")

        return questions[:self.settings.max_questions]

    def _choice_question(self, item: VocabItem, pool: Sequence[VocabItem]) -> Question:
        correct = item.definition
        others = [other.definition for other in pool if other.id != item.id]
        self.rng.shuffle(others)

        # Options never repeat, and no distractor can pass for the correct answer
        seen = {normalize_answer(correct)}
        distractors = []
        for definition in others:
            key = normalize_answer(definition)
            if key in seen:
                continue
            seen.add(key)
            distractors.append(definition)
            if len(distractors) == self.settings.choice_options - 1:
                break

        options = [correct] + distractors
        self.rng.shuffle(options)
        return Question(item=item, quiz_type=QuizType.CHOICE, correct_answer=correct, options=options)

    def _spelling_question(self, item: VocabItem) -> Question:
        return Question(item=item, quiz_type=QuizType.SPELLING, correct_answer=normalize_answer(item.headword))

    def _matching_question(self, item: VocabItem) -> Question:
        use_synonym = bool(item.synonyms) and self.rng.random() > 0.5
        if use_synonym:
            answer = item.synonyms[0]
        elif item.antonyms:
            answer = item.antonyms[0]
        else:
            answer = item.synonyms[0]
        return Question(item=item, quiz_type=QuizType.MATCHING, correct_answer=normalize_answer(answer))

    # Answering

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase != QuizPhase.IN_PROGRESS:
            return None
        return self.questions[self.current_index]

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def is_complete(self) -> bool:
        return self.phase == QuizPhase.COMPLETE

    @property
    def correct_count(self) -> int:
        return self.score // self.settings.points_per_correct

    @property
    def percentage(self) -> int:
        return round_percent(self.score, self.total_questions * self.settings.points_per_correct)

    @staticmethod
    def check_answer(question: Question, answer: Optional[str]) -> bool:
        """Case-insensitive comparison ignoring surrounding whitespace."""
        return normalize_answer(answer) == normalize_answer(question.correct_answer)

    def submit(self, answer: Optional[str]) -> AnswerResult:
        """Judge the learner's answer to the current question.

        The countdown is stopped before anything is recorded, so a late tick
        cannot count the question twice.
        """
        self._stop_countdown()
        question = self._require_answering()
        is_correct = self.check_answer(question, answer)
        self.question_state = QuestionState.ANSWERED
        return self._record(question, answer or "", is_correct)

    def tick(self) -> None:
        """Advance the countdown by one tick; ignored unless a question is awaiting an answer."""
        if self.phase != QuizPhase.IN_PROGRESS or self.question_state != QuestionState.ANSWERING:
            return
        self.time_left = max(0, self.time_left - 1)
        if self.time_left == 0:
            self._time_out()

    def _time_out(self) -> None:
        self._cancel_timers()
        question = self.current_question
        self.question_state = QuestionState.TIMED_OUT
        self._record(question, "", False, timed_out=True)
        logger.debug(f"Question {self.current_index + 1} timed out")
        if self._dwell_timer is not None:
            self._dwell_timer.start()

    def _advance_after_timeout(self) -> None:
        if self.phase == QuizPhase.IN_PROGRESS and self.question_state == QuestionState.TIMED_OUT:
            self.next_question()

    def next_question(self) -> None:
        """Move past an answered or timed-out question; completes the quiz after the last one."""
        if self.phase != QuizPhase.IN_PROGRESS:
            raise QuizStateError(f"No question to leave in phase {self.phase.value}")
        if self.question_state == QuestionState.ANSWERING:
            raise QuizStateError("Current question has not been answered")

        self._cancel_timers()
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
            self._begin_question()
        else:
            self.phase = QuizPhase.COMPLETE
            self.question_state = None
            logger.info(
                f"Completed {self.quiz_type.value} quiz: score {self.score}, "
                f"{self.correct_count}/{self.total_questions} correct ({self.percentage}%)"
            )

    def abandon(self) -> None:
        """Leave the session; nothing of an unfinished session is persisted."""
        self._cancel_timers()
        if self.phase in (QuizPhase.SELECTING_FORMAT, QuizPhase.IN_PROGRESS):
            self.phase = QuizPhase.ABANDONED
            self.question_state = None

    def retry_missed(self) -> "QuizSession":
        """Start a new session, same format, over exactly the missed items."""
        if self.phase != QuizPhase.COMPLETE:
            raise QuizStateError("Only a completed quiz can be retried")
        session = QuizSession(self.settings, self.rng, self.auto_timer)
        session.start(list(self.missed_items), self.quiz_type)
        return session

    def build_result(self, level: str, day: Optional[int]) -> QuizResultRecord:
        if self.phase != QuizPhase.COMPLETE:
            raise QuizStateError("Only a completed quiz has a result")
        return QuizResultRecord(
            quiz_type=self.quiz_type,
            level=level,
            day=day,
            total_questions=self.total_questions,
            correct_answers=self.correct_count,
            missed_item_ids=[item.id for item in self.missed_items],
        )

    def _begin_question(self) -> None:
        self.question_state = QuestionState.ANSWERING
        self.time_left = self.settings.timer_ticks
        if self._question_timer is not None:
            self._question_timer.start()

    def _stop_countdown(self) -> None:
        if self._question_timer is not None:
            self._question_timer.cancel()

    def _cancel_timers(self) -> None:
        self._stop_countdown()
        if self._dwell_timer is not None:
            self._dwell_timer.cancel()

    def _require_answering(self) -> Question:
        if self.phase != QuizPhase.IN_PROGRESS:
            raise QuizStateError(f"No current question in phase {self.phase.value}")
        if self.question_state != QuestionState.ANSWERING:
            raise QuizStateError("Current question was already answered")
        return self.current_question

    def _record(self, question: Question, answer: str, is_correct: bool, timed_out: bool = False) -> AnswerResult:
        if is_correct:
            self.score += self.settings.points_per_correct
            outcome = "correct"
        else:
            self.missed_items.append(question.item)
            outcome = "timeout" if timed_out else "incorrect"
        quiz_answers.labels(quiz_type=question.quiz_type.value, outcome=outcome).inc()

        result = AnswerResult(question=question, answer=answer, is_correct=is_correct, timed_out=timed_out)
        self.results.append(result)
        return result


class QuizService:
    """Starts quiz sessions and persists their outcome."""

    def __init__(
        self,
        cache: LocalCache,
        tracker: ProgressTracker,
        ledger: WrongAnswerLedger,
        mirror: Optional[RemoteMirror] = None,
        quiz_settings: Optional[QuizSettings] = None,
        rng_factory: Callable[[], random.Random] = random.Random,
    ):
        self.cache = cache
        self.tracker = tracker
        self.ledger = ledger
        self.mirror = mirror or RemoteMirror()
        self.settings = quiz_settings or settings.quiz
        self.rng_factory = rng_factory

    def start_quiz(self, items: Sequence[VocabItem], quiz_type: QuizType, auto_timer: bool = False) -> QuizSession:
        session = QuizSession(self.settings, self.rng_factory(), auto_timer)
        session.start(items, quiz_type)
        return session

    def review_session(self, quiz_type: QuizType, auto_timer: bool = False) -> QuizSession:
        """Start a remedial quiz over the wrong-answer ledger."""
        return self.start_quiz(self.ledger.review_items(), quiz_type, auto_timer)

    def finish(
        self,
        session: QuizSession,
        level: str,
        day: Optional[int] = None,
        mark_day_complete: bool = True,
    ) -> QuizResultRecord:
        """Persist a completed session.

        Every missed item goes to the wrong-answer ledger, the result is
        appended to the result log, and the curriculum day (when given) is
        marked completed.
        """
        if day is not None:
            self.tracker.word_pool.validate_key(level, day)
        result = session.build_result(level, day)

        for item in session.missed_items:
            self.ledger.record_miss(item, level, day if day is not None else NO_DAY)

        results = self.cache.read_collection(QUIZ_RESULTS_KEY)
        results.append(result.to_data())
        self.cache.write_collection(QUIZ_RESULTS_KEY, results)
        self.mirror.insert_quiz_result(result)

        if day is not None and mark_day_complete:
            self.tracker.set_status(level, day, StudyStatus.COMPLETED)

        logger.info(
            f"Saved {result.quiz_type.value} result for {level} day {day}: "
            f"{result.correct_answers}/{result.total_questions}"
        )
        return result

    def results(self) -> List[QuizResultRecord]:
        """Stored quiz results, oldest first."""
        records = []
        for data in self.cache.read_collection(QUIZ_RESULTS_KEY):
            try:
                records.append(QuizResultRecord.from_data(data))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable quiz result {data!r}: {e}")
        return records
