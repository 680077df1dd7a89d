"""Tests for quiz sessions and result handling."""
import asyncio
import random
from typing import List

import pytest

from vocamaster.config import QuizSettings
from vocamaster.errors import InvalidKey, QuizStateError
from vocamaster.models.quiz_models import QuestionState, QuizPhase
from vocamaster.models.vocabulary import QuizType, StudyStatus, VocabItem
from vocamaster.services.progress_service import ProgressTracker
from vocamaster.services.quiz_service import NO_DAY, QuizService, QuizSession, normalize_answer
from vocamaster.services.storage_service import QUIZ_RESULTS_KEY, LocalCache
from vocamaster.services.word_pool import WordPool
from vocamaster.services.wrong_answer_service import WrongAnswerLedger

LEVEL = "middle_1"


@pytest.fixture
def day_items(word_pool: WordPool) -> List[VocabItem]:
    return list(word_pool.get_vocabulary(LEVEL, 1).items)


@pytest.fixture
def session(quiz_settings: QuizSettings, rng: random.Random) -> QuizSession:
    return QuizSession(quiz_settings, rng)


@pytest.fixture
def quiz_service(
    cache: LocalCache, tracker: ProgressTracker, ledger: WrongAnswerLedger, quiz_settings: QuizSettings
) -> QuizService:
    return QuizService(cache, tracker, ledger, quiz_settings=quiz_settings, rng_factory=lambda: random.Random(99))


def answer_all(session: QuizSession, correct: bool = True) -> None:
    while not session.is_complete:
        question = session.current_question
        session.submit(question.correct_answer if correct else "definitely wrong")
        session.next_question()


def test_normalize_answer() -> None:
    assert normalize_answer(" Apple ") == "apple"
    assert normalize_answer(None) == ""


def test_choice_questions(session: QuizSession, day_items: List[VocabItem]) -> None:
    """Every choice question offers four distinct options including the definition."""
    questions = session.start(day_items, QuizType.CHOICE)
    assert len(questions) == 10
    assert {question.item.id for question in questions} == {item.id for item in day_items}
    for question in questions:
        assert question.correct_answer == question.item.definition
        assert len(question.options) == 4
        assert len(set(question.options)) == 4
        assert question.correct_answer in question.options


def test_choice_with_few_items(session: QuizSession, day_items: List[VocabItem]) -> None:
    """With fewer than four items the options shrink to what is available."""
    questions = session.start(day_items[:2], QuizType.CHOICE)
    assert all(len(question.options) == 2 for question in questions)


def test_choice_distractors_skip_duplicate_definitions(session: QuizSession) -> None:
    items = [
        VocabItem(id="a", headword="big", definition="large"),
        VocabItem(id="b", headword="huge", definition="Large "),
        VocabItem(id="c", headword="tiny", definition="small"),
    ]
    session.start(items, QuizType.CHOICE)
    for question in session.questions:
        normalized = [normalize_answer(option) for option in question.options]
        assert len(normalized) == len(set(normalized))


def test_spelling_is_case_and_space_insensitive(session: QuizSession) -> None:
    """' Apple ' is accepted for the headword 'apple'."""
    session.start([VocabItem(id="apple", headword="apple", definition="a fruit")], QuizType.SPELLING)
    result = session.submit(" Apple ")
    assert result.is_correct
    assert session.score == 5


def test_matching_uses_synonym_or_antonym(session: QuizSession, day_items: List[VocabItem]) -> None:
    bare = VocabItem(id="bare", headword="bare", definition="plain")
    questions = session.start(day_items + [bare], QuizType.MATCHING)
    assert len(questions) == 10
    for question in questions:
        candidates = {normalize_answer(s) for s in question.item.synonyms + question.item.antonyms}
        assert question.correct_answer in candidates


def test_matching_falls_back_to_synonym(session: QuizSession) -> None:
    item = VocabItem(id="glad", headword="glad", definition="happy", synonyms=("Joyful",))
    session.start([item], QuizType.MATCHING)
    assert session.current_question.correct_answer == "joyful"


def test_question_cap(quiz_settings: QuizSettings, rng: random.Random, word_pool: WordPool) -> None:
    session = QuizSession(quiz_settings, rng)
    questions = session.start(word_pool.all_items(LEVEL), QuizType.SPELLING)
    assert len(questions) == 20


def test_empty_quiz_completes_immediately(session: QuizSession) -> None:
    session.start([], QuizType.CHOICE)
    assert session.is_complete
    assert session.current_question is None
    assert session.percentage == 0


def test_all_correct_scores_five_per_question(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items, QuizType.CHOICE)
    answer_all(session)
    assert session.score == 50
    assert session.correct_count == 10
    assert session.percentage == 100
    assert session.missed_items == []


def test_wrong_answers_are_collected(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items[:3], QuizType.SPELLING)
    session.submit(session.current_question.correct_answer)
    session.next_question()
    missed = session.current_question.item
    session.submit("nope")
    session.next_question()
    session.submit(session.current_question.correct_answer.upper())
    session.next_question()

    assert session.is_complete
    assert session.score == 10
    assert session.missed_items == [missed]
    assert session.percentage == 67


def test_submit_twice_is_rejected(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items, QuizType.SPELLING)
    session.submit("x")
    with pytest.raises(QuizStateError):
        session.submit("y")
    assert len(session.results) == 1


def test_cannot_skip_unanswered_question(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items, QuizType.SPELLING)
    with pytest.raises(QuizStateError):
        session.next_question()


def test_cannot_start_twice(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items, QuizType.SPELLING)
    with pytest.raises(QuizStateError):
        session.start(day_items, QuizType.CHOICE)


def test_manual_ticks_time_out(session: QuizSession, day_items: List[VocabItem]) -> None:
    """Ten ticks without an answer count the question as missed with an empty answer."""
    session.start(day_items[:2], QuizType.SPELLING)
    for _ in range(9):
        session.tick()
    assert session.time_left == 1
    assert session.question_state == QuestionState.ANSWERING

    session.tick()
    assert session.question_state == QuestionState.TIMED_OUT
    assert session.results[-1].timed_out
    assert session.results[-1].answer == ""
    assert session.missed_items == [session.current_question.item]

    # Further ticks are ignored and the answer window is closed
    session.tick()
    assert len(session.results) == 1
    with pytest.raises(QuizStateError):
        session.submit("late")

    session.next_question()
    assert session.time_left == 10
    assert session.question_state == QuestionState.ANSWERING


def test_abandon(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items, QuizType.SPELLING)
    session.abandon()
    assert session.phase == QuizPhase.ABANDONED
    assert session.current_question is None
    with pytest.raises(QuizStateError):
        session.build_result(LEVEL, 1)


def test_retry_missed(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items[:4], QuizType.SPELLING)
    answer_all(session, correct=False)

    retry = session.retry_missed()
    assert retry.quiz_type == QuizType.SPELLING
    assert {q.item.id for q in retry.questions} == {item.id for item in day_items[:4]}
    assert retry.score == 0


def test_retry_requires_completed_quiz(session: QuizSession, day_items: List[VocabItem]) -> None:
    session.start(day_items, QuizType.SPELLING)
    with pytest.raises(QuizStateError):
        session.retry_missed()


@pytest.mark.asyncio
async def test_auto_timer_times_out_and_advances(quiz_settings: QuizSettings, day_items: List[VocabItem]) -> None:
    """Unanswered questions time out and the session moves on after the dwell."""
    fast = QuizSettings(timer_ticks=3, tick_seconds=0.01, dwell_seconds=0.01)
    session = QuizSession(fast, random.Random(5), auto_timer=True)
    session.start(day_items[:2], QuizType.SPELLING)

    await asyncio.sleep(0.5)

    assert session.is_complete
    assert len(session.results) == 2
    assert all(result.timed_out and result.answer == "" for result in session.results)
    assert session.score == 0


@pytest.mark.asyncio
async def test_auto_timer_stops_on_submit(quiz_settings: QuizSettings, day_items: List[VocabItem]) -> None:
    """An answer stops the countdown, so no timeout is recorded afterwards."""
    session = QuizSession(quiz_settings, random.Random(5), auto_timer=True)
    session.start(day_items[:2], QuizType.SPELLING)
    session.submit(session.current_question.correct_answer)

    await asyncio.sleep(quiz_settings.timer_ticks * quiz_settings.tick_seconds + quiz_settings.dwell_seconds + 0.1)

    assert len(session.results) == 1
    assert session.current_index == 0
    assert session.question_state == QuestionState.ANSWERED
    session.abandon()


def test_finish_records_misses_and_completes_day(
    quiz_service: QuizService, ledger: WrongAnswerLedger, tracker: ProgressTracker, day_items: List[VocabItem]
) -> None:
    session = quiz_service.start_quiz(day_items, QuizType.SPELLING)
    for _ in range(session.total_questions):
        question = session.current_question
        answer = question.correct_answer if question.item.id != "m-1-0" else "wrong"
        session.submit(answer)
        session.next_question()

    result = quiz_service.finish(session, LEVEL, 1)

    assert result.total_questions == 10
    assert result.correct_answers == 9
    assert result.missed_item_ids == ["m-1-0"]
    assert ledger.get("m-1-0").day == 1
    assert tracker.get_status(LEVEL, 1) == StudyStatus.COMPLETED
    assert [r.correct_answers for r in quiz_service.results()] == [9]


def test_finish_without_day(quiz_service: QuizService, ledger: WrongAnswerLedger, word_pool: WordPool) -> None:
    """Category quizzes file their misses under NO_DAY and touch no progress."""
    items = word_pool.category_items("high_1", "science")
    session = quiz_service.start_quiz(items, QuizType.SPELLING)
    answer_all(session, correct=False)

    result = quiz_service.finish(session, "high_1")
    assert result.day is None
    assert len(ledger) == 10
    assert all(entry.day == NO_DAY for entry in ledger.list())


def test_finish_rejects_unfinished_session(quiz_service: QuizService, day_items: List[VocabItem]) -> None:
    session = quiz_service.start_quiz(day_items, QuizType.SPELLING)
    with pytest.raises(QuizStateError):
        quiz_service.finish(session, LEVEL, 1)
    assert quiz_service.results() == []


def test_finish_rejects_invalid_day(quiz_service: QuizService, day_items: List[VocabItem]) -> None:
    session = quiz_service.start_quiz(day_items, QuizType.SPELLING)
    answer_all(session)
    with pytest.raises(InvalidKey):
        quiz_service.finish(session, LEVEL, 99)


def test_review_session(quiz_service: QuizService, ledger: WrongAnswerLedger, day_items: List[VocabItem]) -> None:
    for item in day_items[:3]:
        ledger.record_miss(item, LEVEL, 1)
    session = quiz_service.review_session(QuizType.CHOICE)
    assert {q.item.id for q in session.questions} == {item.id for item in day_items[:3]}
    assert all(len(q.options) == 3 for q in session.questions)


def test_unreadable_results_are_skipped(quiz_service: QuizService, cache: LocalCache) -> None:
    cache.write_collection(
        QUIZ_RESULTS_KEY,
        [
            {"quizType": "choice", "level": LEVEL, "day": 1, "totalQuestions": 4, "correctAnswers": 2, "completedAt": 5},
            {"quizType": "essay", "level": LEVEL, "totalQuestions": 4, "correctAnswers": 2},
            {"quizType": "spelling", "level": LEVEL, "day": 1, "totalQuestions": 4, "correctAnswers": 3},
        ],
    )
    assert [result.correct_answers for result in quiz_service.results()] == [3]


if __name__ == "__main__":
    pytest.main([__file__])
