"""Database models for the local store and the remote mirror."""
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from vocamaster.models.base import Base, TimestampMixin


class StorageEntry(Base, TimestampMixin):
    """Local durable store entry: one serialized collection per namespace key."""

    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)


class StudentProgress(Base, TimestampMixin):
    """Remote progress row, one per (academy, user, level, day)."""

    __tablename__ = "student_progress"
    __table_args__ = (
        UniqueConstraint("academy_id", "user_id", "level", "day", name="uq_student_progress"),
    )

    id = Column(Integer, primary_key=True)
    academy_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    level = Column(String, nullable=False)
    day = Column(Integer, nullable=False)
    status = Column(String, nullable=False)  # not-started, in-progress, completed
    memorized_words = Column(JSON, default=list)
    last_studied_at = Column(DateTime(timezone=True))


class WrongAnswerRecord(Base, TimestampMixin):
    """Remote wrong-answer row, one per (academy, user, word)."""

    __tablename__ = "wrong_answers"
    __table_args__ = (
        UniqueConstraint("academy_id", "user_id", "word_id", name="uq_wrong_answers"),
    )

    id = Column(Integer, primary_key=True)
    academy_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    word_id = Column(String, nullable=False)
    word_data = Column(JSON, nullable=False)  # item snapshot
    level = Column(String, nullable=False)
    day = Column(Integer, nullable=False)
    wrong_count = Column(Integer, default=1)
    added_at = Column(DateTime(timezone=True))


class QuizHistory(Base, TimestampMixin):
    """Remote quiz result row."""

    __tablename__ = "quiz_history"
    __table_args__ = (
        UniqueConstraint("academy_id", "user_id", "quiz_type", "completed_at", name="uq_quiz_history"),
    )

    id = Column(Integer, primary_key=True)
    academy_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    quiz_type = Column(String, nullable=False)
    level = Column(String, nullable=False)
    day = Column(Integer)
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    wrong_word_ids = Column(JSON, default=list)
    completed_at = Column(DateTime(timezone=True), nullable=False)
