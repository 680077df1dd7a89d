"""Application wiring: builds every service from the settings."""
import logging
from typing import Optional

from sqlalchemy.engine import Engine

from vocamaster.config import Settings, settings as default_settings
from vocamaster.models.base import init_db, make_engine, make_session_factory
from vocamaster.services.mirror_service import RemoteMirror
from vocamaster.services.plan_service import PlanGenerator, StudyGoalService
from vocamaster.services.progress_service import ProgressTracker
from vocamaster.services.quiz_service import QuizService
from vocamaster.services.storage_service import KeyValueStore, LocalCache, SqlStore
from vocamaster.services.word_pool import WordPool
from vocamaster.services.wrong_answer_service import WrongAnswerLedger


class VocaMaster:
    """Main application class."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        word_pool: Optional[WordPool] = None,
        store: Optional[KeyValueStore] = None,
        mirror: Optional[RemoteMirror] = None,
    ):
        """Initialize the application.

        Collaborators that are not supplied are built from the settings.
        """
        self.settings = settings or default_settings
        self.logger = logging.getLogger(__name__)
        self.running = False
        self._engines: list[Engine] = []

        self.word_pool = word_pool
        self.store = store
        self.mirror = mirror

        self.cache: Optional[LocalCache] = None
        self.tracker: Optional[ProgressTracker] = None
        self.planner: Optional[PlanGenerator] = None
        self.goals: Optional[StudyGoalService] = None
        self.ledger: Optional[WrongAnswerLedger] = None
        self.quizzes: Optional[QuizService] = None

    def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        if self.word_pool is None:
            self.word_pool = WordPool.from_file(self.settings.paths.curriculum_file)
        self.logger.info(f"Curriculum loaded: {', '.join(self.word_pool.levels())}")

        if self.store is None:
            engine = self._engine(self.settings.storage.url, self.settings.storage.echo)
            self.store = SqlStore(make_session_factory(engine))
            self.logger.info("Local store initialized")

        if self.mirror is None:
            mirror_settings = self.settings.mirror
            if mirror_settings.enabled:
                engine = self._engine(mirror_settings.url)
                self.mirror = RemoteMirror(
                    make_session_factory(engine), mirror_settings.academy_id, mirror_settings.user_id
                )
                self.logger.info(f"Remote mirror enabled for user {mirror_settings.user_id}")
            else:
                self.mirror = RemoteMirror()
                self.logger.info("Remote mirror disabled")

        self.cache = LocalCache(self.store)
        self.tracker = ProgressTracker(self.cache, self.word_pool, self.mirror)
        self.planner = PlanGenerator(self.word_pool)
        self.goals = StudyGoalService(self.cache, self.word_pool, self.tracker, self.planner)
        self.ledger = WrongAnswerLedger(self.cache, self.mirror)
        self.quizzes = QuizService(self.cache, self.tracker, self.ledger, self.mirror, self.settings.quiz)

        self.running = True

    async def stop(self) -> None:
        """Stop the application, waiting for pending mirror writes."""
        if not self.running:
            return

        try:
            await self.mirror.drain()
        finally:
            self.mirror.close()
            for engine in self._engines:
                engine.dispose()
            self._engines.clear()
            self.running = False
            self.logger.info("Application stopped")

    def _engine(self, url: str, echo: bool = False) -> Engine:
        engine = make_engine(url, echo)
        init_db(engine)
        self._engines.append(engine)
        return engine
