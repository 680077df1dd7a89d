"""Study plan generation and study goal management."""
import logging
import math
import zlib
from datetime import UTC, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from vocamaster.errors import EmptyPool, InvalidDuration
from vocamaster.models.progress_models import StudyGoal, StudyPlan
from vocamaster.models.vocabulary import VocabItem
from vocamaster.monitoring import plans_created
from vocamaster.services.progress_service import ProgressTracker, round_percent
from vocamaster.services.storage_service import STUDY_GOALS_KEY, STUDY_PLANS_KEY, LocalCache
from vocamaster.services.word_pool import WordPool

logger = logging.getLogger(__name__)

T = TypeVar("T")

LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MODULUS = 2 ** 31


def seeded_shuffle(items: Sequence[T], seed: int) -> List[T]:
    """Fisher-Yates shuffle driven by a linear congruential generator.

    Reproducible for a given seed; not suitable for anything security related.
    """
    shuffled = list(items)
    state = seed % LCG_MODULUS
    for i in range(len(shuffled) - 1, 0, -1):
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        j = state % (i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def level_seed(word_pool: WordPool, level: str) -> int:
    """Fixed shuffle seed of a level."""
    seed = word_pool.level_info(level).seed
    if seed is not None:
        return seed
    return zlib.crc32(level.encode("utf-8")) & (LCG_MODULUS - 1)


class PlanGenerator:
    """Partitions a level's not-yet-memorized items into a day schedule."""

    def __init__(self, word_pool: WordPool):
        self.word_pool = word_pool

    def remaining_items(self, level: str, already_memorized_ids: Iterable[str]) -> List[VocabItem]:
        """Items of the level that are not memorized yet, in curriculum order."""
        memorized = set(already_memorized_ids)
        return [item for item in self.word_pool.all_items(level) if item.id not in memorized]

    def create_plan(
        self,
        level: str,
        duration_days: int,
        already_memorized_ids: Iterable[str] = (),
        items_per_day: Optional[int] = None,
    ) -> StudyPlan:
        """Create a plan covering the remaining pool over ``duration_days``.

        Without ``items_per_day`` the remaining items are spread over the
        whole duration. With it, the plan may cover only a prefix of the
        shuffled remaining pool. Days that receive no items are omitted, and
        an exhausted pool yields an empty schedule.
        """
        if duration_days <= 0:
            raise InvalidDuration(f"Plan duration must be positive, got {duration_days}")
        if items_per_day is not None and items_per_day <= 0:
            raise InvalidDuration(f"Items per day must be positive, got {items_per_day}")

        remaining = self.remaining_items(level, already_memorized_ids)
        if items_per_day is None:
            items_per_day = max(1, math.ceil(len(remaining) / duration_days))

        shuffled = seeded_shuffle([item.id for item in remaining], level_seed(self.word_pool, level))
        schedule: Dict[int, List[str]] = {}
        for index in range(duration_days):
            bucket = shuffled[index * items_per_day:(index + 1) * items_per_day]
            if bucket:
                schedule[index + 1] = bucket

        plan = StudyPlan(level=level, items_per_day=items_per_day, schedule=schedule)
        plans_created.labels(level=level).inc()
        logger.info(
            f"Created plan for {level}: {plan.total_items}/{len(remaining)} items "
            f"over {len(schedule)} days ({items_per_day} per day)"
        )
        return plan

    @staticmethod
    def uncovered_count(plan: StudyPlan, remaining_count: int) -> int:
        """Remaining items a partial-coverage plan leaves out."""
        return max(0, remaining_count - plan.total_items)


class StudyGoalService:
    """Keeps at most one active goal, and its plan, per level."""

    def __init__(
        self,
        cache: LocalCache,
        word_pool: WordPool,
        tracker: ProgressTracker,
        planner: Optional[PlanGenerator] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.cache = cache
        self.word_pool = word_pool
        self.tracker = tracker
        self.planner = planner or PlanGenerator(word_pool)
        self.clock = clock
        self.goals: Dict[str, StudyGoal] = {}
        self.plans: Dict[str, StudyPlan] = {}
        self._hydrate()

    def _hydrate(self) -> None:
        for data in self.cache.read_collection(STUDY_GOALS_KEY):
            try:
                goal = StudyGoal.from_data(data)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable study goal {data!r}: {e}")
                continue
            self.goals[goal.level] = goal
        for data in self.cache.read_collection(STUDY_PLANS_KEY):
            try:
                plan = StudyPlan.from_data(data)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable study plan {data!r}: {e}")
                continue
            self.plans[plan.level] = plan

    def _flush(self) -> None:
        self.cache.write_collection(STUDY_GOALS_KEY, [goal.to_data() for goal in self.goals.values()])
        self.cache.write_collection(STUDY_PLANS_KEY, [plan.to_data() for plan in self.plans.values()])

    def set_goal(self, level: str, duration_days: int, items_per_day: Optional[int] = None) -> StudyGoal:
        """Set a new goal for the level, replacing any previous goal and plan.

        Raises EmptyPool when every item of the level is already memorized;
        callers should check remaining_count() first and offer a reset.
        """
        self.word_pool.validate_key(level)
        memorized = self.tracker.all_memorized_ids(level)
        if not self.planner.remaining_items(level, memorized):
            raise EmptyPool(level)

        plan = self.planner.create_plan(level, duration_days, memorized, items_per_day)
        goal = StudyGoal(
            level=level,
            duration_days=duration_days,
            started_at=self.clock(),
            items_per_day=plan.items_per_day,
        )
        self.goals[level] = goal
        self.plans[level] = plan
        self._flush()
        logger.info(f"Set {duration_days}-day goal for {level} ({plan.items_per_day} items per day)")
        return goal

    def remaining_count(self, level: str) -> int:
        memorized = self.tracker.all_memorized_ids(level)
        return len(self.planner.remaining_items(level, memorized))

    def get_goal(self, level: str) -> Optional[StudyGoal]:
        """Get the active goal; an expired goal is cleared and None returned."""
        goal = self.goals.get(level)
        if goal is None:
            return None
        if self.days_remaining(goal) <= 0:
            logger.info(f"Goal for {level} expired, clearing it")
            self.clear_goal(level)
            return None
        return goal

    def clear_goal(self, level: str) -> None:
        """Clear the goal and its plan."""
        self.goals.pop(level, None)
        self.plans.pop(level, None)
        self._flush()

    def get_plan(self, level: str) -> Optional[StudyPlan]:
        return self.plans.get(level)

    def days_remaining(self, goal: StudyGoal) -> int:
        end = goal.started_at + timedelta(days=goal.duration_days)
        seconds = (end - self.clock()).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    def days_elapsed(self, goal: StudyGoal) -> int:
        seconds = (self.clock() - goal.started_at).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    def goal_progress(self, goal: StudyGoal) -> int:
        """Percent of the goal's duration already elapsed, capped at 100."""
        return min(100, round_percent(self.days_elapsed(goal), goal.duration_days))

    def items_for_day(self, level: str, day: int) -> List[VocabItem]:
        """Items to study for a day: the plan bucket if any, else the curriculum bucket."""
        plan = self.plans.get(level)
        if plan is not None and plan.schedule.get(day):
            return self.word_pool.items_by_ids(level, plan.schedule[day])
        return list(self.word_pool.get_vocabulary(level, day).items)
