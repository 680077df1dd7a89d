"""Configuration settings for the study engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
CURRICULUM_FILE = Path(os.getenv("CURRICULUM_FILE", str(DATA_DIR / "vocabulary-db.json")))

# Curriculum defaults
DEFAULT_TOTAL_DAYS = 30
DEFAULT_ITEMS_PER_DAY = 30


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [DATA_DIR]
    log_dir = os.getenv("LOG_DIR")
    if log_dir:
        directories.append(Path(log_dir))

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    curriculum_file: Path = CURRICULUM_FILE


@dataclass
class StorageSettings:
    """Local durable store settings."""
    url: str = os.getenv("STORAGE_URL", "sqlite:///vocamaster.db")
    echo: bool = os.getenv("STORAGE_ECHO", "false").lower() == "true"


@dataclass
class MirrorSettings:
    """Remote multi-tenant store settings."""
    url: Optional[str] = os.getenv("MIRROR_URL") or None
    academy_id: str = os.getenv("ACADEMY_ID", "default")
    user_id: Optional[str] = os.getenv("USER_ID") or None

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.user_id)


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    metrics_port: Optional[int] = int(os.getenv("METRICS_PORT")) if os.getenv("METRICS_PORT") else None


@dataclass
class CurriculumSettings:
    """Curriculum defaults applied when the source omits level metadata."""
    total_days: int = int(os.getenv("TOTAL_DAYS", str(DEFAULT_TOTAL_DAYS)))
    items_per_day: int = int(os.getenv("ITEMS_PER_DAY", str(DEFAULT_ITEMS_PER_DAY)))


@dataclass
class QuizSettings:
    """Quiz generation, scoring and timer settings."""
    max_questions: int = int(os.getenv("QUIZ_MAX_QUESTIONS", "20"))
    points_per_correct: int = int(os.getenv("QUIZ_POINTS_PER_CORRECT", "5"))
    choice_options: int = int(os.getenv("QUIZ_CHOICE_OPTIONS", "4"))
    timer_ticks: int = int(os.getenv("QUIZ_TIMER_TICKS", "10"))
    tick_seconds: float = float(os.getenv("QUIZ_TICK_SECONDS", "1.0"))
    dwell_seconds: float = float(os.getenv("QUIZ_DWELL_SECONDS", "1.5"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_storage_settings() -> StorageSettings:
    """Get storage settings."""
    return StorageSettings()


def get_mirror_settings() -> MirrorSettings:
    """Get mirror settings."""
    return MirrorSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


def get_curriculum_settings() -> CurriculumSettings:
    """Get curriculum settings."""
    return CurriculumSettings()


def get_quiz_settings() -> QuizSettings:
    """Get quiz settings."""
    return QuizSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    storage: StorageSettings = field(default_factory=get_storage_settings)
    mirror: MirrorSettings = field(default_factory=get_mirror_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)
    curriculum: CurriculumSettings = field(default_factory=get_curriculum_settings)
    quiz: QuizSettings = field(default_factory=get_quiz_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.curriculum.total_days < 1:
            raise ValueError("TOTAL_DAYS must be positive")

        if self.curriculum.items_per_day < 1:
            raise ValueError("ITEMS_PER_DAY must be positive")

        if self.quiz.max_questions < 1:
            raise ValueError("QUIZ_MAX_QUESTIONS must be positive")

        if self.quiz.points_per_correct < 1:
            raise ValueError("QUIZ_POINTS_PER_CORRECT must be positive")

        if self.quiz.choice_options < 2:
            raise ValueError("QUIZ_CHOICE_OPTIONS must be at least 2")

        if self.quiz.timer_ticks < 1:
            raise ValueError("QUIZ_TIMER_TICKS must be positive")

        if self.quiz.tick_seconds <= 0 or self.quiz.dwell_seconds < 0:
            raise ValueError("Quiz timer intervals must not be negative")


# Create global settings instance
settings = Settings()
settings.validate()
