"""Monitoring configuration for the study engine."""
from prometheus_client import Counter, start_http_server

# Quiz metrics
quiz_sessions = Counter(
    "vocamaster_quiz_sessions_total",
    "Total number of quiz sessions started",
    ["quiz_type"],
)

quiz_answers = Counter(
    "vocamaster_quiz_answers_total",
    "Total number of quiz answers by outcome",
    ["quiz_type", "outcome"],
)

# Progress metrics
words_memorized = Counter(
    "vocamaster_words_memorized_total",
    "Total number of items marked as memorized",
    ["level"],
)

days_completed = Counter(
    "vocamaster_days_completed_total",
    "Total number of day buckets reaching the completed status",
    ["level"],
)

wrong_answers_recorded = Counter(
    "vocamaster_wrong_answers_recorded_total",
    "Total number of misses written to the wrong-answer ledger",
    ["level"],
)

plans_created = Counter(
    "vocamaster_plans_created_total",
    "Total number of study plans generated",
    ["level"],
)

# Storage metrics
storage_recoveries = Counter(
    "vocamaster_storage_recoveries_total",
    "Total number of missing or corrupt local collections replaced by empty ones",
    ["key"],
)

mirror_errors = Counter(
    "vocamaster_mirror_errors_total",
    "Total number of failed remote mirror writes",
    ["operation"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
