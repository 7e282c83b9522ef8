# Scheduling layer
from .queue import recommended_action, select_due
from .review import (
    MAX_INTERVAL_DAYS,
    RATING_MODIFIERS,
    ReviewScheduler,
    Scheduler,
    bootstrap_rating,
    compute_next_review,
    default_scheduler,
    initial_review_state,
    validate_state,
)

__all__ = [
    "MAX_INTERVAL_DAYS",
    "RATING_MODIFIERS",
    "ReviewScheduler",
    "Scheduler",
    "bootstrap_rating",
    "compute_next_review",
    "default_scheduler",
    "initial_review_state",
    "recommended_action",
    "select_due",
    "validate_state",
]
