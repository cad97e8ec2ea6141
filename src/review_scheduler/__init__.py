"""SM-2 spaced repetition scheduler.

カードの復習状態と採点結果から次回の復習状態を計算する純粋関数群と、
それを呼び出すレビューセッション層をまとめて公開する。
"""

from .config import SchedulerParams, Settings, settings
from .errors import InvalidQualityError, InvalidStateError, SchedulerError
from .models.review import QUALITY_BY_OUTCOME, Quality, ReviewOutcome, ReviewState
from .session import InMemoryReviewStore, ReviewSession, ReviewStore
from .srs import (
    SpacedRepetitionScheduler,
    calculate_due_date,
    compute_next_review,
    compute_next_review_from_quality,
    days_until_due,
    is_due,
    next_ease_factor,
)

__all__ = [
    "QUALITY_BY_OUTCOME",
    "InMemoryReviewStore",
    "InvalidQualityError",
    "InvalidStateError",
    "Quality",
    "ReviewOutcome",
    "ReviewSession",
    "ReviewState",
    "ReviewStore",
    "SchedulerError",
    "SchedulerParams",
    "Settings",
    "SpacedRepetitionScheduler",
    "calculate_due_date",
    "compute_next_review",
    "compute_next_review_from_quality",
    "days_until_due",
    "is_due",
    "next_ease_factor",
    "settings",
]
