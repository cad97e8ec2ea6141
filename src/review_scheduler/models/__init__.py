from .review import QUALITY_BY_OUTCOME, Quality, ReviewOutcome, ReviewState

__all__ = [
    "QUALITY_BY_OUTCOME",
    "Quality",
    "ReviewOutcome",
    "ReviewState",
]
