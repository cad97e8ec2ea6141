from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Quality(IntEnum):
    """SM-2 recall quality on the 0-5 scale."""

    complete_blackout = 0
    incorrect_remembered = 1
    incorrect_easy_recall = 2
    correct_difficult = 3
    correct_hesitation = 4
    perfect = 5

    @property
    def is_successful(self) -> bool:
        return self >= Quality.correct_difficult


class ReviewOutcome(str, Enum):
    """Simplified three-button grade chosen by the learner.

    UI の「Hard / Good / Easy」ボタンに対応する。品質スコアへの変換は
    QUALITY_BY_OUTCOME の一か所だけで行う。
    """

    hard = "hard"
    good = "good"
    easy = "easy"

    @property
    def quality(self) -> Quality:
        return QUALITY_BY_OUTCOME[self]


QUALITY_BY_OUTCOME: dict[ReviewOutcome, Quality] = {
    ReviewOutcome.hard: Quality.incorrect_easy_recall,
    ReviewOutcome.good: Quality.correct_difficult,
    ReviewOutcome.easy: Quality.perfect,
}


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReviewState(BaseModel):
    """Spaced-repetition memory of one (user, item) pair.

    1 ユーザ × 1 カードの復習状態。スケジューラは常に完全な新状態を返し、
    部分更新は行わない。永続化は呼び出し側（ReviewStore）の責務。

    - interval_days: 次回までの日数（0 は未復習の番兵値）
    - ease_factor: 間隔の伸び率（下限はスケジューラ側で保証）
    - repetitions: 連続成功回数（失敗で 0 に戻る）
    - review_count: 失敗も含めた通算採点回数
    """

    model_config = ConfigDict(frozen=True)

    interval_days: int = Field(ge=0)
    ease_factor: float = Field(gt=0)
    repetitions: int = Field(ge=0)
    due_date: datetime
    last_reviewed_at: datetime | None = None
    review_count: int = Field(default=0, ge=0)
    last_outcome: ReviewOutcome | None = None

    @field_validator("due_date", "last_reviewed_at", mode="after")
    @classmethod
    def _require_timezone(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return ensure_aware(value)

    @property
    def is_new(self) -> bool:
        return self.last_reviewed_at is None

    @property
    def phase(self) -> str:
        """Coarse state machine phase: "new" until the first success, then "review"."""
        return "new" if self.repetitions == 0 else "review"
