from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone, tzinfo
from numbers import Real
from zoneinfo import ZoneInfo

from .config import MIN_EASE_FACTOR, SchedulerParams
from .errors import InvalidQualityError, InvalidStateError
from .logging import logger
from .models.review import QUALITY_BY_OUTCOME, Quality, ReviewOutcome, ReviewState, ensure_aware


# --- low-level helpers ---
def _zone(tz: str | tzinfo) -> tzinfo:
    return ZoneInfo(tz) if isinstance(tz, str) else tz


def resolve_now(now: datetime | None = None) -> datetime:
    """Current UTC time when ``now`` is None; naive values are read as UTC."""
    if now is None:
        return datetime.now(timezone.utc)
    return ensure_aware(now)


def _round_half_up(value: float) -> int:
    # x.5 は常に切り上げ
    return int(math.floor(value + 0.5))


def _require_count(field: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidStateError(field, value, "must be an integer")
    if value < 0:
        raise InvalidStateError(field, value, "must not be negative")
    return value


def _require_quality(value: object) -> Quality:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQualityError(value)
    if not 0 <= value <= 5:
        raise InvalidQualityError(value)
    return Quality(value)


def _resolve_ease(value: object, params: SchedulerParams) -> float:
    if value is None:
        return params.default_ease_factor
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        raise InvalidStateError("prior_ease_factor", value, "must be a finite number")
    ease = float(value)
    if ease < params.min_ease_factor:
        logger.warning(
            "srs_ease_factor_clamped",
            prior_ease_factor=ease,
            min_ease_factor=params.min_ease_factor,
        )
        ease = params.min_ease_factor
    return ease


# --- public operations ---
def next_ease_factor(prior_ease_factor: float, quality: int, min_ease_factor: float = MIN_EASE_FACTOR) -> float:
    """SM-2 ease update: EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02)), floored."""
    penalty = 5 - quality
    return max(min_ease_factor, prior_ease_factor + (0.1 - penalty * (0.08 + penalty * 0.02)))


def calculate_due_date(
    interval_days: int,
    from_: datetime | None = None,
    tz: str | tzinfo = "UTC",
) -> datetime:
    """Return the reference time shifted by ``interval_days`` calendar days.

    指定タイムゾーンの壁時計で日数を加算するため、夏時間の切替日を
    跨いでも時刻（時:分）は保たれる。
    """
    start = resolve_now(from_).astimezone(_zone(tz))
    return start + timedelta(days=interval_days)


def is_due(due_date: datetime, now: datetime | None = None) -> bool:
    """True iff ``now >= due_date``."""
    current = resolve_now(now).astimezone(timezone.utc)
    return current >= ensure_aware(due_date).astimezone(timezone.utc)


def days_until_due(due_date: datetime, now: datetime | None = None, tz: str | tzinfo = "UTC") -> int:
    """Calendar days from ``now`` until ``due_date`` in ``tz``; ``<= 0`` means due."""
    zone = _zone(tz)
    current = resolve_now(now).astimezone(zone).date()
    return (ensure_aware(due_date).astimezone(zone).date() - current).days


def _next_state(
    prior_interval: object,
    prior_ease_factor: object,
    prior_repetitions: object,
    quality: Quality,
    now: datetime | None,
    prior_review_count: object,
    params: SchedulerParams,
    last_outcome: ReviewOutcome | None,
) -> ReviewState:
    interval = _require_count("prior_interval", prior_interval)
    repetitions = _require_count("prior_repetitions", prior_repetitions)
    review_count = _require_count("prior_review_count", prior_review_count)
    ease = next_ease_factor(_resolve_ease(prior_ease_factor, params), quality, params.min_ease_factor)

    if quality.is_successful:
        repetitions += 1
        if repetitions == 1:
            interval = params.first_interval_days
        elif repetitions == 2:
            interval = params.second_interval_days
        else:
            grown = interval * ease
            # inf もここで上限に丸まる
            if grown >= params.max_interval_days:
                interval = params.max_interval_days
            else:
                interval = max(1, _round_half_up(grown))
    else:
        repetitions = 0
        interval = params.lapse_interval_days

    reviewed_at = resolve_now(now).astimezone(params.tzinfo)
    return ReviewState(
        interval_days=interval,
        ease_factor=ease,
        repetitions=repetitions,
        due_date=calculate_due_date(interval, reviewed_at, params.tzinfo),
        last_reviewed_at=reviewed_at,
        review_count=review_count + 1,
        last_outcome=last_outcome,
    )


def compute_next_review(
    prior_interval: int,
    prior_ease_factor: float | None,
    prior_repetitions: int,
    outcome: ReviewOutcome,
    now: datetime | None = None,
    *,
    prior_review_count: int = 0,
    params: SchedulerParams | None = None,
) -> ReviewState:
    """Compute the next review state from a prior state and a Hard/Good/Easy grade.

    採点結果（Hard/Good/Easy）を SM-2 の品質スコア（2/3/5）へ変換し、
    次回の間隔・イーズ・連続成功回数・期日を計算して新しい状態を返す。
    Hard は失敗扱いとなり連続成功回数は 0、間隔は 1 日へ戻る。

    - prior_ease_factor=None は新規カード（初期イーズを使用）
    - 負の interval/repetitions は InvalidStateError
    - 下限未満のイーズは下限へ丸めて継続
    """
    if not isinstance(outcome, ReviewOutcome):
        raise TypeError(f"outcome must be a ReviewOutcome, got {type(outcome).__name__}")
    return _next_state(
        prior_interval,
        prior_ease_factor,
        prior_repetitions,
        QUALITY_BY_OUTCOME[outcome],
        now,
        prior_review_count,
        params or SchedulerParams.from_settings(),
        outcome,
    )


def compute_next_review_from_quality(
    prior_interval: int,
    prior_ease_factor: float | None,
    prior_repetitions: int,
    quality: int,
    now: datetime | None = None,
    *,
    prior_review_count: int = 0,
    params: SchedulerParams | None = None,
) -> ReviewState:
    """Same as compute_next_review but graded on the full SM-2 0-5 scale."""
    return _next_state(
        prior_interval,
        prior_ease_factor,
        prior_repetitions,
        _require_quality(quality),
        now,
        prior_review_count,
        params or SchedulerParams.from_settings(),
        None,
    )


class SpacedRepetitionScheduler:
    """SM-2 scheduler bound to a fixed set of parameters.

    Stateless apart from its parameters; safe to share between threads.
    """

    def __init__(self, params: SchedulerParams | None = None) -> None:
        self.params = params or SchedulerParams.from_settings()

    def new_state(self, now: datetime | None = None) -> ReviewState:
        """State of a never-reviewed card, due immediately."""
        return ReviewState(
            interval_days=0,
            ease_factor=self.params.default_ease_factor,
            repetitions=0,
            due_date=resolve_now(now).astimezone(self.params.tzinfo),
            last_reviewed_at=None,
        )

    def schedule(self, state: ReviewState, outcome: ReviewOutcome, now: datetime | None = None) -> ReviewState:
        return compute_next_review(
            state.interval_days,
            state.ease_factor,
            state.repetitions,
            outcome,
            now,
            prior_review_count=state.review_count,
            params=self.params,
        )

    def schedule_quality(self, state: ReviewState, quality: int, now: datetime | None = None) -> ReviewState:
        return compute_next_review_from_quality(
            state.interval_days,
            state.ease_factor,
            state.repetitions,
            quality,
            now,
            prior_review_count=state.review_count,
            params=self.params,
        )

    def is_due(self, state: ReviewState, now: datetime | None = None) -> bool:
        return is_due(state.due_date, now)

    def days_until_due(self, state: ReviewState, now: datetime | None = None) -> int:
        return days_until_due(state.due_date, now, self.params.tzinfo)
