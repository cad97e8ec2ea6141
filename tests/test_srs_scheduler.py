from datetime import datetime, timedelta, timezone

import pytest

from review_scheduler.config import SchedulerParams
from review_scheduler.errors import InvalidQualityError, InvalidStateError
from review_scheduler.models.review import Quality, ReviewOutcome
from review_scheduler.srs import (
    compute_next_review,
    compute_next_review_from_quality,
    next_ease_factor,
)

NOW = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
PARAMS = SchedulerParams()


@pytest.mark.parametrize("outcome", list(ReviewOutcome))
@pytest.mark.parametrize("prior_ease", [1.3, 1.31, 1.5, 2.5, 3.2])
@pytest.mark.parametrize("prior_repetitions,prior_interval", [(0, 0), (1, 1), (2, 6), (5, 40), (12, 365)])
def test_ease_and_interval_floors_hold(outcome, prior_ease, prior_repetitions, prior_interval):
    state = compute_next_review(prior_interval, prior_ease, prior_repetitions, outcome, NOW, params=PARAMS)

    assert state.ease_factor >= 1.3
    assert state.interval_days >= 1
    assert state.repetitions >= 0
    assert state.due_date > NOW


@pytest.mark.parametrize("prior_repetitions,prior_interval", [(1, 1), (2, 6), (3, 14), (9, 120)])
def test_hard_resets_progress(prior_repetitions, prior_interval):
    state = compute_next_review(prior_interval, 2.5, prior_repetitions, ReviewOutcome.hard, NOW, params=PARAMS)

    assert state.repetitions == 0
    assert state.interval_days == 1
    assert state.phase == "new"


def test_first_success_schedules_one_day():
    state = compute_next_review(0, None, 0, ReviewOutcome.good, NOW, params=PARAMS)

    assert state.repetitions == 1
    assert state.interval_days == 1
    assert state.ease_factor == pytest.approx(2.36)
    assert state.due_date == NOW + timedelta(days=1)
    assert state.last_reviewed_at == NOW
    assert state.phase == "review"


def test_second_success_schedules_six_days():
    state = compute_next_review(1, 2.5, 1, ReviewOutcome.good, NOW, params=PARAMS)

    assert state.repetitions == 2
    assert state.interval_days == 6


def test_third_success_grows_geometrically():
    state = compute_next_review(6, 2.5, 2, ReviewOutcome.good, NOW, params=PARAMS)

    assert state.ease_factor == pytest.approx(2.36)
    assert state.interval_days == 14
    assert state.repetitions == 3
    assert state.due_date == NOW + timedelta(days=14)


def test_easy_raises_ease_factor():
    state = compute_next_review(6, 2.5, 2, ReviewOutcome.easy, NOW, params=PARAMS)

    assert state.ease_factor == pytest.approx(2.6)
    assert state.interval_days == 16


def test_interval_rounds_half_up():
    # 5 * 2.5 = 12.5 -> 13 (round() would give 12)
    state = compute_next_review(5, 2.4, 3, ReviewOutcome.easy, NOW, params=PARAMS)

    assert state.ease_factor == pytest.approx(2.5)
    assert state.interval_days == 13


def test_identical_inputs_give_identical_output():
    first = compute_next_review(6, 2.22, 2, ReviewOutcome.easy, NOW, params=PARAMS)
    second = compute_next_review(6, 2.22, 2, ReviewOutcome.easy, NOW, params=PARAMS)

    assert first == second
    assert first.model_dump() == second.model_dump()


def test_ease_below_floor_is_clamped_and_continues():
    state = compute_next_review(10, 1.0, 4, ReviewOutcome.good, NOW, params=PARAMS)

    assert state.ease_factor == pytest.approx(1.3)
    assert state.interval_days == 13


def test_ease_never_drops_below_floor_on_repeated_lapses():
    ease = 2.5
    for _ in range(20):
        ease = compute_next_review(1, ease, 0, ReviewOutcome.hard, NOW, params=PARAMS).ease_factor

    assert ease == pytest.approx(1.3)


@pytest.mark.parametrize(
    "kwargs,field",
    [
        ({"prior_interval": -1}, "prior_interval"),
        ({"prior_repetitions": -3}, "prior_repetitions"),
        ({"prior_interval": 2.5}, "prior_interval"),
        ({"prior_ease_factor": float("nan")}, "prior_ease_factor"),
        ({"prior_ease_factor": float("inf")}, "prior_ease_factor"),
    ],
)
def test_invalid_prior_state_is_rejected(kwargs, field):
    args = {"prior_interval": 6, "prior_ease_factor": 2.5, "prior_repetitions": 2}
    args.update(kwargs)

    with pytest.raises(InvalidStateError) as excinfo:
        compute_next_review(outcome=ReviewOutcome.good, now=NOW, params=PARAMS, **args)

    assert excinfo.value.field == field
    assert isinstance(excinfo.value, ValueError)


def test_string_outcome_is_rejected():
    with pytest.raises(TypeError, match="ReviewOutcome"):
        compute_next_review(0, None, 0, "good", NOW, params=PARAMS)


def test_outcome_quality_mapping():
    assert ReviewOutcome.hard.quality == Quality.incorrect_easy_recall == 2
    assert ReviewOutcome.good.quality == Quality.correct_difficult == 3
    assert ReviewOutcome.easy.quality == Quality.perfect == 5


@pytest.mark.parametrize(
    "quality,expected_ease",
    [(0, 1.7), (1, 1.96), (2, 2.18), (3, 2.36), (4, 2.5), (5, 2.6)],
)
def test_ease_formula_on_full_scale(quality, expected_ease):
    assert next_ease_factor(2.5, quality) == pytest.approx(expected_ease)


def test_full_scale_entry_point_treats_four_as_success():
    state = compute_next_review_from_quality(6, 2.5, 2, 4, NOW, params=PARAMS)

    assert state.repetitions == 3
    assert state.interval_days == 15
    assert state.ease_factor == pytest.approx(2.5)
    assert state.last_outcome is None


@pytest.mark.parametrize("quality", [-1, 6, True, 3.0, "3"])
def test_full_scale_entry_point_rejects_bad_quality(quality):
    with pytest.raises(InvalidQualityError):
        compute_next_review_from_quality(0, None, 0, quality, NOW, params=PARAMS)


def test_custom_params_change_default_ease_and_early_intervals():
    params = SchedulerParams(default_ease_factor=2.0, first_interval_days=2, second_interval_days=5)

    first = compute_next_review(0, None, 0, ReviewOutcome.good, NOW, params=params)
    second = compute_next_review(first.interval_days, first.ease_factor, first.repetitions, ReviewOutcome.good, NOW, params=params)

    assert first.ease_factor == pytest.approx(1.86)
    assert first.interval_days == 2
    assert second.interval_days == 5


def test_review_count_and_last_outcome_are_tracked():
    state = compute_next_review(1, 2.5, 1, ReviewOutcome.hard, NOW, prior_review_count=4, params=PARAMS)

    assert state.review_count == 5
    assert state.last_outcome is ReviewOutcome.hard


def test_huge_ease_factor_is_capped_at_max_interval():
    state = compute_next_review(6, 1e308, 5, ReviewOutcome.good, NOW, params=PARAMS)

    assert state.interval_days == PARAMS.max_interval_days
    assert state.due_date == NOW + timedelta(days=PARAMS.max_interval_days)


def test_custom_max_interval_caps_growth():
    params = SchedulerParams(max_interval_days=30)
    state = compute_next_review(20, 2.5, 4, ReviewOutcome.easy, NOW, params=params)

    assert state.interval_days == 30
