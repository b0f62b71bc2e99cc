import pytest

from podcast_pipeline.progress import (
    STAGE_ORDER,
    calculate_overall_percent,
    estimate_time_remaining,
    stage_percent_from_overall,
    status_for_stage,
)


@pytest.mark.parametrize(
    "stage, stage_percent, expected",
    [
        ("queued", 50, 0),
        ("downloading", 0, 0),
        ("downloading", 50, 10),
        ("transcribing", 100, 50),
        ("analyzing", 50, 60),
        ("generating", 100, 100),
        ("completed", 0, 100),
        ("failed", 80, 0),
        ("transcribing", 250, 50),
        ("transcribing", -10, 20),
    ],
)
def test_calculate_overall_percent(stage, stage_percent, expected):
    assert calculate_overall_percent(stage, stage_percent) == expected


def test_estimate_counts_remaining_and_later_stages():
    # Half of downloading (15s) plus transcribing, analyzing and generating
    assert estimate_time_remaining("downloading", 50) == 15 + 60 + 45 + 90


def test_estimate_is_zero_for_terminal_stages():
    assert estimate_time_remaining("completed", 0) == 0
    assert estimate_time_remaining("failed", 50) == 0


def test_estimate_decreases_along_the_pipeline():
    estimates = [estimate_time_remaining(stage, 0) for stage in STAGE_ORDER]
    assert estimates == sorted(estimates, reverse=True)


@pytest.mark.parametrize(
    "stage, expected",
    [("queued", "pending"), ("downloading", "processing"), ("generating", "processing"), ("completed", "completed"), ("failed", "failed")],
)
def test_status_for_stage(stage, expected):
    assert status_for_stage(stage) == expected


def test_stage_percent_from_overall_inverts_the_band():
    assert stage_percent_from_overall("analyzing", 60) == pytest.approx(50.0)
    assert stage_percent_from_overall("completed", 100) == 100.0
    assert stage_percent_from_overall("queued", 0) == 0.0
