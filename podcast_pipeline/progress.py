"""
Stage bands and time estimates for task progress reporting.
"""

from typing import Dict, Tuple

from .podcast_models import ProgressStage, TaskStatus

# Overall percent band covered by each stage.
STAGE_RANGES: Dict[str, Tuple[int, int]] = {
    "queued": (0, 0),
    "downloading": (0, 20),
    "transcribing": (20, 50),
    "analyzing": (50, 70),
    "generating": (70, 100),
    "completed": (100, 100),
    "failed": (0, 0),
}

# Typical wall-clock seconds spent in each stage.
STAGE_DURATIONS: Dict[str, int] = {
    "queued": 5,
    "downloading": 30,
    "transcribing": 60,
    "analyzing": 45,
    "generating": 90,
    "completed": 0,
    "failed": 0,
}

STAGE_ORDER = ["queued", "downloading", "transcribing", "analyzing", "generating"]


def _clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, value))


def calculate_overall_percent(stage: ProgressStage, stage_percent: float) -> int:
    """Map a percent local to ``stage`` onto the overall 0-100 scale."""
    start, end = STAGE_RANGES[stage]
    return round(start + (end - start) * (_clamp_percent(stage_percent) / 100))


def estimate_time_remaining(stage: ProgressStage, stage_percent: float) -> int:
    """Estimate the seconds left: the rest of this stage plus every later stage."""
    if stage not in STAGE_ORDER:
        return 0
    current_remaining = STAGE_DURATIONS[stage] * (1 - _clamp_percent(stage_percent) / 100)
    later_stages = STAGE_ORDER[STAGE_ORDER.index(stage) + 1:]
    return round(current_remaining + sum(STAGE_DURATIONS[s] for s in later_stages))


def status_for_stage(stage: ProgressStage) -> TaskStatus:
    """Coarse status implied by a stage. A queued task is still pending until a worker picks it up."""
    if stage == "queued":
        return "pending"
    if stage == "completed":
        return "completed"
    if stage == "failed":
        return "failed"
    return "processing"


def stage_percent_from_overall(stage: ProgressStage, overall_percent: float) -> float:
    """Inverse of calculate_overall_percent, used to derive an ETA from an overall percent."""
    start, end = STAGE_RANGES[stage]
    if end == start:
        return 100.0 if stage == "completed" else 0.0
    return _clamp_percent((overall_percent - start) * 100 / (end - start))
