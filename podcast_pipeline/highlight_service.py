"""
Highlight extraction: pick a segment of a finished episode with the LLM, then cut and store it.
"""

import logging
import math
from typing import List, Sequence

from .common_exceptions import (
    InvalidInputError,
    LLMProcessingError,
    NotFoundError,
    log_error,
    normalize_error,
)
from .json_utils import ParseError, parse_segments_output
from .logging_utils import log_operation_complete, log_operation_start
from .podcast_models import HighlightRecord, HighlightSegment, ScriptTurn
from .prompts import HIGHLIGHT_SYSTEM_PROMPT, HIGHLIGHT_TEMPLATE

logger = logging.getLogger(__name__)

# Below this share of the target character count a segment is widened
SHORT_SEGMENT_RATIO = 0.8


def format_indexed_transcript(scripts: Sequence[ScriptTurn]) -> str:
    return "\n".join(f"[{index}] {turn.speaker_name}: {turn.content}" for index, turn in enumerate(scripts))


def format_excerpt(scripts: Sequence[ScriptTurn]) -> str:
    return "\n".join(f"{turn.speaker_name}: {turn.content}" for turn in scripts)


def _as_index(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise LLMProcessingError(f"Highlight {field_name} is not an integer: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise LLMProcessingError(f"Highlight {field_name} is not an integer: {value!r}") from e


class HighlightExtractor:
    """Asks the LLM for one segment of the script and turns it into a timed HighlightSegment."""

    def __init__(
        self,
        llm_service,
        language: str = "English",
        seconds_per_char: float = 0.3,
        max_duration: int = 60,
    ):
        self.llm_service = llm_service
        self.language = language
        self.seconds_per_char = seconds_per_char
        self.max_duration = max_duration

    async def identify_highlight(self, scripts: Sequence[ScriptTurn], target_duration: int) -> HighlightSegment:
        """
        Select the most compelling segment lasting about ``target_duration`` seconds.

        Times are estimated from character counts; the duration is the target,
        capped at the configured ceiling.

        Raises:
            InvalidInputError: If there is no script or the target is not positive
            LLMProcessingError: If the model reply holds no usable segment
        """
        if not scripts:
            raise InvalidInputError("Podcast scripts are empty")
        if target_duration <= 0:
            raise InvalidInputError(f"Target duration must be positive, got {target_duration}")

        target_chars = math.ceil(target_duration / self.seconds_per_char)
        prompt = HIGHLIGHT_TEMPLATE.format(
            target_duration=target_duration,
            target_chars=target_chars,
            seconds_per_char=self.seconds_per_char,
            max_duration=self.max_duration,
            transcript=format_indexed_transcript(scripts),
        )
        raw = await self.llm_service.invoke(prompt, system_prompt=HIGHLIGHT_SYSTEM_PROMPT.format(language=self.language))
        logger.debug(f"[Highlight] Raw LLM response (first 500 chars): {raw[:500]}")

        parsed = parse_segments_output(raw)
        if isinstance(parsed, ParseError):
            raise LLMProcessingError(f"Failed to identify highlights: {parsed.reason}", details={"preview": raw[:200]})
        if not parsed.items:
            raise LLMProcessingError("Failed to identify highlights: model returned no segments")

        # Only one segment is requested; extras are ignored
        chosen = parsed.items[0]
        last_index = len(scripts) - 1
        start_index = min(max(_as_index(chosen.get("startIndex", 0), "startIndex"), 0), last_index)
        end_index = min(max(_as_index(chosen.get("endIndex", start_index), "endIndex"), start_index), last_index)

        transcript = format_excerpt(scripts[start_index:end_index + 1])
        char_count = len(transcript)

        previous_chars = sum(len(turn.content) for turn in scripts[:start_index])
        start_time = math.floor(previous_chars * self.seconds_per_char)

        if char_count < target_chars * SHORT_SEGMENT_RATIO:
            extended_end = end_index
            extended_chars = sum(len(turn.content) for turn in scripts[start_index:extended_end + 1])
            while extended_chars < target_chars and extended_end < last_index:
                extended_end += 1
                extended_chars += len(scripts[extended_end].content)
            logger.info(
                f"[Highlight] Extended segment from index {end_index} to {extended_end} "
                f"({char_count} -> {extended_chars} chars, target {target_chars})"
            )
            end_index = extended_end
            transcript = format_excerpt(scripts[start_index:end_index + 1])

        if target_duration <= self.max_duration:
            duration = target_duration
        else:
            logger.warning(
                f"[Highlight] Target duration ({target_duration}s) exceeds max allowed ({self.max_duration}s), using max allowed"
            )
            duration = self.max_duration

        return HighlightSegment(
            title=str(chosen.get("title") or "Highlight"),
            description=str(chosen.get("description") or ""),
            start_time=start_time,
            end_time=start_time + duration,
            duration=duration,
            transcript=transcript,
            reason=chosen.get("reason"),
        )


class HighlightService:
    """Runs highlight extraction for a completed task and persists the clips that succeed."""

    def __init__(self, status_manager, extractor: HighlightExtractor, clip_service):
        self.status_manager = status_manager
        self.extractor = extractor
        self.clip_service = clip_service

    def _scripts_for(self, task) -> List[ScriptTurn]:
        scripts = self.status_manager.episode_scripts(task)
        if scripts:
            return scripts
        if task.transcript and task.transcript.strip():
            return [ScriptTurn(speaker_id="host1", speaker_name="Host", content=task.transcript)]
        if task.summary and task.summary.strip():
            return [ScriptTurn(speaker_id="host1", speaker_name="Host", content=task.summary)]
        raise InvalidInputError("Task has no script, transcript or summary to extract highlights from")

    async def generate_highlights(
        self,
        task_id: str,
        owner_id: str,
        target_durations: Sequence[int] = (60,),
    ) -> List[HighlightRecord]:
        """
        Extract, cut and save one highlight per target duration, in order.

        A failure for one duration is logged and skipped.

        Raises:
            NotFoundError: If the task does not exist for this owner
            InvalidInputError: If the task is not completed or has no episode audio
        """
        task = self.status_manager.get_task(task_id, owner_id)
        if not task:
            raise NotFoundError(f"Task {task_id} not found", details={"task_id": task_id})
        if task.status != "completed":
            raise InvalidInputError(f"Task {task_id} is not completed", details={"status": task.status})
        if not task.episode_audio_url:
            raise InvalidInputError(f"Task {task_id} has no episode audio")

        log_operation_start("highlight generation", task_id, targets=list(target_durations))
        scripts = self._scripts_for(task)
        episode_duration = task.episode_duration_seconds

        records = []
        for target in target_durations:
            try:
                segment = await self.extractor.identify_highlight(scripts, target)

                if episode_duration and segment.end_time > episode_duration:
                    shifted_start = max(0, math.floor(episode_duration - segment.duration))
                    logger.info(
                        f"[Highlight] Shifting window {segment.start_time}-{segment.end_time}s "
                        f"to start at {shifted_start}s (episode is {episode_duration}s)"
                    )
                    segment = segment.model_copy(update={
                        "start_time": shifted_start,
                        "end_time": shifted_start + segment.duration,
                    })

                clip = await self.clip_service.clip_from_url_and_upload(
                    task.episode_audio_url, segment.start_time, segment.duration, owner_id, task_id
                )
                record = self.status_manager.save_highlight(
                    task_id, owner_id, segment, clip.url, clip.file_key
                )
                records.append(record)
                logger.info(f"[Highlight] Created {target}s highlight {record.id} for task {task_id}")
            except Exception as e:
                log_error(normalize_error(e), {"task_id": task_id, "target_duration": target})
                continue

        log_operation_complete(
            "highlight generation", task_id, success=bool(records), created=f"{len(records)}/{len(target_durations)}"
        )
        return records

    def list_highlights(self, task_id: str, owner_id: str) -> List[HighlightRecord]:
        return self.status_manager.list_highlights(task_id, owner_id)

    def delete_highlight(self, highlight_id: str, owner_id: str) -> None:
        """
        Raises:
            NotFoundError: If the highlight does not exist for this owner
        """
        if not self.status_manager.delete_highlight(highlight_id, owner_id):
            raise NotFoundError(f"Highlight {highlight_id} not found", details={"highlight_id": highlight_id})
