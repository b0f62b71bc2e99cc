import asyncio
import logging
from typing import List, Optional, Tuple

from .common_exceptions import (
    InvalidInputError,
    NotFoundError,
    get_user_friendly_message,
    log_error,
    normalize_error,
)
from .logging_utils import log_operation_complete, log_operation_start
from .podcast_models import (
    ContentAnalysis,
    PodcastEpisode,
    PodcastRequest,
    PodcastTaskCreationResponse,
    ProgressStage,
    TaskProgress,
    TaskStatus,
)
from .progress import calculate_overall_percent
from .validations import extract_video_id, validate_request

# Configure logging
logger = logging.getLogger(__name__)

TASK_QUEUED_MESSAGE = "Task queued"
COMPLETED_MESSAGE = "Podcast generated successfully"


class PodcastGeneratorService:
    """
    Orchestrates the source-to-podcast pipeline: resolve the source, analyze it,
    synthesize the episode and record progress at every step.
    """

    def __init__(
        self,
        status_manager,
        task_runner,
        video_resolver,
        text_resolver,
        article_resolver,
        analyzer,
        synthesizer,
    ):
        self.status_manager = status_manager
        self.task_runner = task_runner
        self.video_resolver = video_resolver
        self.text_resolver = text_resolver
        self.article_resolver = article_resolver
        self.analyzer = analyzer
        self.synthesizer = synthesizer
        logger.info("PodcastGeneratorService initialized")

    async def submit_task(self, request_data: PodcastRequest) -> PodcastTaskCreationResponse:
        """
        Validate and persist a request, then start its pipeline in the background.

        Returns immediately with the queued task. Submission failures after the
        row exists are recorded on the task rather than raised.

        Raises:
            InvalidInputError: If the request is malformed or an identical task
                for the same owner is still pending or processing
        """
        validate_request(request_data)

        existing = self.status_manager.find_active_task(
            request_data.owner_id, request_data.input_type, request_data.source_reference
        )
        if existing:
            raise InvalidInputError(
                f"An identical task is already in progress: {existing.id}",
                details={"task_id": existing.id},
            )

        # Saved before the task row exists so a failure here leaves nothing pending
        if request_data.voice_pair:
            self.status_manager.save_voice_preference(request_data.owner_id, *request_data.voice_pair)

        db_task = self.status_manager.create_task(request_data)
        task_id = db_task.id
        logger.info(f"Created task {task_id} for {request_data.input_type} input")

        self._report(task_id, "queued", 0, TASK_QUEUED_MESSAGE)

        try:
            self.task_runner.submit_task(task_id, self.run_task, task_id, request_data)
            logger.info(f"Task {task_id} submitted for background processing")
        except Exception as e:
            logger.error(f"Failed to submit task {task_id} for background processing: {str(e)}")
            self.status_manager.set_error(task_id, "Failed to start background processing")

        return PodcastTaskCreationResponse(
            task_id=task_id,
            status="pending",
            stage="queued",
            message=TASK_QUEUED_MESSAGE,
            queued_at=db_task.created_at,
        )

    async def run_task(self, task_id: str, request_data: PodcastRequest) -> None:
        """
        Background wrapper around the pipeline. Every failure ends in a
        ``failed`` task carrying a user-facing message; nothing propagates.
        """
        try:
            log_operation_start("podcast generation", task_id, input_type=request_data.input_type)
            await self._execute_podcast_generation_core(task_id, request_data)
            log_operation_complete("podcast generation", task_id)

        except asyncio.CancelledError:
            logger.info(f"Task {task_id} was cancelled")
            self._record_failure(task_id, "Task was cancelled")
            raise

        except Exception as e:
            app_error = normalize_error(e)
            log_error(app_error, {
                "task_id": task_id,
                "input_type": request_data.input_type,
                "mode": request_data.length_mode,
            })
            self._record_failure(task_id, get_user_friendly_message(app_error))

    def _record_failure(self, task_id: str, user_message: str) -> None:
        self.status_manager.update_progress(task_id, "failed", 0, user_message)
        self.status_manager.set_error(task_id, user_message)

    def _verified_source_reference(self, task_id: str, request_data: PodcastRequest) -> str:
        """
        Source reference to process, re-read from the stored task.

        For video input the stored URL wins when the two disagree on the video id
        or the requested one cannot be parsed.
        """
        db_task = self.status_manager.get_task(task_id)
        if not db_task:
            raise NotFoundError(f"Task {task_id} not found in database", details={"task_id": task_id})

        source_reference = request_data.source_reference
        if request_data.input_type != "video":
            return source_reference

        input_video_id = extract_video_id(source_reference)
        stored_video_id = extract_video_id(db_task.source_reference)

        if input_video_id and stored_video_id and input_video_id != stored_video_id:
            logger.error(
                f"[Task {task_id}] URL mismatch detected: input {input_video_id}, stored {stored_video_id}. "
                f"Using stored URL"
            )
            source_reference = db_task.source_reference
        elif not input_video_id and stored_video_id:
            logger.warning(f"[Task {task_id}] Input URL cannot be parsed, using stored URL: {db_task.source_reference}")
            source_reference = db_task.source_reference
        elif input_video_id:
            logger.info(f"[Task {task_id}] URL verified (video id {input_video_id})")

        return source_reference

    async def _execute_podcast_generation_core(self, task_id: str, request_data: PodcastRequest) -> PodcastEpisode:
        source_reference = self._verified_source_reference(task_id, request_data)

        self._report(task_id, "queued", 0, "Task picked up, preparing to process", status="processing")

        if request_data.input_type == "video":
            analysis = await self._analyze_video(task_id, source_reference)
        elif request_data.input_type == "text":
            analysis = await self._analyze_text(task_id, source_reference, request_data)
        elif request_data.input_type == "article":
            analysis = await self._analyze_article(task_id, source_reference, request_data)
        else:
            raise InvalidInputError(f"Unsupported input type: {request_data.input_type}")

        if analysis.title:
            logger.info(f"[Task {task_id}] Analysis completed. Title: {analysis.title}")
        else:
            logger.warning(f"[Task {task_id}] Analysis completed but title is missing")

        self.status_manager.update_results(
            task_id,
            title=analysis.title,
            transcript=analysis.transcript,
            summary=analysis.summary,
            script=analysis.script,
        )

        voices = self._voices_for(request_data)
        logger.info(f"[Task {task_id}] Generating podcast with mode: {request_data.length_mode}")
        self._report(task_id, "generating", 0, "Generating podcast audio")

        episode = await self.synthesizer.synthesize_episode(
            analysis.summary,
            mode=request_data.length_mode,
            voices=voices,
            title=analysis.title,
        )
        logger.info(f"[Task {task_id}] Podcast generated: {episode.audio_url}")

        self.status_manager.update_results(
            task_id,
            episode_id=episode.episode_id,
            episode_audio_url=episode.audio_url,
            episode_title=episode.title,
            episode_script=episode.scripts,
            episode_duration_seconds=episode.duration_seconds,
        )
        self._report(task_id, "completed", 100, COMPLETED_MESSAGE)
        return episode

    async def _analyze_video(self, task_id: str, url: str) -> ContentAnalysis:
        self._report(task_id, "downloading", 0, "Fetching video information")
        info = await self.video_resolver.fetch_info(url)

        self._report(task_id, "downloading", 25, "Analyzing video content")
        analysis = await self.analyzer.analyze_video_directly(
            url, info.video_id, info.title, info.duration_seconds
        )
        if analysis:
            self._report(task_id, "analyzing", 50, "Content analysis complete")
            return analysis

        logger.info(f"[Task {task_id}] Direct analysis unavailable, downloading and transcribing {info.video_id}")
        self._report(task_id, "downloading", 50, "Downloading audio")
        downloaded = await self.video_resolver.download_audio(url, info.video_id)
        self.status_manager.update_results(
            task_id,
            source_audio_url=downloaded.raw_audio_url,
            source_audio_key=downloaded.raw_audio_key,
        )

        self._report(task_id, "transcribing", 0, "Transcribing audio")
        transcribed = await self.video_resolver.transcribe(downloaded)
        self.status_manager.update_results(task_id, transcript=transcribed.text)
        self._report(task_id, "transcribing", 100, "Transcription complete")

        self._report(task_id, "analyzing", 0, "Analyzing transcript")
        analysis = await self.analyzer.analyze_transcript(transcribed.text)
        self._report(task_id, "analyzing", 50, "Content analysis complete")

        return analysis.model_copy(update={
            "title": transcribed.title or info.title,
            "language": transcribed.language,
        })

    async def _analyze_text(self, task_id: str, text: str, request_data: PodcastRequest) -> ContentAnalysis:
        self._report(task_id, "analyzing", 0, "Analyzing text content")
        resolved = await self.text_resolver.resolve(text)
        analysis = await self.analyzer.analyze(resolved.text, style=request_data.style)
        self._report(task_id, "analyzing", 50, "Content analysis complete")
        return analysis.model_copy(update={"transcript": resolved.text})

    async def _analyze_article(self, task_id: str, url: str, request_data: PodcastRequest) -> ContentAnalysis:
        self._report(task_id, "downloading", 50, "Fetching article content")
        resolved = await self.article_resolver.resolve(url)
        self._report(task_id, "analyzing", 0, "Analyzing article content")
        analysis = await self.analyzer.analyze(resolved.text, title_hint=resolved.title, style=request_data.style)
        self._report(task_id, "analyzing", 50, "Content analysis complete")
        return analysis.model_copy(update={"transcript": resolved.text})

    def _report(
        self,
        task_id: str,
        stage: ProgressStage,
        stage_percent: float,
        message: str,
        status: Optional[TaskStatus] = None,
    ) -> None:
        """Record progress given as a percent of ``stage``, mapped onto the overall scale."""
        self.status_manager.update_progress(
            task_id, stage, calculate_overall_percent(stage, stage_percent), message, status=status
        )

    def _voices_for(self, request_data: PodcastRequest) -> Optional[Tuple[str, str]]:
        """Explicit pair from the request, else the owner's saved pair, else None."""
        if request_data.voice_pair:
            return request_data.voice_pair
        preference = self.status_manager.get_voice_preference(request_data.owner_id)
        if preference and preference.host1_voice_id and preference.host2_voice_id:
            return (preference.host1_voice_id, preference.host2_voice_id)
        return None

    # --- Queries ---

    def get_progress(self, task_id: str, owner_id: str) -> TaskProgress:
        return self.status_manager.get_progress(task_id, owner_id)

    def list_tasks(self, owner_id: str, limit: int = 100, offset: int = 0) -> List:
        return self.status_manager.list_tasks(owner_id, limit=limit, offset=offset)

    def delete_task(self, task_id: str, owner_id: str) -> None:
        """
        Raises:
            NotFoundError: If the task does not exist for this owner
            InvalidInputError: If the task is still running
        """
        if self.task_runner.is_task_running(task_id):
            raise InvalidInputError(f"Task {task_id} is still running and cannot be deleted")
        if not self.status_manager.delete_task(task_id, owner_id):
            raise NotFoundError(f"Task {task_id} not found", details={"task_id": task_id})
