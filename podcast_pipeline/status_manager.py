"""
Status Manager for tracking asynchronous podcast generation tasks.
Provides database-backed storage of tasks, their progress, highlights and voice preferences.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlmodel import select

from .common_exceptions import NotFoundError
from .database import Database, HighlightDB, PodcastTaskDB, VoicePreferenceDB
from .json_utils import deserialize_json, serialize_json
from .podcast_models import (
    TERMINAL_STAGES,
    HighlightRecord,
    HighlightSegment,
    PodcastRequest,
    ProgressStage,
    ScriptTurn,
    TaskProgress,
    TaskStatus,
)
from .progress import (
    estimate_time_remaining,
    stage_percent_from_overall,
    status_for_stage,
)

logger = logging.getLogger(__name__)

# Columns update_results is allowed to write.
RESULT_FIELDS = (
    "title",
    "transcript",
    "summary",
    "script",
    "source_audio_url",
    "source_audio_key",
    "episode_id",
    "episode_audio_url",
    "episode_title",
    "episode_script",
    "episode_duration_seconds",
)


class StatusManager:
    """
    Manages podcast generation tasks with database persistence.
    Uses SQLModel for database operations.
    """

    def __init__(self, database: Database):
        self.database = database

    # --- Tasks ---

    def create_task(self, request: PodcastRequest) -> PodcastTaskDB:
        """Insert a new task row in ``pending`` / ``queued`` state."""
        with self.database.session() as session:
            db_task = PodcastTaskDB(
                owner_id=request.owner_id,
                input_type=request.input_type,
                source_reference=request.source_reference,
                length_mode=request.length_mode,
                style=request.style,
                voice_id_1=request.voice_id_1,
                voice_id_2=request.voice_id_2,
                status="pending",
                progress_stage="queued",
                progress_percent=0,
                progress_message="Task queued",
            )
            session.add(db_task)
            session.commit()
            session.refresh(db_task)

            logger.info(f"[Progress] Created task {db_task.id} for owner {request.owner_id} ({request.input_type})")
            return db_task

    def get_task(self, task_id: str, owner_id: Optional[str] = None) -> Optional[PodcastTaskDB]:
        """
        Retrieve a task by id.

        When ``owner_id`` is given, a task owned by someone else is treated as missing.
        """
        with self.database.session() as session:
            db_task = session.get(PodcastTaskDB, task_id)
            if not db_task or (owner_id is not None and db_task.owner_id != owner_id):
                logger.debug(f"No task found for task_id: {task_id}")
                return None
            return db_task

    def find_active_task(self, owner_id: str, input_type: str, source_reference: str) -> Optional[PodcastTaskDB]:
        """Return a non-terminal task with the same owner, modality and source, if any."""
        with self.database.session() as session:
            statement = (
                select(PodcastTaskDB)
                .where(PodcastTaskDB.owner_id == owner_id)
                .where(PodcastTaskDB.input_type == input_type)
                .where(PodcastTaskDB.source_reference == source_reference)
                .where(PodcastTaskDB.status.in_(("pending", "processing")))
            )
            return session.exec(statement).first()

    def list_tasks(self, owner_id: str, limit: int = 100, offset: int = 0) -> List[PodcastTaskDB]:
        """List an owner's tasks, newest first."""
        with self.database.session() as session:
            statement = (
                select(PodcastTaskDB)
                .where(PodcastTaskDB.owner_id == owner_id)
                .order_by(PodcastTaskDB.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def delete_task(self, task_id: str, owner_id: str) -> bool:
        """Delete a task and, through the cascade, its highlights."""
        with self.database.session() as session:
            db_task = session.get(PodcastTaskDB, task_id)
            if not db_task or db_task.owner_id != owner_id:
                logger.warning(f"Cannot delete - task_id not found: {task_id}")
                return False
            session.delete(db_task)
            session.commit()
            logger.info(f"Deleted task {task_id}")
            return True

    # --- Progress ---

    def update_progress(
        self,
        task_id: str,
        stage: ProgressStage,
        percent: float,
        message: str = "",
        status: Optional[TaskStatus] = None,
    ) -> Optional[PodcastTaskDB]:
        """
        Record a stage transition and keep the status column in step with it.

        ``status`` overrides the status implied by ``stage``; a worker passes
        ``processing`` when it picks up a still-queued task. A running task
        never drops back to ``pending``.

        Percent is clamped to [0, 100] and never goes backwards within a run.
        ``completed`` always lands on 100; ``failed`` keeps the last percent.
        Once a task is terminal, later writes are ignored.
        """
        with self.database.session() as session:
            db_task = session.get(PodcastTaskDB, task_id)
            if not db_task:
                logger.error(f"Cannot update progress - task_id not found: {task_id}")
                return None

            if db_task.progress_stage in TERMINAL_STAGES:
                logger.warning(
                    f"[Progress] Ignoring {stage} for task {task_id}, already {db_task.progress_stage}"
                )
                return db_task

            clamped = int(round(min(100.0, max(0.0, float(percent)))))
            if stage == "completed":
                new_percent = 100
            elif stage == "failed":
                new_percent = db_task.progress_percent
            else:
                new_percent = max(db_task.progress_percent, clamped)

            db_task.progress_stage = stage
            db_task.progress_percent = new_percent
            db_task.progress_message = message
            new_status = status or status_for_stage(stage)
            if new_status == "pending" and db_task.status == "processing":
                new_status = "processing"
            db_task.status = new_status
            db_task.estimated_time_remaining = estimate_time_remaining(
                stage, stage_percent_from_overall(stage, new_percent)
            )
            db_task.updated_at = datetime.utcnow()

            session.add(db_task)
            session.commit()
            session.refresh(db_task)

            logger.info(f"[Progress] Task {task_id}: {stage} {new_percent}% - {message}")
            return db_task

    def update_results(self, task_id: str, **fields: Any) -> Optional[PodcastTaskDB]:
        """
        Persist intermediate or final results as soon as they are known.

        ``episode_script`` may be given as a list of ScriptTurn and is stored as JSON.
        """
        unknown = set(fields) - set(RESULT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown result fields: {sorted(unknown)}")

        with self.database.session() as session:
            db_task = session.get(PodcastTaskDB, task_id)
            if not db_task:
                logger.error(f"Cannot update results - task_id not found: {task_id}")
                return None

            for name, value in fields.items():
                if name == "episode_script" and value is not None and not isinstance(value, str):
                    value = serialize_json(value)
                setattr(db_task, name, value)
            db_task.updated_at = datetime.utcnow()

            session.add(db_task)
            session.commit()
            session.refresh(db_task)

            logger.debug(f"Updated results for task {task_id}: {sorted(fields)}")
            return db_task

    def set_error(self, task_id: str, error_message: str) -> Optional[PodcastTaskDB]:
        """
        Set failed status and the user-facing error message for a task.

        Args:
            task_id: Task identifier to update
            error_message: User-friendly error message
        """
        with self.database.session() as session:
            db_task = session.get(PodcastTaskDB, task_id)
            if not db_task:
                logger.error(f"Cannot set error - task_id not found: {task_id}")
                return None

            if db_task.status == "completed":
                logger.warning(f"[Progress] Not overwriting completed task {task_id} with an error")
                return db_task

            db_task.status = "failed"
            db_task.progress_stage = "failed"
            db_task.error_message = error_message
            db_task.estimated_time_remaining = 0
            db_task.updated_at = datetime.utcnow()

            session.add(db_task)
            session.commit()
            session.refresh(db_task)

            logger.error(f"Set error status for task_id: {task_id} - Error: {error_message}")
            return db_task

    def get_progress(self, task_id: str, owner_id: str) -> TaskProgress:
        """
        Progress snapshot for polling clients.

        Raises:
            NotFoundError: If the task does not exist for this owner
        """
        db_task = self.get_task(task_id, owner_id)
        if not db_task:
            raise NotFoundError(f"Task {task_id} not found", details={"task_id": task_id})
        return TaskProgress(
            task_id=db_task.id,
            status=db_task.status,
            stage=db_task.progress_stage,
            percent=db_task.progress_percent,
            message=db_task.error_message if db_task.status == "failed" and db_task.error_message else db_task.progress_message,
            estimated_time_remaining=db_task.estimated_time_remaining,
        )

    @staticmethod
    def episode_scripts(db_task: PodcastTaskDB) -> List[ScriptTurn]:
        """Decode the stored episode script JSON."""
        turns = deserialize_json(db_task.episode_script, default=[]) or []
        return [ScriptTurn(**turn) for turn in turns if isinstance(turn, dict)]

    # --- Highlights ---

    def save_highlight(
        self,
        task_id: str,
        owner_id: str,
        segment: HighlightSegment,
        clip_audio_url: str,
        clip_asset_key: str,
    ) -> HighlightRecord:
        with self.database.session() as session:
            db_highlight = HighlightDB(
                task_id=task_id,
                owner_id=owner_id,
                title=segment.title,
                description=segment.description,
                start_time=segment.start_time,
                end_time=segment.end_time,
                duration=segment.duration,
                transcript_excerpt=segment.transcript,
                clip_audio_url=clip_audio_url,
                clip_asset_key=clip_asset_key,
            )
            session.add(db_highlight)
            session.commit()
            session.refresh(db_highlight)

            logger.info(f"[Highlight] Saved highlight {db_highlight.id} for task {task_id}")
            return self._highlight_to_model(db_highlight)

    def list_highlights(self, task_id: str, owner_id: str) -> List[HighlightRecord]:
        with self.database.session() as session:
            statement = (
                select(HighlightDB)
                .where(HighlightDB.task_id == task_id)
                .where(HighlightDB.owner_id == owner_id)
                .order_by(HighlightDB.created_at)
            )
            return [self._highlight_to_model(row) for row in session.exec(statement).all()]

    def delete_highlight(self, highlight_id: str, owner_id: str) -> bool:
        with self.database.session() as session:
            db_highlight = session.get(HighlightDB, highlight_id)
            if not db_highlight or db_highlight.owner_id != owner_id:
                logger.warning(f"Cannot delete - highlight not found: {highlight_id}")
                return False
            session.delete(db_highlight)
            session.commit()
            logger.info(f"[Highlight] Deleted highlight {highlight_id}")
            return True

    def _highlight_to_model(self, db_highlight: HighlightDB) -> HighlightRecord:
        """Convert database model to Pydantic model."""
        return HighlightRecord(
            id=db_highlight.id,
            task_id=db_highlight.task_id,
            title=db_highlight.title,
            description=db_highlight.description,
            start_time=db_highlight.start_time,
            end_time=db_highlight.end_time,
            duration=db_highlight.duration,
            transcript_excerpt=db_highlight.transcript_excerpt,
            clip_audio_url=db_highlight.clip_audio_url,
            clip_asset_key=db_highlight.clip_asset_key,
            created_at=db_highlight.created_at,
        )

    # --- Voice preferences ---

    def get_voice_preference(self, owner_id: str) -> Optional[VoicePreferenceDB]:
        with self.database.session() as session:
            return session.get(VoicePreferenceDB, owner_id)

    def save_voice_preference(self, owner_id: str, host1_voice_id: str, host2_voice_id: str) -> VoicePreferenceDB:
        """Upsert the owner's default voice pair."""
        with self.database.session() as session:
            preference = session.get(VoicePreferenceDB, owner_id)
            if preference is None:
                preference = VoicePreferenceDB(owner_id=owner_id)
            preference.host1_voice_id = host1_voice_id
            preference.host2_voice_id = host2_voice_id
            preference.updated_at = datetime.utcnow()

            session.add(preference)
            session.commit()
            session.refresh(preference)

            logger.info(f"Saved voice preference for owner {owner_id}")
            return preference
