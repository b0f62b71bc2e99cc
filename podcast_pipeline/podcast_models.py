from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

InputType = Literal["video", "text", "article"]
TaskStatus = Literal["pending", "processing", "completed", "failed"]
ProgressStage = Literal[
    "queued",
    "downloading",
    "transcribing",
    "analyzing",
    "generating",
    "completed",
    "failed",
]
LengthMode = Literal["quick", "medium", "deep"]
PodcastStyle = Literal["educational", "casual", "professional"]

TERMINAL_STAGES = ("completed", "failed")
TERMINAL_STATUSES = ("completed", "failed")

MAX_SOURCE_REFERENCE_LENGTH = 50_000


class PodcastRequest(BaseModel):
    """Request model for podcast generation."""
    owner_id: str = Field(..., description="Identifier of the user who owns the task.")
    input_type: InputType = Field(..., description="Modality of the source reference.")
    source_reference: str = Field(..., description="Video URL, article URL, or raw text.")
    length_mode: LengthMode = Field(default="medium", description="Downstream length hint; not enforced.")
    style: PodcastStyle = Field(default="casual", description="Tone for the generated script.")
    voice_id_1: Optional[str] = Field(default=None, description="Voice for host 1.")
    voice_id_2: Optional[str] = Field(default=None, description="Voice for host 2.")

    model_config = ConfigDict(use_enum_values=True)

    @property
    def voice_pair(self) -> Optional[tuple]:
        if self.voice_id_1 and self.voice_id_2:
            return (self.voice_id_1, self.voice_id_2)
        return None


class PodcastTaskCreationResponse(BaseModel):
    """
    Response model for the immediate acknowledgment of a podcast generation task.
    """
    task_id: str = Field(..., description="Unique identifier for the podcast generation task.")
    status: TaskStatus = Field(default="pending", description="Coarse status at creation time.")
    stage: ProgressStage = Field(default="queued", description="Progress stage at creation time.")
    message: str = Field(default="Podcast generation task has been queued.")
    queued_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp when the task was queued (UTC).")


class TaskProgress(BaseModel):
    """Progress snapshot consumed by polling clients."""
    task_id: str
    status: TaskStatus
    stage: ProgressStage = "queued"
    percent: int = Field(default=0, ge=0, le=100)
    message: str = ""
    estimated_time_remaining: Optional[int] = Field(default=None, description="Seconds, when known.")


class ScriptTurn(BaseModel):
    """A single speaker turn of a synthesized episode."""
    speaker_id: str
    speaker_name: str
    content: str


class VoiceIdentity(BaseModel):
    """Reference data describing one TTS voice."""
    speaker_id: str = Field(..., description="Provider voice name, e.g. 'en-US-Neural2-D'.")
    name: str = Field(..., description="Display name used as the host name in scripts.")
    gender: Literal["male", "female", "neutral"]
    locale: str


class TranscriptSegment(BaseModel):
    start: float
    end: float
    text: str
    speaker: Optional[str] = None


class TranscriptionResult(BaseModel):
    text: str
    language: Optional[str] = None
    duration_seconds: Optional[float] = None
    segments: List[TranscriptSegment] = Field(default_factory=list)


class VideoInfo(BaseModel):
    """Ground-truth metadata fetched for a video reference."""
    video_id: str
    url: str
    title: str = "Unknown"
    duration_seconds: float = 0


class ResolvedContent(BaseModel):
    """Output of a content resolver."""
    title: Optional[str] = None
    text: str = ""
    raw_audio_url: Optional[str] = None
    raw_audio_key: Optional[str] = None
    language: Optional[str] = None
    duration_seconds: Optional[float] = None


class ContentAnalysis(BaseModel):
    """Title, summary and two-host script produced by the analyzer."""
    title: Optional[str] = None
    summary: str
    script: str
    transcript: Optional[str] = Field(default=None, description="Set by the video fast path, which has no separate transcription.")
    language: Optional[str] = None


class PodcastEpisode(BaseModel):
    """Synthesized two-host audio episode."""
    episode_id: str
    audio_url: str
    title: Optional[str] = None
    scripts: List[ScriptTurn] = Field(default_factory=list)
    duration_seconds: Optional[float] = None


class HighlightSegment(BaseModel):
    """One highlight chosen from an episode script."""
    title: str
    description: str = ""
    start_time: int = Field(..., ge=0)
    end_time: int
    duration: int = Field(..., gt=0, le=60)
    transcript: str = ""
    reason: Optional[str] = None


class ClipResult(BaseModel):
    url: str
    file_key: str


class HighlightRecord(BaseModel):
    """Persisted highlight as returned to callers."""
    id: str
    task_id: str
    title: str
    description: str
    start_time: int
    end_time: int
    duration: int
    transcript_excerpt: str
    clip_audio_url: str
    clip_asset_key: str
    created_at: Optional[datetime] = None
