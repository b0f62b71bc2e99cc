"""Database models and setup for task, highlight and voice preference persistence."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, event, func
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Relationship, Session, SQLModel, create_engine

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class PodcastTaskDB(SQLModel, table=True):
    """Database model for one source-to-podcast conversion task."""

    __tablename__ = "podcast_tasks"

    id: str = Field(default_factory=_new_id, primary_key=True, description="Unique task identifier")
    owner_id: str = Field(index=True, description="Owning user")
    input_type: str = Field(description="video, text or article")
    source_reference: str = Field(sa_column=Column(Text, nullable=False), description="URL or raw text")

    status: str = Field(default="pending", description="Coarse lifecycle status")
    progress_stage: str = Field(default="queued")
    progress_percent: int = Field(default=0)
    progress_message: str = Field(default="")
    estimated_time_remaining: Optional[int] = Field(default=None)

    length_mode: str = Field(default="medium")
    style: str = Field(default="casual")
    voice_id_1: Optional[str] = Field(default=None)
    voice_id_2: Optional[str] = Field(default=None)

    title: Optional[str] = Field(default=None)
    transcript: Optional[str] = Field(default=None, sa_column=Column(Text))
    summary: Optional[str] = Field(default=None, sa_column=Column(Text))
    script: Optional[str] = Field(default=None, sa_column=Column(Text))
    source_audio_url: Optional[str] = Field(default=None, sa_column=Column(Text))
    source_audio_key: Optional[str] = Field(default=None)

    episode_id: Optional[str] = Field(default=None)
    episode_audio_url: Optional[str] = Field(default=None, sa_column=Column(Text))
    episode_title: Optional[str] = Field(default=None)
    episode_script: Optional[str] = Field(default=None, sa_column=Column(Text), description="JSON-serialized list of ScriptTurn")
    episode_duration_seconds: Optional[float] = Field(default=None)

    error_message: Optional[str] = Field(default=None, description="User-friendly error message")

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=False), server_default=func.now()),
        description="When the task was created",
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now()),
        description="Last update timestamp",
    )

    highlights: List["HighlightDB"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class HighlightDB(SQLModel, table=True):
    """Database model for a short clip cut from a completed task's episode."""

    __tablename__ = "podcast_highlights"

    id: str = Field(default_factory=_new_id, primary_key=True)
    task_id: str = Field(
        sa_column=Column(String, ForeignKey("podcast_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    owner_id: str = Field(index=True)
    title: str
    description: str = Field(default="", sa_column=Column(Text))
    start_time: int
    end_time: int
    duration: int
    transcript_excerpt: str = Field(default="", sa_column=Column(Text))
    clip_audio_url: str = Field(sa_column=Column(Text, nullable=False))
    clip_asset_key: str

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=False), server_default=func.now()),
    )

    task: Optional[PodcastTaskDB] = Relationship(back_populates="highlights")


class VoicePreferenceDB(SQLModel, table=True):
    """Per-owner default voice pair."""

    __tablename__ = "voice_preferences"

    owner_id: str = Field(primary_key=True)
    host1_voice_id: Optional[str] = Field(default=None)
    host2_voice_id: Optional[str] = Field(default=None)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now()),
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the SQLAlchemy engine. Create once at process start and dispose at shutdown."""

    def __init__(self, database_url: str, is_cloud_environment: bool = False):
        self.database_url = database_url

        if database_url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection so every session sees the same in-memory database
                engine_kwargs["poolclass"] = StaticPool
            self.engine = create_engine(database_url, **engine_kwargs)
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        elif is_cloud_environment:
            self.engine = create_engine(
                database_url,
                pool_size=1,
                max_overflow=0,
                pool_pre_ping=True,
                pool_recycle=300,
            )
        else:
            self.engine = create_engine(
                database_url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=3600,
            )

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        SQLModel.metadata.create_all(self.engine)
        logger.info("Database tables initialized")

    def session(self) -> Session:
        """Get a database session. Loaded rows stay readable after commit."""
        return Session(self.engine, expire_on_commit=False)

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")
