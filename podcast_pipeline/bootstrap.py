"""
Wires configuration into the pipeline's services and owns their lifecycle.
"""

import logging

import httpx

from .audio_clip_service import AudioClipService
from .config import Config, setup_environment
from .content_analyzer import ContentAnalyzer
from .content_extractor import ArticleResolver, TextResolver, TranscriptionService, VideoResolver
from .database import Database
from .highlight_service import HighlightExtractor, HighlightService
from .llm_service import GeminiService
from .podcast_synthesizer import PodcastSynthesizer
from .podcast_workflow import PodcastGeneratorService
from .status_manager import StatusManager
from .storage import StorageManager
from .task_runner import TaskRunner
from .tts_service import GoogleCloudTtsService

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 60.0


class PipelineServices:
    """Holds one instance of every service, built from a Config."""

    def __init__(
        self,
        config: Config,
        database: Database,
        http_client: httpx.AsyncClient,
        status_manager: StatusManager,
        task_runner: TaskRunner,
        storage_manager: StorageManager,
        generator: PodcastGeneratorService,
        highlights: HighlightService,
    ):
        self.config = config
        self.database = database
        self.http_client = http_client
        self.status_manager = status_manager
        self.task_runner = task_runner
        self.storage_manager = storage_manager
        self.generator = generator
        self.highlights = highlights

    @classmethod
    def create(cls, config: Config) -> "PipelineServices":
        database = Database(config.database_url, is_cloud_environment=config.is_cloud_environment)
        http_client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)

        status_manager = StatusManager(database)
        task_runner = TaskRunner(max_concurrent_tasks=config.max_concurrent_tasks)
        storage_manager = StorageManager(
            bucket_name=config.audio_bucket,
            project_id=config.project_id,
            local_dir=config.local_storage_dir,
            signed_url_ttl_seconds=config.signed_url_ttl_seconds,
        )

        llm_service = GeminiService(config.gemini_api_key, config.gemini_models, max_attempts=config.llm_max_attempts)
        tts_service = GoogleCloudTtsService(language_code=config.tts_language_code)

        transcription_service = TranscriptionService(
            config.assemblyai_api_key, http_client, poll_seconds=config.assemblyai_poll_seconds
        )
        analyzer = ContentAnalyzer(
            llm_service, language=config.content_language, max_chars=config.analysis_max_chars
        )
        synthesizer = PodcastSynthesizer(tts_service, storage_manager, ffmpeg_path=config.ffmpeg_path)

        generator = PodcastGeneratorService(
            status_manager=status_manager,
            task_runner=task_runner,
            video_resolver=VideoResolver(storage_manager, transcription_service, ffmpeg_path=config.ffmpeg_path),
            text_resolver=TextResolver(),
            article_resolver=ArticleResolver(http_client),
            analyzer=analyzer,
            synthesizer=synthesizer,
        )

        extractor = HighlightExtractor(
            llm_service,
            language=config.content_language,
            seconds_per_char=config.highlight_seconds_per_char,
            max_duration=config.highlight_max_duration,
        )
        clip_service = AudioClipService(storage_manager, http_client, ffmpeg_path=config.ffmpeg_path)
        highlights = HighlightService(status_manager, extractor, clip_service)

        return cls(
            config=config,
            database=database,
            http_client=http_client,
            status_manager=status_manager,
            task_runner=task_runner,
            storage_manager=storage_manager,
            generator=generator,
            highlights=highlights,
        )

    @classmethod
    def from_environment(cls) -> "PipelineServices":
        """Load configuration, set up logging and build started services."""
        services = cls.create(setup_environment())
        services.startup()
        return services

    def startup(self) -> None:
        """Create tables. Safe to call more than once."""
        self.database.init_db()
        logger.info(
            f"Pipeline started: storage={'gcs' if self.storage_manager.is_cloud_storage_available else 'local'}, "
            f"max_concurrent_tasks={self.task_runner.max_concurrent_tasks}"
        )

    async def shutdown(self) -> None:
        await self.task_runner.shutdown()
        await self.http_client.aclose()
        self.database.dispose()
        logger.info("Pipeline shut down")
