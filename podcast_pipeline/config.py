"""Configuration management for the podcast pipeline."""

import os
import logging
from typing import Optional, Dict, Any, List
from dotenv import load_dotenv

# Load environment variables from .env file at module import time
load_dotenv()

DEFAULT_GEMINI_MODELS = "gemini-2.0-flash,gemini-1.5-pro-latest,gemini-2.0-flash-exp"


class Config:
    """Configuration class with environment detection and environment variable management."""

    def __init__(self):
        self.environment = os.getenv("ENVIRONMENT", "local")
        self.project_id = os.getenv("PROJECT_ID")

        missing_vars = []
        if not self.gemini_api_key:
            missing_vars.append("GEMINI_API_KEY")
        if not self.assemblyai_api_key:
            missing_vars.append("ASSEMBLYAI_API_KEY")

        if missing_vars:
            logging.warning("Configuration warnings:")
            for var in missing_vars:
                if var == "GEMINI_API_KEY":
                    logging.warning(f"  - {var} not configured (content analysis disabled)")
                else:
                    logging.warning(f"  - {var} not configured (video transcription disabled)")

    @property
    def is_cloud_environment(self) -> bool:
        """Check if running in cloud environment (staging or production)."""
        return self.environment in ["staging", "production"]

    @property
    def is_local_environment(self) -> bool:
        """Check if running in local development environment."""
        return self.environment == "local"

    @property
    def gemini_api_key(self) -> Optional[str]:
        return os.getenv("GEMINI_API_KEY")

    @property
    def gemini_models(self) -> List[str]:
        """Ordered list of Gemini model names to try."""
        raw = os.getenv("GEMINI_MODELS", DEFAULT_GEMINI_MODELS)
        return [name.strip() for name in raw.split(",") if name.strip()]

    @property
    def llm_max_attempts(self) -> int:
        """Attempts per model when the provider rate-limits us."""
        return int(os.getenv("LLM_MAX_ATTEMPTS", "2"))

    @property
    def assemblyai_api_key(self) -> Optional[str]:
        return os.getenv("ASSEMBLYAI_API_KEY")

    @property
    def assemblyai_poll_seconds(self) -> float:
        return float(os.getenv("ASSEMBLYAI_POLL_SECONDS", "5"))

    @property
    def audio_bucket(self) -> Optional[str]:
        """Get the audio storage bucket name."""
        return os.getenv("AUDIO_BUCKET")

    @property
    def local_storage_dir(self) -> str:
        return os.getenv("LOCAL_STORAGE_DIR", "./outputs")

    @property
    def signed_url_ttl_seconds(self) -> int:
        return int(os.getenv("SIGNED_URL_TTL_SECONDS", str(7 * 24 * 3600)))

    @property
    def database_url(self) -> str:
        """Get the database URL."""
        return os.getenv("DATABASE_URL", "sqlite:///./podcast_pipeline.db")

    @property
    def tts_language_code(self) -> str:
        return os.getenv("TTS_LANGUAGE_CODE", "en-US")

    @property
    def content_language(self) -> str:
        """Language the generated titles, summaries and scripts are written in."""
        return os.getenv("CONTENT_LANGUAGE", "English")

    @property
    def ffmpeg_path(self) -> str:
        return os.getenv("FFMPEG_PATH", "ffmpeg")

    @property
    def max_concurrent_tasks(self) -> int:
        """Get maximum concurrent pipeline runs."""
        default = 4 if self.environment == "production" else 2
        return int(os.getenv("MAX_CONCURRENT_TASKS", str(default)))

    @property
    def highlight_seconds_per_char(self) -> float:
        """Empirical speech-rate estimate used to map script characters to seconds."""
        return float(os.getenv("HIGHLIGHT_SECONDS_PER_CHAR", "0.3"))

    @property
    def highlight_max_duration(self) -> int:
        """Hard ceiling for a highlight clip in seconds."""
        return int(os.getenv("HIGHLIGHT_MAX_DURATION", "60"))

    @property
    def analysis_max_chars(self) -> int:
        return int(os.getenv("ANALYSIS_MAX_CHARS", "8000"))

    @property
    def log_level(self) -> str:
        """Get logging level."""
        return os.getenv("LOG_LEVEL", "INFO")

    def setup_logging(self):
        """Setup logging configuration for the environment."""
        log_level = getattr(logging, self.log_level.upper(), logging.INFO)

        if self.is_cloud_environment:
            # Structured logging for Cloud Logging
            format_str = '{"timestamp":"%(asctime)s","severity":"%(levelname)s","service":"podcast-pipeline","message":"%(message)s","logger":"%(name)s"}'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        logging.basicConfig(
            level=log_level,
            format=format_str,
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if log_level == logging.DEBUG:
            logging.getLogger("google.cloud").setLevel(logging.INFO)
            logging.getLogger("urllib3").setLevel(logging.WARNING)
            logging.getLogger("httpx").setLevel(logging.WARNING)
            logging.getLogger("httpcore").setLevel(logging.WARNING)
            logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

        logging.info(f"Logging configured for {self.environment} environment at {self.log_level} level")

    def validate_required_config(self) -> Dict[str, Any]:
        """
        Validate that required configuration is available.

        Returns:
            Dict with validation results
        """
        issues = []
        warnings = []

        if not self.gemini_api_key:
            issues.append("GEMINI_API_KEY not configured")
        if not self.gemini_models:
            issues.append("GEMINI_MODELS is empty")
        if not self.assemblyai_api_key:
            warnings.append("ASSEMBLYAI_API_KEY not configured")

        if self.is_cloud_environment:
            if not self.project_id:
                issues.append("PROJECT_ID not configured")
            if not self.audio_bucket:
                warnings.append("AUDIO_BUCKET not configured, falling back to local storage")

        if not 0 < self.highlight_max_duration <= 60:
            issues.append("HIGHLIGHT_MAX_DURATION must be between 1 and 60 seconds")
        if self.highlight_seconds_per_char <= 0:
            issues.append("HIGHLIGHT_SECONDS_PER_CHAR must be positive")

        return {
            "valid": len(issues) == 0,
            "issues": issues,
            "warnings": warnings,
            "environment": self.environment,
            "cloud_environment": self.is_cloud_environment
        }


def get_config() -> Config:
    """Get the application configuration."""
    return Config()


def setup_environment() -> Config:
    """Setup logging and validate configuration at process start."""
    config = get_config()
    config.setup_logging()

    validation = config.validate_required_config()
    if validation["warnings"]:
        logging.warning("Configuration warnings:")
        for warning in validation["warnings"]:
            logging.warning(f"  - {warning}")

    if not validation["valid"]:
        logging.error("Configuration validation failed:")
        for issue in validation["issues"]:
            logging.error(f"  - {issue}")
        if config.is_cloud_environment:
            raise RuntimeError("Invalid configuration. Cannot start application.")

    logging.info(f"Environment setup complete for {config.environment}")
    return config
