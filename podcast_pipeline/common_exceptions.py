"""Error taxonomy shared by every pipeline stage."""

import enum
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    INVALID_INPUT = "InvalidInput"
    SOURCE_FETCH_FAILED = "SourceFetchFailed"
    TRANSCRIPTION_FAILED = "TranscriptionFailed"
    ANALYSIS_FAILED = "AnalysisFailed"
    SYNTHESIS_FAILED = "SynthesisFailed"
    STORAGE_FAILED = "StorageFailed"
    NOT_FOUND = "NotFound"
    CONFIGURATION_MISSING = "ConfigurationMissing"
    INTERNAL = "Internal"


USER_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.INVALID_INPUT: "The submitted input is invalid.",
    ErrorKind.SOURCE_FETCH_FAILED: "We couldn't fetch the source content.",
    ErrorKind.TRANSCRIPTION_FAILED: "Speech transcription failed.",
    ErrorKind.ANALYSIS_FAILED: "AI content analysis failed.",
    ErrorKind.SYNTHESIS_FAILED: "Podcast audio generation failed.",
    ErrorKind.STORAGE_FAILED: "Saving the audio file failed.",
    ErrorKind.NOT_FOUND: "The requested record was not found.",
    ErrorKind.CONFIGURATION_MISSING: "The service is not configured correctly.",
    ErrorKind.INTERNAL: "An internal error occurred.",
}


class PipelineError(Exception):
    """Base exception for all classified pipeline failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if kind is not None:
            self.kind = kind


class InvalidInputError(PipelineError):
    """Raised when a submission or request argument is malformed."""
    kind = ErrorKind.INVALID_INPUT


class SourceFetchError(PipelineError):
    """Raised when video, article or audio acquisition fails."""
    kind = ErrorKind.SOURCE_FETCH_FAILED


class TranscriptionError(PipelineError):
    """Raised by the speech-to-text collaborator."""
    kind = ErrorKind.TRANSCRIPTION_FAILED


class LLMProcessingError(PipelineError):
    """Custom exception for errors during LLM invocation or response processing."""
    kind = ErrorKind.ANALYSIS_FAILED


class AudioGenerationError(PipelineError):
    """Custom exception for errors during audio generation or processing."""
    kind = ErrorKind.SYNTHESIS_FAILED


class StorageError(PipelineError):
    kind = ErrorKind.STORAGE_FAILED


class NotFoundError(PipelineError):
    kind = ErrorKind.NOT_FOUND


class ConfigurationMissingError(PipelineError):
    kind = ErrorKind.CONFIGURATION_MISSING


# Ordered: the first matching rule wins.
_CLASSIFICATION_RULES = [
    (re.compile(r"youtube|yt-dlp|yt_dlp"), ErrorKind.SOURCE_FETCH_FAILED),
    (re.compile(r"transcription|assemblyai"), ErrorKind.TRANSCRIPTION_FAILED),
    (re.compile(r"\bllm\b|gemini"), ErrorKind.ANALYSIS_FAILED),
    (re.compile(r"storage|\bs3\b|upload|bucket"), ErrorKind.STORAGE_FAILED),
    (re.compile(r"database|\bdb\b"), ErrorKind.INTERNAL),
]


def classify_message(message: str) -> ErrorKind:
    """Guess an error kind from free-form exception text."""
    lowered = message.lower()
    for pattern, kind in _CLASSIFICATION_RULES:
        if pattern.search(lowered):
            return kind
    return ErrorKind.INTERNAL


def normalize_error(error: BaseException) -> PipelineError:
    """
    Convert any exception into a PipelineError.

    Pipeline errors pass through untouched. Anything else is classified
    heuristically by its message, keeping the original as __cause__.
    """
    if isinstance(error, PipelineError):
        return error

    message = str(error) or error.__class__.__name__
    normalized = PipelineError(message, kind=classify_message(message))
    normalized.__cause__ = error
    return normalized


def get_user_friendly_message(error: PipelineError) -> str:
    """Map an error kind to the fixed message shown to end users."""
    return USER_MESSAGES.get(error.kind, USER_MESSAGES[ErrorKind.INTERNAL])


def log_error(error: PipelineError, context: Optional[Dict[str, Any]] = None) -> None:
    """Log a classified error with its context and originating exception."""
    cause = error.__cause__
    logger.error(
        f"[Error] {error.kind.value}: {error.message} "
        f"details={error.details} context={context or {}}"
        + (f" cause={cause.__class__.__name__}: {cause}" if cause else ""),
        exc_info=cause or error,
    )
