"""Gemini text generation with bounded rate-limit backoff and an ordered model fallback list."""

import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

import google.generativeai as genai
from google.api_core.exceptions import (
    DeadlineExceeded,
    NotFound,
    ResourceExhausted,
    ServiceUnavailable,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .common_exceptions import ConfigurationMissingError, LLMProcessingError
from .logging_utils import tenacity_retry_logger

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")


def is_rate_limit_error(error: BaseException) -> bool:
    """Quota, 429 and transient availability errors are worth waiting out on the same model."""
    if isinstance(error, (ResourceExhausted, ServiceUnavailable, DeadlineExceeded)):
        return True
    message = str(error).lower()
    return "429" in message or "quota" in message or "rate limit" in message


def is_model_unavailable_error(error: BaseException) -> bool:
    """A missing or unsupported model should be skipped without waiting."""
    if isinstance(error, NotFound):
        return True
    message = str(error).lower()
    return "404" in message or "not found" in message or "is not supported" in message


async def try_in_order(
    candidates: Sequence[C],
    attempt: Callable[[C], Awaitable[T]],
    is_retryable: Callable[[BaseException], bool] = is_rate_limit_error,
    is_skippable: Callable[[BaseException], bool] = is_model_unavailable_error,
    max_attempts: int = 2,
    wait=None,
    operation: str = "LLM invoke",
) -> T:
    """
    Run ``attempt`` against each candidate until one succeeds.

    Retryable errors are retried on the same candidate with bounded exponential
    backoff, then the next candidate is tried. Skippable errors move to the next
    candidate straight away. Anything else propagates.

    Raises:
        LLMProcessingError: If every candidate failed
    """
    if not candidates:
        raise ConfigurationMissingError(f"{operation}: no candidates configured")

    last_error: Optional[BaseException] = None
    for candidate in candidates:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait if wait is not None else wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception(is_retryable),
            before_sleep=tenacity_retry_logger(operation, max_attempts, str(candidate)),
            reraise=True,
        )
        try:
            async for attempt_state in retrying:
                with attempt_state:
                    return await attempt(candidate)
        except Exception as e:
            last_error = e
            if is_retryable(e):
                logger.warning(f"[LLM] {candidate} still rate limited after {max_attempts} attempts, trying next")
                continue
            if is_skippable(e):
                logger.warning(f"[LLM] {candidate} unavailable ({e}), trying next")
                continue
            raise

    raise LLMProcessingError(
        f"{operation} failed: All models failed. Last error: {last_error}",
        details={"candidates": list(map(str, candidates))},
    ) from last_error


class GeminiService:
    """Invokes Gemini models through google-generativeai, falling back across the configured list."""

    def __init__(self, api_key: Optional[str], model_names: List[str], max_attempts: int = 2):
        if not api_key:
            raise ConfigurationMissingError(
                "API key for Gemini service is required. Set GEMINI_API_KEY environment variable."
            )
        genai.configure(api_key=api_key)
        self.model_names = list(model_names)
        self.max_attempts = max_attempts
        logger.info(f"[LLM] Gemini service initialized with models: {', '.join(self.model_names)}")

    async def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Generate text for ``prompt``. Callers parse the reply defensively.

        Raises:
            ValueError: If the prompt is empty
            LLMProcessingError: If no model produced a response
        """
        if not prompt:
            raise ValueError("Prompt cannot be empty.")

        async def _generate(model_name: str) -> str:
            logger.info(f"[LLM] Trying model: {model_name} (prompt {len(prompt)} chars)")
            model = genai.GenerativeModel(model_name, system_instruction=system_prompt or None)
            response = await model.generate_content_async(prompt)
            text = (response.text or "").strip()
            if not text:
                raise LLMProcessingError(f"Gemini model {model_name} returned no content")
            logger.info(f"[LLM] {model_name} responded with {len(text)} chars")
            return text

        return await try_in_order(
            self.model_names,
            _generate,
            max_attempts=self.max_attempts,
            operation="LLM invoke",
        )
