"""
LLM-driven content analysis: titles, summaries and two-host scripts.
"""

import difflib
import logging
import re
from typing import Optional

from .common_exceptions import LLMProcessingError
from .json_utils import parse_fields_with_fallback
from .podcast_models import ContentAnalysis, PodcastStyle
from .prompts import (
    SCRIPT_SYSTEM_PROMPT,
    SCRIPT_TEMPLATE,
    STYLE_GUIDANCE,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_TEMPLATE,
    TITLE_SYSTEM_PROMPT,
    TITLE_TEMPLATE,
    TRANSCRIPT_ANALYSIS_SYSTEM_PROMPT,
    TRANSCRIPT_ANALYSIS_TEMPLATE,
    VIDEO_ANALYSIS_SYSTEM_PROMPT,
    VIDEO_ANALYSIS_TEMPLATE,
)

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "... [content truncated]"
TITLE_SOURCE_CHARS = 1000
MAX_TITLE_CHARS = 30
TITLE_MATCH_THRESHOLD = 0.9

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace. Unicode letters survive."""
    lowered = (title or "").lower()
    return _WHITESPACE.sub(" ", _NON_WORD.sub("", lowered)).strip()


def title_similarity(a: str, b: str) -> float:
    """
    Similarity of two titles in [0, 1] after normalization.

    One title containing the other scores at least 0.9.
    """
    left, right = normalize_title(a), normalize_title(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    ratio = difflib.SequenceMatcher(None, left, right).ratio()
    if left in right or right in left:
        return max(TITLE_MATCH_THRESHOLD, ratio)
    return ratio


def truncate_for_prompt(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def _clean_title(raw: str) -> str:
    first_line = next((line for line in raw.splitlines() if line.strip()), "")
    title = first_line.strip().strip("\"'“”「」*#").strip()
    return title[:MAX_TITLE_CHARS]


class ContentAnalyzer:
    """Produces ContentAnalysis records from text, transcripts or a video reference."""

    normalize_title = staticmethod(normalize_title)
    title_similarity = staticmethod(title_similarity)

    def __init__(self, llm_service, language: str = "English", max_chars: int = 8000):
        self.llm_service = llm_service
        self.language = language
        self.max_chars = max_chars

    async def analyze(
        self,
        text: str,
        title_hint: Optional[str] = None,
        style: PodcastStyle = "casual",
    ) -> ContentAnalysis:
        """
        Title, summary and two-host script for free text.

        Raises:
            LLMProcessingError: If the model returns an empty summary or script
        """
        content = truncate_for_prompt(text, self.max_chars)
        logger.info(f"[Analyzer] Analyzing {len(text)} characters (prompt uses {len(content)})")

        if title_hint:
            title = title_hint
        else:
            raw_title = await self.llm_service.invoke(
                TITLE_TEMPLATE.format(language=self.language, content=text[:TITLE_SOURCE_CHARS]),
                system_prompt=TITLE_SYSTEM_PROMPT,
            )
            title = _clean_title(raw_title) or None

        summary = (await self.llm_service.invoke(
            SUMMARY_TEMPLATE.format(language=self.language, content=content),
            system_prompt=SUMMARY_SYSTEM_PROMPT,
        )).strip()
        if not summary:
            raise LLMProcessingError("LLM returned an empty summary")

        script = (await self.llm_service.invoke(
            SCRIPT_TEMPLATE.format(
                language=self.language,
                style_guidance=STYLE_GUIDANCE.get(style, STYLE_GUIDANCE["casual"]),
                content=content,
                summary=summary,
            ),
            system_prompt=SCRIPT_SYSTEM_PROMPT,
        )).strip()
        if not script:
            raise LLMProcessingError("LLM returned an empty podcast script")

        return ContentAnalysis(title=title, summary=summary, script=script)

    async def analyze_transcript(self, transcript: str) -> ContentAnalysis:
        """
        Summary and script for a video transcript in a single JSON call.

        Raises:
            LLMProcessingError: If summary or podcastScript cannot be recovered
        """
        prompt = TRANSCRIPT_ANALYSIS_TEMPLATE.format(
            language=self.language,
            transcript=truncate_for_prompt(transcript, self.max_chars),
        )
        raw = await self.llm_service.invoke(
            prompt,
            system_prompt=TRANSCRIPT_ANALYSIS_SYSTEM_PROMPT.format(language=self.language),
        )

        fields = parse_fields_with_fallback(raw, ("summary", "podcastScript"))
        summary = fields.get("summary")
        script = fields.get("podcastScript")
        if not isinstance(summary, str) or not summary.strip() or not isinstance(script, str) or not script.strip():
            logger.error(f"[Analyzer] Could not parse transcript analysis. Content preview: {raw[:500]}")
            raise LLMProcessingError(
                "LLM reply is missing summary or podcastScript",
                details={"preview": raw[:200]},
            )
        return ContentAnalysis(summary=summary.strip(), script=script.strip(), transcript=transcript)

    async def analyze_video_directly(
        self,
        url: str,
        video_id: str,
        actual_title: str,
        duration: float,
    ) -> Optional[ContentAnalysis]:
        """
        Ask the model to analyze the video from its URL alone.

        The reply is only trusted when it echoes ``video_id`` and a title close
        enough to ``actual_title``. Returns None on any failure so the caller can
        fall back to downloading and transcribing.
        """
        if not actual_title or not actual_title.strip():
            logger.warning(f"[Analyzer] No actual title for {video_id}, skipping direct analysis")
            return None

        try:
            raw = await self.llm_service.invoke(
                VIDEO_ANALYSIS_TEMPLATE.format(
                    language=self.language,
                    url=url,
                    video_id=video_id,
                    actual_title=actual_title,
                    duration=int(duration or 0),
                ),
                system_prompt=VIDEO_ANALYSIS_SYSTEM_PROMPT.format(language=self.language, video_id=video_id),
            )
        except Exception as e:
            logger.warning(f"[Analyzer] Direct video analysis failed for {video_id}: {e}")
            return None

        fields = parse_fields_with_fallback(raw, ("videoId", "title", "transcription", "summary", "podcastScript"))

        returned_id = str(fields.get("videoId") or "").strip()
        if returned_id != video_id:
            logger.warning(f"[Analyzer] Video id mismatch: expected {video_id}, got {returned_id or 'nothing'}")
            return None

        returned_title = str(fields.get("title") or "")
        similarity = title_similarity(actual_title, returned_title)
        if similarity < TITLE_MATCH_THRESHOLD:
            logger.warning(
                f"[Analyzer] Title mismatch for {video_id} (similarity {similarity:.2f}): "
                f"expected '{actual_title}', got '{returned_title}'"
            )
            return None

        summary = fields.get("summary")
        script = fields.get("podcastScript")
        if not isinstance(summary, str) or not summary.strip() or not isinstance(script, str) or not script.strip():
            logger.warning(f"[Analyzer] Direct video analysis for {video_id} is missing summary or script")
            return None

        transcription = fields.get("transcription")
        logger.info(f"[Analyzer] Direct video analysis accepted for {video_id} (similarity {similarity:.2f})")
        return ContentAnalysis(
            title=actual_title,
            summary=summary.strip(),
            script=script.strip(),
            transcript=transcription.strip() if isinstance(transcription, str) else None,
        )
