# podcast_pipeline/content_extractor.py

import asyncio
import glob
import logging
import os
import secrets
import tempfile
from typing import Optional

import httpx
import yt_dlp
from bs4 import BeautifulSoup

from .common_exceptions import (
    ConfigurationMissingError,
    InvalidInputError,
    SourceFetchError,
    TranscriptionError,
)
from .podcast_models import ResolvedContent, TranscriptionResult, TranscriptSegment, VideoInfo
from .validations import extract_video_id

logger = logging.getLogger(__name__)

ASSEMBLYAI_BASE_URL = "https://api.assemblyai.com/v2"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
MIN_ARTICLE_CHARS = 100
MAX_AUDIO_MB = 50
MIN_AUDIO_BYTES = 1024

# yt-dlp failure text -> message stored on the SourceFetchError
_YOUTUBE_FAILURE_HINTS = (
    ("private video", "This video is private and cannot be downloaded"),
    ("unavailable", "The video does not exist or is unavailable"),
    ("confirm your age", "This video is age-restricted and cannot be downloaded"),
    ("not available in your country", "The video is not available in this region"),
    ("403", "YouTube temporarily refused access, please retry later"),
    ("timed out", "The download timed out"),
)


def _describe_youtube_failure(error: Exception) -> str:
    message = str(error).lower()
    for needle, description in _YOUTUBE_FAILURE_HINTS:
        if needle in message:
            return description
    return f"YouTube download failed: {error}"


class TextResolver:
    """Raw text input: the text is the content."""

    async def resolve(self, source_reference: str) -> ResolvedContent:
        text = (source_reference or "").strip()
        if not text:
            raise InvalidInputError("Text content must not be blank")
        logger.info(f"Resolved text input ({len(text)} characters)")
        return ResolvedContent(text=text)


class ArticleResolver:
    """Fetches an article URL and extracts its title and main text with Beautiful Soup."""

    def __init__(self, http_client: httpx.AsyncClient):
        self.http_client = http_client

    async def resolve(self, source_reference: str) -> ResolvedContent:
        """
        Raises:
            SourceFetchError: If the page cannot be fetched or holds too little text
        """
        url = source_reference.strip()
        logger.info(f"Fetching article from: {url}")
        try:
            response = await self.http_client.get(
                url, follow_redirects=True, headers={"User-Agent": BROWSER_USER_AGENT}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SourceFetchError(
                f"HTTP error {e.response.status_code} while fetching {url}", details={"url": url}
            ) from e
        except httpx.RequestError as e:
            raise SourceFetchError(f"Request error while fetching {url}: {e}", details={"url": url}) from e

        content_type = response.headers.get("content-type", "").lower()
        if "html" not in content_type and "text/" not in content_type:
            raise SourceFetchError(
                f"Content at {url} is not HTML or text (type: {content_type})", details={"url": url}
            )

        if "html" in content_type:
            title, text = extract_article(response.text)
        else:
            title, text = None, response.text.strip()

        if len(text) < MIN_ARTICLE_CHARS:
            raise SourceFetchError(
                f"Failed to extract article content from {url} ({len(text)} characters)",
                details={"url": url},
            )

        logger.info(f"Article extracted - Title: {title}, Content: {len(text)} characters")
        return ResolvedContent(title=title, text=text)


def extract_article(html: str):
    """Return ``(title, text)`` for an HTML page, preferring the article body."""
    soup = BeautifulSoup(html, "html.parser")

    title = None
    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title and og_title.get("content"):
        title = og_title["content"].strip()
    elif soup.title and soup.title.string:
        title = soup.title.string.strip()
    else:
        heading = soup.find("h1")
        if heading:
            title = heading.get_text(strip=True)

    for element in soup(["script", "style", "noscript", "nav", "header", "footer", "aside", "form"]):
        element.decompose()

    container = soup.find("article") or soup.find("main") or soup.find("body") or soup
    lines = [line.strip() for line in container.get_text(separator="\n").splitlines()]
    text = "\n".join(line for line in lines if line)
    return title or None, text


class TranscriptionService:
    """AssemblyAI speech-to-text over its REST API."""

    def __init__(self, api_key: Optional[str], http_client: httpx.AsyncClient, poll_seconds: float = 5.0):
        self.api_key = api_key
        self.http_client = http_client
        self.poll_seconds = poll_seconds

    async def transcribe(self, audio_url: str, language_hint: Optional[str] = None) -> TranscriptionResult:
        """
        Transcribe a publicly reachable audio URL.

        Raises:
            ConfigurationMissingError: If no API key is configured
            TranscriptionError: If the job cannot be created or ends in error
        """
        if not self.api_key:
            raise ConfigurationMissingError("ASSEMBLYAI_API_KEY not set")
        headers = {"authorization": self.api_key, "content-type": "application/json"}

        try:
            if not audio_url.startswith(("http://", "https://")):
                audio_url = await self._upload_local_file(audio_url)

            payload = {"audio_url": audio_url, "speaker_labels": True}
            if language_hint:
                payload["language_code"] = language_hint
            else:
                payload["language_detection"] = True

            create_resp = await self.http_client.post(
                f"{ASSEMBLYAI_BASE_URL}/transcript", headers=headers, json=payload
            )
            create_resp.raise_for_status()
            transcript_id = create_resp.json()["id"]
            logger.info(f"[AssemblyAI] Transcription job {transcript_id} created")

            while True:
                await asyncio.sleep(self.poll_seconds)
                status_resp = await self.http_client.get(
                    f"{ASSEMBLYAI_BASE_URL}/transcript/{transcript_id}", headers=headers
                )
                status_resp.raise_for_status()
                data = status_resp.json()
                if data["status"] == "completed":
                    break
                if data["status"] in {"error", "failed"}:
                    raise TranscriptionError(
                        f"AssemblyAI error: {data.get('error', 'unknown')}",
                        details={"transcript_id": transcript_id},
                    )
        except httpx.HTTPError as e:
            raise TranscriptionError(f"AssemblyAI request failed: {e}") from e

        text = data.get("text") or ""
        if not text.strip():
            raise TranscriptionError("AssemblyAI returned an empty transcript", details={"transcript_id": transcript_id})

        segments = [
            TranscriptSegment(
                start=utterance["start"] / 1000.0,
                end=utterance["end"] / 1000.0,
                text=utterance["text"],
                speaker=utterance.get("speaker"),
            )
            for utterance in data.get("utterances") or []
        ]
        logger.info(
            f"[AssemblyAI] Transcription successful! Language: {data.get('language_code')}, "
            f"Duration: {data.get('audio_duration')}s, {len(text)} characters"
        )
        return TranscriptionResult(
            text=text,
            language=data.get("language_code"),
            duration_seconds=data.get("audio_duration"),
            segments=segments,
        )

    async def _upload_local_file(self, path: str) -> str:
        """Push a locally stored file to the AssemblyAI upload endpoint and return its URL."""
        if not os.path.exists(path):
            raise TranscriptionError(f"Audio file not found for transcription: {path}")
        with open(path, "rb") as audio_file:
            data = audio_file.read()
        upload_resp = await self.http_client.post(
            f"{ASSEMBLYAI_BASE_URL}/upload",
            headers={"authorization": self.api_key},
            content=data,
        )
        upload_resp.raise_for_status()
        return upload_resp.json()["upload_url"]


class VideoResolver:
    """Fetches video metadata and audio with yt-dlp, stores the audio and transcribes it."""

    def __init__(self, storage_manager, transcription_service: TranscriptionService, ffmpeg_path: str = "ffmpeg"):
        self.storage_manager = storage_manager
        self.transcription_service = transcription_service
        self.ffmpeg_path = ffmpeg_path

    def _ydl_options(self, **extra) -> dict:
        options = {"quiet": True, "no_warnings": True, "noplaylist": True}
        if self.ffmpeg_path != "ffmpeg":
            options["ffmpeg_location"] = self.ffmpeg_path
        options.update(extra)
        return options

    async def fetch_info(self, url: str) -> VideoInfo:
        """
        Ground-truth metadata for a video URL.

        Raises:
            InvalidInputError: If no video id can be parsed
            SourceFetchError: If yt-dlp cannot read the video
        """
        video_id = extract_video_id(url)
        if not video_id:
            raise InvalidInputError("Invalid YouTube URL", details={"url": url})

        def _extract():
            with yt_dlp.YoutubeDL(self._ydl_options()) as ydl:
                return ydl.extract_info(url, download=False)

        try:
            info = await asyncio.to_thread(_extract)
        except yt_dlp.utils.DownloadError as e:
            raise SourceFetchError(_describe_youtube_failure(e), details={"url": url}) from e

        video_info = VideoInfo(
            video_id=video_id,
            url=url,
            title=info.get("title") or "Unknown",
            duration_seconds=info.get("duration") or 0,
        )
        logger.info(f"[YouTube] Video title: {video_info.title}, duration: {video_info.duration_seconds}s")
        return video_info

    async def download_audio(self, url: str, video_id: str) -> ResolvedContent:
        """
        Download the audio track as MP3 and upload it to storage.

        Raises:
            SourceFetchError: If the download fails or the file size is unusable
            StorageError: If the upload fails
        """
        with tempfile.TemporaryDirectory(prefix="podcast-") as temp_dir:
            options = self._ydl_options(
                format="bestaudio/best",
                outtmpl=os.path.join(temp_dir, f"{video_id}.%(ext)s"),
                postprocessors=[{
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": "mp3",
                    "preferredquality": "0",
                }],
            )

            def _download():
                with yt_dlp.YoutubeDL(options) as ydl:
                    return ydl.extract_info(url, download=True)

            logger.info(f"[YouTube] Downloading audio: {url}")
            try:
                info = await asyncio.to_thread(_download)
            except yt_dlp.utils.DownloadError as e:
                raise SourceFetchError(_describe_youtube_failure(e), details={"url": url}) from e

            output_path = os.path.join(temp_dir, f"{video_id}.mp3")
            if not os.path.exists(output_path):
                candidates = [p for p in glob.glob(os.path.join(temp_dir, "*")) if not p.endswith((".part", ".ytdl"))]
                if not candidates:
                    raise SourceFetchError(f"YouTube download produced no audio file for {video_id}")
                output_path = candidates[0]

            with open(output_path, "rb") as audio_file:
                audio_bytes = audio_file.read()

        size_mb = len(audio_bytes) / (1024 * 1024)
        if len(audio_bytes) < MIN_AUDIO_BYTES:
            raise SourceFetchError(f"YouTube download is too small ({len(audio_bytes)} bytes)")
        if size_mb > MAX_AUDIO_MB:
            raise SourceFetchError(
                f"Audio file is too large ({size_mb:.2f}MB, limit {MAX_AUDIO_MB}MB)",
                details={"size_mb": round(size_mb, 2)},
            )

        file_key = f"podcast-audio/{video_id}-{secrets.token_hex(8)}.mp3"
        audio_url = await self.storage_manager.put(file_key, audio_bytes, "audio/mpeg")
        logger.info(f"[YouTube] Audio uploaded ({size_mb:.2f}MB): {file_key}")

        return ResolvedContent(
            title=info.get("title") if info else None,
            raw_audio_url=audio_url,
            raw_audio_key=file_key,
            duration_seconds=info.get("duration") if info else None,
        )

    async def transcribe(self, downloaded: ResolvedContent) -> ResolvedContent:
        """Fill in the transcript for audio produced by download_audio."""
        result = await self.transcription_service.transcribe(downloaded.raw_audio_url)
        return downloaded.model_copy(update={
            "text": result.text,
            "language": result.language,
            "duration_seconds": result.duration_seconds or downloaded.duration_seconds,
        })

    async def resolve(self, source_reference: str) -> ResolvedContent:
        """Download, store and transcribe a video in one step."""
        info = await self.fetch_info(source_reference)
        downloaded = await self.download_audio(source_reference, info.video_id)
        resolved = await self.transcribe(downloaded)
        return resolved.model_copy(update={"title": resolved.title or info.title})
