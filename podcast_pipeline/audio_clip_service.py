"""Cuts highlight clips out of stored episodes and uploads them."""

import logging
import os
import secrets
import shutil
import tempfile
import time

import httpx

from .audio_utils import cut_mp3_clip
from .common_exceptions import AudioGenerationError, StorageError
from .podcast_models import ClipResult

logger = logging.getLogger(__name__)


def build_clip_key(owner_id: str, task_id: str) -> str:
    timestamp_ms = int(time.time() * 1000)
    return f"podcast-highlights/{owner_id}/{task_id}/highlight_{timestamp_ms}_{secrets.token_hex(4)}.mp3"


class AudioClipService:
    """Download an episode, cut ``[start, start + duration)`` with ffmpeg and upload the clip."""

    def __init__(self, storage_manager, http_client: httpx.AsyncClient, ffmpeg_path: str = "ffmpeg"):
        self.storage_manager = storage_manager
        self.http_client = http_client
        self.ffmpeg_path = ffmpeg_path

    async def download_audio(self, audio_url: str, destination: str) -> None:
        """
        Fetch ``audio_url`` (http(s) URL or local path) into ``destination``.

        Raises:
            StorageError: If the audio cannot be fetched
        """
        if not audio_url.startswith(("http://", "https://")):
            if not os.path.exists(audio_url):
                raise StorageError(f"Failed to download audio: {audio_url} not found")
            shutil.copyfile(audio_url, destination)
            return

        try:
            async with self.http_client.stream("GET", audio_url, follow_redirects=True) as response:
                response.raise_for_status()
                with open(destination, "wb") as out_file:
                    async for chunk in response.aiter_bytes():
                        out_file.write(chunk)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download audio: {e}", details={"url": audio_url}) from e
        logger.info(f"[AudioClip] Audio downloaded to: {destination}")

    async def clip_from_url_and_upload(
        self,
        audio_url: str,
        start: float,
        duration: float,
        owner_id: str,
        task_id: str,
    ) -> ClipResult:
        """
        Raises:
            StorageError: If the download or upload fails
            AudioGenerationError: If the cut fails
        """
        if duration <= 0 or start < 0:
            raise AudioGenerationError(
                "Invalid clip window", details={"start": start, "duration": duration}
            )

        with tempfile.TemporaryDirectory(prefix="podcast-clip-") as work_dir:
            source_path = os.path.join(work_dir, "source.mp3")
            clip_path = os.path.join(work_dir, "clip.mp3")

            await self.download_audio(audio_url, source_path)
            logger.info(f"[AudioClip] Clipping {duration}s from {start}s")
            await cut_mp3_clip(self.ffmpeg_path, source_path, clip_path, start, duration)

            with open(clip_path, "rb") as clip_file:
                clip_bytes = clip_file.read()

        file_key = build_clip_key(owner_id, task_id)
        logger.info(f"[AudioClip] Uploading clip: {file_key}")
        url = await self.storage_manager.put(file_key, clip_bytes, "audio/mpeg")
        return ClipResult(url=url, file_key=file_key)
