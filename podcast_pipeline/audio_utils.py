"""
Audio utilities for the podcast pipeline.
Contains ffmpeg helpers for joining and cutting MP3 files, and duration measurement.
"""

import asyncio
import logging
import os
from typing import List, Optional

from pydub import AudioSegment

from .common_exceptions import AudioGenerationError

logger = logging.getLogger(__name__)


async def run_ffmpeg(ffmpeg_path: str, args: List[str], operation: str) -> None:
    """
    Run ffmpeg with ``args`` and wait for it.

    Raises:
        AudioGenerationError: If ffmpeg cannot start or exits non-zero
    """
    logger.debug(f"[AUDIO] {operation}: {ffmpeg_path} {' '.join(args)}")
    try:
        process = await asyncio.create_subprocess_exec(
            ffmpeg_path,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise AudioGenerationError(f"{operation} failed: could not run {ffmpeg_path}: {e}") from e

    _, stderr = await process.communicate()
    if process.returncode != 0:
        tail = stderr.decode(errors="replace")[-500:] if stderr else ""
        raise AudioGenerationError(
            f"{operation} failed: ffmpeg exited with code {process.returncode}",
            details={"stderr": tail},
        )


def write_concat_list(segment_paths: List[str], list_path: str) -> None:
    """Write an ffmpeg concat demuxer list file."""
    with open(list_path, "w", encoding="utf-8") as list_file:
        for path in segment_paths:
            escaped = os.path.abspath(path).replace("'", "'\\''")
            list_file.write(f"file '{escaped}'\n")


async def concat_mp3_files(ffmpeg_path: str, segment_paths: List[str], output_path: str, list_path: str) -> None:
    """
    Join MP3 files losslessly with the concat demuxer.

    Raises:
        AudioGenerationError: If there is nothing to join or ffmpeg fails
    """
    if not segment_paths:
        raise AudioGenerationError("No audio segments provided for concatenation")

    write_concat_list(segment_paths, list_path)
    logger.info(f"[AUDIO] Concatenating {len(segment_paths)} segments into {output_path}")
    await run_ffmpeg(
        ffmpeg_path,
        ["-f", "concat", "-safe", "0", "-i", list_path, "-c", "copy", output_path, "-y"],
        "Audio concatenation",
    )


async def cut_mp3_clip(ffmpeg_path: str, input_path: str, output_path: str, start: float, duration: float) -> None:
    """
    Re-encode ``duration`` seconds starting at ``start`` into a new MP3.

    Raises:
        AudioGenerationError: If ffmpeg fails
    """
    await run_ffmpeg(
        ffmpeg_path,
        [
            "-i", input_path,
            "-ss", str(start),
            "-t", str(duration),
            "-acodec", "libmp3lame",
            "-b:a", "192k",
            output_path,
            "-y",
        ],
        "Audio clipping",
    )


def measure_duration_seconds(path: str) -> Optional[float]:
    """Duration of an MP3 file in seconds, or None if it cannot be decoded."""
    try:
        return len(AudioSegment.from_mp3(path)) / 1000.0
    except Exception as e:
        logger.warning(f"[AUDIO] Could not measure duration of {path}: {e}")
        return None
