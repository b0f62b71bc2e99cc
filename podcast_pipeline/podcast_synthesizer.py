"""
Two-host episode synthesis: split a script into turns, voice each turn, join and upload.
"""

import asyncio
import logging
import os
import re
import tempfile
import uuid
from typing import List, Optional, Sequence, Tuple

from .audio_utils import concat_mp3_files, measure_duration_seconds
from .common_exceptions import AudioGenerationError
from .podcast_models import LengthMode, PodcastEpisode, ScriptTurn, VoiceIdentity

logger = logging.getLogger(__name__)

# Labels the script prompt asks the model to use, accepted alongside the voices' own names
DEFAULT_HOST1_ALIASES = ("Host A", "Host 1")
DEFAULT_HOST2_ALIASES = ("Host B", "Host 2")


def _prefix_pattern(names: Sequence[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(name) for name in names if name)
    return re.compile(rf"^(?:{alternatives})\s*[：:]\s*(.+)", re.DOTALL)


def split_text_into_dialogue(
    text: str,
    host1_name: str,
    host2_name: str,
    host1_aliases: Sequence[str] = DEFAULT_HOST1_ALIASES,
    host2_aliases: Sequence[str] = DEFAULT_HOST2_ALIASES,
) -> List[Tuple[str, str]]:
    """
    Split ``text`` into ``(speaker_name, content)`` turns.

    Paragraphs are separated by blank lines. A paragraph opening with a host's
    name (or alias) and a colon belongs to that host with the label stripped;
    any other paragraph alternates by index, host 1 first.
    """
    paragraphs = [p.strip() for p in re.split(r"\n\n+", text or "")]
    paragraphs = [p for p in paragraphs if p]

    host1_pattern = _prefix_pattern([host1_name, *host1_aliases])
    host2_pattern = _prefix_pattern([host2_name, *host2_aliases])

    dialogue = []
    for index, paragraph in enumerate(paragraphs):
        host1_match = host1_pattern.match(paragraph)
        host2_match = host2_pattern.match(paragraph)
        if host1_match:
            dialogue.append((host1_name, host1_match.group(1).strip()))
        elif host2_match:
            dialogue.append((host2_name, host2_match.group(1).strip()))
        else:
            dialogue.append((host1_name if index % 2 == 0 else host2_name, paragraph))
    return [(speaker, content) for speaker, content in dialogue if content]


class PodcastSynthesizer:
    """Turns a summary or script into a single uploaded two-host MP3 episode."""

    def __init__(self, tts_service, storage_manager, ffmpeg_path: str = "ffmpeg"):
        self.tts_service = tts_service
        self.storage_manager = storage_manager
        self.ffmpeg_path = ffmpeg_path

    async def select_voices(self, voice_ids: Optional[Tuple[str, str]] = None) -> Tuple[VoiceIdentity, VoiceIdentity]:
        """
        Pick the two host voices.

        An explicit pair is looked up by speaker id and must name two distinct
        catalog voices. Without a pair, host 1 is the first male voice and host 2
        the first female voice.

        Raises:
            AudioGenerationError: If the catalog cannot supply the voices or an
                explicit voice id is unknown
        """
        voices = await self.tts_service.list_voices()

        if voice_ids:
            by_id = {voice.speaker_id: voice for voice in voices}
            unknown = [voice_id for voice_id in voice_ids if voice_id not in by_id]
            if unknown:
                raise AudioGenerationError(
                    f"Unknown voice id: {', '.join(unknown)}",
                    details={"voice_ids": unknown, "catalog_size": len(voices)},
                )
            if voice_ids[0] == voice_ids[1]:
                raise AudioGenerationError("Both hosts were given the same voice", details={"voice_id": voice_ids[0]})
            host1, host2 = by_id[voice_ids[0]], by_id[voice_ids[1]]
            logger.info(f"[Synth] Using custom voices: {host1.name} ({host1.speaker_id}) and {host2.name} ({host2.speaker_id})")
            return host1, host2

        male = next((v for v in voices if v.gender == "male"), None)
        female = next((v for v in voices if v.gender == "female"), None)
        if not male or not female:
            raise AudioGenerationError(
                "No male or female voices available",
                details={"catalog_size": len(voices)},
            )
        logger.info(f"[Synth] Selected speakers: {male.name} (male) and {female.name} (female)")
        return male, female

    async def synthesize_episode(
        self,
        content: str,
        mode: LengthMode = "medium",
        voices: Optional[Tuple[str, str]] = None,
        title: Optional[str] = None,
    ) -> PodcastEpisode:
        """
        Synthesize and upload a two-host episode for ``content``.

        ``mode`` is passed through as a hint and does not change the output.

        Raises:
            AudioGenerationError: If any turn fails or there is nothing to voice
            StorageError: If the upload fails
        """
        host1, host2 = await self.select_voices(voices)
        dialogue = split_text_into_dialogue(content, host1.name, host2.name)
        if not dialogue:
            raise AudioGenerationError("No dialogue to synthesize")
        logger.info(f"[Synth] Split content into {len(dialogue)} dialogue turns (mode={mode})")

        episode_id = uuid.uuid4().hex
        scripts: List[ScriptTurn] = []

        with tempfile.TemporaryDirectory(prefix="podcast-synth-") as work_dir:
            segment_paths = []
            for index, (speaker_name, turn_text) in enumerate(dialogue):
                voice = host1 if speaker_name == host1.name else host2
                logger.info(f"[Synth] Synthesizing turn {index}: {voice.name} - \"{turn_text[:50]}...\"")
                audio = await self.tts_service.synthesize(turn_text, voice)

                segment_path = os.path.join(work_dir, f"turn_{index:03d}.mp3")
                with open(segment_path, "wb") as segment_file:
                    segment_file.write(audio)
                segment_paths.append(segment_path)
                scripts.append(ScriptTurn(speaker_id=voice.speaker_id, speaker_name=voice.name, content=turn_text))

            if len(segment_paths) == 1:
                episode_path = segment_paths[0]
            else:
                episode_path = os.path.join(work_dir, "episode.mp3")
                await concat_mp3_files(
                    self.ffmpeg_path,
                    segment_paths,
                    episode_path,
                    os.path.join(work_dir, "concat.txt"),
                )

            duration_seconds = await asyncio.to_thread(measure_duration_seconds, episode_path)
            with open(episode_path, "rb") as episode_file:
                episode_bytes = episode_file.read()

        audio_url = await self.storage_manager.put(
            f"podcast-episodes/{episode_id}.mp3", episode_bytes, "audio/mpeg"
        )
        logger.info(f"[Synth] Episode {episode_id} uploaded ({len(episode_bytes)} bytes, {duration_seconds}s)")

        return PodcastEpisode(
            episode_id=episode_id,
            audio_url=audio_url,
            title=title or f"Podcast {episode_id[:8]}",
            scripts=scripts,
            duration_seconds=duration_seconds,
        )
