# podcast_pipeline/tts_service.py

import asyncio
import logging
from typing import List, Optional

from google.api_core.exceptions import (
    DeadlineExceeded,
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
)
from google.cloud import texttospeech
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .common_exceptions import AudioGenerationError
from .logging_utils import tenacity_retry_logger
from .podcast_models import VoiceIdentity

logger = logging.getLogger(__name__)

# Display names handed to hosts, by gender, in catalog order
male_names = [
    "Alexander", "Benjamin", "Christopher", "Daniel", "Ethan", "Frederick", "George",
    "Henry", "Isaac", "James", "Kenneth", "Liam", "Michael", "Nathan", "Oliver",
]

female_names = [
    "Amelia", "Beatrice", "Catherine", "Diana", "Elizabeth", "Fiona", "Grace",
    "Hannah", "Isabella", "Julia", "Katherine", "Lily", "Margaret", "Natalie", "Olivia",
]

neutral_names = ["Alex", "Bailey", "Cameron", "Dakota", "Eden", "Finley", "Jordan", "Morgan"]

# Higher quality voice families sort first
VOICE_FAMILY_RANK = ("Neural2", "Wavenet", "Studio", "News", "Standard")

TRANSIENT_TTS_ERRORS = (ServiceUnavailable, DeadlineExceeded, ResourceExhausted, InternalServerError)

_GENDER_MAP = {
    texttospeech.SsmlVoiceGender.MALE: "male",
    texttospeech.SsmlVoiceGender.FEMALE: "female",
}


def _family_rank(voice_name: str) -> int:
    for index, family in enumerate(VOICE_FAMILY_RANK):
        if f"-{family}-" in voice_name:
            return index
    return len(VOICE_FAMILY_RANK)


class GoogleCloudTtsService:
    """
    Google Cloud Text-to-Speech adapter.

    ``list_voices`` returns a gender-labelled catalog for the configured locale;
    ``synthesize`` turns one turn of text into MP3 bytes.
    """

    def __init__(
        self,
        language_code: str = "en-US",
        max_attempts: int = 3,
        client: Optional[texttospeech.TextToSpeechClient] = None,
    ):
        """
        Initializes the Google Cloud Text-to-Speech client.
        Assumes GOOGLE_APPLICATION_CREDENTIALS environment variable is set.
        """
        self.language_code = language_code
        self.max_attempts = max_attempts
        self.client = client or texttospeech.TextToSpeechClient()
        self._voice_cache: Optional[List[VoiceIdentity]] = None
        logger.info(f"GoogleCloudTtsService initialized for {language_code}")

    async def list_voices(self) -> List[VoiceIdentity]:
        """Fetch (once) and return the voice catalog for the configured locale."""
        if self._voice_cache is None:
            response = await asyncio.to_thread(self.client.list_voices, language_code=self.language_code)
            self._voice_cache = self._build_catalog(response.voices)
            logger.info(f"Cached {len(self._voice_cache)} voices for {self.language_code}")
        return list(self._voice_cache)

    def _build_catalog(self, voices) -> List[VoiceIdentity]:
        ordered = sorted(
            (v for v in voices if self.language_code in v.language_codes),
            key=lambda v: (_family_rank(v.name), v.name),
        )
        name_pools = {"male": iter(male_names), "female": iter(female_names), "neutral": iter(neutral_names)}

        catalog = []
        for voice in ordered:
            gender = _GENDER_MAP.get(voice.ssml_gender, "neutral")
            display_name = next(name_pools[gender], voice.name)
            catalog.append(
                VoiceIdentity(
                    speaker_id=voice.name,
                    name=display_name,
                    gender=gender,
                    locale=self.language_code,
                )
            )
        return catalog

    async def synthesize(self, text: str, voice: VoiceIdentity) -> bytes:
        """
        Synthesize ``text`` with ``voice`` to MP3 bytes, retrying transient provider errors.

        Raises:
            AudioGenerationError: If synthesis fails or returns no audio
        """
        if not text or not text.strip():
            raise AudioGenerationError("Cannot synthesize empty text", details={"voice": voice.speaker_id})

        request = {
            "input": texttospeech.SynthesisInput(text=text),
            "voice": texttospeech.VoiceSelectionParams(language_code=voice.locale, name=voice.speaker_id),
            "audio_config": texttospeech.AudioConfig(audio_encoding=texttospeech.AudioEncoding.MP3),
        }
        logger.info(f"Requesting speech synthesis for text: '{text[:50]}...' with voice='{voice.speaker_id}'")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            retry=retry_if_exception_type(TRANSIENT_TTS_ERRORS),
            before_sleep=tenacity_retry_logger("TTS synthesis", self.max_attempts, voice.speaker_id),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await asyncio.to_thread(self.client.synthesize_speech, request=request)
        except Exception as e:
            raise AudioGenerationError(
                f"Text-to-speech synthesis failed: {e}", details={"voice": voice.speaker_id}
            ) from e

        if not response.audio_content:
            raise AudioGenerationError("Text-to-speech returned no audio", details={"voice": voice.speaker_id})
        return response.audio_content
