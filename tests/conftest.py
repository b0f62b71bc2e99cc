from typing import Dict, List, Optional, Union

import pytest

from podcast_pipeline.database import Database
from podcast_pipeline.podcast_models import ScriptTurn, VoiceIdentity
from podcast_pipeline.status_manager import StatusManager


class FakeLLM:
    """Returns scripted replies in order; an Exception in the list is raised instead."""

    def __init__(self, replies: List[Union[str, Exception]]):
        self.replies = list(replies)
        self.calls: List[Dict[str, Optional[str]]] = []

    async def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt})
        if not self.replies:
            raise AssertionError(f"Unexpected LLM call: {prompt[:80]}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeStorage:
    def __init__(self, fail_keys_containing: Optional[str] = None):
        self.objects: Dict[str, bytes] = {}
        self.fail_keys_containing = fail_keys_containing

    @property
    def is_cloud_storage_available(self) -> bool:
        return False

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        from podcast_pipeline.common_exceptions import StorageError

        if self.fail_keys_containing and self.fail_keys_containing in key:
            raise StorageError(f"Failed to upload {key}")
        self.objects[key] = data
        return f"https://storage.test/{key}"

    async def get(self, key: str) -> str:
        return f"https://storage.test/{key}?signed=1"


class FakeTTS:
    def __init__(self, voices: Optional[List[VoiceIdentity]] = None):
        self.voices = voices if voices is not None else default_voices()
        self.synthesized: List[tuple] = []

    async def list_voices(self) -> List[VoiceIdentity]:
        return self.voices

    async def synthesize(self, text: str, voice: VoiceIdentity) -> bytes:
        self.synthesized.append((voice.speaker_id, text))
        return b"ID3" + text.encode("utf-8")


def default_voices() -> List[VoiceIdentity]:
    return [
        VoiceIdentity(speaker_id="en-US-Neural2-A", name="Sam", gender="neutral", locale="en-US"),
        VoiceIdentity(speaker_id="en-US-Neural2-D", name="David", gender="male", locale="en-US"),
        VoiceIdentity(speaker_id="en-US-Neural2-F", name="Emma", gender="female", locale="en-US"),
        VoiceIdentity(speaker_id="en-US-Neural2-J", name="James", gender="male", locale="en-US"),
    ]


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def status_manager(database):
    return StatusManager(database)


@pytest.fixture
def sample_scripts() -> List[ScriptTurn]:
    return [
        ScriptTurn(speaker_id="en-US-Neural2-D", speaker_name="David", content="a" * 50),
        ScriptTurn(speaker_id="en-US-Neural2-F", speaker_name="Emma", content="b" * 50),
        ScriptTurn(speaker_id="en-US-Neural2-D", speaker_name="David", content="c" * 50),
        ScriptTurn(speaker_id="en-US-Neural2-F", speaker_name="Emma", content="d" * 50),
    ]
