import json

import pytest

from conftest import FakeLLM
from podcast_pipeline.common_exceptions import LLMProcessingError
from podcast_pipeline.content_analyzer import (
    TRUNCATION_MARKER,
    ContentAnalyzer,
    normalize_title,
    title_similarity,
    truncate_for_prompt,
)

VIDEO_ID = "dQw4w9WgXcQ"
VIDEO_URL = f"https://www.youtube.com/watch?v={VIDEO_ID}"


def _video_reply(video_id=VIDEO_ID, title="Never Gonna Give You Up", **overrides):
    payload = {
        "videoId": video_id,
        "title": title,
        "transcription": "We're no strangers to love",
        "summary": "A song about commitment.",
        "podcastScript": "Host A: Let's talk about it.\n\nHost B: Sure.",
    }
    payload.update(overrides)
    return json.dumps(payload)


# --- Title helpers ---

@pytest.mark.parametrize(
    "a, b, matches",
    [
        ("Hello, World!", "hello world", True),
        ("Hello World", "Goodbye Moon", False),
        ("Never Gonna Give You Up", "Rick Astley - Never Gonna Give You Up", True),
        ("", "anything", False),
        ("咖啡的歷史", "咖啡的歷史！", True),
    ],
)
def test_title_similarity_threshold(a, b, matches):
    assert (title_similarity(a, b) >= 0.9) is matches


def test_identical_titles_score_one():
    assert title_similarity("Same Title", "same   title") == 1.0


def test_normalize_title():
    assert normalize_title("  Hello,   World!! ") == "hello world"


def test_truncate_for_prompt():
    assert truncate_for_prompt("short", 10) == "short"
    assert truncate_for_prompt("x" * 20, 10) == "x" * 10 + TRUNCATION_MARKER


# --- Free text analysis ---

@pytest.mark.asyncio
async def test_analyze_generates_title_summary_and_script():
    llm = FakeLLM(['"The History of Coffee"\n', "Coffee spread from Ethiopia.", "Host A: Coffee!\n\nHost B: Yes."])
    analyzer = ContentAnalyzer(llm, language="English", max_chars=50)

    analysis = await analyzer.analyze("Coffee " * 40, style="educational")

    assert analysis.title == "The History of Coffee"
    assert analysis.summary == "Coffee spread from Ethiopia."
    assert analysis.script.startswith("Host A:")
    # The script prompt receives the truncated content and the summary
    assert TRUNCATION_MARKER in llm.calls[2]["prompt"]
    assert "Coffee spread from Ethiopia." in llm.calls[2]["prompt"]


@pytest.mark.asyncio
async def test_analyze_uses_title_hint_without_asking_the_model():
    llm = FakeLLM(["Summary", "Script"])
    analysis = await ContentAnalyzer(llm).analyze("Body text", title_hint="Article Title")
    assert analysis.title == "Article Title"
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_analyze_rejects_empty_summary():
    with pytest.raises(LLMProcessingError):
        await ContentAnalyzer(FakeLLM(["Title", "   "])).analyze("Body text")


# --- Transcript analysis ---

@pytest.mark.asyncio
async def test_analyze_transcript_parses_fenced_json():
    reply = '```json\n{"summary": "S", "podcastScript": "Host A: hi"}\n```'
    analysis = await ContentAnalyzer(FakeLLM([reply])).analyze_transcript("the transcript")
    assert analysis.summary == "S"
    assert analysis.script == "Host A: hi"
    assert analysis.transcript == "the transcript"


@pytest.mark.asyncio
async def test_analyze_transcript_recovers_fields_from_broken_json():
    reply = '{"summary": "S", "podcastScript": "Host A: hi", "extra": '
    analysis = await ContentAnalyzer(FakeLLM([reply])).analyze_transcript("t")
    assert analysis.summary == "S"


@pytest.mark.asyncio
async def test_analyze_transcript_missing_fields_fails():
    with pytest.raises(LLMProcessingError):
        await ContentAnalyzer(FakeLLM(['{"summary": "S"}'])).analyze_transcript("t")


# --- Direct video analysis ---

@pytest.mark.asyncio
async def test_direct_video_analysis_accepted():
    analyzer = ContentAnalyzer(FakeLLM([_video_reply(title="never gonna give you up!")]))
    analysis = await analyzer.analyze_video_directly(VIDEO_URL, VIDEO_ID, "Never Gonna Give You Up", 212)
    assert analysis.title == "Never Gonna Give You Up"
    assert analysis.transcript == "We're no strangers to love"
    assert analysis.summary == "A song about commitment."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        _video_reply(title="A Completely Different Talk"),
        _video_reply(video_id="xxxxxxxxxxx"),
        _video_reply(summary=""),
        "I cannot watch videos.",
        LLMProcessingError("All models failed"),
    ],
)
async def test_direct_video_analysis_rejected(reply):
    analyzer = ContentAnalyzer(FakeLLM([reply]))
    assert await analyzer.analyze_video_directly(VIDEO_URL, VIDEO_ID, "Never Gonna Give You Up", 212) is None


@pytest.mark.asyncio
async def test_direct_video_analysis_needs_actual_title():
    llm = FakeLLM([])
    assert await ContentAnalyzer(llm).analyze_video_directly(VIDEO_URL, VIDEO_ID, "  ", 0) is None
    assert llm.calls == []
