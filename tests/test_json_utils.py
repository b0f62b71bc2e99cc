import pytest

from podcast_pipeline.json_utils import (
    ParseError,
    Segments,
    clean_json_string_from_markdown,
    deserialize_json,
    parse_fields_with_fallback,
    parse_model_json,
    parse_segments_output,
    serialize_json,
)
from podcast_pipeline.podcast_models import ScriptTurn


def test_clean_json_strips_fences_and_prose():
    text = 'Here you go:\n```json\n{"summary": "ok"}\n```\nHope that helps'
    assert clean_json_string_from_markdown(text) == '{"summary": "ok"}'


@pytest.mark.parametrize(
    "reply",
    [
        '{"a":1}',
        'prefix {"a":1} suffix',
        '```json\n{"a":1}\n```',
        'Sure! ```{"a":1}``` done',
    ],
)
def test_parse_model_json_recovers_object(reply):
    assert parse_model_json(reply) == {"a": 1}


def test_parse_model_json_tolerates_raw_newlines():
    assert parse_model_json('{"summary": "line one\nline two"}') == {"summary": "line one\nline two"}


def test_parse_model_json_rejects_empty():
    with pytest.raises(ValueError):
        parse_model_json("   ")


def test_fields_recovered_from_broken_json():
    broken = '{"videoId": "abc123def45", "title": "A \\"quoted\\" title", "summary": "Sum", "podcastScript": "Host A: hi'
    fields = parse_fields_with_fallback(broken, ("videoId", "title", "summary", "podcastScript"))
    assert fields["videoId"] == "abc123def45"
    assert fields["title"] == 'A "quoted" title'
    assert fields["summary"] == "Sum"
    assert "podcastScript" not in fields


@pytest.mark.parametrize(
    "raw",
    [
        '[{"title": "One", "startIndex": 0, "endIndex": 1}]',
        '{"segments": [{"title": "One", "startIndex": 0, "endIndex": 1}]}',
        '{"highlights": [{"title": "One", "startIndex": 0, "endIndex": 1}]}',
        '```json\n{"items": [{"title": "One", "startIndex": 0, "endIndex": 1}]}\n```',
        '{"title": "One", "startIndex": 0, "endIndex": 1}',
    ],
)
def test_parse_segments_shapes(raw):
    parsed = parse_segments_output(raw)
    assert isinstance(parsed, Segments)
    assert parsed.items[0]["title"] == "One"


def test_parse_segments_reports_unusable_output():
    assert isinstance(parse_segments_output("no json here"), ParseError)
    assert isinstance(parse_segments_output('{"unrelated": true}'), ParseError)


def test_serialize_script_turns():
    data = serialize_json([ScriptTurn(speaker_id="v1", speaker_name="Emma", content="Hi")])
    assert deserialize_json(data) == [{"speaker_id": "v1", "speaker_name": "Emma", "content": "Hi"}]


def test_deserialize_returns_default_on_garbage():
    assert deserialize_json("{not json", default=[], log_errors=False) == []
    assert deserialize_json(None, default="x") == "x"
