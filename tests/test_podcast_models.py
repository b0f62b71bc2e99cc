from podcast_pipeline.podcast_models import PodcastRequest


def test_request_uses_model_config():
    assert PodcastRequest.model_config["use_enum_values"] is True


def test_voice_pair_needs_both_ids():
    base = {"owner_id": "user-1", "input_type": "text", "source_reference": "Text"}
    assert PodcastRequest(**base).voice_pair is None
    assert PodcastRequest(**base, voice_id_1="en-US-Neural2-D").voice_pair is None
    assert PodcastRequest(**base, voice_id_1="a", voice_id_2="b").voice_pair == ("a", "b")
