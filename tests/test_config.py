import pytest

from podcast_pipeline.config import Config, setup_environment


def test_gemini_models_are_parsed_in_order(monkeypatch):
    monkeypatch.setenv("GEMINI_MODELS", " gemini-2.0-flash, ,gemini-1.5-pro ")
    assert Config().gemini_models == ["gemini-2.0-flash", "gemini-1.5-pro"]


def test_defaults(monkeypatch):
    for name in ("AUDIO_BUCKET", "MAX_CONCURRENT_TASKS", "HIGHLIGHT_MAX_DURATION", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)
    cfg = Config()
    assert cfg.audio_bucket is None
    assert cfg.max_concurrent_tasks == 2
    assert cfg.highlight_max_duration == 60
    assert cfg.is_local_environment


def test_validation_reports_missing_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    result = Config().validate_required_config()
    assert result["valid"] is False
    assert "GEMINI_API_KEY not configured" in result["issues"]


def test_highlight_ceiling_is_bounded(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setenv("HIGHLIGHT_MAX_DURATION", "90")
    assert Config().validate_required_config()["valid"] is False


def test_cloud_setup_fails_fast_on_invalid_config(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        setup_environment()


def test_local_setup_tolerates_missing_keys(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "local")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    assert setup_environment().environment == "local"
