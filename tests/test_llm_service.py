"""
Tests for the Gemini wrapper's retry and model fallback behaviour.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core.exceptions import InvalidArgument, NotFound, ResourceExhausted
from tenacity import wait_none

from podcast_pipeline.common_exceptions import ConfigurationMissingError, LLMProcessingError
from podcast_pipeline.llm_service import (
    GeminiService,
    is_model_unavailable_error,
    is_rate_limit_error,
    try_in_order,
)


def _scripted(outcomes):
    """Attempt function that replays outcomes per candidate and records every call."""
    calls = []

    async def attempt(candidate):
        calls.append(candidate)
        outcome = outcomes[candidate].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return attempt, calls


@pytest.mark.asyncio
async def test_first_candidate_success():
    attempt, calls = _scripted({"m1": ["ok"]})
    assert await try_in_order(["m1", "m2"], attempt, wait=wait_none()) == "ok"
    assert calls == ["m1"]


@pytest.mark.asyncio
async def test_rate_limit_is_retried_on_same_model():
    attempt, calls = _scripted({"m1": [ResourceExhausted("quota"), "ok"]})
    assert await try_in_order(["m1"], attempt, max_attempts=2, wait=wait_none()) == "ok"
    assert calls == ["m1", "m1"]


@pytest.mark.asyncio
async def test_exhausted_rate_limit_moves_to_next_model():
    attempt, calls = _scripted({
        "m1": [ResourceExhausted("quota"), ResourceExhausted("quota")],
        "m2": ["from m2"],
    })
    assert await try_in_order(["m1", "m2"], attempt, max_attempts=2, wait=wait_none()) == "from m2"
    assert calls == ["m1", "m1", "m2"]


@pytest.mark.asyncio
async def test_unavailable_model_is_skipped_without_retry():
    attempt, calls = _scripted({"m1": [NotFound("model not found")], "m2": ["ok"]})
    assert await try_in_order(["m1", "m2"], attempt, max_attempts=3, wait=wait_none()) == "ok"
    assert calls == ["m1", "m2"]


@pytest.mark.asyncio
async def test_other_errors_propagate():
    attempt, calls = _scripted({"m1": [InvalidArgument("bad request")], "m2": ["ok"]})
    with pytest.raises(InvalidArgument):
        await try_in_order(["m1", "m2"], attempt, wait=wait_none())
    assert calls == ["m1"]


@pytest.mark.asyncio
async def test_all_models_failing_raises_analysis_error():
    attempt, _ = _scripted({"m1": [NotFound("gone")], "m2": [NotFound("gone too")]})
    with pytest.raises(LLMProcessingError, match="All models failed"):
        await try_in_order(["m1", "m2"], attempt, wait=wait_none())


@pytest.mark.asyncio
async def test_no_candidates_is_a_configuration_error():
    with pytest.raises(ConfigurationMissingError):
        await try_in_order([], AsyncMock(), wait=wait_none())


@pytest.mark.parametrize(
    "error, rate_limited, unavailable",
    [
        (ResourceExhausted("quota"), True, False),
        (RuntimeError("HTTP 429 Too Many Requests"), True, False),
        (NotFound("missing"), False, True),
        (RuntimeError("models/gemini-x is not supported for generateContent"), False, True),
        (RuntimeError("bad prompt"), False, False),
    ],
)
def test_error_predicates(error, rate_limited, unavailable):
    assert is_rate_limit_error(error) is rate_limited
    assert is_model_unavailable_error(error) is unavailable


class TestGeminiService:

    def test_missing_key_is_a_configuration_error(self):
        with pytest.raises(ConfigurationMissingError):
            GeminiService(None, ["gemini-2.0-flash"])

    @pytest.mark.asyncio
    async def test_empty_prompt_is_rejected(self):
        with patch("podcast_pipeline.llm_service.genai.configure"):
            service = GeminiService("key", ["gemini-2.0-flash"])
        with pytest.raises(ValueError):
            await service.invoke("")

    @pytest.mark.asyncio
    async def test_invoke_falls_back_to_next_model(self):
        good_model = MagicMock()
        good_model.generate_content_async = AsyncMock(return_value=MagicMock(text="  hello  "))
        missing_model = MagicMock()
        missing_model.generate_content_async = AsyncMock(side_effect=NotFound("no such model"))

        def model_factory(name, system_instruction=None):
            return missing_model if name == "old-model" else good_model

        with patch("podcast_pipeline.llm_service.genai.configure"), \
                patch("podcast_pipeline.llm_service.genai.GenerativeModel", side_effect=model_factory):
            service = GeminiService("key", ["old-model", "gemini-2.0-flash"])
            assert await service.invoke("Say hello", system_prompt="Be brief") == "hello"
