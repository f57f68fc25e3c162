"""
KeepWise — Gemini Summarizer Unit Tests (Mocked)
=================================================

What:  Tests for GeminiSummarizer with the Google Generative AI SDK mocked.
How:   Patches the genai module and model to simulate success/failure.
       RETRY_MAX_ATTEMPTS=1 (conftest) so failures surface without backoff.

What we test:
    ✅ Circuit breaker state machine
    ✅ Prompt carries type, length and format instructions
    ✅ Successful summary is returned stripped
    ✅ API failure and empty answers become LLMServiceError
    ✅ Open circuit rejects calls without touching the API
    ❌ Real API calls
"""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from keepwise.exceptions import CircuitBreakerOpenError, LLMServiceError
from keepwise.services.gemini_service import CircuitBreaker, GeminiSummarizer, build_prompt
from keepwise.services.summarizer_base import SummaryOptions


def make_summarizer(response_text=None, error=None, api_key="test-key"):
    with patch("keepwise.services.gemini_service.genai") as mock_genai:
        mock_model = MagicMock()
        if error is not None:
            mock_model.generate_content_async = AsyncMock(side_effect=error)
        else:
            mock_model.generate_content_async = AsyncMock(
                return_value=MagicMock(text=response_text)
            )
        mock_genai.GenerativeModel.return_value = mock_model
        summarizer = GeminiSummarizer(api_key=api_key)
    return summarizer, mock_model


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()

        assert cb.state == "open"
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 0 < exc_info.value.recovery_time <= 60

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()

        cb.record_success()

        assert cb.failure_count == 0
        assert cb.state == "closed"

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)

        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"

    def test_half_open_success_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_success()
        assert cb.state == "closed"


class TestBuildPrompt:

    def test_defaults_ask_for_markdown_key_points(self):
        prompt = build_prompt("Some article text", SummaryOptions())

        assert "key points" in prompt
        assert "at most 5 bullets" in prompt
        assert "Markdown" in prompt
        assert prompt.endswith("Some article text")

    def test_plain_text_headline(self):
        prompt = build_prompt("x", SummaryOptions(type="headline", length="short", format="plain-text"))

        assert "headline" in prompt
        assert "12 words" in prompt
        assert "without any Markdown" in prompt

    def test_unknown_type_rejected_by_options(self):
        with pytest.raises(ValueError):
            SummaryOptions(type="essay")


class TestGeminiSummarizerMocked:

    @pytest.mark.asyncio
    async def test_summarize_success(self):
        summarizer, model = make_summarizer(response_text="  - point one\n- point two \n")

        result = await summarizer.summarize("Lorem ipsum dolor sit amet", SummaryOptions())

        assert result == "- point one\n- point two"
        model.generate_content_async.assert_awaited_once()
        prompt = model.generate_content_async.call_args.args[0]
        assert "Lorem ipsum dolor sit amet" in prompt
        assert summarizer.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_api_failure_becomes_llm_service_error(self):
        summarizer, _ = make_summarizer(error=RuntimeError("quota exceeded"))

        with pytest.raises(LLMServiceError) as exc_info:
            await summarizer.summarize("text", SummaryOptions())

        assert exc_info.value.status_code == 503
        assert "quota" not in exc_info.value.message
        assert summarizer.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_empty_answer_is_an_error(self):
        summarizer, _ = make_summarizer(response_text="")

        with pytest.raises(LLMServiceError) as exc_info:
            await summarizer.summarize("text", SummaryOptions())
        assert exc_info.value.message == "Summarization returned no text."

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self):
        summarizer, model = make_summarizer(response_text="ok")
        for _ in range(summarizer.circuit_breaker.failure_threshold):
            summarizer.circuit_breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            await summarizer.summarize("text", SummaryOptions())
        model.generate_content_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_availability(self):
        summarizer, _ = make_summarizer(response_text="ok")
        assert await summarizer.availability() == "available"

        for _ in range(summarizer.circuit_breaker.failure_threshold):
            summarizer.circuit_breaker.record_failure()
        assert await summarizer.availability() == "unavailable"

    @pytest.mark.asyncio
    async def test_no_api_key_is_unavailable(self):
        summarizer, _ = make_summarizer(response_text="ok", api_key="")
        assert await summarizer.availability() == "unavailable"
